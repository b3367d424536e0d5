import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Team",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("leader", models.CharField(help_text="Participant id of the leader", max_length=128)),
                ("members", models.JSONField(blank=True, default=list)),
                ("team_locked", models.BooleanField(default=False)),
                ("track_interests", models.JSONField(blank=True, default=list, help_text="Set once, when the team locks")),
                ("first_priority_track", models.CharField(blank=True, default="", max_length=100)),
                ("second_priority_track", models.CharField(blank=True, default="", max_length=100)),
                ("third_priority_track", models.CharField(blank=True, default="", max_length=100)),
                ("assigned_track", models.CharField(blank=True, default="", max_length=100)),
                ("gavel_id", models.CharField(blank=True, default="", max_length=128)),
                ("revision", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["team_locked"], name="team_locked_idx"),
                    models.Index(fields=["assigned_track"], name="team_assigned_track_idx"),
                ],
            },
        ),
    ]
