import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                ("is_superuser", models.BooleanField(default=False, help_text="Designates that this user has all permissions without explicitly assigning them.", verbose_name="superuser status")),
                ("username", models.CharField(error_messages={"unique": "A user with that username already exists."}, help_text="Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.", max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name="username")),
                ("first_name", models.CharField(blank=True, max_length=150, verbose_name="first name")),
                ("last_name", models.CharField(blank=True, max_length=150, verbose_name="last name")),
                ("is_staff", models.BooleanField(default=False, help_text="Designates whether the user can log into this admin site.", verbose_name="staff status")),
                ("is_active", models.BooleanField(default=True, help_text="Designates whether this user should be treated as active. Unselect this instead of deleting accounts.", verbose_name="active")),
                ("date_joined", models.DateTimeField(default=django.utils.timezone.now, verbose_name="date joined")),
                ("participant_id", models.CharField(help_text="Three word mnemonic id", max_length=128, unique=True)),
                ("email", models.EmailField(max_length=254, unique=True)),
                ("nickname", models.CharField(blank=True, default="", max_length=100)),
                ("verified", models.BooleanField(default=False)),
                ("special_registration", models.BooleanField(default=False)),
                ("last_updated", models.DateTimeField(blank=True, null=True)),
                ("profile", models.JSONField(blank=True, default=dict)),
                ("applied_reimbursement_class", models.CharField(blank=True, choices=[("None", "None"), ("Finland", "Finland"), ("Baltics", "Baltics"), ("Nordics", "Nordics"), ("Europe", "Europe"), ("RestOfTheWorld", "Rest of the World"), ("GoldenTicket", "Golden Ticket"), ("Rejected", "Rejected")], default="", max_length=32)),
                ("accepted_reimbursement_class", models.CharField(blank=True, choices=[("None", "None"), ("Finland", "Finland"), ("Baltics", "Baltics"), ("Nordics", "Nordics"), ("Europe", "Europe"), ("RestOfTheWorld", "Rest of the World"), ("GoldenTicket", "Golden Ticket"), ("Rejected", "Rejected")], default="", max_length=32)),
                ("needs_reimbursement", models.BooleanField(default=False)),
                ("needs_visa", models.BooleanField(default=False)),
                ("most_interesting_track", models.CharField(blank=True, default="", max_length=100)),
                ("gender", models.CharField(blank=True, choices=[("M", "Male"), ("F", "Female"), ("O", "Other"), ("N", "Prefer not to say")], default="", max_length=1)),
                ("travel_from_country", models.CharField(blank=True, default="", max_length=100)),
                ("team_selection", models.CharField(blank=True, choices=[("alone", "Alone"), ("teamOrAlone", "Team or alone"), ("onlyTeam", "Only with a team")], default="", max_length=16)),
                ("terminal_essay", models.TextField(blank=True, default="")),
                ("confirmation", models.JSONField(blank=True, default=dict)),
                ("reimbursement", models.JSONField(blank=True, default=dict)),
                ("completed_profile", models.BooleanField(default=False)),
                ("submitted_application", models.BooleanField(default=False)),
                ("soft_admitted", models.BooleanField(default=False)),
                ("admitted", models.BooleanField(default=False)),
                ("admitted_by", models.EmailField(blank=True, default="", max_length=254)),
                ("confirmed", models.BooleanField(default=False)),
                ("confirm_by", models.BigIntegerField(blank=True, help_text="Epoch ms", null=True)),
                ("declined", models.BooleanField(default=False)),
                ("rejected", models.BooleanField(default=False)),
                ("later_rejected", models.BooleanField(default=False)),
                ("waitlist", models.BooleanField(default=False)),
                ("rating", models.PositiveSmallIntegerField(default=0, validators=[django.core.validators.MaxValueValidator(5)])),
                ("checked_in", models.BooleanField(default=False)),
                ("check_in_time", models.BigIntegerField(blank=True, help_text="Epoch ms", null=True)),
                ("terminal_accepted", models.BooleanField(default=False)),
                ("reimbursement_applied", models.BooleanField(default=False)),
                ("reimbursement_given", models.BooleanField(default=False)),
                ("team", models.UUIDField(blank=True, db_index=True, null=True)),
                ("matchmaking_enrolled", models.BooleanField(default=False)),
                ("matchmaking_enrollment_type", models.CharField(blank=True, choices=[("individual", "Individual"), ("team", "Team")], default="", max_length=16)),
                ("matchmaking_individual", models.JSONField(blank=True, default=dict)),
                ("matchmaking_team", models.JSONField(blank=True, default=dict)),
                ("gavel_id", models.CharField(blank=True, default="", max_length=128)),
                ("gavel_token", models.CharField(blank=True, default="", max_length=255)),
                ("groups", models.ManyToManyField(blank=True, help_text="The groups this user belongs to. A user will get all permissions granted to each of their groups.", related_name="user_set", related_query_name="user", to="auth.group", verbose_name="groups")),
                ("user_permissions", models.ManyToManyField(blank=True, help_text="Specific permissions for this user.", related_name="user_set", related_query_name="user", to="auth.permission", verbose_name="user permissions")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["admitted", "confirmed"], name="user_admit_confirm_idx"),
                    models.Index(fields=["rejected", "soft_admitted"], name="user_reject_soft_idx"),
                ],
            },
            managers=[
                ("objects", django.contrib.auth.models.UserManager()),
            ],
        ),
    ]
