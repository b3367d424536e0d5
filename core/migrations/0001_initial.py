import core.models
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="RegistrationSettings",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("time_open", models.BigIntegerField(default=0)),
                ("time_close", models.BigIntegerField(default=core.models._a_year_from_now)),
                ("time_close_special", models.BigIntegerField(default=core.models._a_year_from_now)),
                ("time_confirm", models.BigIntegerField(default=604800000)),
                ("time_confirm_special", models.BigIntegerField(default=604800000)),
                ("time_tr", models.BigIntegerField(default=core.models._a_year_from_now, help_text="Travel reimbursement deadline")),
                ("waitlist_text", models.TextField(blank=True, default="")),
                ("acceptance_text", models.TextField(blank=True, default="")),
                ("confirmation_text", models.TextField(blank=True, default="")),
                ("show_rejection", models.BooleanField(default=False)),
                ("reimbursement_finland", models.PositiveIntegerField(default=20)),
                ("reimbursement_baltics", models.PositiveIntegerField(default=40)),
                ("reimbursement_nordics", models.PositiveIntegerField(default=60)),
                ("reimbursement_europe", models.PositiveIntegerField(default=80)),
                ("reimbursement_rest_of_the_world", models.PositiveIntegerField(default=150)),
                ("reimbursement_golden_ticket", models.PositiveIntegerField(default=200)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "registration settings",
                "verbose_name_plural": "registration settings",
            },
        ),
    ]
