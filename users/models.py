# users/models.py
from django.contrib.auth.models import AbstractUser
from django.core.validators import MaxValueValidator
from django.db import models

from .ids import next_participant_id


class User(AbstractUser):
    """
    A hackathon participant (or an admin, via is_staff).

    Admission status is stored as a set of flags that combine into a state
    vector rather than a single enum: see users.state_machine for the legal
    transitions between them.
    """
    REIMBURSEMENT_NONE = "None"
    REIMBURSEMENT_FINLAND = "Finland"
    REIMBURSEMENT_BALTICS = "Baltics"
    REIMBURSEMENT_NORDICS = "Nordics"
    REIMBURSEMENT_EUROPE = "Europe"
    REIMBURSEMENT_REST_OF_THE_WORLD = "RestOfTheWorld"
    REIMBURSEMENT_GOLDEN_TICKET = "GoldenTicket"
    REIMBURSEMENT_REJECTED = "Rejected"

    REIMBURSEMENT_CHOICES = [
        (REIMBURSEMENT_NONE, "None"),
        (REIMBURSEMENT_FINLAND, "Finland"),
        (REIMBURSEMENT_BALTICS, "Baltics"),
        (REIMBURSEMENT_NORDICS, "Nordics"),
        (REIMBURSEMENT_EUROPE, "Europe"),
        (REIMBURSEMENT_REST_OF_THE_WORLD, "Rest of the World"),
        (REIMBURSEMENT_GOLDEN_TICKET, "Golden Ticket"),
        (REIMBURSEMENT_REJECTED, "Rejected"),
    ]

    GENDER_CHOICES = [
        ("M", "Male"),
        ("F", "Female"),
        ("O", "Other"),
        ("N", "Prefer not to say"),
    ]

    TEAM_SELECTION_CHOICES = [
        ("alone", "Alone"),
        ("teamOrAlone", "Team or alone"),
        ("onlyTeam", "Only with a team"),
    ]

    ENROLLMENT_INDIVIDUAL = "individual"
    ENROLLMENT_TEAM = "team"

    ENROLLMENT_CHOICES = [
        (ENROLLMENT_INDIVIDUAL, "Individual"),
        (ENROLLMENT_TEAM, "Team"),
    ]

    # Identity
    participant_id = models.CharField(max_length=128, unique=True, help_text="Three word mnemonic id")
    email = models.EmailField(unique=True)
    nickname = models.CharField(max_length=100, blank=True, default="")

    verified = models.BooleanField(default=False)
    special_registration = models.BooleanField(default=False)
    last_updated = models.DateTimeField(blank=True, null=True)

    # Application answers. Derived fields below are copied out of the
    # free-form profile so they can be filtered and counted.
    profile = models.JSONField(default=dict, blank=True)
    applied_reimbursement_class = models.CharField(max_length=32, choices=REIMBURSEMENT_CHOICES, blank=True, default="")
    accepted_reimbursement_class = models.CharField(max_length=32, choices=REIMBURSEMENT_CHOICES, blank=True, default="")
    needs_reimbursement = models.BooleanField(default=False)
    needs_visa = models.BooleanField(default=False)
    most_interesting_track = models.CharField(max_length=100, blank=True, default="")
    gender = models.CharField(max_length=1, choices=GENDER_CHOICES, blank=True, default="")
    travel_from_country = models.CharField(max_length=100, blank=True, default="")
    team_selection = models.CharField(max_length=16, choices=TEAM_SELECTION_CHOICES, blank=True, default="")
    terminal_essay = models.TextField(blank=True, default="")

    confirmation = models.JSONField(default=dict, blank=True)
    reimbursement = models.JSONField(default=dict, blank=True)

    # Admission status
    completed_profile = models.BooleanField(default=False)
    submitted_application = models.BooleanField(default=False)
    soft_admitted = models.BooleanField(default=False)
    admitted = models.BooleanField(default=False)
    admitted_by = models.EmailField(blank=True, default="")
    confirmed = models.BooleanField(default=False)
    confirm_by = models.BigIntegerField(blank=True, null=True, help_text="Epoch ms")
    declined = models.BooleanField(default=False)
    rejected = models.BooleanField(default=False)
    later_rejected = models.BooleanField(default=False)
    waitlist = models.BooleanField(default=False)
    rating = models.PositiveSmallIntegerField(default=0, validators=[MaxValueValidator(5)])
    checked_in = models.BooleanField(default=False)
    check_in_time = models.BigIntegerField(blank=True, null=True, help_text="Epoch ms")
    terminal_accepted = models.BooleanField(default=False)
    reimbursement_applied = models.BooleanField(default=False)
    reimbursement_given = models.BooleanField(default=False)

    # Weak reference to teams.Team. There is no database constraint: the
    # team may be deleted or not list this user for a short while, readers
    # treat that as "no team".
    team = models.UUIDField(blank=True, null=True, db_index=True)

    # Team matchmaking, independent of team membership
    matchmaking_enrolled = models.BooleanField(default=False)
    matchmaking_enrollment_type = models.CharField(max_length=16, choices=ENROLLMENT_CHOICES, blank=True, default="")
    matchmaking_individual = models.JSONField(default=dict, blank=True)
    matchmaking_team = models.JSONField(default=dict, blank=True)

    # External submission system (gavel) correlation
    gavel_id = models.CharField(max_length=128, blank=True, default="")
    gavel_token = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        indexes = [
            models.Index(fields=["admitted", "confirmed"], name="user_admit_confirm_idx"),
            models.Index(fields=["rejected", "soft_admitted"], name="user_reject_soft_idx"),
        ]

    def __str__(self):
        return f"{self.participant_id} <{self.email}>"

    def save(self, *args, **kwargs):
        if not self.participant_id:
            self.participant_id = next_participant_id()
        super().save(*args, **kwargs)

    @property
    def name(self):
        return self.profile.get("name", "") if isinstance(self.profile, dict) else ""
