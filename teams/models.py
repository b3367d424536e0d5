# teams/models.py
import uuid

from django.conf import settings
from django.db import models


def max_team_size():
    return int(getattr(settings, "TEAM_MAX_SIZE", 4))


class Team(models.Model):
    """
    A hackathon team.

    The UUID primary key doubles as the join code handed out by the leader.
    Members are participant ids, in join order; the first remaining member
    takes over when the leader leaves and the team is deleted once empty.

    Writes that depend on the current members go through a compare-and-swap
    on ``revision`` (see teams.services), so concurrent joins can not push a
    team past the size limit.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    leader = models.CharField(max_length=128, help_text="Participant id of the leader")
    members = models.JSONField(default=list, blank=True)

    team_locked = models.BooleanField(default=False)
    track_interests = models.JSONField(default=list, blank=True, help_text="Set once, when the team locks")
    first_priority_track = models.CharField(max_length=100, blank=True, default="")
    second_priority_track = models.CharField(max_length=100, blank=True, default="")
    third_priority_track = models.CharField(max_length=100, blank=True, default="")
    assigned_track = models.CharField(max_length=100, blank=True, default="")

    gavel_id = models.CharField(max_length=128, blank=True, default="")

    revision = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["team_locked"], name="team_locked_idx"),
            models.Index(fields=["assigned_track"], name="team_assigned_track_idx"),
        ]

    def __str__(self):
        return f"Team {self.id} ({len(self.members)} members)"

    @property
    def size(self):
        return len(self.members)

    @property
    def is_full(self):
        return self.size >= max_team_size()

    def has_member(self, participant_id):
        return participant_id in self.members
