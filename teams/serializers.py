from rest_framework import serializers

from users.serializers import TeammateSerializer
from .models import Team


class TeamSerializer(serializers.ModelSerializer):
    """
    Team as seen by its members. Pass ``teammates`` in the context to
    include member names.
    """
    code = serializers.UUIDField(source='id', read_only=True)
    size = serializers.IntegerField(read_only=True)
    teammates = serializers.SerializerMethodField()

    class Meta:
        model = Team
        fields = [
            'id',
            'code',
            'leader',
            'members',
            'size',
            'team_locked',
            'track_interests',
            'first_priority_track',
            'second_priority_track',
            'third_priority_track',
            'assigned_track',
            'created_at',
            'teammates',
        ]
        read_only_fields = fields

    def get_teammates(self, obj):
        teammates = self.context.get('teammates')
        if teammates is None:
            return None
        return TeammateSerializer(teammates, many=True).data


class AdminTeamSerializer(TeamSerializer):
    class Meta(TeamSerializer.Meta):
        fields = TeamSerializer.Meta.fields + ['gavel_id', 'revision']
        read_only_fields = fields


# ─────────────────────────────────────────────────────────────
# Input
# ─────────────────────────────────────────────────────────────

class JoinTeamSerializer(serializers.Serializer):
    code = serializers.CharField(allow_blank=True)


class LockTeamSerializer(serializers.Serializer):
    track_interests = serializers.ListField(child=serializers.CharField(max_length=100), allow_empty=True)


class PrioritiesSerializer(serializers.Serializer):
    firstPriorityTrack = serializers.CharField(max_length=100, allow_blank=True, required=False, default="")
    secondPriorityTrack = serializers.CharField(max_length=100, allow_blank=True, required=False, default="")
    thirdPriorityTrack = serializers.CharField(max_length=100, allow_blank=True, required=False, default="")


class KickSerializer(serializers.Serializer):
    participant_id = serializers.CharField()


class AssignTrackSerializer(serializers.Serializer):
    track = serializers.CharField(max_length=100, allow_blank=True)


class MatchmakingProfileSerializer(serializers.Serializer):
    enrollment_type = serializers.ChoiceField(choices=['individual', 'team'])
    profile = serializers.DictField()
