from rest_framework import serializers

from .models import User


STATUS_FIELDS = [
    'completed_profile',
    'submitted_application',
    'soft_admitted',
    'admitted',
    'confirmed',
    'confirm_by',
    'declined',
    'rejected',
    'waitlist',
    'checked_in',
    'check_in_time',
    'terminal_accepted',
    'reimbursement_applied',
    'reimbursement_given',
]


class UserSerializer(serializers.ModelSerializer):
    """What participants see about themselves."""
    name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = [
            'id',
            'participant_id',
            'email',
            'nickname',
            'name',
            'verified',
            'special_registration',
            'date_joined',
            'last_updated',
            'profile',
            'confirmation',
            'reimbursement',
            'applied_reimbursement_class',
            'accepted_reimbursement_class',
            'team',
            # Matchmaking
            'matchmaking_enrolled',
            'matchmaking_enrollment_type',
            'matchmaking_individual',
            'matchmaking_team',
        ] + STATUS_FIELDS
        read_only_fields = fields


class AdminUserSerializer(UserSerializer):
    """
    Full record for reviewers. ``team_locked`` is derived from the team the
    user references; pass a precomputed {team_id: locked} map as the
    ``team_locked`` context entry when serializing a page of users.
    """
    team_locked = serializers.SerializerMethodField()

    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + [
            'rating',
            'admitted_by',
            'later_rejected',
            'needs_reimbursement',
            'needs_visa',
            'most_interesting_track',
            'gender',
            'travel_from_country',
            'team_selection',
            'gavel_id',
            'is_staff',
            'team_locked',
        ]
        read_only_fields = fields

    def get_team_locked(self, obj):
        if not obj.team:
            return False
        mapping = self.context.get('team_locked')
        if mapping is not None:
            return bool(mapping.get(obj.team, False))
        from .services import AdmissionService
        return AdmissionService.is_team_locked(obj)


class TeammateSerializer(serializers.ModelSerializer):
    name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ['participant_id', 'name', 'nickname']
        read_only_fields = fields


# ─────────────────────────────────────────────────────────────
# Input
# ─────────────────────────────────────────────────────────────

class ProfileSerializer(serializers.Serializer):
    profile = serializers.DictField()


class ConfirmationSerializer(serializers.Serializer):
    confirmation = serializers.DictField()


class ReimbursementSerializer(serializers.Serializer):
    reimbursement = serializers.DictField()


class RatingSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=0, max_value=5)


class TravelClassSerializer(serializers.Serializer):
    reimbursement_class = serializers.ChoiceField(
        choices=[value for value, _ in User.REIMBURSEMENT_CHOICES],
        required=False,
        allow_blank=True,
    )


class EmailSerializer(serializers.Serializer):
    email = serializers.EmailField()


class PasswordSerializer(serializers.Serializer):
    password = serializers.CharField(write_only=True)


class MassActionSerializer(serializers.Serializer):
    special = serializers.BooleanField(required=False, default=False)
