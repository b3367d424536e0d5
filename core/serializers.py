from rest_framework import serializers
from .models import RegistrationSettings


class RegistrationSettingsSerializer(serializers.ModelSerializer):
    """
    Public registration windows and texts. Timestamps are epoch ms.
    """
    class Meta:
        model = RegistrationSettings
        fields = [
            'time_open',
            'time_close',
            'time_close_special',
            'time_confirm',
            'time_confirm_special',
            'time_tr',
            'waitlist_text',
            'acceptance_text',
            'confirmation_text',
            'show_rejection',
            'reimbursement_finland',
            'reimbursement_baltics',
            'reimbursement_nordics',
            'reimbursement_europe',
            'reimbursement_rest_of_the_world',
            'reimbursement_golden_ticket',
            'updated_at',
        ]
        read_only_fields = ['updated_at']

    def validate(self, attrs):
        open_ = attrs.get('time_open', getattr(self.instance, 'time_open', 0))
        close = attrs.get('time_close', getattr(self.instance, 'time_close', 0))
        close_special = attrs.get('time_close_special', getattr(self.instance, 'time_close_special', 0))
        if close < open_:
            raise serializers.ValidationError("Registration can not close before it opens.")
        if close_special < open_:
            raise serializers.ValidationError("Special registration can not close before registration opens.")
        return attrs
