from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from .models import User

@admin.register(User)
class CustomUserAdmin(UserAdmin):
    list_display = ('participant_id', 'email', 'nickname', 'verified', 'soft_admitted', 'admitted', 'confirmed', 'declined', 'rejected', 'rating', 'is_staff')
    list_filter = ('verified', 'special_registration', 'completed_profile', 'soft_admitted', 'admitted', 'confirmed', 'declined', 'rejected', 'waitlist', 'checked_in', 'is_staff')
    search_fields = ('participant_id', 'email', 'nickname', 'username')
    readonly_fields = ('participant_id', 'last_updated', 'team', 'gavel_id', 'gavel_token')
    fieldsets = UserAdmin.fieldsets + (
        ('Participant', {'fields': ('participant_id', 'nickname', 'verified', 'special_registration', 'last_updated', 'team')}),
        ('Application', {'fields': ('profile', 'confirmation', 'reimbursement', 'applied_reimbursement_class', 'accepted_reimbursement_class')}),
        ('Status', {'fields': (
            'completed_profile', 'submitted_application', 'soft_admitted', 'admitted', 'admitted_by',
            'confirmed', 'confirm_by', 'declined', 'rejected', 'later_rejected', 'waitlist', 'rating',
            'checked_in', 'check_in_time', 'terminal_accepted', 'reimbursement_applied', 'reimbursement_given',
        )}),
        ('Judging platform', {'fields': ('gavel_id', 'gavel_token')}),
    )
    add_fieldsets = UserAdmin.add_fieldsets + (
        ('Participant', {'fields': ('email', 'nickname', 'special_registration')}),
    )
