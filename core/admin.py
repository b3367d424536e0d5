from django.contrib import admin
from .models import RegistrationSettings

@admin.register(RegistrationSettings)
class RegistrationSettingsAdmin(admin.ModelAdmin):
    list_display = ('__str__', 'time_open', 'time_close', 'time_close_special', 'time_confirm', 'time_tr', 'updated_at')

    def has_add_permission(self, request):
        # Singleton, created on first load()
        return not RegistrationSettings.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False
