from django.contrib import admin
from .models import Team

@admin.register(Team)
class TeamAdmin(admin.ModelAdmin):
    list_display = ('id', 'leader', 'team_locked', 'assigned_track', 'gavel_id', 'created_at')
    list_filter = ('team_locked', 'assigned_track')
    search_fields = ('id', 'leader', 'gavel_id')
    readonly_fields = ('id', 'revision', 'created_at')
