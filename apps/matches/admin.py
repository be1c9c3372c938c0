from __future__ import annotations

from django.contrib import admin

from apps.matches.models import Match


@admin.register(Match)
class MatchAdmin(admin.ModelAdmin):
    list_display = ("id", "campaign_code", "offer", "creator", "status", "accepted_at", "created_at")
    list_filter = ("status",)
    search_fields = ("campaign_code",)
    readonly_fields = ("campaign_code", "accepted_at", "revoked_at", "created_at", "updated_at")
