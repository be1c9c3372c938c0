from __future__ import annotations

from django.contrib import admin

from apps.cron.models import CronLock


@admin.register(CronLock)
class CronLockAdmin(admin.ModelAdmin):
    list_display = ("job", "locked_by", "locked_until", "updated_at")
    search_fields = ("job",)
