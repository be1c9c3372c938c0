from __future__ import annotations

from django.contrib import admin

from apps.notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("id", "type", "channel", "to", "status", "attempts", "sent_at", "created_at")
    list_filter = ("status", "channel", "type")
    search_fields = ("to", "type", "last_error")
    readonly_fields = ("payload", "attempts", "sent_at", "last_error", "created_at", "updated_at")
    actions = ["requeue"]

    @admin.action(description="Requeue selected notifications")
    def requeue(self, request, queryset):
        updated = queryset.exclude(status=Notification.Status.SENT).update(
            status=Notification.Status.PENDING,
            attempts=0,
        )
        self.message_user(request, f"Requeued {updated} notification(s).")
