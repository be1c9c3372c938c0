from __future__ import annotations

from django.contrib import admin

from apps.deliverables.models import Deliverable, DeliverableReview, Strike


class DeliverableReviewInline(admin.TabularInline):
    model = DeliverableReview
    extra = 0
    can_delete = False
    readonly_fields = ("action", "reason", "actor", "created_at")

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Deliverable)
class DeliverableAdmin(admin.ModelAdmin):
    list_display = ("id", "match", "status", "expected_type", "due_at", "submitted_at", "verified_at")
    list_filter = ("status", "expected_type")
    search_fields = ("match__campaign_code", "submitted_permalink", "verified_permalink")
    inlines = [DeliverableReviewInline]


@admin.register(Strike)
class StrikeAdmin(admin.ModelAdmin):
    list_display = ("id", "creator", "match", "reason", "created_at")
