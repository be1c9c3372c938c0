from __future__ import annotations

from django.conf import settings
from django.db import models

from apps.core.models import AppendOnlyModel, BaseModel

DEFAULT_USAGE_RIGHTS_SCOPE = "PAID_ADS_12MO"


class Deliverable(BaseModel):
    class Status(models.TextChoices):
        DUE = "DUE", "Due"
        VERIFIED = "VERIFIED", "Verified"
        FAILED = "FAILED", "Failed"
        REPOST_REQUIRED = "REPOST_REQUIRED", "Repost required"

    match = models.OneToOneField("matches.Match", on_delete=models.CASCADE, related_name="deliverable")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DUE)
    expected_type = models.CharField(max_length=16)
    due_at = models.DateTimeField()
    submitted_permalink = models.CharField(max_length=500, blank=True)
    submitted_notes = models.TextField(blank=True)
    submitted_at = models.DateTimeField(null=True, blank=True)
    usage_rights_granted_at = models.DateTimeField(null=True, blank=True)
    usage_rights_scope = models.CharField(max_length=64, blank=True)
    verified_permalink = models.CharField(max_length=500, blank=True)
    verified_media_id = models.CharField(max_length=64, blank=True)
    verified_at = models.DateTimeField(null=True, blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="reviewed_deliverables",
        null=True,
        blank=True,
    )
    failure_reason = models.CharField(max_length=500, blank=True)
    reminder_sent_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(status="VERIFIED") | ~models.Q(verified_permalink=""),
                name="deliverable_verified_requires_permalink",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "due_at"], name="deliverable_status_due_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"Deliverable<{self.match_id}:{self.status}>"


class DeliverableReview(AppendOnlyModel):
    class Action(models.TextChoices):
        VERIFY = "VERIFY", "Verify"
        REQUEST_CHANGES = "REQUEST_CHANGES", "Request changes"
        FAIL = "FAIL", "Fail"
        REPOST_REQUIRED = "REPOST_REQUIRED", "Repost required"

    deliverable = models.ForeignKey(Deliverable, on_delete=models.CASCADE, related_name="reviews")
    action = models.CharField(max_length=20, choices=Action.choices)
    reason = models.CharField(max_length=500, blank=True)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="deliverable_reviews",
        null=True,
        blank=True,
    )

    class Meta:
        ordering = ["created_at"]


class Strike(BaseModel):
    creator = models.ForeignKey("marketplace.Creator", on_delete=models.CASCADE, related_name="strikes")
    match = models.OneToOneField("matches.Match", on_delete=models.CASCADE, related_name="strike")
    reason = models.CharField(max_length=255)
