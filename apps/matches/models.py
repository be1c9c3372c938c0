from __future__ import annotations

from django.db import models

from apps.core.models import BaseModel


class Match(BaseModel):
    class Status(models.TextChoices):
        CLAIMED = "CLAIMED", "Claimed"
        PENDING_APPROVAL = "PENDING_APPROVAL", "Pending approval"
        ACCEPTED = "ACCEPTED", "Accepted"
        REVOKED = "REVOKED", "Revoked"
        CANCELED = "CANCELED", "Canceled"

    CLOSED_STATUSES = (Status.REVOKED, Status.CANCELED)

    offer = models.ForeignKey("marketplace.Offer", on_delete=models.PROTECT, related_name="matches")
    creator = models.ForeignKey("marketplace.Creator", on_delete=models.PROTECT, related_name="matches")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING_APPROVAL)
    campaign_code = models.CharField(max_length=16, unique=True)
    accepted_at = models.DateTimeField(null=True, blank=True)
    revoked_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["offer", "creator"], name="match_offer_creator_unique"),
        ]
        indexes = [
            models.Index(fields=["status", "accepted_at"], name="match_status_accepted_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"Match<{self.campaign_code}:{self.status}>"

    @property
    def share_url_path(self) -> str:
        return f"/r/{self.campaign_code}"
