from __future__ import annotations

from django.db import models

from apps.core.models import BaseModel


class BillingSubscription(BaseModel):
    """Mirror of a Stripe subscription, owned by a brand or a creator."""

    class SubjectType(models.TextChoices):
        BRAND = "BRAND", "Brand"
        CREATOR = "CREATOR", "Creator"

    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", "Active"
        TRIALING = "TRIALING", "Trialing"
        PAST_DUE = "PAST_DUE", "Past due"
        CANCELED = "CANCELED", "Canceled"
        INACTIVE = "INACTIVE", "Inactive"

    subject_type = models.CharField(max_length=16, choices=SubjectType.choices)
    subject_id = models.BigIntegerField()
    stripe_subscription_id = models.CharField(max_length=255, blank=True)
    stripe_customer_id = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.INACTIVE)
    current_period_end = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["subject_type", "subject_id"], name="billing_subscription_subject_unique"),
        ]
        indexes = [
            models.Index(fields=["stripe_subscription_id"], name="billing_sub_stripe_id_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.subject_type}:{self.subject_id} {self.status}"

    @property
    def is_entitled(self) -> bool:
        return self.status in (self.Status.ACTIVE, self.Status.TRIALING)
