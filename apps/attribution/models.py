from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import Q

from apps.core.models import AppendOnlyModel


class LinkClick(AppendOnlyModel):
    match = models.ForeignKey("matches.Match", on_delete=models.CASCADE, related_name="clicks")
    ip_hash = models.CharField(max_length=64, blank=True)
    user_agent = models.CharField(max_length=512, blank=True)
    referer = models.CharField(max_length=1024, blank=True)

    class Meta:
        indexes = [models.Index(fields=["match", "created_at"], name="linkclick_match_created_idx")]


class AttributedOrder(AppendOnlyModel):
    match = models.ForeignKey("matches.Match", on_delete=models.CASCADE, related_name="attributed_orders")
    shop_domain = models.CharField(max_length=255)
    order_id = models.CharField(max_length=64)
    customer_id = models.CharField(max_length=64, blank=True)
    currency = models.CharField(max_length=3, default="USD")
    total_cents = models.BigIntegerField(default=0)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["shop_domain", "order_id"], name="attributed_order_shop_order_unique"),
        ]


class AttributedRefund(AppendOnlyModel):
    match = models.ForeignKey("matches.Match", on_delete=models.CASCADE, related_name="attributed_refunds")
    shop_domain = models.CharField(max_length=255)
    order_id = models.CharField(max_length=64)
    refund_id = models.CharField(max_length=64)
    currency = models.CharField(max_length=3, default="USD")
    amount_cents = models.BigIntegerField(default=0)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["shop_domain", "refund_id"], name="attributed_refund_shop_refund_unique"),
        ]


class Redemption(AppendOnlyModel):
    class Channel(models.TextChoices):
        IN_STORE = "IN_STORE", "In store"
        ONLINE = "ONLINE", "Online"
        OTHER = "OTHER", "Other"

    match = models.ForeignKey("matches.Match", on_delete=models.CASCADE, related_name="redemptions")
    brand = models.ForeignKey("marketplace.Brand", on_delete=models.CASCADE, related_name="redemptions")
    channel = models.CharField(max_length=16, choices=Channel.choices, default=Channel.IN_STORE)
    amount_cents = models.BigIntegerField()
    currency = models.CharField(max_length=3, default="USD")
    note = models.CharField(max_length=240, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="recorded_redemptions",
    )

    class Meta:
        constraints = [
            models.CheckConstraint(condition=Q(amount_cents__gt=0), name="redemption_amount_positive"),
        ]
