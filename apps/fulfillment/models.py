from __future__ import annotations

from django.db import models

from apps.core.models import BaseModel


class CommerceStore(BaseModel):
    """A brand's connected Shopify shop. Inactive once the app is uninstalled."""

    brand = models.ForeignKey("marketplace.Brand", on_delete=models.CASCADE, related_name="stores")
    shop_domain = models.CharField(max_length=255, unique=True)
    access_token_encrypted = models.TextField()
    scopes = models.CharField(max_length=500, blank=True)
    installed_at = models.DateTimeField(null=True, blank=True)
    uninstalled_at = models.DateTimeField(null=True, blank=True)

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return self.shop_domain

    @property
    def is_active(self) -> bool:
        return self.uninstalled_at is None


class MatchDiscount(BaseModel):
    match = models.OneToOneField("matches.Match", on_delete=models.CASCADE, related_name="discount")
    shop_domain = models.CharField(max_length=255)
    code = models.CharField(max_length=32)
    price_rule_id = models.CharField(max_length=64)
    discount_code_id = models.CharField(max_length=64, blank=True)
    percent = models.DecimalField(max_digits=5, decimal_places=2)


class OrderFulfillmentRecord(BaseModel):
    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        DRAFT_CREATED = "DRAFT_CREATED", "Draft created"
        COMPLETED = "COMPLETED", "Completed"
        FULFILLED = "FULFILLED", "Fulfilled"
        CANCELED = "CANCELED", "Canceled"
        ERROR = "ERROR", "Error"

    TERMINAL_STATUSES = (Status.COMPLETED, Status.FULFILLED, Status.CANCELED)
    RETRYABLE_STATUSES = (Status.PENDING, Status.ERROR, Status.DRAFT_CREATED)

    match = models.OneToOneField("matches.Match", on_delete=models.CASCADE, related_name="order_record")
    shop_domain = models.CharField(max_length=255)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    draft_order_id = models.CharField(max_length=64, blank=True)
    order_id = models.CharField(max_length=64, blank=True)
    order_name = models.CharField(max_length=64, blank=True)
    tracking_number = models.CharField(max_length=128, blank=True)
    tracking_url = models.CharField(max_length=500, blank=True)
    error = models.TextField(blank=True)
    fulfilled_at = models.DateTimeField(null=True, blank=True)
    # Held by the worker currently talking to Shopify for this record.
    claimed_until = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["shop_domain", "order_id"], name="order_record_shop_order_idx"),
            models.Index(fields=["status"], name="order_record_status_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"OrderFulfillmentRecord<{self.match_id}:{self.status}>"


class ManualShipment(BaseModel):
    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        SHIPPED = "SHIPPED", "Shipped"

    match = models.OneToOneField("matches.Match", on_delete=models.CASCADE, related_name="manual_shipment")
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    carrier = models.CharField(max_length=64, blank=True)
    tracking_number = models.CharField(max_length=128, blank=True)
    tracking_url = models.CharField(max_length=500, blank=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
