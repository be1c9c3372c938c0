from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from apps.core.models import BaseModel
from apps.marketplace.metadata import OfferMetadata, validate_offer_metadata


class Brand(BaseModel):
    name = models.CharField(max_length=160)
    website = models.CharField(max_length=500, blank=True)
    address1 = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=120, blank=True)
    province = models.CharField(max_length=120, blank=True)
    zip = models.CharField(max_length=32, blank=True)
    country = models.CharField(max_length=2, blank=True)
    instagram_handle = models.CharField(max_length=64, blank=True)
    members = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through="BrandMember",
        related_name="brands",
        blank=True,
    )

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return self.name

    @property
    def postal_parts(self) -> list[str]:
        return [part.strip() for part in (self.address1, self.city, self.province, self.zip) if part and part.strip()]


class BrandMember(BaseModel):
    class Role(models.TextChoices):
        OWNER = "OWNER", "Owner"
        MEMBER = "MEMBER", "Member"

    brand = models.ForeignKey(Brand, on_delete=models.CASCADE, related_name="memberships")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="brand_memberships")
    role = models.CharField(max_length=16, choices=Role.choices, default=Role.MEMBER)

    class Meta:
        unique_together = ("brand", "user")


class Creator(BaseModel):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="creator",
        null=True,
        blank=True,
    )
    full_name = models.CharField(max_length=160, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    username = models.CharField(max_length=64, blank=True)
    ig_user_id = models.CharField(max_length=64, blank=True)
    followers_count = models.PositiveIntegerField(null=True, blank=True)
    address1 = models.CharField(max_length=255, blank=True)
    address2 = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=120, blank=True)
    province = models.CharField(max_length=120, blank=True)
    zip = models.CharField(max_length=32, blank=True)
    country = models.CharField(max_length=2, blank=True)

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return self.username or self.full_name or str(self.id)

    @property
    def has_shipping_address(self) -> bool:
        return all((self.address1, self.city, self.zip, self.country))


class CreatorSocialAccount(BaseModel):
    class Provider(models.TextChoices):
        INSTAGRAM = "INSTAGRAM", "Instagram"

    creator = models.ForeignKey(Creator, on_delete=models.CASCADE, related_name="social_accounts")
    provider = models.CharField(max_length=16, choices=Provider.choices, default=Provider.INSTAGRAM)
    external_user_id = models.CharField(max_length=64)
    access_token_encrypted = models.TextField(blank=True)
    account_type = models.CharField(max_length=32, blank=True)
    profile_synced_at = models.DateTimeField(null=True, blank=True)
    profile_error = models.TextField(blank=True)

    class Meta:
        unique_together = ("creator", "provider")


class Offer(BaseModel):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        PUBLISHED = "PUBLISHED", "Published"
        ARCHIVED = "ARCHIVED", "Archived"

    class DeliverableType(models.TextChoices):
        REELS = "REELS", "Reels"
        FEED = "FEED", "Feed"
        UGC_ONLY = "UGC_ONLY", "UGC only"

    brand = models.ForeignKey(Brand, on_delete=models.CASCADE, related_name="offers")
    title = models.CharField(max_length=200)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.DRAFT)
    deliverable_type = models.CharField(max_length=16, choices=DeliverableType.choices, default=DeliverableType.REELS)
    deadline_days_after_delivery = models.PositiveIntegerField(default=7)
    usage_rights_required = models.BooleanField(default=False)
    usage_rights_scope = models.CharField(max_length=64, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return self.title

    def clean(self) -> None:
        super().clean()
        self.metadata = validate_offer_metadata(self.metadata).to_raw()

    @property
    def parsed_metadata(self) -> OfferMetadata:
        return OfferMetadata.from_raw(self.metadata)


class OfferProduct(BaseModel):
    offer = models.ForeignKey(Offer, on_delete=models.CASCADE, related_name="products")
    shopify_product_id = models.CharField(max_length=64)
    shopify_variant_id = models.CharField(max_length=64, blank=True)
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ["created_at"]

    def clean(self) -> None:
        super().clean()
        if self.quantity < 1:
            raise ValidationError("quantity must be at least 1.")
