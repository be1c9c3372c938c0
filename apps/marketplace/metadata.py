from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any
from urllib.parse import urlparse

from django.core.exceptions import ValidationError
from rest_framework import serializers

MILES_TO_KM = Decimal("1.609344")

FULFILLMENT_SHOPIFY = "SHOPIFY"
FULFILLMENT_MANUAL = "MANUAL"
FULFILLMENT_TYPES = (FULFILLMENT_SHOPIFY, FULFILLMENT_MANUAL)

_KNOWN_KEYS = {
    "productValue",
    "fulfillmentType",
    "ctaUrl",
    "platforms",
    "locationRadiusKm",
    "locationRadiusMiles",
}


def is_http_url(value: str | None) -> bool:
    if not value:
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _decimal_or_none(value: Any) -> Decimal | None:
    if value in (None, ""):
        return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite() or number < 0:
        return None
    return number


@dataclass(frozen=True)
class OfferMetadata:
    """Typed view over the offer metadata blob.

    Stored rows are read leniently through ``from_raw``; writes go through
    ``OfferMetadataSerializer`` so bad input is rejected once, at the boundary.
    """

    product_value: Decimal | None = None
    fulfillment_type: str | None = None
    cta_url: str | None = None
    platforms: tuple[str, ...] = ()
    location_radius_km: Decimal | None = None
    extra: dict = field(default_factory=dict)

    @property
    def is_manual_fulfillment(self) -> bool:
        return self.fulfillment_type == FULFILLMENT_MANUAL

    @property
    def seed_cost_cents(self) -> int:
        if self.product_value is None:
            return 0
        return int((self.product_value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def requires_platform(self, platform: str) -> bool:
        """An empty platform list means any platform is acceptable."""
        return not self.platforms or platform.upper() in self.platforms

    @classmethod
    def from_raw(cls, raw: Any) -> "OfferMetadata":
        if not isinstance(raw, dict):
            return cls()
        fulfillment = str(raw.get("fulfillmentType") or "").strip().upper() or None
        if fulfillment not in FULFILLMENT_TYPES:
            fulfillment = None
        cta_url = str(raw.get("ctaUrl") or "").strip() or None
        if not is_http_url(cta_url):
            cta_url = None
        platforms_raw = raw.get("platforms")
        platforms: tuple[str, ...] = ()
        if isinstance(platforms_raw, (list, tuple)):
            platforms = tuple(str(item).strip().upper() for item in platforms_raw if str(item).strip())
        radius_km = _decimal_or_none(raw.get("locationRadiusKm"))
        if radius_km is None:
            miles = _decimal_or_none(raw.get("locationRadiusMiles"))
            if miles is not None:
                radius_km = miles * MILES_TO_KM
        return cls(
            product_value=_decimal_or_none(raw.get("productValue")),
            fulfillment_type=fulfillment,
            cta_url=cta_url,
            platforms=platforms,
            location_radius_km=radius_km,
            extra={key: value for key, value in raw.items() if key not in _KNOWN_KEYS},
        )

    def to_raw(self) -> dict:
        data = dict(self.extra)
        if self.product_value is not None:
            data["productValue"] = float(self.product_value)
        if self.fulfillment_type:
            data["fulfillmentType"] = self.fulfillment_type
        if self.cta_url:
            data["ctaUrl"] = self.cta_url
        if self.platforms:
            data["platforms"] = list(self.platforms)
        if self.location_radius_km is not None:
            data["locationRadiusKm"] = float(self.location_radius_km)
        return data


class OfferMetadataSerializer(serializers.Serializer):
    productValue = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0"), max_value=Decimal("1000000"), required=False, allow_null=True
    )
    fulfillmentType = serializers.ChoiceField(choices=FULFILLMENT_TYPES, required=False, allow_null=True)
    ctaUrl = serializers.URLField(max_length=800, required=False, allow_null=True, allow_blank=True)
    platforms = serializers.ListField(child=serializers.CharField(max_length=32), max_length=6, required=False)
    locationRadiusKm = serializers.DecimalField(
        max_digits=8, decimal_places=3, min_value=Decimal("1"), max_value=Decimal("8000"), required=False, allow_null=True
    )
    locationRadiusMiles = serializers.DecimalField(
        max_digits=8, decimal_places=3, min_value=Decimal("1"), max_value=Decimal("5000"), required=False, allow_null=True
    )

    def to_metadata(self, raw: dict) -> OfferMetadata:
        data = self.validated_data
        radius_km = data.get("locationRadiusKm")
        if radius_km is None and data.get("locationRadiusMiles") is not None:
            radius_km = data["locationRadiusMiles"] * MILES_TO_KM
        return OfferMetadata(
            product_value=data.get("productValue"),
            fulfillment_type=data.get("fulfillmentType") or None,
            cta_url=(data.get("ctaUrl") or "").strip() or None,
            platforms=tuple(item.strip().upper() for item in data.get("platforms") or [] if item.strip()),
            location_radius_km=radius_km,
            extra={key: value for key, value in raw.items() if key not in _KNOWN_KEYS},
        )


def validate_offer_metadata(raw: Any) -> OfferMetadata:
    """Strict parse used when an offer is created or edited."""
    if raw in (None, ""):
        return OfferMetadata()
    if not isinstance(raw, dict):
        raise ValidationError("Offer metadata must be an object.")
    serializer = OfferMetadataSerializer(data=raw)
    if not serializer.is_valid():
        field_name, errors = next(iter(serializer.errors.items()))
        detail = errors[0] if isinstance(errors, list) and errors else errors
        raise ValidationError(f"{field_name}: {detail}")
    return serializer.to_metadata(raw)
