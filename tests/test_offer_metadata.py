from __future__ import annotations

from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from apps.marketplace.metadata import OfferMetadata, OfferMetadataSerializer, validate_offer_metadata
from apps.marketplace.models import Offer


def test_valid_metadata_is_typed():
    metadata = validate_offer_metadata(
        {
            "productValue": "25.50",
            "fulfillmentType": "MANUAL",
            "ctaUrl": "https://glow.example/serum",
            "platforms": ["instagram", "tiktok"],
            "locationRadiusKm": 40,
            "vibe": "cozy",
        }
    )

    assert metadata.product_value == Decimal("25.50")
    assert metadata.seed_cost_cents == 2550
    assert metadata.is_manual_fulfillment
    assert metadata.cta_url == "https://glow.example/serum"
    assert metadata.platforms == ("INSTAGRAM", "TIKTOK")
    assert metadata.location_radius_km == Decimal("40")
    # Keys the app does not model are carried through untouched.
    assert metadata.extra == {"vibe": "cozy"}
    assert metadata.to_raw()["vibe"] == "cozy"


def test_empty_metadata_is_allowed():
    assert validate_offer_metadata(None) == OfferMetadata()
    assert validate_offer_metadata({}).to_raw() == {}


def test_miles_are_converted_to_km():
    metadata = validate_offer_metadata({"locationRadiusMiles": 10})

    assert metadata.location_radius_km == Decimal("16.09344")
    assert "locationRadiusMiles" not in metadata.to_raw()


def test_km_wins_over_miles():
    metadata = validate_offer_metadata({"locationRadiusKm": 5, "locationRadiusMiles": 10})

    assert metadata.location_radius_km == Decimal("5")


@pytest.mark.parametrize(
    "raw",
    [
        {"locationRadiusKm": 0},
        {"locationRadiusKm": 9000},
        {"locationRadiusMiles": 6000},
    ],
)
def test_radius_out_of_range(raw):
    with pytest.raises(ValidationError, match="locationRadius"):
        validate_offer_metadata(raw)


@pytest.mark.parametrize(
    "raw, field_name",
    [
        ({"fulfillmentType": "DROPSHIP"}, "fulfillmentType"),
        ({"ctaUrl": "not a url"}, "ctaUrl"),
        ({"productValue": "abc"}, "productValue"),
        ({"productValue": -1}, "productValue"),
        ({"platforms": "instagram"}, "platforms"),
    ],
)
def test_invalid_values_name_the_field(raw, field_name):
    with pytest.raises(ValidationError, match=field_name):
        validate_offer_metadata(raw)


def test_metadata_must_be_an_object():
    with pytest.raises(ValidationError, match="must be an object"):
        validate_offer_metadata(["productValue", 25])


def test_serializer_reports_every_bad_field():
    serializer = OfferMetadataSerializer(data={"fulfillmentType": "DROPSHIP", "locationRadiusKm": 0})

    assert not serializer.is_valid()
    assert set(serializer.errors) == {"fulfillmentType", "locationRadiusKm"}


def test_offer_clean_stores_normalized_metadata():
    offer = Offer(title="Summer Serum Seeding", metadata={"productValue": "25", "locationRadiusMiles": 10, "vibe": "cozy"})

    offer.clean()

    assert offer.metadata == {"vibe": "cozy", "productValue": 25.0, "locationRadiusKm": 16.09344}


def test_offer_clean_rejects_bad_metadata():
    offer = Offer(title="Summer Serum Seeding", metadata={"fulfillmentType": "DROPSHIP"})

    with pytest.raises(ValidationError):
        offer.clean()
