from __future__ import annotations

import logging
from datetime import timedelta

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from apps.core.config import PipelineConfig, get_pipeline_config
from apps.core.errors import ConfigurationError, IntegrationError, error_detail
from apps.deliverables.services import reschedule_after_delivery
from apps.fulfillment.models import CommerceStore, OrderFulfillmentRecord
from apps.fulfillment.providers.shopify import ShopifyClient
from apps.marketplace.models import OfferProduct
from apps.notifications.services import NotificationPayload, enqueue_for_creator

logger = logging.getLogger(__name__)

Status = OrderFulfillmentRecord.Status

SEEDING_TAG = "FRILPP_SEEDING"
SEEDING_DISCOUNT = {"value_type": "percentage", "value": "100", "description": "Frilpp product seeding"}
ERROR_MAX_LENGTH = 1000
# Longer than the two Shopify round trips a worker makes while holding a claim.
CLAIM_SECONDS = 300

# Source states each target may be entered from. COMPLETED and FULFILLED never move backward.
ALLOWED_SOURCES = {
    Status.DRAFT_CREATED: (Status.PENDING, Status.ERROR, Status.DRAFT_CREATED),
    Status.COMPLETED: (Status.PENDING, Status.ERROR, Status.DRAFT_CREATED),
    Status.ERROR: (Status.PENDING, Status.ERROR, Status.DRAFT_CREATED),
    Status.FULFILLED: (Status.PENDING, Status.ERROR, Status.DRAFT_CREATED, Status.COMPLETED),
    Status.CANCELED: (Status.PENDING, Status.ERROR, Status.DRAFT_CREATED),
}


def transition(record_id: int, to_status: str, **fields) -> bool:
    """Guarded status write. Returns False when the record is no longer in an allowed source state."""
    updated = OrderFulfillmentRecord.objects.filter(id=record_id, status__in=ALLOWED_SOURCES[to_status]).update(
        status=to_status,
        updated_at=timezone.now(),
        **fields,
    )
    return updated == 1


def _line_items(products: list[OfferProduct]) -> list[dict]:
    items = []
    for product in products:
        variant = str(product.shopify_variant_id or "").strip()
        if not variant.isdigit():
            continue
        items.append(
            {
                "variant_id": int(variant),
                "quantity": max(1, product.quantity),
                "applied_discount": dict(SEEDING_DISCOUNT),
            }
        )
    return items


def _shipping_address(creator) -> dict:
    parts = (creator.full_name or "").split()
    address = {
        "first_name": parts[0] if parts else "Creator",
        "last_name": " ".join(parts[1:]) or " ",
        "address1": creator.address1,
        "city": creator.city,
        "zip": creator.zip,
        "country_code": creator.country,
    }
    if creator.address2:
        address["address2"] = creator.address2
    if creator.province:
        address["province"] = creator.province
    if creator.phone:
        address["phone"] = creator.phone
    return address


def _draft_order_body(match, line_items: list[dict]) -> dict:
    creator = match.creator
    body = {
        "note": f"FRILPP match={match.id} code={match.campaign_code}",
        "note_attributes": [
            {"name": "frilpp_match_id", "value": str(match.id)},
            {"name": "frilpp_campaign_code", "value": match.campaign_code},
            {"name": "frilpp_offer_id", "value": str(match.offer_id)},
        ],
        "shipping_address": _shipping_address(creator),
        "line_items": line_items,
        "applied_discount": dict(SEEDING_DISCOUNT),
        "tags": SEEDING_TAG,
        "tax_exempt": True,
    }
    if creator.email:
        body["email"] = creator.email
    return body


def _get_or_create_record(match, store: CommerceStore) -> OrderFulfillmentRecord:
    try:
        with transaction.atomic():
            record, _ = OrderFulfillmentRecord.objects.get_or_create(
                match=match,
                defaults={"shop_domain": store.shop_domain, "status": Status.PENDING},
            )
    except IntegrityError:
        record = OrderFulfillmentRecord.objects.get(match=match)
    return record


def claim_record(record_id: int) -> bool:
    """Take the record for one worker. Expired claims from crashed workers can be taken over."""
    now = timezone.now()
    claimed = OrderFulfillmentRecord.objects.filter(
        Q(claimed_until__isnull=True) | Q(claimed_until__lt=now),
        id=record_id,
        status__in=OrderFulfillmentRecord.RETRYABLE_STATUSES,
    ).update(claimed_until=now + timedelta(seconds=CLAIM_SECONDS), updated_at=now)
    return claimed == 1


def release_record(record_id: int) -> None:
    OrderFulfillmentRecord.objects.filter(id=record_id).update(claimed_until=None)


def _complete(record: OrderFulfillmentRecord, draft_order_id: str, client: ShopifyClient) -> bool:
    order_id, order_name = client.complete_draft_order(draft_order_id)
    completed = transition(record.id, Status.COMPLETED, order_id=order_id, order_name=order_name, error="")
    if completed:
        logger.info("fulfillment.order_completed match_id=%s order_id=%s", record.match_id, order_id)
    return completed


def _drive_order(record: OrderFulfillmentRecord, match, line_items: list[dict], client: ShopifyClient) -> None:
    if record.order_id:
        transition(record.id, Status.COMPLETED, error="")
        return

    if record.status == Status.DRAFT_CREATED and record.draft_order_id:
        try:
            _complete(record, record.draft_order_id, client)
            return
        except IntegrationError as exc:
            logger.warning(
                "fulfillment.draft_complete_failed match_id=%s draft_order_id=%s error=%s",
                match.id,
                record.draft_order_id,
                error_detail(exc),
            )

    draft_order_id = client.create_draft_order(_draft_order_body(match, line_items))
    if transition(record.id, Status.DRAFT_CREATED, draft_order_id=draft_order_id, error=""):
        _complete(record, draft_order_id, client)


def ensure_order_for_match(
    match,
    *,
    store: CommerceStore | None,
    products: list[OfferProduct],
    client: ShopifyClient,
) -> OrderFulfillmentRecord:
    """Drive the match's zero-cost seeding order towards COMPLETED.

    Safe to call repeatedly and from overlapping workers. Terminal records are
    returned untouched and an open draft is completed rather than duplicated.
    Only the worker holding the claim calls Shopify; others return the record
    as they find it. A failed run leaves the record in ERROR for the next pass.
    """
    existing = OrderFulfillmentRecord.objects.filter(match=match).first()
    if existing and existing.status in OrderFulfillmentRecord.TERMINAL_STATUSES:
        return existing

    if store is None or not store.is_active:
        raise ConfigurationError("Shopify not connected")
    creator = match.creator
    if not creator.has_shipping_address:
        raise ConfigurationError("Creator shipping address incomplete")
    line_items = _line_items(products)
    if not line_items:
        raise ConfigurationError("Offer has no Shopify variants selected")

    record = existing or _get_or_create_record(match, store)
    if not claim_record(record.id):
        logger.info("fulfillment.order_busy match_id=%s", match.id)
        record.refresh_from_db()
        return record
    record.refresh_from_db()
    try:
        _drive_order(record, match, line_items, client)
    except Exception as exc:
        transition(record.id, Status.ERROR, error=(error_detail(exc) or "Order creation failed")[:ERROR_MAX_LENGTH])
        logger.warning("fulfillment.order_failed match_id=%s error=%s", match.id, error_detail(exc))
        raise
    finally:
        release_record(record.id)
    record.refresh_from_db()
    return record


def cancel_open_order(match) -> bool:
    record = OrderFulfillmentRecord.objects.filter(match=match).first()
    if record is None:
        return False
    return transition(record.id, Status.CANCELED)


def mark_fulfilled(
    shop_domain: str,
    order_id: str,
    *,
    tracking_number: str = "",
    tracking_url: str = "",
    config: PipelineConfig | None = None,
) -> bool:
    """Record a shipment from the store and restart the creator's posting clock."""
    record = (
        OrderFulfillmentRecord.objects.select_related("match", "match__offer", "match__offer__brand", "match__creator")
        .filter(shop_domain=shop_domain, order_id=order_id)
        .first()
    )
    if record is None:
        return False
    now = timezone.now()
    updated = transition(
        record.id,
        Status.FULFILLED,
        tracking_number=tracking_number[:128],
        tracking_url=tracking_url[:500],
        fulfilled_at=now,
    )
    if not updated:
        return False

    match = record.match
    reschedule_after_delivery(match, now=now)
    enqueue_for_creator(
        match.creator,
        NotificationPayload(
            type="shipment_fulfilled",
            payload={
                "brand_name": match.offer.brand.name,
                "tracking_number": tracking_number or None,
                "tracking_url": tracking_url or None,
            },
        ),
        config=config or get_pipeline_config(),
    )
    logger.info("fulfillment.order_fulfilled match_id=%s order_id=%s", match.id, order_id)
    return True
