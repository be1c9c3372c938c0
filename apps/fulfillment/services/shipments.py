from __future__ import annotations

import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.core.config import PipelineConfig
from apps.core.errors import ConflictError, NotFound
from apps.deliverables.services import reschedule_after_delivery
from apps.fulfillment.models import ManualShipment
from apps.matches.models import Match
from apps.notifications.services import NotificationPayload, enqueue_for_creator

logger = logging.getLogger(__name__)


def ensure_manual_shipment(match) -> tuple[ManualShipment, bool]:
    try:
        with transaction.atomic():
            return ManualShipment.objects.get_or_create(match=match)
    except IntegrityError:
        return ManualShipment.objects.get(match=match), False


def mark_manual_shipment_shipped(
    match_id: int,
    *,
    brand,
    carrier: str = "",
    tracking_number: str = "",
    tracking_url: str = "",
    config: PipelineConfig | None = None,
) -> ManualShipment:
    match = (
        Match.objects.select_related("offer", "offer__brand", "creator")
        .filter(id=match_id, offer__brand=brand)
        .first()
    )
    if match is None:
        raise NotFound("Match not found.")
    shipment = ManualShipment.objects.filter(match=match).first()
    if shipment is None:
        raise NotFound("Shipment not found.")

    now = timezone.now()
    updated = ManualShipment.objects.filter(id=shipment.id, status=ManualShipment.Status.PENDING).update(
        status=ManualShipment.Status.SHIPPED,
        carrier=carrier,
        tracking_number=tracking_number,
        tracking_url=tracking_url,
        shipped_at=now,
        updated_at=now,
    )
    if updated != 1:
        raise ConflictError("Shipment already marked shipped")

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
        config=config,
    )
    logger.info("fulfillment.manual_shipped match_id=%s carrier=%s", match.id, carrier or "-")
    shipment.refresh_from_db()
    return shipment
