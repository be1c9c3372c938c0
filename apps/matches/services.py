from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from django.db import transaction
from django.utils import timezone

from apps.core.config import PipelineConfig, get_pipeline_config
from apps.core.errors import ConflictError, NotFound
from apps.deliverables.services import ensure_deliverable
from apps.fulfillment.services.orders import cancel_open_order
from apps.fulfillment.services.steps import ClientFactory, StepResult, run_fulfillment_steps
from apps.marketplace.models import Offer
from apps.matches.campaign_codes import create_match
from apps.matches.models import Match
from apps.notifications.services import NotificationPayload, enqueue_for_creator

logger = logging.getLogger(__name__)

REVOCABLE_STATUSES = (Match.Status.CLAIMED, Match.Status.PENDING_APPROVAL, Match.Status.ACCEPTED)


@dataclass
class ApprovalResult:
    match: Match
    transitioned: bool
    steps: List[StepResult] = field(default_factory=list)
    discount_created: bool = False
    order_created: bool = False
    manual_shipment: bool = False
    errors: List[str] = field(default_factory=list)


def claim_offer(offer_id: int, *, creator) -> Match:
    offer = Offer.objects.filter(id=offer_id, status=Offer.Status.PUBLISHED).first()
    if offer is None:
        raise NotFound("Offer not found.")
    match = create_match(offer, creator, status=Match.Status.PENDING_APPROVAL)
    logger.info("matches.claimed match_id=%s offer_id=%s creator_id=%s", match.id, offer.id, creator.id)
    return match


def approve_match(
    match_id: int,
    *,
    brand,
    config: PipelineConfig | None = None,
    client_factory: ClientFactory | None = None,
) -> ApprovalResult:
    """Accept a creator's claim and start fulfillment.

    The status change and deliverable creation commit together. Fulfillment
    runs afterwards; its failures are reported in ``errors`` and left for the
    fulfillment cron to retry, never rolled back into the approval. Approving
    an already accepted match re-runs only the idempotent fulfillment steps.
    """
    config = config or get_pipeline_config()
    now = timezone.now()
    with transaction.atomic():
        match = (
            Match.objects.select_for_update()
            .filter(id=match_id, offer__brand=brand)
            .first()
        )
        if match is None:
            raise NotFound("Match not found.")
        if match.status in Match.CLOSED_STATUSES:
            raise ConflictError(f"Match is {match.status.lower()}")
        transitioned = match.status != Match.Status.ACCEPTED
        if transitioned:
            match.status = Match.Status.ACCEPTED
            match.accepted_at = match.accepted_at or now
            match.save(update_fields=["status", "accepted_at", "updated_at"])
        ensure_deliverable(match, config)

    match = Match.objects.select_related("offer", "offer__brand", "creator").get(id=match.id)
    outcome = run_fulfillment_steps(match, config=config, client_factory=client_factory)

    if transitioned:
        enqueue_for_creator(
            match.creator,
            NotificationPayload(
                type="creator_approved",
                payload={
                    "brand_name": match.offer.brand.name,
                    "offer_title": match.offer.title,
                    "campaign_code": match.campaign_code,
                    "share_url": config.share_url(match.campaign_code),
                },
            ),
            config=config,
        )

    logger.info(
        "matches.approved match_id=%s transitioned=%s discount_created=%s order_created=%s errors=%s",
        match.id,
        transitioned,
        outcome.discount_created,
        outcome.order_created,
        len(outcome.errors),
    )
    return ApprovalResult(
        match=match,
        transitioned=transitioned,
        steps=outcome.steps,
        discount_created=outcome.discount_created,
        order_created=outcome.order_created,
        manual_shipment=outcome.manual_shipment,
        errors=outcome.errors,
    )


def revoke_match(match_id: int, *, brand, reason: str = "") -> Match:
    match = Match.objects.filter(id=match_id, offer__brand=brand).first()
    if match is None:
        raise NotFound("Match not found.")
    now = timezone.now()
    with transaction.atomic():
        updated = Match.objects.filter(id=match.id, status__in=REVOCABLE_STATUSES).update(
            status=Match.Status.REVOKED,
            revoked_at=now,
            updated_at=now,
        )
        if updated:
            cancel_open_order(match)
    if updated:
        logger.info("matches.revoked match_id=%s reason=%s", match.id, (reason or "-")[:200])
    match.refresh_from_db()
    return match
