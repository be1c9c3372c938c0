from __future__ import annotations

import logging

from django.core.exceptions import ValidationError

from apps.attribution.models import Redemption
from apps.core.errors import NotFound
from apps.matches.campaign_codes import normalize_code
from apps.matches.models import Match

logger = logging.getLogger(__name__)


def record_redemption(
    brand,
    *,
    code: str,
    amount_cents: int,
    currency: str = "USD",
    channel: str = Redemption.Channel.IN_STORE,
    note: str = "",
    created_by=None,
) -> Redemption:
    """Brand-entered sale made with a creator's code outside the online store."""
    if amount_cents <= 0:
        raise ValidationError("Amount must be positive.")
    match = (
        Match.objects.filter(
            campaign_code=normalize_code(code),
            offer__brand=brand,
            status=Match.Status.ACCEPTED,
        )
        .only("id")
        .first()
    )
    if match is None:
        raise NotFound("Match not found.")
    redemption = Redemption.objects.create(
        match=match,
        brand=brand,
        channel=channel,
        amount_cents=amount_cents,
        currency=(currency or "USD").upper()[:3],
        note=(note or "")[:240],
        created_by=created_by,
    )
    logger.info(
        "attribution.redemption_recorded match_id=%s brand_id=%s amount_cents=%s channel=%s",
        match.id,
        brand.id,
        amount_cents,
        channel,
    )
    return redemption
