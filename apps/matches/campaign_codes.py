from __future__ import annotations

import logging
import secrets
from typing import Callable

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from apps.core.errors import ConflictError
from apps.marketplace.models import Creator, Offer
from apps.matches.models import Match

logger = logging.getLogger(__name__)

CODE_PREFIX = "FRILP-"
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 6
MAX_CODE_ATTEMPTS = 5


def generate_campaign_code() -> str:
    return CODE_PREFIX + "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def normalize_code(raw: str | None) -> str:
    return str(raw or "").strip().upper()


def create_match(
    offer: Offer,
    creator: Creator,
    *,
    status: str = Match.Status.PENDING_APPROVAL,
    code_factory: Callable[[], str] = generate_campaign_code,
) -> Match:
    """Insert a match with a fresh campaign code, retrying on code collisions.

    Uniqueness is enforced by the database; concurrent claims that draw the
    same code lose the insert and draw again.
    """
    for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
        code = code_factory()
        try:
            with transaction.atomic():
                return Match.objects.create(offer=offer, creator=creator, status=status, campaign_code=code)
        except IntegrityError:
            if Match.objects.filter(offer=offer, creator=creator).exists():
                raise ConflictError("Offer already claimed by this creator.")
            logger.info("campaign_code.collision attempt=%s code=%s", attempt, code)
    raise ValidationError("Could not allocate a unique campaign code.")
