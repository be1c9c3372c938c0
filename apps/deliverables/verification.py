from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from django.utils import timezone

from apps.core.config import PipelineConfig, get_pipeline_config
from apps.core.crypto import decrypt_secret
from apps.core.errors import error_detail
from apps.deliverables.models import Deliverable
from apps.deliverables.services import ENFORCED_TYPES, enforce_overdue, send_due_soon_reminders, verification_guards
from apps.marketplace.models import CreatorSocialAccount
from apps.marketplace.providers.instagram import InstagramClient, InstagramMedia, get_instagram_client

logger = logging.getLogger(__name__)

MEDIA_LOOKBACK = 25


@dataclass
class VerificationReport:
    reminded: int = 0
    checked: int = 0
    results: List[dict] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "ok": True,
            "reminded": self.reminded,
            "checked": self.checked,
            "processed": len(self.results),
            "results": self.results,
        }


def find_matching_media(
    media: list[InstagramMedia],
    *,
    campaign_code: str,
    expected_type: str,
    brand_handle: str = "",
    accepted_at: datetime | None = None,
) -> InstagramMedia | None:
    """First post whose caption carries the campaign code (and brand tag), posted after acceptance."""
    code = campaign_code.lower()
    handle = brand_handle.lstrip("@").lower()
    for item in media:
        caption = item.caption.lower()
        if code not in caption:
            continue
        if handle and f"@{handle}" not in caption:
            continue
        if accepted_at and item.timestamp and item.timestamp < accepted_at:
            continue
        if not item.permalink:
            continue
        is_reel = item.media_type == "REELS"
        if expected_type == "REELS" and is_reel:
            return item
        if expected_type == "FEED" and not is_reel:
            return item
    return None


def _result(deliverable: Deliverable, *, ok: bool, verified: bool, note: str = "") -> dict:
    data = {
        "deliverable_id": deliverable.id,
        "match_id": deliverable.match_id,
        "ok": ok,
        "verified": verified,
        "strike_issued": False,
    }
    if note:
        data["note"] = note
    return data


def auto_verify_from_instagram(
    *,
    config: PipelineConfig | None = None,
    client: InstagramClient | None = None,
    limit: int | None = None,
) -> tuple[int, list[dict]]:
    config = config or get_pipeline_config()
    candidates = list(
        Deliverable.objects.select_related("match", "match__offer", "match__offer__brand", "match__creator")
        .filter(
            status=Deliverable.Status.DUE,
            expected_type__in=ENFORCED_TYPES,
            match__creator__social_accounts__provider=CreatorSocialAccount.Provider.INSTAGRAM,
        )
        .exclude(match__creator__social_accounts__external_user_id="")
        .distinct()
        .order_by("due_at")[: limit or config.cron_batch_size]
    )
    if not candidates:
        return 0, []

    client = client or get_instagram_client(config)
    results = []
    for deliverable in candidates:
        match = deliverable.match
        offer = match.offer
        if not offer.parsed_metadata.requires_platform("INSTAGRAM"):
            results.append(_result(deliverable, ok=True, verified=False, note="Instagram not required for this offer"))
            continue
        if offer.usage_rights_required and deliverable.usage_rights_granted_at is None:
            results.append(_result(deliverable, ok=True, verified=False, note="Usage rights not granted"))
            continue
        account = match.creator.social_accounts.filter(provider=CreatorSocialAccount.Provider.INSTAGRAM).first()
        try:
            token = decrypt_secret(account.access_token_encrypted, config)
            media = client.fetch_recent_media(
                access_token=token,
                ig_user_id=account.external_user_id,
                limit=MEDIA_LOOKBACK,
            )
        except Exception as exc:  # noqa: BLE001
            detail = error_detail(exc)
            logger.warning("deliverables.auto_verify_failed deliverable_id=%s error=%s", deliverable.id, detail)
            results.append(_result(deliverable, ok=False, verified=False, note=detail))
            continue

        found = find_matching_media(
            media,
            campaign_code=match.campaign_code,
            expected_type=deliverable.expected_type,
            brand_handle=offer.brand.instagram_handle,
            accepted_at=match.accepted_at,
        )
        if found is None:
            results.append(_result(deliverable, ok=True, verified=False, note="No matching media found"))
            continue

        now = timezone.now()
        updated = Deliverable.objects.filter(id=deliverable.id, **verification_guards(offer)).update(
            status=Deliverable.Status.VERIFIED,
            verified_media_id=found.media_id,
            verified_permalink=found.permalink,
            verified_at=now,
            failure_reason="",
            updated_at=now,
        )
        if not updated:
            results.append(_result(deliverable, ok=True, verified=False, note="Deliverable changed during verification"))
            continue
        results.append(_result(deliverable, ok=True, verified=True))
    return len(candidates), results


def run_verification(
    *,
    now: datetime | None = None,
    config: PipelineConfig | None = None,
    client: InstagramClient | None = None,
) -> VerificationReport:
    """Reminders, then automatic verification, then deadline enforcement."""
    config = config or get_pipeline_config()
    now = now or timezone.now()
    report = VerificationReport()
    report.reminded = send_due_soon_reminders(now=now, config=config)
    report.checked, verified_results = auto_verify_from_instagram(config=config, client=client)
    report.results.extend(verified_results)
    report.results.extend(enforce_overdue(now=now, config=config))
    logger.info(
        "deliverables.verify_finished reminded=%s checked=%s processed=%s",
        report.reminded,
        report.checked,
        len(report.results),
    )
    return report
