from __future__ import annotations

import logging
from datetime import datetime, timedelta

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.core.config import PipelineConfig, get_pipeline_config
from apps.core.errors import ConflictError, NotFound
from apps.deliverables.models import DEFAULT_USAGE_RIGHTS_SCOPE, Deliverable, DeliverableReview, Strike
from apps.marketplace.metadata import is_http_url
from apps.matches.models import Match
from apps.notifications.services import NotificationPayload, enqueue_for_creator

logger = logging.getLogger(__name__)

REMINDER_WINDOW = timedelta(hours=48)
ENFORCED_TYPES = ("REELS", "FEED")
DEFAULT_CHANGES_REASON = "Changes requested by brand"
DEFAULT_REJECTION_REASON = "Rejected by brand"
DEFAULT_REPOST_REASON = "Repost required by brand"
MISSED_DEADLINE_REASON = "Missed deadline"
MISSED_DEADLINE_STRIKE = "Missed deliverable deadline"


def ensure_deliverable(match: Match, config: PipelineConfig | None = None) -> tuple[Deliverable, bool]:
    """Create the content obligation for a freshly accepted match, once."""
    config = config or get_pipeline_config()
    existing = Deliverable.objects.filter(match=match).first()
    if existing:
        return existing, False
    offer = match.offer
    accepted_at = match.accepted_at or timezone.now()
    due_at = accepted_at + timedelta(days=offer.deadline_days_after_delivery + config.deliverable_grace_days)
    try:
        with transaction.atomic():
            deliverable = Deliverable.objects.create(
                match=match,
                status=Deliverable.Status.DUE,
                expected_type=offer.deliverable_type,
                due_at=due_at,
            )
    except IntegrityError:
        return Deliverable.objects.get(match=match), False
    return deliverable, True


def reschedule_after_delivery(match: Match, *, now: datetime | None = None) -> bool:
    """The posting clock restarts when the product actually reaches the creator."""
    now = now or timezone.now()
    due_at = now + timedelta(days=match.offer.deadline_days_after_delivery)
    updated = Deliverable.objects.filter(match=match, status=Deliverable.Status.DUE).update(
        due_at=due_at,
        updated_at=now,
    )
    return updated == 1


def _load_for_brand(deliverable_id: int, brand) -> Deliverable:
    deliverable = (
        Deliverable.objects.select_related("match", "match__offer", "match__creator")
        .filter(id=deliverable_id, match__offer__brand=brand)
        .first()
    )
    if deliverable is None:
        raise NotFound("Deliverable not found.")
    return deliverable


def _load_for_submission(match) -> Deliverable:
    deliverable = Deliverable.objects.filter(match=match).first()
    if deliverable is None:
        raise NotFound("Deliverable not found.")
    return deliverable


def reopen_for_repost(deliverable: Deliverable, now: datetime) -> None:
    due_at = now + timedelta(days=deliverable.match.offer.deadline_days_after_delivery)
    Deliverable.objects.filter(id=deliverable.id, status=Deliverable.Status.REPOST_REQUIRED).update(
        status=Deliverable.Status.DUE,
        due_at=due_at,
        submitted_permalink="",
        submitted_notes="",
        submitted_at=None,
        verified_permalink="",
        verified_media_id="",
        verified_at=None,
        updated_at=now,
    )


def submit_deliverable(
    match_id: int,
    *,
    creator,
    permalink: str,
    notes: str = "",
    grant_usage_rights: bool = False,
) -> Deliverable:
    permalink = (permalink or "").strip()
    if not is_http_url(permalink) or len(permalink) > 500:
        raise ValidationError("A valid post URL is required.")
    if len(notes or "") > 2000:
        raise ValidationError("Notes are too long.")

    match = Match.objects.select_related("offer").filter(id=match_id, creator=creator).first()
    if match is None:
        raise NotFound("Match not found.")
    if match.status != Match.Status.ACCEPTED:
        raise ConflictError("Match is not active")

    deliverable = _load_for_submission(match)
    now = timezone.now()
    if deliverable.status == Deliverable.Status.REPOST_REQUIRED:
        reopen_for_repost(deliverable, now)
        deliverable.refresh_from_db()
    if deliverable.status != Deliverable.Status.DUE:
        raise ConflictError("Deliverable already processed")
    if deliverable.submitted_at is not None:
        raise ConflictError("Deliverable already submitted")

    offer = match.offer
    if offer.usage_rights_required and not grant_usage_rights:
        raise ValidationError("This offer requires usage rights to be granted.")

    changes = {
        "submitted_permalink": permalink,
        "submitted_notes": notes or "",
        "submitted_at": now,
        "failure_reason": "",
        "reviewed_by": None,
        "updated_at": now,
    }
    if grant_usage_rights:
        changes["usage_rights_granted_at"] = now
        changes["usage_rights_scope"] = offer.usage_rights_scope or DEFAULT_USAGE_RIGHTS_SCOPE

    updated = Deliverable.objects.filter(
        match=match,
        status=Deliverable.Status.DUE,
        submitted_at__isnull=True,
    ).update(**changes)
    if updated != 1:
        raise ConflictError("Deliverable already processed")

    logger.info("deliverables.submitted match_id=%s deliverable_id=%s", match.id, deliverable.id)
    deliverable.refresh_from_db()
    return deliverable


def verification_guards(offer) -> dict:
    """Filter terms a deliverable must still meet when the VERIFIED write lands.

    Checks made on a loaded row can go stale if a review clears the submission
    in between, so they are repeated in the UPDATE itself.
    """
    guards = {"status": Deliverable.Status.DUE}
    if offer.usage_rights_required:
        guards["usage_rights_granted_at__isnull"] = False
    return guards


def verify_deliverable(deliverable_id: int, *, brand, reviewer, permalink: str | None = None) -> Deliverable:
    deliverable = _load_for_brand(deliverable_id, brand)
    explicit_permalink = (permalink or "").strip()
    final_permalink = explicit_permalink or deliverable.submitted_permalink
    if not final_permalink:
        raise ValidationError("Missing permalink")
    if not is_http_url(final_permalink):
        raise ValidationError("A valid post URL is required.")
    if deliverable.match.offer.usage_rights_required and deliverable.usage_rights_granted_at is None:
        raise ValidationError("Usage rights have not been granted for this deliverable.")

    guards = verification_guards(deliverable.match.offer)
    if not explicit_permalink:
        guards["submitted_permalink"] = final_permalink

    now = timezone.now()
    with transaction.atomic():
        updated = Deliverable.objects.filter(id=deliverable.id, **guards).update(
            status=Deliverable.Status.VERIFIED,
            verified_permalink=final_permalink,
            verified_at=now,
            reviewed_by=reviewer,
            failure_reason="",
            updated_at=now,
        )
        if updated != 1:
            current = Deliverable.objects.filter(id=deliverable.id).values_list("status", flat=True).first()
            if current != Deliverable.Status.DUE:
                raise ConflictError("Deliverable already processed")
            raise ConflictError("Deliverable changed during review")
        DeliverableReview.objects.create(deliverable=deliverable, action=DeliverableReview.Action.VERIFY, actor=reviewer)

    logger.info("deliverables.verified deliverable_id=%s reviewer_id=%s", deliverable.id, getattr(reviewer, "id", None))
    deliverable.refresh_from_db()
    return deliverable


def request_changes(deliverable_id: int, *, brand, reviewer, reason: str = "") -> Deliverable:
    deliverable = _load_for_brand(deliverable_id, brand)
    reason = (reason or "").strip() or DEFAULT_CHANGES_REASON
    now = timezone.now()
    with transaction.atomic():
        updated = Deliverable.objects.filter(
            id=deliverable.id,
            status__in=(Deliverable.Status.DUE, Deliverable.Status.REPOST_REQUIRED),
        ).update(
            status=Deliverable.Status.DUE,
            submitted_permalink="",
            submitted_notes="",
            submitted_at=None,
            verified_permalink="",
            verified_media_id="",
            verified_at=None,
            usage_rights_granted_at=None,
            usage_rights_scope="",
            reviewed_by=reviewer,
            failure_reason=reason[:500],
            updated_at=now,
        )
        if updated != 1:
            raise ConflictError("Deliverable already processed")
        DeliverableReview.objects.create(
            deliverable=deliverable,
            action=DeliverableReview.Action.REQUEST_CHANGES,
            reason=reason[:500],
            actor=reviewer,
        )
    deliverable.refresh_from_db()
    return deliverable


def issue_strike(match: Match, reason: str, *, config: PipelineConfig | None = None) -> bool:
    """At most one strike per match. Returns True when a new strike was written."""
    try:
        with transaction.atomic():
            _, created = Strike.objects.get_or_create(
                match=match,
                defaults={"creator_id": match.creator_id, "reason": reason[:255]},
            )
    except IntegrityError:
        created = False
    if created:
        logger.info("deliverables.strike_issued match_id=%s creator_id=%s", match.id, match.creator_id)
        enqueue_for_creator(
            match.creator,
            NotificationPayload(type="strike_issued", payload={"reason": reason}),
            config=config,
        )
    return created


def fail_deliverable(deliverable_id: int, *, brand, reviewer, reason: str = "") -> Deliverable:
    deliverable = _load_for_brand(deliverable_id, brand)
    reason = (reason or "").strip() or DEFAULT_REJECTION_REASON
    now = timezone.now()
    with transaction.atomic():
        updated = Deliverable.objects.filter(id=deliverable.id, status=Deliverable.Status.DUE).update(
            status=Deliverable.Status.FAILED,
            failure_reason=reason[:500],
            reviewed_by=reviewer,
            updated_at=now,
        )
        if updated != 1:
            raise ConflictError("Deliverable already processed")
        DeliverableReview.objects.create(
            deliverable=deliverable,
            action=DeliverableReview.Action.FAIL,
            reason=reason[:500],
            actor=reviewer,
        )
    issue_strike(deliverable.match, reason)
    deliverable.refresh_from_db()
    return deliverable


def require_repost(deliverable_id: int, *, brand, reviewer, reason: str = "") -> Deliverable:
    deliverable = _load_for_brand(deliverable_id, brand)
    reason = (reason or "").strip() or DEFAULT_REPOST_REASON
    now = timezone.now()
    with transaction.atomic():
        updated = Deliverable.objects.filter(id=deliverable.id, status=Deliverable.Status.FAILED).update(
            status=Deliverable.Status.REPOST_REQUIRED,
            failure_reason=reason[:500],
            reviewed_by=reviewer,
            updated_at=now,
        )
        if updated != 1:
            raise ConflictError("Only failed deliverables can be reopened for a repost")
        DeliverableReview.objects.create(
            deliverable=deliverable,
            action=DeliverableReview.Action.REPOST_REQUIRED,
            reason=reason[:500],
            actor=reviewer,
        )
    deliverable.refresh_from_db()
    return deliverable


def send_due_soon_reminders(
    *,
    now: datetime | None = None,
    config: PipelineConfig | None = None,
    limit: int | None = None,
) -> int:
    config = config or get_pipeline_config()
    now = now or timezone.now()
    rows = list(
        Deliverable.objects.select_related("match", "match__creator")
        .filter(
            status=Deliverable.Status.DUE,
            reminder_sent_at__isnull=True,
            due_at__gt=now,
            due_at__lt=now + REMINDER_WINDOW,
        )
        .order_by("due_at")[: limit or config.cron_batch_size]
    )
    reminded = 0
    for deliverable in rows:
        claimed = Deliverable.objects.filter(id=deliverable.id, reminder_sent_at__isnull=True).update(
            reminder_sent_at=now,
            updated_at=now,
        )
        if not claimed:
            continue
        enqueue_for_creator(
            deliverable.match.creator,
            NotificationPayload(
                type="deliverable_due_soon",
                payload={"due_at": deliverable.due_at.isoformat(), "campaign_code": deliverable.match.campaign_code},
            ),
            config=config,
        )
        reminded += 1
    return reminded


def enforce_overdue(
    *,
    now: datetime | None = None,
    config: PipelineConfig | None = None,
    limit: int | None = None,
) -> list[dict]:
    config = config or get_pipeline_config()
    now = now or timezone.now()
    rows = list(
        Deliverable.objects.select_related("match", "match__creator")
        .filter(status=Deliverable.Status.DUE, due_at__lt=now, expected_type__in=ENFORCED_TYPES)
        .order_by("due_at")[: limit or config.cron_batch_size]
    )
    results = []
    for deliverable in rows:
        try:
            updated = Deliverable.objects.filter(id=deliverable.id, status=Deliverable.Status.DUE).update(
                status=Deliverable.Status.FAILED,
                failure_reason=MISSED_DEADLINE_REASON,
                updated_at=now,
            )
            strike_issued = bool(updated) and issue_strike(deliverable.match, MISSED_DEADLINE_STRIKE, config=config)
            results.append(
                {
                    "deliverable_id": deliverable.id,
                    "match_id": deliverable.match_id,
                    "ok": True,
                    "verified": False,
                    "strike_issued": strike_issued,
                }
            )
        except Exception:  # noqa: BLE001
            logger.exception("deliverables.enforce_failed deliverable_id=%s", deliverable.id)
            results.append(
                {
                    "deliverable_id": deliverable.id,
                    "match_id": deliverable.match_id,
                    "ok": False,
                    "verified": False,
                    "strike_issued": False,
                }
            )
    return results
