from __future__ import annotations

import logging
from datetime import datetime, timezone as dt_timezone
from typing import Optional

from django.db import IntegrityError, transaction

from apps.marketplace.models import Brand, Creator
from apps.payments.models import BillingSubscription

logger = logging.getLogger(__name__)

SUBSCRIPTION_EVENTS = {
    "customer.subscription.created",
    "customer.subscription.updated",
    "customer.subscription.deleted",
}

STATUS_MAP = {
    "active": BillingSubscription.Status.ACTIVE,
    "trialing": BillingSubscription.Status.TRIALING,
    "past_due": BillingSubscription.Status.PAST_DUE,
    "unpaid": BillingSubscription.Status.PAST_DUE,
    "canceled": BillingSubscription.Status.CANCELED,
}

SUBJECT_MODELS = {
    BillingSubscription.SubjectType.BRAND: Brand,
    BillingSubscription.SubjectType.CREATOR: Creator,
}


def map_stripe_status(raw: str | None) -> str:
    return STATUS_MAP.get(str(raw or "").strip().lower(), BillingSubscription.Status.INACTIVE)


def _period_end(data: dict) -> Optional[datetime]:
    raw = data.get("current_period_end")
    if raw is None:
        # Newer API versions only carry the period on subscription items.
        items = (data.get("items") or {}).get("data") or []
        if items and isinstance(items[0], dict):
            raw = items[0].get("current_period_end")
    if raw in (None, ""):
        return None
    try:
        return datetime.fromtimestamp(int(raw), tz=dt_timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def _resolve_subject(metadata: dict) -> tuple[str, int] | None:
    subject_type = str(metadata.get("subject_type") or "").strip().upper()
    model = SUBJECT_MODELS.get(subject_type)
    raw_id = str(metadata.get("subject_id") or "").strip()
    if model is None or not raw_id.isdigit():
        return None
    subject_id = int(raw_id)
    if not model.objects.filter(id=subject_id).exists():
        return None
    return subject_type, subject_id


def apply_subscription_event(event_type: str, data: dict) -> BillingSubscription | None:
    """Upsert the subscription for the subject named in the Stripe metadata.

    Returns ``None`` when the event carries no resolvable subject.
    """
    subject = _resolve_subject(data.get("metadata") or {})
    if subject is None:
        logger.info(
            "billing.event_ignored type=%s subscription=%s reason=no_subject",
            event_type,
            data.get("id"),
        )
        return None
    subject_type, subject_id = subject

    if event_type == "customer.subscription.deleted":
        status = BillingSubscription.Status.CANCELED
    else:
        status = map_stripe_status(data.get("status"))
    customer = data.get("customer")
    if isinstance(customer, dict):
        customer = customer.get("id")
    values = {
        "stripe_subscription_id": str(data.get("id") or ""),
        "stripe_customer_id": str(customer or ""),
        "status": status,
        "current_period_end": _period_end(data),
    }

    try:
        with transaction.atomic():
            subscription, created = BillingSubscription.objects.update_or_create(
                subject_type=subject_type,
                subject_id=subject_id,
                defaults=values,
            )
    except IntegrityError:
        # Concurrent first delivery of the same subscription.
        BillingSubscription.objects.filter(subject_type=subject_type, subject_id=subject_id).update(**values)
        subscription = BillingSubscription.objects.get(subject_type=subject_type, subject_id=subject_id)
        created = False

    logger.info(
        "billing.subscription_synced subject=%s:%s status=%s created=%s",
        subject_type,
        subject_id,
        status,
        created,
    )
    return subscription
