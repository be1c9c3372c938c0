from __future__ import annotations

import logging
from dataclasses import dataclass

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from apps.attribution.models import AttributedOrder, AttributedRefund
from apps.fulfillment.providers.shopify import amount_to_cents
from apps.matches.campaign_codes import CODE_PREFIX, normalize_code
from apps.matches.models import Match

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"


@dataclass(frozen=True)
class OrderEvent:
    order_id: str
    currency: str
    total_cents: int
    customer_id: str
    discount_codes: tuple[str, ...]


@dataclass(frozen=True)
class RefundEvent:
    refund_id: str
    order_id: str
    currency: str
    amount_cents: int


@dataclass(frozen=True)
class IngestResult:
    attributed: bool
    deduped: bool = False
    match_id: int | None = None

    def as_dict(self) -> dict:
        data = {"ok": True, "attributed": self.attributed}
        if self.attributed:
            data["deduped"] = self.deduped
        return data


def _currency(raw) -> str:
    value = str(raw or "").strip().upper()
    return value[:3] if len(value) >= 3 else DEFAULT_CURRENCY


def parse_order_event(payload: dict) -> OrderEvent:
    order_id = str(payload.get("id") or "").strip()
    if not order_id:
        raise ValidationError("order id is required.")
    codes = []
    for entry in payload.get("discount_codes") or []:
        code = entry.get("code") if isinstance(entry, dict) else None
        if isinstance(code, str) and code.strip():
            codes.append(code.strip())
    customer = payload.get("customer")
    customer_id = str(customer.get("id") or "") if isinstance(customer, dict) else ""
    return OrderEvent(
        order_id=order_id,
        currency=_currency(payload.get("currency")),
        total_cents=amount_to_cents(payload.get("total_price")),
        customer_id=customer_id,
        discount_codes=tuple(codes),
    )


def parse_refund_event(payload: dict) -> RefundEvent:
    transactions = payload.get("transactions") or []
    total = 0
    currency = payload.get("currency")
    for txn in transactions:
        if not isinstance(txn, dict):
            continue
        kind = txn.get("kind")
        if kind and kind != "refund":
            continue
        total += amount_to_cents(txn.get("amount"))
        currency = currency or txn.get("currency")
    return RefundEvent(
        refund_id=str(payload.get("id") or "").strip(),
        order_id=str(payload.get("order_id") or "").strip(),
        currency=_currency(currency),
        amount_cents=total,
    )


def pick_campaign_code(codes: tuple[str, ...]) -> str:
    """Our own codes win over any other discount the shopper stacked."""
    if not codes:
        return ""
    for code in codes:
        if normalize_code(code).startswith(CODE_PREFIX):
            return normalize_code(code)
    return normalize_code(codes[0])


def record_attributed_order(shop_domain: str, event: OrderEvent) -> IngestResult:
    code = pick_campaign_code(event.discount_codes)
    if not code:
        return IngestResult(attributed=False)
    match = Match.objects.filter(campaign_code=code).only("id").first()
    if match is None:
        return IngestResult(attributed=False)

    try:
        with transaction.atomic():
            AttributedOrder.objects.create(
                match=match,
                shop_domain=shop_domain,
                order_id=event.order_id,
                customer_id=event.customer_id,
                currency=event.currency,
                total_cents=event.total_cents,
            )
    except IntegrityError:
        if not AttributedOrder.objects.filter(shop_domain=shop_domain, order_id=event.order_id).exists():
            raise
        logger.info("attribution.order_deduped shop=%s order_id=%s", shop_domain, event.order_id)
        return IngestResult(attributed=True, deduped=True, match_id=match.id)

    logger.info(
        "attribution.order_recorded shop=%s order_id=%s match_id=%s total_cents=%s",
        shop_domain,
        event.order_id,
        match.id,
        event.total_cents,
    )
    return IngestResult(attributed=True, deduped=False, match_id=match.id)


def record_attributed_refund(shop_domain: str, event: RefundEvent) -> IngestResult:
    """A refund only counts against an order we attributed first."""
    if not event.order_id or not event.refund_id or event.amount_cents <= 0:
        return IngestResult(attributed=False)
    order = AttributedOrder.objects.filter(shop_domain=shop_domain, order_id=event.order_id).first()
    if order is None:
        return IngestResult(attributed=False)

    try:
        with transaction.atomic():
            AttributedRefund.objects.create(
                match_id=order.match_id,
                shop_domain=shop_domain,
                order_id=event.order_id,
                refund_id=event.refund_id,
                currency=event.currency,
                amount_cents=event.amount_cents,
            )
    except IntegrityError:
        if not AttributedRefund.objects.filter(shop_domain=shop_domain, refund_id=event.refund_id).exists():
            raise
        logger.info("attribution.refund_deduped shop=%s refund_id=%s", shop_domain, event.refund_id)
        return IngestResult(attributed=True, deduped=True, match_id=order.match_id)

    logger.info(
        "attribution.refund_recorded shop=%s refund_id=%s match_id=%s amount_cents=%s",
        shop_domain,
        event.refund_id,
        order.match_id,
        event.amount_cents,
    )
    return IngestResult(attributed=True, deduped=False, match_id=order.match_id)
