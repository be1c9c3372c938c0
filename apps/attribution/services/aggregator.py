"""Read-side rollups over clicks, attributed orders, refunds and redemptions.

All money is summed as integer cents; conversion to a decimal display string
happens only at the serializer boundary through ``cents_to_display``.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Iterable

from django.db.models import Count, Sum

from apps.attribution.models import AttributedOrder, AttributedRefund, LinkClick, Redemption
from apps.core.config import PipelineConfig, get_pipeline_config
from apps.deliverables.models import Deliverable
from apps.marketplace.models import Offer
from apps.matches.models import Match

MAX_ROLLUP_MATCHES = 500
MAX_PERFORMANCE_MATCHES = 200
MAX_OFFERS = 50


@dataclass
class MatchTotals:
    clicks: int = 0
    orders: int = 0
    order_cents: int = 0
    refund_cents: int = 0
    redemptions: int = 0
    redemption_cents: int = 0
    verified: int = 0

    @property
    def net_revenue_cents(self) -> int:
        return self.order_cents - self.refund_cents


def cents_to_display(cents: int | None) -> str:
    return str((Decimal(int(cents or 0)) / Decimal(100)).quantize(Decimal("0.01")))


def roi_percent(net_cents: int, seed_cents: int) -> float | None:
    if seed_cents <= 0:
        return None
    return round(((net_cents - seed_cents) / seed_cents) * 1000) / 10


def match_totals(match_ids: Iterable[int]) -> dict[int, MatchTotals]:
    ids = list(match_ids)
    totals = {match_id: MatchTotals() for match_id in ids}
    if not ids:
        return totals

    for row in LinkClick.objects.filter(match_id__in=ids).values("match_id").annotate(n=Count("id")):
        totals[row["match_id"]].clicks = row["n"]
    for row in (
        AttributedOrder.objects.filter(match_id__in=ids)
        .values("match_id")
        .annotate(n=Count("id"), cents=Sum("total_cents"))
    ):
        totals[row["match_id"]].orders = row["n"]
        totals[row["match_id"]].order_cents = int(row["cents"] or 0)
    for row in AttributedRefund.objects.filter(match_id__in=ids).values("match_id").annotate(cents=Sum("amount_cents")):
        totals[row["match_id"]].refund_cents = int(row["cents"] or 0)
    for row in (
        Redemption.objects.filter(match_id__in=ids)
        .values("match_id")
        .annotate(n=Count("id"), cents=Sum("amount_cents"))
    ):
        totals[row["match_id"]].redemptions = row["n"]
        totals[row["match_id"]].redemption_cents = int(row["cents"] or 0)
    for row in (
        Deliverable.objects.filter(match_id__in=ids, status=Deliverable.Status.VERIFIED)
        .values("match_id")
        .annotate(n=Count("id"))
    ):
        totals[row["match_id"]].verified = row["n"]
    return totals


def offer_rollup(brand) -> list[dict]:
    offers = list(
        Offer.objects.filter(brand=brand, status=Offer.Status.PUBLISHED).order_by("-created_at")[:MAX_OFFERS]
    )
    if not offers:
        return []
    matches = list(
        Match.objects.filter(offer__in=offers, status=Match.Status.ACCEPTED).values_list("id", "offer_id")
    )
    totals = match_totals(match_id for match_id, _ in matches)
    per_offer: dict[int, list[MatchTotals]] = defaultdict(list)
    for match_id, offer_id in matches:
        per_offer[offer_id].append(totals[match_id])

    rows = []
    for offer in offers:
        items = per_offer.get(offer.id, [])
        revenue = sum(t.order_cents for t in items)
        refunds = sum(t.refund_cents for t in items)
        rows.append(
            {
                "offer_id": offer.id,
                "title": offer.title,
                "match_count": len(items),
                "click_count": sum(t.clicks for t in items),
                "order_count": sum(t.orders for t in items),
                "revenue_cents": revenue,
                "refund_cents": refunds,
                "net_revenue_cents": revenue - refunds,
                "redemption_count": sum(t.redemptions for t in items),
                "redemption_cents": sum(t.redemption_cents for t in items),
            }
        )
    return rows


def _repeat_buyers(match_ids: list[int]) -> dict[int, list[str]]:
    """Per match: customer ids of orders still worth more than zero after their refunds."""
    refunds: dict[tuple[int, str], int] = defaultdict(int)
    for row in (
        AttributedRefund.objects.filter(match_id__in=match_ids)
        .values("match_id", "order_id")
        .annotate(cents=Sum("amount_cents"))
    ):
        refunds[(row["match_id"], row["order_id"])] = int(row["cents"] or 0)

    orders_by_match: dict[int, list[str]] = defaultdict(list)
    for order in AttributedOrder.objects.filter(match_id__in=match_ids).exclude(customer_id="").values(
        "match_id", "order_id", "customer_id", "total_cents"
    ):
        net = order["total_cents"] - refunds[(order["match_id"], order["order_id"])]
        if net > 0:
            orders_by_match[order["match_id"]].append(order["customer_id"])
    return orders_by_match


def creator_rollup(brand, offer_id: int | None = None) -> list[dict]:
    queryset = Match.objects.select_related("creator", "offer").filter(
        offer__brand=brand,
        status=Match.Status.ACCEPTED,
    )
    if offer_id is not None:
        queryset = queryset.filter(offer_id=offer_id)
    matches = list(queryset.order_by("-accepted_at")[:MAX_ROLLUP_MATCHES])
    if not matches:
        return []

    match_ids = [m.id for m in matches]
    totals = match_totals(match_ids)
    buyers_by_match = _repeat_buyers(match_ids)

    per_creator: dict[int, dict] = {}
    customer_orders: dict[int, dict[str, int]] = defaultdict(lambda: defaultdict(int))
    for match in matches:
        creator = match.creator
        entry = per_creator.setdefault(
            creator.id,
            {
                "creator_id": creator.id,
                "username": creator.username,
                "followers_count": creator.followers_count,
                "country": creator.country,
                "match_count": 0,
                "verified_count": 0,
                "click_count": 0,
                "order_count": 0,
                "revenue_cents": 0,
                "refund_cents": 0,
                "redemption_count": 0,
                "redemption_cents": 0,
                "seed_cost_cents": 0,
            },
        )
        t = totals[match.id]
        entry["match_count"] += 1
        entry["verified_count"] += t.verified
        entry["click_count"] += t.clicks
        entry["order_count"] += t.orders
        entry["revenue_cents"] += t.order_cents
        entry["refund_cents"] += t.refund_cents
        entry["redemption_count"] += t.redemptions
        entry["redemption_cents"] += t.redemption_cents
        entry["seed_cost_cents"] += match.offer.parsed_metadata.seed_cost_cents
        for customer_id in buyers_by_match.get(match.id, []):
            customer_orders[creator.id][customer_id] += 1

    rows = []
    for creator_id, entry in per_creator.items():
        net = entry["revenue_cents"] - entry["refund_cents"]
        entry["net_revenue_cents"] = net
        entry["repeat_buyer_count"] = sum(1 for n in customer_orders[creator_id].values() if n >= 2)
        entry["roi_percent"] = roi_percent(net, entry["seed_cost_cents"])
        rows.append(entry)
    rows.sort(key=lambda row: row["net_revenue_cents"], reverse=True)
    return rows


def creator_performance(creator, *, config: PipelineConfig | None = None) -> dict:
    config = config or get_pipeline_config()
    matches = list(
        Match.objects.select_related("offer", "offer__brand")
        .filter(creator=creator, status=Match.Status.ACCEPTED)
        .order_by("-created_at")[:MAX_PERFORMANCE_MATCHES]
    )
    totals = match_totals(m.id for m in matches)
    deliverables = {d.match_id: d for d in Deliverable.objects.filter(match__in=matches)}

    rows = []
    summary = {
        "total_clicks": 0,
        "total_redemptions": 0,
        "total_redemption_cents": 0,
        "total_net_order_revenue_cents": 0,
    }
    for match in matches:
        t = totals[match.id]
        net_orders = max(0, t.order_cents - t.refund_cents)
        deliverable = deliverables.get(match.id)
        rows.append(
            {
                "id": match.id,
                "brand_name": match.offer.brand.name,
                "offer_title": match.offer.title,
                "campaign_code": match.campaign_code,
                "share_url": config.share_url(match.campaign_code),
                "created_at": match.created_at,
                "deliverable": (
                    {
                        "status": deliverable.status,
                        "due_at": deliverable.due_at,
                        "verified_permalink": deliverable.verified_permalink or None,
                    }
                    if deliverable
                    else None
                ),
                "metrics": {
                    "clicks": t.clicks,
                    "redemption_count": t.redemptions,
                    "redemption_cents": t.redemption_cents,
                    "net_order_revenue_cents": net_orders,
                },
            }
        )
        summary["total_clicks"] += t.clicks
        summary["total_redemptions"] += t.redemptions
        summary["total_redemption_cents"] += t.redemption_cents
        summary["total_net_order_revenue_cents"] += net_orders
    return {"summary": summary, "matches": rows}


def totals_as_dict(totals: MatchTotals) -> dict:
    data = asdict(totals)
    data["net_revenue_cents"] = totals.net_revenue_cents
    return data
