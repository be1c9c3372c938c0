from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.core.config import PipelineConfig, get_pipeline_config
from apps.core.errors import ConfigurationError
from apps.fulfillment.models import CommerceStore, MatchDiscount
from apps.fulfillment.providers.shopify import ShopifyClient
from apps.marketplace.models import Offer, OfferProduct

logger = logging.getLogger(__name__)


def _entitled_product_ids(products: list[OfferProduct]) -> list[int]:
    ids = []
    for product in products:
        raw = str(product.shopify_product_id or "").strip()
        if raw.isdigit() and int(raw) > 0:
            ids.append(int(raw))
    return ids


def ensure_match_discount(
    match,
    store: CommerceStore | None,
    products: list[OfferProduct],
    *,
    client: ShopifyClient,
    config: PipelineConfig | None = None,
) -> tuple[MatchDiscount | None, bool]:
    """Make sure the match's campaign code works as a storefront discount.

    Returns the discount (None when the offer cannot carry one) and whether it
    was created by this call.
    """
    existing = MatchDiscount.objects.filter(match=match).first()
    if existing:
        return existing, False
    if store is None or match.offer.deliverable_type == Offer.DeliverableType.UGC_ONLY:
        return None, False
    if not products:
        raise ConfigurationError("Offer has no Shopify products selected")
    entitled = _entitled_product_ids(products)
    if not entitled:
        raise ConfigurationError("No entitled products for discount")

    config = config or get_pipeline_config()
    percent = max(0.0, min(100.0, float(config.default_discount_percent)))
    if percent <= 0:
        raise ConfigurationError("Discount percent must be > 0")

    starts_at = timezone.now()
    ends_at = starts_at + timedelta(days=config.discount_days_valid)
    price_rule_id = client.create_price_rule(
        {
            "title": f"Frilpp {match.campaign_code}",
            "target_type": "line_item",
            "target_selection": "entitled",
            "allocation_method": "across",
            "value_type": "percentage",
            "value": f"-{percent:.1f}",
            "customer_selection": "all",
            "entitled_product_ids": entitled,
            "once_per_customer": False,
            "usage_limit": None,
            "starts_at": starts_at.isoformat(),
            "ends_at": ends_at.isoformat(),
        }
    )
    discount_code_id, code = client.create_discount_code(price_rule_id, match.campaign_code)

    try:
        with transaction.atomic():
            discount, created = MatchDiscount.objects.get_or_create(
                match=match,
                defaults={
                    "shop_domain": store.shop_domain,
                    "code": code,
                    "price_rule_id": price_rule_id,
                    "discount_code_id": discount_code_id,
                    "percent": Decimal(str(percent)),
                },
            )
    except IntegrityError:
        discount, created = MatchDiscount.objects.get(match=match), False
    if created:
        logger.info(
            "fulfillment.discount_created match_id=%s shop=%s price_rule_id=%s",
            match.id,
            store.shop_domain,
            price_rule_id,
        )
    return discount, created
