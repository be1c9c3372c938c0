from __future__ import annotations

import base64
import hashlib
import logging
from urllib.parse import parse_qsl, quote_plus, urlencode, urlparse, urlunparse

from apps.attribution.models import LinkClick
from apps.core.config import PipelineConfig, get_pipeline_config
from apps.core.errors import error_detail
from apps.fulfillment.providers.shopify import get_shopify_client
from apps.fulfillment.services.stores import active_store_for_brand
from apps.marketplace.metadata import is_http_url
from apps.matches.models import Match

logger = logging.getLogger(__name__)

FALLBACK_URL = "/"
MAPS_SEARCH_URL = "https://www.google.com/maps/search/?api=1&query="


def hash_ip(ip: str) -> str:
    """Base64 SHA-256 of the client address. Raw IPs are never stored."""
    if not ip:
        return ""
    return base64.b64encode(hashlib.sha256(ip.encode("utf-8")).digest()).decode("ascii")


def record_click(match: Match, *, ip: str, user_agent: str = "", referer: str = "") -> LinkClick:
    return LinkClick.objects.create(
        match=match,
        ip_hash=hash_ip(ip),
        user_agent=(user_agent or "")[:512],
        referer=(referer or "")[:1024],
    )


def _store_destination(match: Match, store, config: PipelineConfig, client_factory) -> str:
    root = f"https://{store.shop_domain}"
    product = match.offer.products.first()
    if product is None:
        return root
    try:
        client = (client_factory or get_shopify_client)(store, config)
        handle = str(client.get_product(product.shopify_product_id).get("handle") or "").strip()
    except Exception as exc:  # noqa: BLE001
        logger.warning(
            "redirect.product_lookup_failed match_id=%s shop=%s error=%s",
            match.id,
            store.shop_domain,
            error_detail(exc),
        )
        return root
    return f"{root}/products/{handle}" if handle else root


def _maps_destination(brand) -> str | None:
    address = [part for part in (brand.address1, brand.city, brand.province, brand.zip) if part]
    if not address:
        return None
    parts = [brand.name, *address] if brand.name else address
    return MAPS_SEARCH_URL + quote_plus(" ".join(parts))


def with_tracking_params(url: str, *, offer_id: int, code: str, with_discount: bool) -> str:
    parsed = urlparse(url)
    params = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True)]
    overrides = {
        "utm_source": "frilpp",
        "utm_medium": "creator",
        "utm_campaign": str(offer_id),
        "utm_content": code,
        "code": code,
    }
    if with_discount:
        overrides["discount"] = code
    params = [(k, v) for k, v in params if k not in overrides]
    params.extend(overrides.items())
    return urlunparse(parsed._replace(query=urlencode(params)))


def resolve_destination(
    match: Match,
    *,
    config: PipelineConfig | None = None,
    client_factory=None,
) -> str:
    """Where a share link lands: storefront product, offer CTA, brand site, brand on a map, then home."""
    config = config or get_pipeline_config()
    offer = match.offer
    brand = offer.brand
    store = active_store_for_brand(brand.id)

    target = None
    if store is not None:
        target = _store_destination(match, store, config, client_factory)
    if target is None:
        cta_url = offer.parsed_metadata.cta_url
        if is_http_url(cta_url):
            target = cta_url
    if target is None and is_http_url(brand.website):
        target = brand.website.strip()
    if target is None:
        target = _maps_destination(brand)
    if target is None:
        return FALLBACK_URL
    return with_tracking_params(target, offer_id=offer.id, code=match.campaign_code, with_discount=store is not None)
