from __future__ import annotations

import base64
import hashlib
import hmac
import json
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

import requests
from django.core.exceptions import ValidationError
from django.http import HttpRequest

from apps.core.config import PipelineConfig, get_pipeline_config
from apps.core.crypto import decrypt_secret
from apps.core.errors import ConfigurationError, IntegrationError

HMAC_HEADER = "HTTP_X_SHOPIFY_HMAC_SHA256"
SHOP_HEADER = "HTTP_X_SHOPIFY_SHOP_DOMAIN"


def shop_domain_from_request(request: HttpRequest) -> str:
    return str(request.META.get(SHOP_HEADER, "") or "").strip().lower()


def verify_shopify_hmac(request: HttpRequest, secret: str) -> bool:
    """Constant-time check of the base64 HMAC-SHA256 Shopify sends over the raw body."""
    if not secret:
        raise ConfigurationError("Shopify webhook secret not configured")
    provided = str(request.META.get(HMAC_HEADER, "") or "").strip()
    if not provided:
        return False
    digest = hmac.new(secret.encode("utf-8"), request.body, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode("ascii")
    return hmac.compare_digest(provided, expected)


def parse_webhook_body(body: bytes) -> dict:
    try:
        payload = json.loads(body.decode("utf-8") or "{}")
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValidationError("Invalid JSON payload.") from exc
    if not isinstance(payload, dict):
        raise ValidationError("Invalid payload format.")
    return payload


def amount_to_cents(raw: Any) -> int:
    """Shopify money strings ("12.34") to integer cents, rounding half up."""
    if raw in (None, ""):
        return 0
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError("Amount is invalid.") from exc
    if not value.is_finite():
        raise ValidationError("Amount is invalid.")
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class ShopifyClient:
    def __init__(self, *, shop_domain: str, access_token: str, api_version: str, timeout: float = 12) -> None:
        self.shop_domain = shop_domain
        self.base_url = f"https://{shop_domain}/admin/api/{api_version}"
        self.access_token = access_token
        self.timeout = timeout

    def _request(self, method: str, path: str, payload: dict | None = None, params: dict | None = None) -> dict:
        headers = {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
        }
        try:
            response = requests.request(
                method,
                f"{self.base_url}{path}",
                json=payload,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise IntegrationError(f"Shopify API request failed: {path}") from exc
        try:
            data = response.json()
        except ValueError:
            data = None
        if not response.ok or not isinstance(data, dict):
            raise IntegrationError(f"Shopify API request failed: {path}")
        return data

    def create_price_rule(self, rule: dict) -> str:
        data = self._request("POST", "/price_rules.json", {"price_rule": rule})
        rule_id = (data.get("price_rule") or {}).get("id")
        if not rule_id:
            raise IntegrationError("Shopify API request failed: /price_rules.json")
        return str(rule_id)

    def create_discount_code(self, price_rule_id: str, code: str) -> tuple[str, str]:
        path = f"/price_rules/{price_rule_id}/discount_codes.json"
        data = self._request("POST", path, {"discount_code": {"code": code}})
        discount = data.get("discount_code") or {}
        if not discount.get("id"):
            raise IntegrationError(f"Shopify API request failed: {path}")
        return str(discount["id"]), str(discount.get("code") or code)

    def create_draft_order(self, draft_order: dict) -> str:
        data = self._request("POST", "/draft_orders.json", {"draft_order": draft_order})
        draft_id = (data.get("draft_order") or {}).get("id")
        if not draft_id:
            raise IntegrationError("Shopify API request failed: /draft_orders.json")
        return str(draft_id)

    def complete_draft_order(self, draft_order_id: str) -> tuple[str, str]:
        path = f"/draft_orders/{draft_order_id}/complete.json"
        data = self._request("PUT", path, {}, params={"payment_pending": "true"})
        draft = data.get("draft_order") or {}
        if not draft.get("order_id"):
            raise IntegrationError(f"Shopify API request failed: {path}")
        return str(draft["order_id"]), str(draft.get("name") or "")

    def get_product(self, product_id: str) -> dict:
        data = self._request("GET", f"/products/{product_id}.json", params={"fields": "id,handle"})
        return data.get("product") or {}


def get_shopify_client(store, config: PipelineConfig | None = None) -> ShopifyClient:
    config = config or get_pipeline_config()
    return ShopifyClient(
        shop_domain=store.shop_domain,
        access_token=decrypt_secret(store.access_token_encrypted, config),
        api_version=config.shopify_api_version,
        timeout=config.shopify_timeout_seconds,
    )
