from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.attribution.services.ingest import (
    parse_order_event,
    parse_refund_event,
    record_attributed_order,
    record_attributed_refund,
)
from apps.core.config import get_pipeline_config
from apps.core.errors import ConfigurationError, error_detail
from apps.fulfillment.providers.shopify import parse_webhook_body, shop_domain_from_request, verify_shopify_hmac
from apps.fulfillment.services.orders import mark_fulfilled
from apps.fulfillment.services.stores import mark_uninstalled

logger = logging.getLogger(__name__)


def _first_string(value, values) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    for item in values or []:
        if isinstance(item, str) and item.strip():
            return item.strip()
    return ""


@method_decorator(csrf_exempt, name="dispatch")
class ShopifyWebhookView(APIView):
    """Shared HMAC check and error mapping; subclasses implement ``handle``."""

    authentication_classes: list = []
    permission_classes: list = []
    topic = ""

    def handle(self, shop_domain: str, payload: dict) -> dict:
        raise NotImplementedError

    def post(self, request: Request) -> Response:
        config = get_pipeline_config()
        shop_domain = shop_domain_from_request(request) or "unknown"
        try:
            valid = verify_shopify_hmac(request, config.shopify_api_secret)
        except ConfigurationError as exc:
            logger.error("shopify_webhook.rejected shop=%s topic=%s reason=secret_missing", shop_domain, self.topic)
            return Response({"ok": False, "error": exc.message}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        if not valid:
            logger.warning("shopify_webhook.rejected shop=%s topic=%s reason=invalid_hmac", shop_domain, self.topic)
            return Response({"ok": False, "error": "Invalid webhook HMAC"}, status=status.HTTP_401_UNAUTHORIZED)

        try:
            payload = parse_webhook_body(request.body)
            body = self.handle(shop_domain, payload)
        except ValidationError as exc:
            detail = error_detail(exc)
            logger.warning(
                "shopify_webhook.rejected shop=%s topic=%s reason=invalid_payload detail=%s",
                shop_domain,
                self.topic,
                detail,
            )
            return Response({"ok": False, "error": detail}, status=status.HTTP_400_BAD_REQUEST)
        except DatabaseError:
            logger.exception("shopify_webhook.failed shop=%s topic=%s", shop_domain, self.topic)
            return Response({"ok": False, "error": "DB error"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response(body, status=status.HTTP_200_OK)


class OrdersCreateWebhookView(ShopifyWebhookView):
    topic = "orders/create"

    def handle(self, shop_domain: str, payload: dict) -> dict:
        return record_attributed_order(shop_domain, parse_order_event(payload)).as_dict()


class RefundsCreateWebhookView(ShopifyWebhookView):
    topic = "refunds/create"

    def handle(self, shop_domain: str, payload: dict) -> dict:
        return record_attributed_refund(shop_domain, parse_refund_event(payload)).as_dict()


class FulfillmentsCreateWebhookView(ShopifyWebhookView):
    topic = "fulfillments/create"

    def handle(self, shop_domain: str, payload: dict) -> dict:
        order_id = str(payload.get("order_id") or "").strip()
        if not order_id:
            return {"ok": True, "updated": False}
        updated = mark_fulfilled(
            shop_domain,
            order_id,
            tracking_number=_first_string(payload.get("tracking_number"), payload.get("tracking_numbers")),
            tracking_url=_first_string(payload.get("tracking_url"), payload.get("tracking_urls")),
        )
        return {"ok": True, "updated": updated}


class AppUninstalledWebhookView(ShopifyWebhookView):
    topic = "app/uninstalled"

    def handle(self, shop_domain: str, payload: dict) -> dict:
        updated = mark_uninstalled(shop_domain)
        if updated:
            logger.info("shopify_webhook.app_uninstalled shop=%s", shop_domain)
        return {"ok": True, "updated": updated}
