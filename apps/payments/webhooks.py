from __future__ import annotations

import json
import logging

import stripe
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.config import get_pipeline_config
from apps.core.errors import ConfigurationError
from apps.payments.services import SUBSCRIPTION_EVENTS, apply_subscription_event
from apps.payments.stripe_client import get_stripe_client

logger = logging.getLogger(__name__)


@method_decorator(csrf_exempt, name="dispatch")
class StripeWebhookView(APIView):
    authentication_classes: list = []
    permission_classes: list = []
    throttle_classes: list = []

    def post(self, request: Request) -> Response:
        if not get_pipeline_config().payments_enabled:
            return Response({"ok": False, "error": "Payments disabled"}, status=status.HTTP_403_FORBIDDEN)
        signature = request.META.get("HTTP_STRIPE_SIGNATURE", "")
        client = get_stripe_client()
        try:
            client.construct_event(request.body, signature)
        except ConfigurationError as exc:
            logger.error("stripe_webhook.rejected reason=secret_missing")
            return Response({"ok": False, "error": exc.message}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        except (stripe.SignatureVerificationError, ValueError):
            logger.warning("stripe_webhook.rejected reason=invalid_signature")
            return Response({"ok": False, "error": "Invalid signature"}, status=status.HTTP_401_UNAUTHORIZED)

        # Signature is verified against the raw body, so the plain JSON is authoritative.
        event = json.loads(request.body)
        event_type = event.get("type")
        if event_type not in SUBSCRIPTION_EVENTS:
            return Response({"ok": True, "ignored": True})
        data = (event.get("data") or {}).get("object") or {}
        subscription = apply_subscription_event(event_type, data)
        if subscription is None:
            return Response({"ok": True, "ignored": True})
        return Response({"ok": True, "status": subscription.status})
