from __future__ import annotations

from typing import Any, Dict, Optional

import stripe
from django.conf import settings

from apps.core.errors import ConfigurationError


class StripeClient:
    def __init__(self, api_key: str, webhook_secret: str | None = None) -> None:
        stripe.api_key = api_key
        self.webhook_secret = webhook_secret

    def construct_event(self, payload: bytes, signature: str) -> stripe.Event:
        if not self.webhook_secret:
            raise ConfigurationError("Stripe webhook secret not configured")
        return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)


def get_stripe_client(overrides: Optional[Dict[str, Any]] = None) -> StripeClient:
    api_key = (overrides or {}).get("api_key") or getattr(settings, "STRIPE_API_KEY", "")
    webhook_secret = (overrides or {}).get("webhook_secret") or getattr(settings, "STRIPE_WEBHOOK_SECRET", "")
    return StripeClient(api_key=api_key, webhook_secret=webhook_secret)
