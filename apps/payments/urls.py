from __future__ import annotations

from django.urls import path

from apps.payments.webhooks import StripeWebhookView

urlpatterns = [
    path("payments/stripe/webhook/", StripeWebhookView.as_view(), name="stripe-webhook"),
]
