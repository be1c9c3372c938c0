from __future__ import annotations

from django.urls import path

from apps.fulfillment.views import ManualShipmentShipView
from apps.fulfillment.webhooks.shopify import (
    AppUninstalledWebhookView,
    FulfillmentsCreateWebhookView,
    OrdersCreateWebhookView,
    RefundsCreateWebhookView,
)

urlpatterns = [
    path(
        "brand/matches/<int:match_id>/manual-shipment/ship/",
        ManualShipmentShipView.as_view(),
        name="manual-shipment-ship",
    ),
    path("webhooks/shopify/orders-create/", OrdersCreateWebhookView.as_view(), name="shopify-orders-create"),
    path("webhooks/shopify/refunds-create/", RefundsCreateWebhookView.as_view(), name="shopify-refunds-create"),
    path(
        "webhooks/shopify/fulfillments-create/",
        FulfillmentsCreateWebhookView.as_view(),
        name="shopify-fulfillments-create",
    ),
    path("webhooks/shopify/app-uninstalled/", AppUninstalledWebhookView.as_view(), name="shopify-app-uninstalled"),
]
