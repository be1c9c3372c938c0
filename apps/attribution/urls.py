from __future__ import annotations

from django.urls import path

from apps.attribution.views import (
    CreatorAnalyticsView,
    CreatorPerformanceView,
    OfferAnalyticsView,
    RedemptionCreateView,
)

urlpatterns = [
    path("brand/analytics/offers/", OfferAnalyticsView.as_view(), name="analytics-offers"),
    path("brand/analytics/creators/", CreatorAnalyticsView.as_view(), name="analytics-creators"),
    path("brand/redemptions/", RedemptionCreateView.as_view(), name="redemption-create"),
    path("creator/performance/", CreatorPerformanceView.as_view(), name="creator-performance"),
]
