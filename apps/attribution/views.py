from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.http import HttpResponse, HttpResponseRedirect
from rest_framework import permissions, status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.attribution.serializers import RedemptionCreateSerializer, RedemptionSerializer, with_display
from apps.attribution.services import aggregator
from apps.attribution.services.redemptions import record_redemption
from apps.attribution.services.redirects import FALLBACK_URL, record_click, resolve_destination
from apps.core.config import get_pipeline_config
from apps.core.http import validation_error_response
from apps.core.rate_limit import get_client_ip, hashed_ip_key, is_rate_limited
from apps.core.throttling import ActorScopedThrottle
from apps.marketplace.identity import IsBrandMember, IsCreator
from apps.matches.campaign_codes import normalize_code
from apps.matches.models import Match

logger = logging.getLogger(__name__)

REDIRECT_WINDOW_SECONDS = 60


class CampaignRedirectView(APIView):
    """Public share link. Rate limited per hashed IP before anything is written."""

    authentication_classes: list = []
    permission_classes: list = []
    throttle_classes: list = []

    def get(self, request: Request, code: str):
        config = get_pipeline_config()
        ip = get_client_ip(request)
        key = hashed_ip_key("redirect", ip)
        if is_rate_limited(key, config.redirect_limit_per_minute, REDIRECT_WINDOW_SECONDS, config):
            logger.info("redirect.rate_limited key=%s", key)
            return HttpResponse("Too many requests", status=status.HTTP_429_TOO_MANY_REQUESTS)

        match = (
            Match.objects.select_related("offer", "offer__brand")
            .filter(campaign_code=normalize_code(code))
            .first()
        )
        if match is None:
            return HttpResponseRedirect(FALLBACK_URL)

        record_click(
            match,
            ip=ip,
            user_agent=request.META.get("HTTP_USER_AGENT", ""),
            referer=request.META.get("HTTP_REFERER", ""),
        )
        return HttpResponseRedirect(resolve_destination(match, config=config))


class RedemptionCreateView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsBrandMember]
    throttle_classes = [ActorScopedThrottle]
    throttle_scope = "redemptions"

    def post(self, request: Request) -> Response:
        serializer = RedemptionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            redemption = record_redemption(request.brand, created_by=request.user, **serializer.validated_data)
        except ValidationError as exc:
            return validation_error_response(exc)
        totals = aggregator.match_totals([redemption.match_id])[redemption.match_id]
        return Response(
            {
                "ok": True,
                "redemption": RedemptionSerializer(redemption).data,
                "totals": with_display(aggregator.totals_as_dict(totals)),
            },
            status=status.HTTP_201_CREATED,
        )


class OfferAnalyticsView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsBrandMember]

    def get(self, request: Request) -> Response:
        rows = [with_display(row) for row in aggregator.offer_rollup(request.brand)]
        return Response({"ok": True, "offers": rows})


class CreatorAnalyticsView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsBrandMember]

    def get(self, request: Request) -> Response:
        raw_offer_id = request.query_params.get("offer_id", "").strip()
        if raw_offer_id and not raw_offer_id.isdigit():
            return Response({"ok": False, "error": "offer_id must be numeric"}, status=status.HTTP_400_BAD_REQUEST)
        offer_id = int(raw_offer_id) if raw_offer_id else None
        rows = [with_display(row) for row in aggregator.creator_rollup(request.brand, offer_id=offer_id)]
        return Response({"ok": True, "creators": rows})


class CreatorPerformanceView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsCreator]

    def get(self, request: Request) -> Response:
        data = aggregator.creator_performance(request.creator)
        rows = []
        for row in data["matches"]:
            rows.append({**row, "metrics": with_display(row["metrics"])})
        return Response({"ok": True, "summary": with_display(data["summary"]), "matches": rows})
