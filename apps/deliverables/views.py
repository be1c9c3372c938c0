from __future__ import annotations

from django.core.exceptions import ValidationError
from rest_framework import permissions, status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.http import validation_error_response
from apps.core.throttling import ActorScopedThrottle
from apps.deliverables import services
from apps.deliverables.serializers import (
    DeliverableReviewSerializer,
    DeliverableSerializer,
    DeliverableSubmitSerializer,
)
from apps.marketplace.identity import IsBrandMember, IsCreator


class DeliverableSubmitView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsCreator]
    throttle_classes = [ActorScopedThrottle]
    throttle_scope = "submissions"

    def post(self, request: Request, match_id: int) -> Response:
        serializer = DeliverableSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            deliverable = services.submit_deliverable(
                match_id,
                creator=request.creator,
                permalink=data["url"],
                notes=data["notes"],
                grant_usage_rights=data["grant_usage_rights"],
            )
        except ValidationError as exc:
            return validation_error_response(exc)
        return Response({"ok": True, "deliverable": DeliverableSerializer(deliverable).data}, status=status.HTTP_200_OK)


class BrandDeliverableActionView(APIView):
    """One brand review action per subclass; ``service_name`` names the service to call."""

    permission_classes = [permissions.IsAuthenticated, IsBrandMember]
    service_name = ""

    def perform(self, request: Request, deliverable_id: int, data: dict):
        handler = getattr(services, self.service_name)
        return handler(deliverable_id, brand=request.brand, reviewer=request.user, reason=data["reason"])

    def post(self, request: Request, deliverable_id: int) -> Response:
        serializer = DeliverableReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            deliverable = self.perform(request, deliverable_id, serializer.validated_data)
        except ValidationError as exc:
            return validation_error_response(exc)
        return Response({"ok": True, "deliverable": DeliverableSerializer(deliverable).data}, status=status.HTTP_200_OK)


class DeliverableVerifyView(BrandDeliverableActionView):
    def perform(self, request: Request, deliverable_id: int, data: dict):
        return services.verify_deliverable(
            deliverable_id,
            brand=request.brand,
            reviewer=request.user,
            permalink=data["permalink"] or None,
        )


class DeliverableRequestChangesView(BrandDeliverableActionView):
    service_name = "request_changes"


class DeliverableFailView(BrandDeliverableActionView):
    service_name = "fail_deliverable"


class DeliverableRepostView(BrandDeliverableActionView):
    service_name = "require_repost"
