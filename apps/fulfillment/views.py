from __future__ import annotations

from django.core.exceptions import ValidationError
from rest_framework import permissions, status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.http import validation_error_response
from apps.fulfillment.serializers import ManualShipmentSerializer, ManualShipmentShipSerializer
from apps.fulfillment.services.shipments import mark_manual_shipment_shipped
from apps.marketplace.identity import IsBrandMember


class ManualShipmentShipView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsBrandMember]

    def post(self, request: Request, match_id: int) -> Response:
        serializer = ManualShipmentShipSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            shipment = mark_manual_shipment_shipped(match_id, brand=request.brand, **serializer.validated_data)
        except ValidationError as exc:
            return validation_error_response(exc)
        return Response({"ok": True, "shipment": ManualShipmentSerializer(shipment).data}, status=status.HTTP_200_OK)
