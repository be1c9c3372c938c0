from __future__ import annotations

from django.core.exceptions import ValidationError
from rest_framework import permissions, status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.http import validation_error_response
from apps.marketplace.identity import IsBrandMember, IsCreator
from apps.matches.serializers import MatchSerializer, RevokeSerializer, approval_payload
from apps.matches.services import approve_match, claim_offer, revoke_match


class OfferClaimView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsCreator]

    def post(self, request: Request, offer_id: int) -> Response:
        try:
            match = claim_offer(offer_id, creator=request.creator)
        except ValidationError as exc:
            return validation_error_response(exc)
        return Response({"ok": True, "match": MatchSerializer(match).data}, status=status.HTTP_201_CREATED)


class MatchApproveView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsBrandMember]

    def post(self, request: Request, match_id: int) -> Response:
        try:
            result = approve_match(match_id, brand=request.brand)
        except ValidationError as exc:
            return validation_error_response(exc)
        return Response(approval_payload(result), status=status.HTTP_200_OK)


class MatchRevokeView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsBrandMember]

    def post(self, request: Request, match_id: int) -> Response:
        serializer = RevokeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            match = revoke_match(match_id, brand=request.brand, reason=serializer.validated_data["reason"])
        except ValidationError as exc:
            return validation_error_response(exc)
        return Response({"ok": True, "match": MatchSerializer(match).data}, status=status.HTTP_200_OK)
