from __future__ import annotations

from rest_framework import serializers

from apps.matches.models import Match


class RevokeSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class MatchSerializer(serializers.ModelSerializer):
    share_url_path = serializers.CharField(read_only=True)

    class Meta:
        model = Match
        fields = ["id", "offer_id", "creator_id", "status", "campaign_code", "share_url_path", "accepted_at", "revoked_at"]
        read_only_fields = fields


def approval_payload(result) -> dict:
    match = result.match
    return {
        "ok": True,
        "match": {
            "id": match.id,
            "status": match.status,
            "accepted_at": match.accepted_at.isoformat() if match.accepted_at else None,
            "campaign_code": match.campaign_code,
            "share_url_path": match.share_url_path,
            "discount_created": result.discount_created,
            "order_created": result.order_created,
            "manual_shipment": result.manual_shipment,
        },
        "errors": result.errors,
    }
