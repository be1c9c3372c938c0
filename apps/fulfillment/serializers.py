from __future__ import annotations

from rest_framework import serializers

from apps.fulfillment.models import ManualShipment


class ManualShipmentShipSerializer(serializers.Serializer):
    carrier = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    tracking_number = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    tracking_url = serializers.URLField(max_length=500, required=False, allow_blank=True, default="")


class ManualShipmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = ManualShipment
        fields = ["id", "match_id", "status", "carrier", "tracking_number", "tracking_url", "shipped_at"]
        read_only_fields = fields
