from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from rest_framework import serializers

from apps.attribution.models import Redemption
from apps.attribution.services.aggregator import cents_to_display


class RedemptionCreateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=32)
    amount_cents = serializers.IntegerField(min_value=1, required=False)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.01"), required=False)
    currency = serializers.CharField(max_length=3, min_length=3, required=False, default="USD")
    channel = serializers.ChoiceField(choices=Redemption.Channel.choices, required=False, default=Redemption.Channel.IN_STORE)
    note = serializers.CharField(max_length=240, required=False, allow_blank=True, default="")

    def validate_code(self, value: str) -> str:
        return value.strip().upper()

    def validate_currency(self, value: str) -> str:
        return value.strip().upper()

    def validate(self, attrs: dict) -> dict:
        if attrs.get("amount_cents") is None:
            amount = attrs.get("amount")
            if amount is None:
                raise serializers.ValidationError({"amount_cents": "amount_cents or amount is required."})
            attrs["amount_cents"] = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        attrs.pop("amount", None)
        return attrs


class RedemptionSerializer(serializers.ModelSerializer):
    amount_display = serializers.SerializerMethodField()

    class Meta:
        model = Redemption
        fields = ["id", "match_id", "channel", "amount_cents", "amount_display", "currency", "note", "created_at"]
        read_only_fields = fields

    def get_amount_display(self, obj: Redemption) -> str:
        return cents_to_display(obj.amount_cents)


CENTS_FIELDS = (
    "revenue_cents",
    "refund_cents",
    "net_revenue_cents",
    "redemption_cents",
    "seed_cost_cents",
    "order_cents",
    "total_redemption_cents",
    "total_net_order_revenue_cents",
    "net_order_revenue_cents",
)


def with_display(row: dict) -> dict:
    """Adds ``*_display`` decimal strings next to each cents figure."""
    out = dict(row)
    for key in CENTS_FIELDS:
        if key in row and isinstance(row[key], int):
            out[key.replace("_cents", "_display")] = cents_to_display(row[key])
    return out
