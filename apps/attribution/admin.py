from __future__ import annotations

from django.contrib import admin

from apps.attribution.models import AttributedOrder, AttributedRefund, LinkClick, Redemption


class ReadOnlyAdmin(admin.ModelAdmin):
    """Attribution facts are append-only; the admin can browse but not edit them."""

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(LinkClick)
class LinkClickAdmin(ReadOnlyAdmin):
    list_display = ("id", "match", "ip_hash", "created_at")

    def has_add_permission(self, request) -> bool:
        return False


@admin.register(AttributedOrder)
class AttributedOrderAdmin(ReadOnlyAdmin):
    list_display = ("id", "match", "shop_domain", "order_id", "currency", "total_cents", "created_at")
    search_fields = ("order_id", "shop_domain", "customer_id")

    def has_add_permission(self, request) -> bool:
        return False


@admin.register(AttributedRefund)
class AttributedRefundAdmin(ReadOnlyAdmin):
    list_display = ("id", "match", "shop_domain", "order_id", "refund_id", "amount_cents", "created_at")
    search_fields = ("order_id", "refund_id", "shop_domain")

    def has_add_permission(self, request) -> bool:
        return False


@admin.register(Redemption)
class RedemptionAdmin(ReadOnlyAdmin):
    list_display = ("id", "match", "brand", "channel", "amount_cents", "currency", "created_at")
    list_filter = ("channel",)
