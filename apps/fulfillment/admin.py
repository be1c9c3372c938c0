from __future__ import annotations

from django.contrib import admin

from apps.fulfillment.models import CommerceStore, ManualShipment, MatchDiscount, OrderFulfillmentRecord


@admin.register(CommerceStore)
class CommerceStoreAdmin(admin.ModelAdmin):
    list_display = ("id", "shop_domain", "brand", "installed_at", "uninstalled_at")
    search_fields = ("shop_domain",)
    readonly_fields = ("access_token_encrypted", "created_at", "updated_at")


@admin.register(MatchDiscount)
class MatchDiscountAdmin(admin.ModelAdmin):
    list_display = ("id", "match", "shop_domain", "code", "percent", "created_at")
    search_fields = ("code", "shop_domain")


@admin.register(OrderFulfillmentRecord)
class OrderFulfillmentRecordAdmin(admin.ModelAdmin):
    list_display = ("id", "match", "shop_domain", "status", "order_name", "tracking_number", "updated_at")
    list_filter = ("status",)
    search_fields = ("order_id", "draft_order_id", "order_name", "shop_domain")
    readonly_fields = ("error", "created_at", "updated_at")


@admin.register(ManualShipment)
class ManualShipmentAdmin(admin.ModelAdmin):
    list_display = ("id", "match", "status", "carrier", "tracking_number", "shipped_at")
    list_filter = ("status",)
