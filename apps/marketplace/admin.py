from __future__ import annotations

from django.contrib import admin

from apps.marketplace.models import Brand, BrandMember, Creator, CreatorSocialAccount, Offer, OfferProduct


class BrandMemberInline(admin.TabularInline):
    model = BrandMember
    extra = 0


class OfferProductInline(admin.TabularInline):
    model = OfferProduct
    extra = 0


@admin.register(Brand)
class BrandAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "website", "city", "country", "created_at")
    search_fields = ("name", "website", "instagram_handle")
    inlines = [BrandMemberInline]


@admin.register(Creator)
class CreatorAdmin(admin.ModelAdmin):
    list_display = ("id", "username", "full_name", "email", "followers_count", "created_at")
    search_fields = ("username", "full_name", "email", "phone")


@admin.register(CreatorSocialAccount)
class CreatorSocialAccountAdmin(admin.ModelAdmin):
    list_display = ("id", "creator", "provider", "external_user_id", "profile_synced_at", "profile_error")
    list_filter = ("provider",)
    readonly_fields = ("access_token_encrypted", "profile_synced_at", "profile_error", "created_at", "updated_at")


@admin.register(Offer)
class OfferAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "brand", "status", "deliverable_type", "usage_rights_required", "created_at")
    list_filter = ("status", "deliverable_type", "usage_rights_required")
    search_fields = ("title", "brand__name")
    inlines = [OfferProductInline]
