from __future__ import annotations

from rest_framework.permissions import BasePermission
from rest_framework.request import Request

from apps.marketplace.models import Brand, Creator

BRAND_HEADER = "HTTP_X_BRAND_ID"


def resolve_brand(request: Request) -> Brand | None:
    """Active brand for the caller: the X-Brand-Id header when given, else the oldest membership."""
    user = request.user
    if not getattr(user, "is_authenticated", False):
        return None
    brands = Brand.objects.filter(memberships__user=user)
    requested = request.META.get(BRAND_HEADER, "").strip()
    if requested:
        if not requested.isdigit():
            return None
        return brands.filter(id=int(requested)).first()
    return brands.order_by("memberships__created_at").first()


def resolve_creator(request: Request) -> Creator | None:
    user = request.user
    if not getattr(user, "is_authenticated", False):
        return None
    return Creator.objects.filter(user=user).first()


class IsBrandMember(BasePermission):
    message = "Brand membership required."

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        brand = resolve_brand(request)
        if brand is None:
            return False
        request.brand = brand
        return True


class IsCreator(BasePermission):
    message = "Creator profile required."

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        creator = resolve_creator(request)
        if creator is None:
            return False
        request.creator = creator
        return True
