from __future__ import annotations

from django.utils import timezone

from apps.fulfillment.models import CommerceStore


def active_store_for_brand(brand_id: int) -> CommerceStore | None:
    return (
        CommerceStore.objects.filter(brand_id=brand_id, uninstalled_at__isnull=True)
        .order_by("-installed_at", "-created_at")
        .first()
    )


def mark_uninstalled(shop_domain: str) -> bool:
    now = timezone.now()
    updated = CommerceStore.objects.filter(shop_domain=shop_domain, uninstalled_at__isnull=True).update(
        uninstalled_at=now,
        updated_at=now,
    )
    return updated > 0
