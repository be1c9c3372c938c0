from __future__ import annotations

from rest_framework.throttling import ScopedRateThrottle, SimpleRateThrottle

from apps.core.rate_limit import get_client_ip, hashed_ip_key


class ClientIPThrottle(SimpleRateThrottle):
    """Global per-address limit. Honors the first X-Forwarded-For hop like the share-link limiter."""

    scope = "ip"

    def get_cache_key(self, request, view) -> str | None:  # type: ignore[override]
        ip = get_client_ip(request)
        if not ip or ip == "unknown":
            return None
        return self.cache_format % {"scope": self.scope, "ident": hashed_ip_key("drf", ip)}


def _actor_ident(request) -> str | None:
    brand = getattr(request, "brand", None)
    if brand is not None:
        return f"brand:{brand.id}"
    creator = getattr(request, "creator", None)
    if creator is not None:
        return f"creator:{creator.id}"
    user = getattr(request, "user", None)
    if getattr(user, "is_authenticated", False):
        return f"user:{user.pk}"
    return None


class ActorScopedThrottle(ScopedRateThrottle):
    """Scoped limit keyed on the acting brand or creator.

    Runs after permissions, so ``request.brand``/``request.creator`` are already
    resolved. Brand members share one allowance per brand.
    """

    def get_cache_key(self, request, view) -> str | None:  # type: ignore[override]
        ident = _actor_ident(request)
        if ident is None:
            return None
        return self.cache_format % {"scope": self.scope, "ident": ident}
