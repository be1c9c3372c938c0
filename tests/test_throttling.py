from __future__ import annotations

from types import SimpleNamespace

from django.contrib.auth.models import AnonymousUser

from apps.core.throttling import ActorScopedThrottle, ClientIPThrottle


def _request(**attrs):
    attrs.setdefault("user", AnonymousUser())
    attrs.setdefault("META", {"REMOTE_ADDR": "10.0.0.1"})
    return SimpleNamespace(**attrs)


def test_actor_key_prefers_brand_over_user():
    throttle = ActorScopedThrottle()
    throttle.scope = "redemptions"
    request = _request(brand=SimpleNamespace(id=42), user=SimpleNamespace(is_authenticated=True, pk=7))

    assert throttle.get_cache_key(request, view=None) == "throttle_redemptions_brand:42"


def test_actor_key_uses_creator():
    throttle = ActorScopedThrottle()
    throttle.scope = "submissions"
    request = _request(creator=SimpleNamespace(id=9), user=SimpleNamespace(is_authenticated=True, pk=7))

    assert throttle.get_cache_key(request, view=None) == "throttle_submissions_creator:9"


def test_actor_key_skips_anonymous():
    throttle = ActorScopedThrottle()
    throttle.scope = "submissions"

    assert throttle.get_cache_key(_request(), view=None) is None


def test_client_ip_key_uses_forwarded_address_and_hides_it():
    throttle = ClientIPThrottle.__new__(ClientIPThrottle)
    request = _request(META={"HTTP_X_FORWARDED_FOR": "203.0.113.5, 10.0.0.1", "REMOTE_ADDR": "10.0.0.1"})

    key = throttle.get_cache_key(request, view=None)
    other = throttle.get_cache_key(_request(META={"REMOTE_ADDR": "10.0.0.1"}), view=None)

    assert key.startswith("throttle_ip_drf:ip:")
    assert "203.0.113.5" not in key
    assert key != other
