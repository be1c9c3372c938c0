from __future__ import annotations

import hashlib
import logging

from django.core.cache import cache

from apps.core.config import PipelineConfig, get_pipeline_config

logger = logging.getLogger(__name__)


def get_client_ip(request) -> str:
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR", "unknown")


def hashed_ip_key(prefix: str, ip: str) -> str:
    return f"{prefix}:ip:{hashlib.sha256(ip.encode('utf-8')).hexdigest()}"


def is_rate_limited(key: str, limit: int, window_seconds: int, config: PipelineConfig | None = None) -> bool:
    """Fixed-window counter in the default cache. Fails open when the cache is unavailable."""
    config = config or get_pipeline_config()
    if not config.rate_limits_enabled:
        return False
    if limit <= 0 or window_seconds <= 0:
        return False

    cache_key = f"rl:{key}"
    try:
        if cache.add(cache_key, 1, timeout=window_seconds):
            return False
        current = cache.incr(cache_key)
    except Exception as exc:  # noqa: BLE001
        logger.warning("rate_limit.unavailable key=%s error=%s", key, exc)
        return False

    return current > limit
