from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from django.conf import settings
from django.core.signals import setting_changed
from django.dispatch import receiver


@dataclass(frozen=True)
class PipelineConfig:
    app_url: str
    shopify_api_version: str
    shopify_api_secret: str
    shopify_timeout_seconds: float
    token_encryption_key: str
    default_discount_percent: float
    discount_days_valid: int
    deliverable_grace_days: int
    rate_limits_enabled: bool
    redirect_limit_per_minute: int
    twilio_account_sid: str
    twilio_auth_token: str
    twilio_from_number: str
    twilio_whatsapp_from: str
    twilio_timeout_seconds: float
    meta_api_version: str
    meta_timeout_seconds: float
    meta_profile_stale_days: int
    cron_secret: str
    cron_trust_scheduler_header: bool
    cron_timezone: str
    cron_daily_hour: int
    cron_lock_ttl_seconds: int
    cron_batch_size: int
    notification_max_attempts: int
    payments_enabled: bool
    debug: bool

    @property
    def sms_enabled(self) -> bool:
        return bool(self.twilio_from_number)

    @property
    def whatsapp_enabled(self) -> bool:
        return bool(self.twilio_whatsapp_from)

    def share_url(self, campaign_code: str) -> str:
        return f"{self.app_url.rstrip('/')}/r/{campaign_code}"

    @classmethod
    def from_settings(cls) -> "PipelineConfig":
        return cls(
            app_url=str(getattr(settings, "APP_URL", "http://localhost:8000") or ""),
            shopify_api_version=str(getattr(settings, "SHOPIFY_API_VERSION", "2025-01") or "2025-01"),
            shopify_api_secret=str(getattr(settings, "SHOPIFY_API_SECRET", "") or ""),
            shopify_timeout_seconds=float(getattr(settings, "SHOPIFY_TIMEOUT_SECONDS", 12)),
            token_encryption_key=str(getattr(settings, "TOKEN_ENCRYPTION_KEY", "") or ""),
            default_discount_percent=float(getattr(settings, "DEFAULT_CREATOR_DISCOUNT_PERCENT", 10)),
            discount_days_valid=int(getattr(settings, "CREATOR_DISCOUNT_DAYS_VALID", 30)),
            deliverable_grace_days=int(getattr(settings, "DELIVERABLE_GRACE_DAYS", 14)),
            rate_limits_enabled=bool(getattr(settings, "RATE_LIMITS_ENABLED", False)),
            redirect_limit_per_minute=int(getattr(settings, "RATE_LIMIT_REDIRECTS_PER_MINUTE", 120)),
            twilio_account_sid=str(getattr(settings, "TWILIO_ACCOUNT_SID", "") or ""),
            twilio_auth_token=str(getattr(settings, "TWILIO_AUTH_TOKEN", "") or ""),
            twilio_from_number=str(getattr(settings, "TWILIO_FROM_NUMBER", "") or ""),
            twilio_whatsapp_from=str(getattr(settings, "TWILIO_WHATSAPP_FROM", "") or ""),
            twilio_timeout_seconds=float(getattr(settings, "TWILIO_TIMEOUT_SECONDS", 10)),
            meta_api_version=str(getattr(settings, "META_API_VERSION", "v20.0") or "v20.0"),
            meta_timeout_seconds=float(getattr(settings, "META_TIMEOUT_SECONDS", 10)),
            meta_profile_stale_days=max(1, int(getattr(settings, "META_PROFILE_STALE_DAYS", 7))),
            cron_secret=str(getattr(settings, "CRON_SECRET", "") or ""),
            cron_trust_scheduler_header=bool(getattr(settings, "CRON_TRUST_SCHEDULER_HEADER", False)),
            cron_timezone=str(getattr(settings, "CRON_TIMEZONE", "America/New_York") or "America/New_York"),
            cron_daily_hour=int(getattr(settings, "CRON_DAILY_HOUR", 8)),
            cron_lock_ttl_seconds=max(1, int(getattr(settings, "CRON_LOCK_TTL_SECONDS", 15 * 60))),
            cron_batch_size=max(1, int(getattr(settings, "CRON_BATCH_SIZE", 20))),
            notification_max_attempts=max(1, int(getattr(settings, "NOTIFICATION_MAX_ATTEMPTS", 3))),
            payments_enabled=bool((getattr(settings, "FEATURE_FLAGS", None) or {}).get("payments", False)),
            debug=bool(getattr(settings, "DEBUG", False)),
        )


@lru_cache(maxsize=1)
def get_pipeline_config() -> PipelineConfig:
    """Process-wide configuration, built once from Django settings."""
    return PipelineConfig.from_settings()


@receiver(setting_changed)
def _reset_pipeline_config(**kwargs) -> None:
    get_pipeline_config.cache_clear()
