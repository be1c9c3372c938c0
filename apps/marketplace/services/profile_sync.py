from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from apps.core.config import PipelineConfig, get_pipeline_config
from apps.core.crypto import decrypt_secret
from apps.core.errors import error_detail
from apps.marketplace.models import Creator, CreatorSocialAccount
from apps.marketplace.providers.instagram import InstagramClient, get_instagram_client

logger = logging.getLogger(__name__)

PROFILE_SYNC_BATCH = 25


@dataclass(frozen=True)
class ProfileSyncReport:
    stale_days: int
    processed: int
    synced: int
    errored: int

    def as_dict(self) -> dict:
        return {
            "ok": True,
            "stale_days": self.stale_days,
            "processed": self.processed,
            "synced": self.synced,
            "errored": self.errored,
        }


def stale_accounts(config: PipelineConfig, limit: int = PROFILE_SYNC_BATCH):
    stale_before = timezone.now() - timedelta(days=config.meta_profile_stale_days)
    return (
        CreatorSocialAccount.objects.select_related("creator")
        .filter(provider=CreatorSocialAccount.Provider.INSTAGRAM)
        .exclude(external_user_id="")
        .filter(Q(profile_synced_at__isnull=True) | Q(profile_synced_at__lt=stale_before))
        .order_by("profile_synced_at", "created_at")[:limit]
    )


def sync_creator_profiles(
    *,
    config: PipelineConfig | None = None,
    client: InstagramClient | None = None,
    limit: int = PROFILE_SYNC_BATCH,
) -> ProfileSyncReport:
    """Refresh username and follower counts for creators whose profile snapshot went stale.

    Each account is stamped with ``profile_synced_at`` whether or not the fetch
    succeeded, so a broken token is retried on the next staleness window rather
    than on every run.
    """
    config = config or get_pipeline_config()
    client = client or get_instagram_client(config)
    accounts = list(stale_accounts(config, limit))
    synced = 0
    errored = 0
    for account in accounts:
        now = timezone.now()
        try:
            token = decrypt_secret(account.access_token_encrypted, config)
            profile = client.fetch_profile(access_token=token, ig_user_id=account.external_user_id)
        except Exception as exc:  # noqa: BLE001
            errored += 1
            account.profile_synced_at = now
            account.profile_error = error_detail(exc)[:500]
            account.save(update_fields=["profile_synced_at", "profile_error", "updated_at"])
            logger.warning(
                "profile_sync.failed creator_id=%s account_id=%s error=%s",
                account.creator_id,
                account.id,
                account.profile_error,
            )
            continue

        with transaction.atomic():
            Creator.objects.filter(id=account.creator_id).update(
                ig_user_id=profile.ig_user_id,
                username=profile.username,
                followers_count=profile.followers_count,
                updated_at=now,
            )
            account.account_type = profile.account_type
            account.profile_synced_at = now
            account.profile_error = ""
            account.save(update_fields=["account_type", "profile_synced_at", "profile_error", "updated_at"])
        synced += 1

    logger.info(
        "profile_sync.finished processed=%s synced=%s errored=%s stale_days=%s",
        len(accounts),
        synced,
        errored,
        config.meta_profile_stale_days,
    )
    return ProfileSyncReport(
        stale_days=config.meta_profile_stale_days,
        processed=len(accounts),
        synced=synced,
        errored=errored,
    )
