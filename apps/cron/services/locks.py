from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterator, Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.core.config import PipelineConfig, get_pipeline_config
from apps.cron.models import CronLock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LockHandle:
    job: str
    holder: str
    locked_until: datetime


def acquire_lock(
    job: str,
    ttl_seconds: int | None = None,
    holder: str | None = None,
    *,
    config: PipelineConfig | None = None,
) -> Optional[LockHandle]:
    """Take the lease for ``job`` or return ``None`` while someone else holds it.

    An expired lease is taken over with a conditional update, so two racing
    callers cannot both win the same expired row.
    """
    config = config or get_pipeline_config()
    ttl = ttl_seconds or config.cron_lock_ttl_seconds
    holder = holder or uuid.uuid4().hex
    now = timezone.now()
    until = now + timedelta(seconds=ttl)

    try:
        with transaction.atomic():
            _, created = CronLock.objects.get_or_create(
                job=job,
                defaults={"locked_by": holder, "locked_until": until},
            )
    except IntegrityError:
        created = False
    if created:
        return LockHandle(job=job, holder=holder, locked_until=until)

    updated = CronLock.objects.filter(job=job, locked_until__lt=now).update(
        locked_by=holder,
        locked_until=until,
        updated_at=now,
    )
    if updated != 1:
        return None
    if not CronLock.objects.filter(job=job, locked_by=holder).exists():
        return None
    return LockHandle(job=job, holder=holder, locked_until=until)


def release_lock(handle: LockHandle) -> bool:
    now = timezone.now()
    released = CronLock.objects.filter(job=handle.job, locked_by=handle.holder).update(
        locked_until=now,
        updated_at=now,
    )
    return bool(released)


@contextmanager
def cron_lock(job: str, ttl_seconds: int | None = None, *, config: PipelineConfig | None = None) -> Iterator[Optional[LockHandle]]:
    """Yields the handle, or ``None`` when the lock is busy. Always releases what it took."""
    handle = acquire_lock(job, ttl_seconds, config=config)
    try:
        yield handle
    finally:
        if handle is not None:
            try:
                release_lock(handle)
            except Exception:  # noqa: BLE001
                logger.exception("cron.release_failed job=%s", job)
