"""Scheduled pipeline jobs.

Every job runs under its own ``cron:<name>`` lease, so overlapping triggers
(beat, the HTTP endpoints, the management command) never run the same body
twice at once. ``run_daily`` is ticked hourly and only does work inside the
configured local hour.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict
from zoneinfo import ZoneInfo

from django.utils import timezone

from apps.core.config import PipelineConfig, get_pipeline_config
from apps.core.errors import error_detail
from apps.cron.services.locks import cron_lock
from apps.deliverables.verification import run_verification
from apps.fulfillment.services.steps import run_pending_fulfillment
from apps.marketplace.services.profile_sync import sync_creator_profiles
from apps.notifications.services import dispatch_pending, requeue_errored

logger = logging.getLogger(__name__)

DAILY_LOCK = "cron:daily"
DAILY_ORDER = ("profile-sync", "verify", "fulfillment", "notify")


def _verify(config: PipelineConfig) -> dict:
    return run_verification(config=config).as_dict()


def _fulfillment(config: PipelineConfig) -> dict:
    return run_pending_fulfillment(config=config)


def _notify(config: PipelineConfig) -> dict:
    requeue = requeue_errored(config=config)
    result = dispatch_pending(config=config).as_dict()
    result["requeued"] = requeue.requeued
    result["dead"] = requeue.dead
    return result


def _profile_sync(config: PipelineConfig) -> dict:
    return sync_creator_profiles(config=config).as_dict()


JOBS: Dict[str, Callable[[PipelineConfig], dict]] = {
    "verify": _verify,
    "fulfillment": _fulfillment,
    "notify": _notify,
    "profile-sync": _profile_sync,
}


def run_job(name: str, *, config: PipelineConfig | None = None) -> dict:
    if name not in JOBS:
        raise KeyError(name)
    config = config or get_pipeline_config()
    with cron_lock(f"cron:{name}", config=config) as handle:
        if handle is None:
            logger.info("cron.skipped job=%s reason=locked", name)
            return {"ok": True, "skipped": True, "reason": "locked"}
        try:
            result = JOBS[name](config)
        except Exception as exc:  # noqa: BLE001
            logger.exception("cron.failed job=%s", name)
            return {"ok": False, "error": error_detail(exc)}
    logger.info("cron.finished job=%s ok=%s", name, result.get("ok", True))
    return result


def in_daily_window(now: datetime, config: PipelineConfig) -> bool:
    local = now.astimezone(ZoneInfo(config.cron_timezone))
    return local.hour == config.cron_daily_hour


def run_daily(
    now: datetime | None = None,
    *,
    force: bool = False,
    config: PipelineConfig | None = None,
) -> dict:
    config = config or get_pipeline_config()
    now = now or timezone.now()
    if not force and not in_daily_window(now, config):
        return {
            "ok": True,
            "skipped": True,
            "reason": f"outside daily window ({config.cron_daily_hour}:00 {config.cron_timezone})",
            "now": now.isoformat(),
        }

    with cron_lock(DAILY_LOCK, config=config) as handle:
        if handle is None:
            logger.info("cron.skipped job=daily reason=locked")
            return {"ok": True, "skipped": True, "reason": "locked"}
        results = {name: run_job(name, config=config) for name in DAILY_ORDER}

    ok = all(result.get("ok", False) for result in results.values())
    logger.info("cron.daily_finished ok=%s", ok)
    return {"ok": ok, "results": results}
