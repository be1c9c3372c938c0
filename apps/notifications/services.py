from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from django.db.models import F
from django.utils import timezone

from apps.core.config import PipelineConfig, get_pipeline_config
from apps.notifications.models import Notification
from apps.notifications.templates import render_notification
from apps.notifications.transports import Transport, get_transport

logger = logging.getLogger(__name__)

ERROR_MAX_LENGTH = 1000


@dataclass(frozen=True)
class NotificationPayload:
    type: str
    payload: dict


@dataclass
class DispatchReport:
    processed: int = 0
    sent: int = 0
    failed: int = 0
    results: List[dict] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "ok": True,
            "processed": self.processed,
            "sent": self.sent,
            "failed": self.failed,
            "results": self.results,
        }


@dataclass(frozen=True)
class RequeueReport:
    requeued: int
    dead: int


def enqueue_notification(channel: str, to: str, payload: NotificationPayload) -> Notification:
    return Notification.objects.create(
        channel=channel,
        to=to,
        type=payload.type,
        payload=payload.payload,
        status=Notification.Status.PENDING,
    )


def creator_channels(creator, config: PipelineConfig) -> list[tuple[str, str]]:
    """Channels the creator can be reached on and the operator has configured."""
    channels: list[tuple[str, str]] = []
    email = (getattr(creator, "email", "") or "").strip()
    phone = (getattr(creator, "phone", "") or "").strip()
    if email:
        channels.append((Notification.Channel.EMAIL, email))
    if phone and config.sms_enabled:
        channels.append((Notification.Channel.SMS, phone))
    if phone and config.whatsapp_enabled:
        channels.append((Notification.Channel.WHATSAPP, phone))
    return channels


def enqueue_for_creator(creator, payload: NotificationPayload, *, config: PipelineConfig | None = None) -> int:
    """Queue one message per usable channel. Never raises: a lost notification must not undo the caller's work."""
    config = config or get_pipeline_config()
    enqueued = 0
    try:
        for channel, to in creator_channels(creator, config):
            enqueue_notification(channel, to, payload)
            enqueued += 1
    except Exception:  # noqa: BLE001
        logger.exception(
            "notifications.enqueue_failed type=%s creator_id=%s",
            payload.type,
            getattr(creator, "id", None),
        )
    return enqueued


def _claim(notification: Notification) -> bool:
    claimed = Notification.objects.filter(
        id=notification.id,
        status=Notification.Status.PENDING,
        attempts=notification.attempts,
    ).update(attempts=F("attempts") + 1, updated_at=timezone.now())
    return claimed == 1


def _mark_sent(notification: Notification) -> None:
    Notification.objects.filter(id=notification.id, status=Notification.Status.PENDING).update(
        status=Notification.Status.SENT,
        sent_at=timezone.now(),
        last_error="",
        updated_at=timezone.now(),
    )


def _mark_error(notification: Notification, error: str) -> None:
    Notification.objects.filter(id=notification.id, status=Notification.Status.PENDING).update(
        status=Notification.Status.ERROR,
        last_error=(error or "Send failed")[:ERROR_MAX_LENGTH],
        updated_at=timezone.now(),
    )


def dispatch_pending(
    *,
    limit: int | None = None,
    transport: Transport | None = None,
    config: PipelineConfig | None = None,
) -> DispatchReport:
    """Deliver a bounded batch of PENDING notifications, oldest first.

    Each row is claimed with a compare-and-swap on its attempt counter so two
    concurrent dispatchers never send the same row in the same pass. A failure
    on one row is recorded on that row only.
    """
    config = config or get_pipeline_config()
    transport = transport or get_transport(config)
    batch = list(
        Notification.objects.filter(status=Notification.Status.PENDING).order_by("created_at", "id")[
            : limit or config.cron_batch_size
        ]
    )
    report = DispatchReport()
    for notification in batch:
        if not _claim(notification):
            continue
        report.processed += 1
        message = render_notification(notification.type, notification.payload)
        try:
            result = transport.send(notification.channel, notification.to, message.subject, message.body)
        except Exception as exc:  # noqa: BLE001
            error = str(exc) or "Send failed"
            _mark_error(notification, error)
            report.failed += 1
            report.results.append({"id": notification.id, "ok": False, "error": error})
            logger.warning(
                "notifications.send_failed id=%s channel=%s type=%s error=%s",
                notification.id,
                notification.channel,
                notification.type,
                error,
            )
            continue

        if result.ok:
            _mark_sent(notification)
            report.sent += 1
            report.results.append({"id": notification.id, "ok": True})
        else:
            _mark_error(notification, result.error)
            report.failed += 1
            report.results.append({"id": notification.id, "ok": False, "error": result.error or "Send failed"})
            logger.warning(
                "notifications.send_failed id=%s channel=%s type=%s error=%s",
                notification.id,
                notification.channel,
                notification.type,
                result.error,
            )

    logger.info(
        "notifications.dispatch_finished processed=%s sent=%s failed=%s",
        report.processed,
        report.sent,
        report.failed,
    )
    return report


def requeue_errored(*, max_attempts: int | None = None, config: PipelineConfig | None = None) -> RequeueReport:
    """Give ERROR rows another delivery attempt until they hit the attempt ceiling, then park them as DEAD."""
    config = config or get_pipeline_config()
    ceiling = max_attempts or config.notification_max_attempts
    now = timezone.now()
    dead = Notification.objects.filter(status=Notification.Status.ERROR, attempts__gte=ceiling).update(
        status=Notification.Status.DEAD,
        updated_at=now,
    )
    requeued = Notification.objects.filter(status=Notification.Status.ERROR, attempts__lt=ceiling).update(
        status=Notification.Status.PENDING,
        updated_at=now,
    )
    if requeued or dead:
        logger.info("notifications.requeued requeued=%s dead=%s ceiling=%s", requeued, dead, ceiling)
    return RequeueReport(requeued=requeued, dead=dead)


def revive_dead() -> int:
    """Manual re-drive: DEAD rows start over with attempts reset."""
    return Notification.objects.filter(status=Notification.Status.DEAD).update(
        status=Notification.Status.PENDING,
        attempts=0,
        updated_at=timezone.now(),
    )
