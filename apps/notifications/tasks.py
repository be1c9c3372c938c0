from __future__ import annotations

from celery import shared_task

from .services import dispatch_pending, requeue_errored


@shared_task
def dispatch_pending_notifications(limit: int | None = None) -> dict:
    return dispatch_pending(limit=limit).as_dict()


@shared_task
def requeue_errored_notifications() -> dict:
    report = requeue_errored()
    return {"requeued": report.requeued, "dead": report.dead}
