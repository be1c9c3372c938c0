from __future__ import annotations

from celery import shared_task

from .jobs import run_daily, run_job


@shared_task
def run_daily_task() -> dict:
    return run_daily()


@shared_task
def run_job_task(name: str) -> dict:
    return run_job(name)
