from __future__ import annotations

import json

from django.core.management.base import BaseCommand, CommandError

from apps.cron.jobs import JOBS, run_daily, run_job


class Command(BaseCommand):
    help = "Run a pipeline cron job (or the daily sequence) once, under its lock."

    def add_arguments(self, parser):  # type: ignore[override]
        parser.add_argument("job", help=f"daily or one of: {', '.join(sorted(JOBS))}")
        parser.add_argument("--force", action="store_true", help="Ignore the daily time window (not the lock).")

    def handle(self, *args, **options):  # type: ignore[override]
        job = options["job"]
        if job == "daily":
            result = run_daily(force=options["force"])
        elif job in JOBS:
            result = run_job(job)
        else:
            raise CommandError(f"Unknown job '{job}'.")
        self.stdout.write(json.dumps(result, default=str, indent=2))
        if not result.get("ok"):
            raise CommandError(f"Job '{job}' failed.")
