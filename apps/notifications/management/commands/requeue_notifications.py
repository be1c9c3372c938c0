from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from apps.notifications.services import requeue_errored, revive_dead


class Command(BaseCommand):
    help = "Move ERROR notifications back to PENDING (or DEAD once they exhaust their attempts)."

    def add_arguments(self, parser) -> None:
        parser.add_argument("--max-attempts", type=int, default=None)
        parser.add_argument(
            "--include-dead",
            action="store_true",
            help="Also reset DEAD notifications to PENDING with attempts reset.",
        )

    def handle(self, *args, **options) -> None:
        max_attempts = options.get("max_attempts")
        if max_attempts is not None and max_attempts < 1:
            raise CommandError("--max-attempts must be at least 1.")

        revived = revive_dead() if options.get("include_dead") else 0
        report = requeue_errored(max_attempts=max_attempts)
        self.stdout.write(
            f"requeued={report.requeued} dead={report.dead} revived={revived}"
        )
