from __future__ import annotations

from datetime import datetime, timedelta, timezone as dt_timezone
from io import StringIO
from unittest.mock import Mock, patch

from django.core.management import CommandError, call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from apps.cron.jobs import run_daily, run_job
from apps.cron.models import CronLock
from apps.cron.services.locks import acquire_lock, cron_lock, release_lock

# 08:00 in America/New_York during standard time.
IN_WINDOW = datetime(2026, 1, 15, 13, 0, tzinfo=dt_timezone.utc)
OUT_OF_WINDOW = datetime(2026, 1, 15, 15, 30, tzinfo=dt_timezone.utc)


class CronLockTests(TestCase):
    def test_second_holder_is_refused_until_release(self) -> None:
        first = acquire_lock("cron:verify", 60)

        self.assertIsNotNone(first)
        self.assertIsNone(acquire_lock("cron:verify", 60))
        self.assertTrue(release_lock(first))
        self.assertIsNotNone(acquire_lock("cron:verify", 60))

    def test_expired_lease_is_taken_over(self) -> None:
        stale = acquire_lock("cron:notify", 60, holder="worker-a")
        CronLock.objects.filter(job="cron:notify").update(locked_until=timezone.now() - timedelta(seconds=1))

        handle = acquire_lock("cron:notify", 60, holder="worker-b")

        self.assertEqual(handle.holder, "worker-b")
        self.assertFalse(release_lock(stale))
        self.assertEqual(CronLock.objects.get(job="cron:notify").locked_by, "worker-b")

    def test_context_manager_releases_on_error(self) -> None:
        with self.assertRaises(RuntimeError):
            with cron_lock("cron:fulfillment", 60) as handle:
                self.assertIsNotNone(handle)
                raise RuntimeError("boom")

        self.assertIsNotNone(acquire_lock("cron:fulfillment", 60))


class RunJobTests(TestCase):
    def test_unknown_job(self) -> None:
        with self.assertRaises(KeyError):
            run_job("nope")

    def test_skips_while_locked(self) -> None:
        job = Mock(return_value={"ok": True})
        acquire_lock("cron:verify", 60)

        with patch.dict("apps.cron.jobs.JOBS", {"verify": job}):
            result = run_job("verify")

        self.assertEqual(result, {"ok": True, "skipped": True, "reason": "locked"})
        job.assert_not_called()

    def test_job_error_becomes_result(self) -> None:
        job = Mock(side_effect=RuntimeError("database went away"))

        with patch.dict("apps.cron.jobs.JOBS", {"notify": job}):
            result = run_job("notify")

        self.assertEqual(result, {"ok": False, "error": "database went away"})
        self.assertIsNotNone(acquire_lock("cron:notify", 60))

    def test_notify_requeues_before_dispatch(self) -> None:
        result = run_job("notify")

        self.assertTrue(result["ok"])
        self.assertEqual(result["processed"], 0)
        self.assertEqual(result["requeued"], 0)
        self.assertEqual(result["dead"], 0)


class RunDailyTests(TestCase):
    def test_outside_window_is_skipped(self) -> None:
        result = run_daily(OUT_OF_WINDOW)

        self.assertTrue(result["skipped"])
        self.assertIn("outside daily window", result["reason"])

    def test_runs_every_job_in_order(self) -> None:
        calls = []

        def fake(name):
            def job(config):
                calls.append(name)
                return {"ok": True}

            return job

        jobs = {name: fake(name) for name in ("verify", "fulfillment", "notify", "profile-sync")}
        with patch.dict("apps.cron.jobs.JOBS", jobs):
            result = run_daily(IN_WINDOW)

        self.assertTrue(result["ok"])
        self.assertEqual(calls, ["profile-sync", "verify", "fulfillment", "notify"])

    def test_one_failing_job_does_not_stop_the_rest(self) -> None:
        jobs = {
            "verify": Mock(side_effect=RuntimeError("instagram down")),
            "fulfillment": Mock(return_value={"ok": True}),
            "notify": Mock(return_value={"ok": True}),
            "profile-sync": Mock(return_value={"ok": True}),
        }
        with patch.dict("apps.cron.jobs.JOBS", jobs):
            result = run_daily(OUT_OF_WINDOW, force=True)

        self.assertFalse(result["ok"])
        self.assertFalse(result["results"]["verify"]["ok"])
        jobs["notify"].assert_called_once()

    def test_daily_lock_held_elsewhere(self) -> None:
        holder = acquire_lock("cron:daily", 60, holder="worker-a")
        jobs = {name: Mock(return_value={"ok": True}) for name in ("verify", "fulfillment", "notify", "profile-sync")}

        with patch.dict("apps.cron.jobs.JOBS", jobs):
            result = run_daily(IN_WINDOW)

        self.assertEqual(result, {"ok": True, "skipped": True, "reason": "locked"})
        for job in jobs.values():
            job.assert_not_called()
        lock = CronLock.objects.get(job="cron:daily")
        self.assertEqual(lock.locked_by, "worker-a")
        self.assertTrue(release_lock(holder))


class CronEndpointTests(TestCase):
    def setUp(self) -> None:
        self.client = APIClient()

    def test_rejects_without_secret(self) -> None:
        response = self.client.get("/api/v1/cron/daily/")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"ok": False, "error": "Unauthorized"})

    @override_settings(CRON_SECRET="s3cret")
    def test_bearer_and_header_secret(self) -> None:
        with patch("apps.cron.views.run_job", return_value={"ok": True, "processed": 0}):
            bearer = self.client.get("/api/v1/cron/notify/", HTTP_AUTHORIZATION="Bearer s3cret")
            header = self.client.get("/api/v1/cron/notify/", HTTP_X_CRON_SECRET="s3cret")
            wrong = self.client.get("/api/v1/cron/notify/", HTTP_X_CRON_SECRET="guess")

        self.assertEqual(bearer.status_code, 200)
        self.assertEqual(header.status_code, 200)
        self.assertEqual(wrong.status_code, 401)

    @override_settings(CRON_SECRET="s3cret")
    def test_unknown_job_and_failure_status(self) -> None:
        auth = {"HTTP_AUTHORIZATION": "Bearer s3cret"}
        self.assertEqual(self.client.get("/api/v1/cron/nope/", **auth).status_code, 404)

        with patch("apps.cron.views.run_job", return_value={"ok": False, "error": "boom"}):
            response = self.client.get("/api/v1/cron/verify/", **auth)
        self.assertEqual(response.status_code, 500)

    @override_settings(CRON_TRUST_SCHEDULER_HEADER=True)
    def test_trusted_scheduler_header(self) -> None:
        with patch("apps.cron.views.run_daily", return_value={"ok": True, "skipped": True}) as daily:
            response = self.client.get("/api/v1/cron/daily/?force=1", HTTP_X_SCHEDULER_CRON="1")

        self.assertEqual(response.status_code, 200)
        daily.assert_called_once_with(force=True)


class RunCronCommandTests(TestCase):
    def test_unknown_job(self) -> None:
        with self.assertRaises(CommandError):
            call_command("run_cron", "nope", stdout=StringIO())

    def test_failed_job_raises(self) -> None:
        with patch("apps.cron.management.commands.run_cron.run_job", return_value={"ok": False, "error": "boom"}):
            with self.assertRaises(CommandError):
                call_command("run_cron", "verify", stdout=StringIO())

    def test_prints_result(self) -> None:
        out = StringIO()
        with patch("apps.cron.management.commands.run_cron.run_job", return_value={"ok": True, "processed": 3}):
            call_command("run_cron", "notify", stdout=out)

        self.assertIn('"processed": 3', out.getvalue())
