from __future__ import annotations

from io import StringIO
from unittest.mock import Mock, patch

from django.core import mail
from django.core.management import CommandError, call_command
from django.test import TestCase, override_settings
from twilio.base.exceptions import TwilioRestException

from apps.core.config import get_pipeline_config
from apps.notifications.models import Notification
from apps.notifications.services import (
    NotificationPayload,
    dispatch_pending,
    enqueue_for_creator,
    requeue_errored,
    revive_dead,
)
from apps.notifications.templates import render_notification
from apps.notifications.transports import SendResult, TwilioTransport
from tests.factories import make_creator


def _pending(**fields) -> Notification:
    fields.setdefault("channel", Notification.Channel.EMAIL)
    fields.setdefault("to", "casey@example.com")
    fields.setdefault("type", "creator_approved")
    fields.setdefault("payload", {"brand_name": "Glow Goods", "campaign_code": "FRILP-ABC234"})
    return Notification.objects.create(**fields)


class EnqueueTests(TestCase):
    def test_email_only_without_twilio(self) -> None:
        creator = make_creator(phone="+15125550100")

        count = enqueue_for_creator(creator, NotificationPayload(type="strike_issued", payload={"reason": "late"}))

        self.assertEqual(count, 1)
        self.assertEqual(Notification.objects.get().channel, Notification.Channel.EMAIL)

    @override_settings(TWILIO_FROM_NUMBER="+15125550000", TWILIO_WHATSAPP_FROM="+15125550001")
    def test_phone_channels_when_configured(self) -> None:
        creator = make_creator(phone="+15125550100")

        enqueue_for_creator(creator, NotificationPayload(type="strike_issued", payload={}))

        self.assertEqual(
            set(Notification.objects.values_list("channel", flat=True)),
            {"EMAIL", "SMS", "WHATSAPP"},
        )

    def test_enqueue_never_raises(self) -> None:
        creator = make_creator()
        with patch("apps.notifications.services.enqueue_notification", side_effect=RuntimeError("db down")):
            count = enqueue_for_creator(creator, NotificationPayload(type="strike_issued", payload={}))

        self.assertEqual(count, 0)


class DispatchTests(TestCase):
    def test_sends_email(self) -> None:
        notification = _pending()

        report = dispatch_pending()

        self.assertEqual((report.processed, report.sent, report.failed), (1, 1, 0))
        notification.refresh_from_db()
        self.assertEqual(notification.status, Notification.Status.SENT)
        self.assertEqual(notification.attempts, 1)
        self.assertIsNotNone(notification.sent_at)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn("FRILP-ABC234", mail.outbox[0].body)

    def test_one_failure_does_not_block_the_batch(self) -> None:
        first = _pending(to="a@example.com")
        second = _pending(to="b@example.com")
        transport = Mock()
        transport.send.side_effect = [RuntimeError("smtp timeout"), SendResult(ok=True)]

        report = dispatch_pending(transport=transport)

        self.assertEqual((report.sent, report.failed), (1, 1))
        first.refresh_from_db()
        second.refresh_from_db()
        self.assertEqual(first.status, Notification.Status.ERROR)
        self.assertEqual(first.last_error, "smtp timeout")
        self.assertEqual(second.status, Notification.Status.SENT)

    def test_sms_without_sender_is_an_error(self) -> None:
        notification = _pending(channel=Notification.Channel.SMS, to="+15125550100")

        dispatch_pending()

        notification.refresh_from_db()
        self.assertEqual(notification.status, Notification.Status.ERROR)
        self.assertEqual(notification.last_error, "TWILIO_FROM_NUMBER not configured")

    def test_batch_is_bounded(self) -> None:
        for index in range(3):
            _pending(to=f"user{index}@example.com")

        report = dispatch_pending(limit=2)

        self.assertEqual(report.processed, 2)
        self.assertEqual(Notification.objects.filter(status=Notification.Status.PENDING).count(), 1)


class RequeueTests(TestCase):
    def test_requeue_until_ceiling_then_dead(self) -> None:
        retry = _pending(status=Notification.Status.ERROR, attempts=1)
        exhausted = _pending(status=Notification.Status.ERROR, attempts=3)

        report = requeue_errored(max_attempts=3)

        self.assertEqual((report.requeued, report.dead), (1, 1))
        retry.refresh_from_db()
        exhausted.refresh_from_db()
        self.assertEqual(retry.status, Notification.Status.PENDING)
        self.assertEqual(exhausted.status, Notification.Status.DEAD)

    def test_revive_resets_attempts(self) -> None:
        dead = _pending(status=Notification.Status.DEAD, attempts=3)

        self.assertEqual(revive_dead(), 1)

        dead.refresh_from_db()
        self.assertEqual(dead.status, Notification.Status.PENDING)
        self.assertEqual(dead.attempts, 0)

    def test_command(self) -> None:
        _pending(status=Notification.Status.ERROR, attempts=1)
        _pending(status=Notification.Status.DEAD, attempts=5)
        out = StringIO()

        call_command("requeue_notifications", "--include-dead", stdout=out)

        self.assertIn("requeued=1 dead=0 revived=1", out.getvalue())
        self.assertEqual(Notification.objects.filter(status=Notification.Status.PENDING).count(), 2)

    def test_command_rejects_zero_attempts(self) -> None:
        with self.assertRaises(CommandError):
            call_command("requeue_notifications", "--max-attempts", "0", stdout=StringIO())


class TemplateAndTransportTests(TestCase):
    def test_unknown_type_renders_generic_message(self) -> None:
        message = render_notification("something_new", {"a": 1})

        self.assertEqual(message.subject, "Frilpp notification")
        self.assertTrue(message.body)

    @patch("apps.notifications.transports.Client")
    def test_whatsapp_prefixes_addresses(self, mock_client_cls: Mock) -> None:
        mock_client_cls.return_value.messages.create.return_value = Mock(sid="SM1")
        transport = TwilioTransport(account_sid="AC1", auth_token="tok", from_number="+15125550001", whatsapp=True)

        result = transport.send("WHATSAPP", "+15125550100", "", "hello")

        self.assertTrue(result.ok)
        self.assertEqual(mock_client_cls.call_args.args, ("AC1", "tok"))
        mock_client_cls.return_value.messages.create.assert_called_once_with(
            to="whatsapp:+15125550100", from_="whatsapp:+15125550001", body="hello"
        )

    @patch("apps.notifications.transports.Client")
    def test_twilio_rejection_is_a_failed_send(self, mock_client_cls: Mock) -> None:
        mock_client_cls.return_value.messages.create.side_effect = TwilioRestException(
            400, "/Accounts/AC1/Messages.json", msg="The 'To' number is not a valid phone number."
        )
        transport = TwilioTransport(account_sid="AC1", auth_token="tok", from_number="+15125550001")

        result = transport.send("SMS", "+1", "", "hello")

        self.assertFalse(result.ok)
        self.assertFalse(result.skipped)

    @patch("apps.notifications.transports.Client")
    def test_missing_sender_never_builds_a_client(self, mock_client_cls: Mock) -> None:
        transport = TwilioTransport(account_sid="AC1", auth_token="tok", from_number="")

        result = transport.send("SMS", "+15125550100", "", "hello")

        self.assertTrue(result.skipped)
        self.assertEqual(result.error, "TWILIO_FROM_NUMBER not configured")
        mock_client_cls.assert_not_called()

    def test_config_reflects_overrides(self) -> None:
        with override_settings(TWILIO_FROM_NUMBER="+1"):
            self.assertTrue(get_pipeline_config().sms_enabled)
        self.assertFalse(get_pipeline_config().sms_enabled)
