from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict

import requests
from django.conf import settings
from django.core.mail import send_mail
from twilio.base.exceptions import TwilioException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from apps.core.config import PipelineConfig, get_pipeline_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SendResult:
    ok: bool
    error: str = ""
    skipped: bool = False


class Transport:
    def send(self, channel: str, to: str, subject: str, body: str) -> SendResult:
        raise NotImplementedError


class EmailTransport(Transport):
    def send(self, channel: str, to: str, subject: str, body: str) -> SendResult:
        try:
            send_mail(
                subject,
                body,
                getattr(settings, "DEFAULT_FROM_EMAIL", None),
                [to],
                fail_silently=False,
            )
        except Exception as exc:  # noqa: BLE001
            return SendResult(ok=False, error=str(exc) or "Email send failed")
        return SendResult(ok=True)


class TwilioTransport(Transport):
    """SMS and WhatsApp through the Twilio REST client."""

    def __init__(
        self,
        *,
        account_sid: str,
        auth_token: str,
        from_number: str,
        whatsapp: bool = False,
        timeout: float = 10,
    ) -> None:
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.whatsapp = whatsapp
        self.timeout = timeout

    @staticmethod
    def _whatsapp_address(value: str) -> str:
        return value if value.startswith("whatsapp:") else f"whatsapp:{value}"

    def send(self, channel: str, to: str, subject: str, body: str) -> SendResult:
        if not self.from_number:
            name = "TWILIO_WHATSAPP_FROM" if self.whatsapp else "TWILIO_FROM_NUMBER"
            return SendResult(ok=False, error=f"{name} not configured", skipped=True)
        if not self.account_sid or not self.auth_token:
            return SendResult(ok=False, error="Twilio not configured", skipped=True)

        sender = self.from_number
        recipient = to
        if self.whatsapp:
            sender = self._whatsapp_address(sender)
            recipient = self._whatsapp_address(recipient)

        try:
            client = Client(self.account_sid, self.auth_token, http_client=TwilioHttpClient(timeout=self.timeout))
            message = client.messages.create(to=recipient, from_=sender, body=body)
        except TwilioException as exc:
            return SendResult(ok=False, error=str(exc) or "Twilio send failed")
        except requests.RequestException as exc:
            return SendResult(ok=False, error=f"Twilio unavailable: {exc}")
        logger.info("notifications.twilio_sent channel=%s sid=%s", channel, message.sid)
        return SendResult(ok=True)


class ChannelTransport(Transport):
    def __init__(self, transports: Dict[str, Transport]) -> None:
        self.transports = transports

    def send(self, channel: str, to: str, subject: str, body: str) -> SendResult:
        transport = self.transports.get(channel)
        if transport is None:
            return SendResult(ok=False, error=f"Unsupported channel: {channel}", skipped=True)
        return transport.send(channel, to, subject, body)


def get_transport(config: PipelineConfig | None = None) -> Transport:
    config = config or get_pipeline_config()
    return ChannelTransport(
        {
            "EMAIL": EmailTransport(),
            "SMS": TwilioTransport(
                account_sid=config.twilio_account_sid,
                auth_token=config.twilio_auth_token,
                from_number=config.twilio_from_number,
                timeout=config.twilio_timeout_seconds,
            ),
            "WHATSAPP": TwilioTransport(
                account_sid=config.twilio_account_sid,
                auth_token=config.twilio_auth_token,
                from_number=config.twilio_whatsapp_from,
                whatsapp=True,
                timeout=config.twilio_timeout_seconds,
            ),
        }
    )
