from __future__ import annotations

import logging

from apps.core.logging_filters import RedactingFilter


def _record(msg: str = "shopify_webhook.rejected", args: tuple = (), **attrs) -> logging.LogRecord:
    record = logging.LogRecord("apps.fulfillment", logging.INFO, "path", 1, msg, args=args, exc_info=None)
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


def test_webhook_payloads_and_credentials_are_dropped():
    record = _record(
        request="req",
        body=b'{"id": 1}',
        payload={"customer": {"email": "buyer@example.com"}},
        access_token="shpat_live",
        secret="whsec_live",
    )

    assert RedactingFilter().filter(record) is True
    for attr in ("request", "body", "payload", "access_token", "secret"):
        assert getattr(record, attr) is None


def test_secret_pairs_in_message_are_masked():
    record = _record("store.connected shop=%s access_token=%s", ("glow.myshopify.com", "shpat_live"))

    RedactingFilter().filter(record)

    assert record.getMessage() == "store.connected shop=glow.myshopify.com access_token=[redacted]"


def test_plain_messages_and_other_extras_are_kept():
    record = _record("matches.approved match_id=%s", (42,), match_id=42)

    RedactingFilter().filter(record)

    assert record.getMessage() == "matches.approved match_id=42"
    assert record.args == (42,)
    assert record.match_id == 42
    assert not hasattr(record, "token")
