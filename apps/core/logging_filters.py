from __future__ import annotations

import logging
import re

DROPPED_EXTRAS = ("request", "request_body", "data", "body", "payload", "access_token", "token", "secret")
SECRET_PAIR = re.compile(r"\b(access_token|token|secret|signature|hmac)=(\S+)", re.IGNORECASE)


class RedactingFilter(logging.Filter):
    """
    Drop webhook bodies and credentials from log records, including
    ``token=...`` style pairs inside event messages.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        for attr in DROPPED_EXTRAS:
            if hasattr(record, attr):
                setattr(record, attr, None)
        message = record.getMessage()
        if SECRET_PAIR.search(message):
            record.msg = SECRET_PAIR.sub(r"\1=[redacted]", message)
            record.args = ()
        return True
