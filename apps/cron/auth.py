from __future__ import annotations

import hmac

from rest_framework.permissions import BasePermission

from apps.core.config import get_pipeline_config

SECRET_HEADER = "HTTP_X_CRON_SECRET"
SCHEDULER_HEADER = "HTTP_X_SCHEDULER_CRON"


def _bearer_token(request) -> str:
    header = request.META.get("HTTP_AUTHORIZATION", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return ""


class CronSecretPermission(BasePermission):
    """Shared-secret gate for cron endpoints.

    With ``CRON_SECRET`` set the caller must present it as a Bearer token or in
    ``X-Cron-Secret``. Without it, a trusted scheduler header is accepted when
    enabled, and otherwise only DEBUG deployments are open.
    """

    message = "Unauthorized"

    def has_permission(self, request, view) -> bool:
        config = get_pipeline_config()
        if config.cron_secret:
            for candidate in (_bearer_token(request), request.META.get(SECRET_HEADER, "")):
                if candidate and hmac.compare_digest(candidate.encode(), config.cron_secret.encode()):
                    return True
            return False
        if config.cron_trust_scheduler_header and request.META.get(SCHEDULER_HEADER):
            return True
        return config.debug
