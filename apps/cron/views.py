from __future__ import annotations

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.cron.auth import CronSecretPermission
from apps.cron.jobs import JOBS, run_daily, run_job


class CronUnauthorized(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Unauthorized"


def _job_response(result: dict) -> Response:
    code = status.HTTP_200_OK if result.get("ok") else status.HTTP_500_INTERNAL_SERVER_ERROR
    return Response(result, status=code)


class CronView(APIView):
    authentication_classes: list = []
    permission_classes = [CronSecretPermission]
    throttle_classes: list = []

    def permission_denied(self, request, message=None, code=None):
        raise CronUnauthorized()

    def handle_exception(self, exc):
        if isinstance(exc, CronUnauthorized):
            return Response({"ok": False, "error": "Unauthorized"}, status=exc.status_code)
        return super().handle_exception(exc)


class CronDailyView(CronView):
    def get(self, request: Request) -> Response:
        force = request.query_params.get("force") in ("1", "true")
        return _job_response(run_daily(force=force))


class CronJobView(CronView):
    def get(self, request: Request, job: str) -> Response:
        if job not in JOBS:
            return Response({"ok": False, "error": "Unknown job"}, status=status.HTTP_404_NOT_FOUND)
        return _job_response(run_job(job))
