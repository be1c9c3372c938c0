from __future__ import annotations

from django.core.exceptions import ValidationError
from rest_framework import status
from rest_framework.response import Response

from apps.core.errors import ConflictError, NotFound, error_detail


def validation_error_response(exc: ValidationError) -> Response:
    if isinstance(exc, NotFound):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ConflictError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return Response({"ok": False, "error": error_detail(exc)}, status=code)
