import logging

from django.conf import settings
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class APIError(APIException):
    """
    Domain error raised from views with an explicit status code,
    e.g. APIError("Website not found", status.HTTP_404_NOT_FOUND).
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be processed"

    def __init__(self, message=None, status_code=None, error=None):
        super().__init__(detail=message or self.default_detail)
        if status_code is not None:
            self.status_code = status_code
        self.error = error


def _message_from_detail(detail):
    if isinstance(detail, (list, tuple)) and detail:
        return _message_from_detail(detail[0])
    if isinstance(detail, dict):
        return detail.get("detail") or "Request could not be processed"
    return str(detail)


def custom_exception_handler(exc, context):
    """
    Wraps DRF's handler so every error leaves the API as
    {"success": false, "message": ..., "error": ...}.
    """
    response = exception_handler(exc, context)

    if response is None:
        # Unhandled server error
        view = context.get("view")
        logger.exception(f"Unhandled error in {view.__class__.__name__ if view else 'view'}: {exc}")
        return Response(
            {
                "success": False,
                "message": "Internal server error",
                "error": str(exc) if settings.DEBUG else None,
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, ValidationError):
        message = "Validation failed"
        error = response.data
    elif isinstance(exc, APIError):
        message = str(exc.detail)
        error = exc.error
    else:
        message = _message_from_detail(response.data)
        error = getattr(exc, "default_code", None)

    payload = {"success": False, "message": message, "error": error}

    # Throttle responses keep their wait hint
    wait = getattr(exc, "wait", None)
    if wait is not None:
        payload["retryAfter"] = int(wait)

    response.data = payload
    return response
