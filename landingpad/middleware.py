import logging
import time
import uuid

logger = logging.getLogger(__name__)


class RequestLogMiddleware:
    """
    Logs every API request with its status and duration, and tags the
    response with an X-Request-ID header (reused from the client when sent).
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = request.META.get("HTTP_X_REQUEST_ID") or uuid.uuid4().hex
        request.request_id = request_id
        started = time.monotonic()

        response = self.get_response(request)

        duration_ms = int((time.monotonic() - started) * 1000)
        response["X-Request-ID"] = request_id

        if request.path.startswith("/api/"):
            log = logger.warning if response.status_code >= 500 else logger.info
            log(
                f"{request.method} {request.path} {response.status_code} "
                f"{duration_ms}ms [{request_id}]"
            )

        return response
