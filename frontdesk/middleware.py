import time
import uuid

import structlog

from frontdesk.logger import get_logger

logger = get_logger(__name__)


class RequestContextMiddleware:
    """Bind a request id to every log line and log one line per request."""
    HEADER = 'HTTP_X_REQUEST_ID'
    SKIP_PREFIXES = ('/static/', '/metrics')

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = request.META.get(self.HEADER) or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        started = time.monotonic()
        response = self.get_response(request)
        response['X-Request-ID'] = request_id
        path = request.path or ''
        if not any(path.startswith(p) for p in self.SKIP_PREFIXES):
            user = getattr(request, 'user', None)
            logger.info(
                'request',
                method=request.method,
                path=path,
                status=response.status_code,
                duration_ms=round((time.monotonic() - started) * 1000, 1),
                user=user.get_username() if user is not None and user.is_authenticated else None,
            )
        return response
