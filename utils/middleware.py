# ==================== UTILS/MIDDLEWARE.PY ====================
import logging
import time
import uuid

logger = logging.getLogger('parking_platform.requests')


class RequestLoggingMiddleware:
    """Log every API request with its status, duration and correlation id"""

    header = 'HTTP_X_REQUEST_ID'

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = request.META.get(self.header) or uuid.uuid4().hex
        request.request_id = request_id
        started = time.monotonic()

        response = self.get_response(request)

        duration_ms = (time.monotonic() - started) * 1000
        user = getattr(request, 'user', None)
        user_id = user.pk if user is not None and user.is_authenticated else '-'
        message = (f"[{request_id}] {request.method} {request.get_full_path()} "
                   f"{response.status_code} {duration_ms:.1f}ms user={user_id}")

        if response.status_code >= 500:
            logger.error(message)
        elif response.status_code >= 400:
            logger.warning(message)
        else:
            logger.info(message)

        response['X-Request-ID'] = request_id
        return response
