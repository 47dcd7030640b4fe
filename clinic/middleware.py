import logging
import time

logger = logging.getLogger(__name__)


class RequestContextMiddleware:
    """Attach client IP and user agent to the request and log slow API calls."""
    SLOW_REQUEST_SECONDS = 2.0

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
        request.client_ip = forwarded.split(',')[0].strip() if forwarded else request.META.get('REMOTE_ADDR', '')
        request.client_user_agent = request.META.get('HTTP_USER_AGENT', '')

        started = time.monotonic()
        response = self.get_response(request)
        elapsed = time.monotonic() - started
        if elapsed > self.SLOW_REQUEST_SECONDS and request.path.startswith('/api/'):
            logger.warning('slow request %s %s took %.2fs', request.method, request.path, elapsed)
        return response
