"""
Request Size Limit Middleware

Rejects payloads whose declared size exceeds the configured limit.
"""

import logging

from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

from ..registry import pipeline_state

logger = logging.getLogger(__name__)


class RequestSizeLimitMiddleware(MiddlewareMixin):
    """
    Middleware to enforce request size limits.

    Checks Content-Length before anything reads the body.
    """

    def _get_request_size(self, request):
        content_length = request.META.get("CONTENT_LENGTH")
        if not content_length:
            return 0
        try:
            return int(content_length)
        except (ValueError, TypeError):
            return 0

    def process_request(self, request):
        limit = pipeline_state.get_config().get("REQUEST_SIZE_LIMIT", 10 * 1024 * 1024)
        request_size = self._get_request_size(request)

        if request_size > limit:
            logger.warning(
                "[SECURITY] Payload too large (%s bytes > %s) on %s %s",
                request_size,
                limit,
                request.method,
                request.path,
            )
            return JsonResponse(
                {"error": f"Payload too large. Maximum size: {limit / 1024 / 1024:g}MB"},
                status=413,
            )

        return None
