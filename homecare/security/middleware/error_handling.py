"""
Error Sanitizer

Turns unhandled exceptions into JSON error responses. Outside production the
body carries the exception message and stack; in production it is generic.
"""

import logging
import sys
import traceback

from django.core.exceptions import PermissionDenied, SuspiciousOperation
from django.http import Http404, JsonResponse
from django.utils.deprecation import MiddlewareMixin

from ..conf import is_production
from ..registry import pipeline_state
from ..utils.request import get_request_ip

logger = logging.getLogger(__name__)

GENERIC_ERROR = "An error occurred processing your request"


def status_for_exception(exc):
    for attr in ("status", "status_code"):
        status = getattr(exc, attr, None)
        if isinstance(status, int) and 400 <= status < 600:
            return status
    if isinstance(exc, Http404):
        return 404
    if isinstance(exc, PermissionDenied):
        return 403
    if isinstance(exc, SuspiciousOperation):
        return 400
    return 500


def error_body(exc, production):
    if production:
        return {"error": GENERIC_ERROR}
    stack = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return {
        "error": str(exc) or type(exc).__name__,
        "stack": "".join(stack).splitlines(),
    }


def log_error(request, exc):
    logger.error(
        "[ERROR] %s %s from %s: %s\n%s",
        request.method,
        request.path,
        get_request_ip(request),
        exc,
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    )


class ErrorSanitizerMiddleware(MiddlewareMixin):
    """
    Terminal error stage.

    Declared first in the pipeline so its process_exception runs after every
    other stage's (Django walks exception middleware bottom-up).
    """

    def process_exception(self, request, exception):
        log_error(request, exception)
        production = is_production(pipeline_state.get_config())
        return JsonResponse(
            error_body(exception, production),
            status=status_for_exception(exception),
        )


def server_error(request, *args, **kwargs):
    """
    JSON handler500 for failures raised outside views.

    Django has already logged the exception on the django.request logger.
    """
    exc = sys.exc_info()[1]
    production = is_production(pipeline_state.get_config())
    if exc is None:
        return JsonResponse({"error": GENERIC_ERROR}, status=500)
    return JsonResponse(error_body(exc, production), status=500)
