"""
Content Type Validation Middleware

Prevents content type confusion on API writes.
"""

from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

from ..registry import pipeline_state
from ..utils.request import MalformedBody, get_body

WRITE_METHODS = ("POST", "PUT", "PATCH")


class ContentTypeValidationMiddleware(MiddlewareMixin):
    """
    Require ``application/json`` for POST/PUT/PATCH under /api/.

    Upload and job-application routes take multipart bodies and are exempt.
    A JSON body that does not decode is rejected here so later stages can
    rely on get_body().
    """

    def process_request(self, request):
        if request.method not in WRITE_METHODS:
            return None

        cfg = pipeline_state.get_config()
        exempt = cfg.get("CONTENT_TYPE_EXEMPT_SEGMENTS", ["/upload", "/apply"])
        if any(segment in request.path for segment in exempt):
            return None

        if not request.path.startswith("/api/"):
            return None

        content_type = request.META.get("CONTENT_TYPE", "")
        if "application/json" not in content_type:
            return JsonResponse(
                {"error": "Unsupported Media Type. Content-Type must be application/json"},
                status=415,
            )

        try:
            get_body(request)
        except MalformedBody:
            return JsonResponse({"error": "Malformed JSON body"}, status=400)

        return None
