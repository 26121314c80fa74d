"""
Security Headers Middleware

Strips identifying headers and adds protective ones to every response.
"""

from django.utils.deprecation import MiddlewareMixin

REMOVED_HEADERS = ("X-Powered-By", "Server")

PROTECTIVE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

# API responses may carry PHI; no intermediate cache may keep them
NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, private",
    "Pragma": "no-cache",
    "Expires": "0",
}


class SecurityHeadersMiddleware(MiddlewareMixin):
    """
    Middleware to sanitize response headers.

    Sits near the top of the pipeline so responses produced by later stages
    (400/415/429...) pass back through it as well.
    """

    api_prefix = "/api/"

    def process_response(self, request, response):
        for header in REMOVED_HEADERS:
            del response[header]

        for header, value in PROTECTIVE_HEADERS.items():
            response[header] = value

        if request.path.startswith(self.api_prefix):
            for header, value in NO_CACHE_HEADERS.items():
                response[header] = value

        return response
