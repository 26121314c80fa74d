"""
Rate Limiting Middleware

Applies the general API limiter to every request under /api/.
Route-specific limiters (forms, login, password reset) decorate their views.
"""

from django.utils.deprecation import MiddlewareMixin

from ..throttling import general_api_limiter


class RateLimitingMiddleware(MiddlewareMixin):
    limiter = general_api_limiter
    prefix = "/api/"

    def process_request(self, request):
        if not request.path.startswith(self.prefix):
            return None
        return self.limiter.check(request)
