"""
HTTPS Enforcement Middleware

Redirects plain HTTP requests to HTTPS in production.
"""

from django.http import HttpResponsePermanentRedirect
from django.utils.deprecation import MiddlewareMixin

from ..conf import is_production
from ..registry import pipeline_state


class HTTPSEnforcementMiddleware(MiddlewareMixin):
    """
    301 to the https:// URL when the request did not arrive over TLS.

    Behind a TLS-terminating proxy the X-Forwarded-Proto header decides.
    """

    def process_request(self, request):
        if not is_production(pipeline_state.get_config()):
            return None

        proto = request.META.get("HTTP_X_FORWARDED_PROTO") or request.scheme
        if proto.split(",")[0].strip().lower() == "https":
            return None

        host = request.META.get("HTTP_HOST") or request.META.get("SERVER_NAME", "")
        return HttpResponsePermanentRedirect(f"https://{host}{request.get_full_path()}")
