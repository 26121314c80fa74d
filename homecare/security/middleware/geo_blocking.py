"""
Geo Blocking Middleware

Restricts the service to clients located in the target country.
"""

import logging

from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

from ..registry import pipeline_state
from ..utils.ip import get_client_ip

logger = logging.getLogger(__name__)


class GeoBlockingMiddleware(MiddlewareMixin):
    """
    403 for clients whose IP geolocates outside the target country.

    Off unless ENABLE_GEO_BLOCKING is set. Requests without a public client IP
    are let through, as are lookups that fail under the 'allow' policy.
    """

    def process_request(self, request):
        cfg = pipeline_state.get_config()
        if not cfg.get("ENABLE_GEO_BLOCKING", False):
            return None

        geo_cfg = cfg.get("GEO_BLOCKING", {})
        for skip_path in geo_cfg.get("SKIP_PATHS", ["/uploads/"]):
            if request.path.startswith(skip_path):
                return None

        client_ip = get_client_ip(request, cfg.get("TRUSTED_PROXY_HEADER"))
        if not client_ip:
            return None

        decision = pipeline_state.get_geo_classifier().classify(client_ip)
        if decision.allowed:
            return None

        logger.warning(
            "[SECURITY] Access denied - IP outside %s: %s from %s",
            geo_cfg.get("TARGET_COUNTRY", "US"),
            client_ip,
            decision.country,
        )
        return JsonResponse(
            {
                "error": "Access denied",
                "message": "This service is only available to users in the United States.",
            },
            status=403,
        )
