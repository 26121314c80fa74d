"""
Suspicious Patterns Middleware

Detects and blocks request data that looks like SQL injection or XSS.
"""

import logging
from typing import Any, Dict, Iterable, Optional, Pattern, Sequence

from django.http import HttpRequest, JsonResponse
from django.utils.deprecation import MiddlewareMixin

from ..patterns import (
    SQL_INJECTION_PATTERNS,
    XSS_PATTERNS,
    is_suspicious,
    path_has_prefix,
    path_under_segment,
)
from ..registry import pipeline_state
from ..utils.request import get_body_or_empty, get_path_params, get_query_params, get_request_ip

logger = logging.getLogger(__name__)


class _PatternScanMiddleware(MiddlewareMixin):
    """
    Scan query params, body and URL kwargs against a pattern set.

    Allow-listed routes skip the scan entirely. They accept rich HTML by design
    and must sanitize their own output (see homecare.security.sanitizers).
    """

    patterns: Sequence[Pattern[str]] = ()
    allowlist_setting = ""
    error_message = "Invalid request"
    label = ""

    def is_allowlisted(self, path: str, allowlist: Iterable[str]) -> bool:
        return path_has_prefix(path, allowlist)

    def sources(self, request: HttpRequest) -> Dict[str, Any]:
        return {
            "query": get_query_params(request),
            "body": get_body_or_empty(request),
            "params": get_path_params(request),
        }

    def log_detection(self, request: HttpRequest, sources: Dict[str, Any]) -> None:
        logger.warning(
            "[SECURITY] Potential %s detected from IP: %s path=%s method=%s",
            self.label,
            get_request_ip(request),
            request.path,
            request.method,
        )

    def process_request(self, request: HttpRequest) -> Optional[JsonResponse]:
        allowlist = pipeline_state.get_config().get(self.allowlist_setting, [])
        if self.is_allowlisted(request.path, allowlist):
            return None

        sources = self.sources(request)
        if any(is_suspicious(value, self.patterns) for value in sources.values()):
            self.log_detection(request, sources)
            return JsonResponse({"error": self.error_message}, status=400)

        return None


class SQLInjectionMiddleware(_PatternScanMiddleware):
    patterns = SQL_INJECTION_PATTERNS
    allowlist_setting = "SQLI_ALLOWLIST"
    error_message = "Invalid request parameters"
    label = "SQL injection"

    def log_detection(self, request, sources):
        body = sources["body"]
        logger.warning(
            "[SECURITY] Potential SQL injection detected from IP: %s path=%s method=%s query=%s body_keys=%s",
            get_request_ip(request),
            request.path,
            request.method,
            sources["query"],
            sorted(body.keys()) if isinstance(body, dict) else type(body).__name__,
        )


class XSSMiddleware(_PatternScanMiddleware):
    patterns = XSS_PATTERNS
    allowlist_setting = "XSS_ALLOWLIST"
    error_message = "Invalid request content"
    label = "XSS attack"

    def is_allowlisted(self, path, allowlist):
        return path_under_segment(path, allowlist)
