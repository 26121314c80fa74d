"""
Security Middleware Module
"""

from .content_type import ContentTypeValidationMiddleware
from .error_handling import ErrorSanitizerMiddleware, server_error
from .geo_blocking import GeoBlockingMiddleware
from .https import HTTPSEnforcementMiddleware
from .rate_limiting import RateLimitingMiddleware
from .request_size_limit import RequestSizeLimitMiddleware
from .security_headers import SecurityHeadersMiddleware
from .suspicious_patterns import SQLInjectionMiddleware, XSSMiddleware

__all__ = [
    "ContentTypeValidationMiddleware",
    "ErrorSanitizerMiddleware",
    "server_error",
    "GeoBlockingMiddleware",
    "HTTPSEnforcementMiddleware",
    "RateLimitingMiddleware",
    "RequestSizeLimitMiddleware",
    "SecurityHeadersMiddleware",
    "SQLInjectionMiddleware",
    "XSSMiddleware",
]
