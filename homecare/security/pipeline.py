"""
Pipeline composition.

PIPELINE_MIDDLEWARE is the canonical stage order. configure_pipeline() builds
(or accepts) the shared collaborators and publishes them on pipeline_state.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from django.conf import settings

from hipaa_audit.backends import BaseAuditSink, load_backend

from .conf import merge_config
from .geo import GeoClassifier
from .registry import pipeline_state
from .throttling import RateLimiterStore

logger = logging.getLogger(__name__)

# Django runs process_request top-down and process_exception bottom-up, so
# the error sanitizer sits first to see exceptions last.
PIPELINE_MIDDLEWARE: List[str] = [
    "homecare.security.middleware.ErrorSanitizerMiddleware",
    "homecare.security.middleware.HTTPSEnforcementMiddleware",
    "homecare.security.middleware.SecurityHeadersMiddleware",
    "homecare.security.middleware.RequestSizeLimitMiddleware",
    "homecare.security.middleware.ContentTypeValidationMiddleware",
    "homecare.security.middleware.SQLInjectionMiddleware",
    "homecare.security.middleware.XSSMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "hipaa_audit.middleware.HIPAAAuditMiddleware",
    "homecare.security.middleware.GeoBlockingMiddleware",
    "homecare.security.middleware.RateLimitingMiddleware",
]


def install_pipeline(middleware: Iterable[str] = ()) -> List[str]:
    """
    Return the pipeline stages in order followed by any other middleware.

    Stages already present in ``middleware`` are not duplicated.
    """
    extra = [path for path in middleware if path not in PIPELINE_MIDDLEWARE]
    return list(PIPELINE_MIDDLEWARE) + extra


def configure_pipeline(
    config: Optional[Mapping[str, Any]] = None,
    rate_store: Optional[RateLimiterStore] = None,
    geo_classifier: Optional[GeoClassifier] = None,
    audit_sink: Optional[BaseAuditSink] = None,
) -> Dict[str, Any]:
    """
    Build the pipeline's shared state and publish it on pipeline_state.

    ``config`` defaults to settings.HOMECARE_SEC. Any collaborator not passed
    in is built fresh from the merged configuration, so each call starts with
    empty rate counters and an empty geo cache.
    """
    if config is None:
        config = getattr(settings, "HOMECARE_SEC", {})
    cfg = merge_config(config)

    if rate_store is None:
        rate_store = RateLimiterStore()
    if geo_classifier is None:
        geo_classifier = GeoClassifier.from_config(cfg.get("GEO_BLOCKING", {}))
    if audit_sink is None:
        audit_sink = load_backend(cfg)

    pipeline_state.set(
        config=cfg,
        rate_store=rate_store,
        geo_classifier=geo_classifier,
        audit_sink=audit_sink,
    )
    logger.debug(
        "Security pipeline configured (environment=%s, audit sink=%s)",
        cfg.get("ENVIRONMENT"),
        audit_sink.__class__.__name__,
    )
    return cfg
