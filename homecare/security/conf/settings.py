"""
Security Settings Configuration

Provides the default configuration for the request-hardening pipeline.
Projects override any key through ``settings.HOMECARE_SEC``.
"""

import os
from copy import deepcopy
from typing import Any, Dict, Mapping, Optional

# Secure defaults dictionary - one key per pipeline stage
SECURE_DEFAULTS: Dict[str, Any] = {
    # "production" enables HTTPS redirects, generic errors and form throttling
    "ENVIRONMENT": "development",
    # Header holding the real client IP when behind a trusted proxy
    "TRUSTED_PROXY_HEADER": None,
    # Resolve the rate-limit key from X-Forwarded-For instead of REMOTE_ADDR
    "TRUST_PROXY": False,
    # Payload limits
    "REQUEST_SIZE_LIMIT": 10 * 1024 * 1024,  # 10 MB
    # Content type validation
    "CONTENT_TYPE_EXEMPT_SEGMENTS": ["/upload", "/apply"],
    # Routes that accept rich HTML; they sanitize their own output
    "SQLI_ALLOWLIST": [
        "/api/admin/articles",
        "/api/admin/jobs",
        "/api/admin/pages",
    ],
    "XSS_ALLOWLIST": [
        "/api/admin/articles",
        "/api/admin/podcasts",
        "/api/admin/videos",
        "/api/admin/pages",
        "/api/admin/jobs",
        "/api/admin/directory",
        "/api/admin/facilities",
    ],
    # Geo blocking
    "ENABLE_GEO_BLOCKING": False,
    "GEO_BLOCKING": {
        "TARGET_COUNTRY": "US",
        "ON_LOOKUP_FAILURE": "allow",
        "LOOKUP_URL": "http://ip-api.com/json/",
        "LOOKUP_TIMEOUT": 2,
        "CACHE_TTL": 60 * 60,  # 1 hour
        "CACHE_MAX_SIZE": 10000,
        "SWEEP_INTERVAL": 15 * 60,  # 15 minutes
        "SKIP_PATHS": ["/uploads/"],
    },
    # Named limiters: (max requests, window in milliseconds)
    "RATE_LIMITS": {
        "general_api": {"MAX": 100, "WINDOW_MS": 15 * 60 * 1000},
        "public_form": {"MAX": 5, "WINDOW_MS": 15 * 60 * 1000},
        "auth": {"MAX": 5, "WINDOW_MS": 15 * 60 * 1000},
        "password_reset": {"MAX": 3, "WINDOW_MS": 60 * 60 * 1000},
    },
    # HIPAA audit trail
    "AUDIT_LOG": {
        "ENABLED": True,
        "BACKEND": "hipaa_audit.backends.logger.LoggingAuditSink",
    },
}


def merge_config(
    user_cfg: Optional[Mapping[str, Any]], base: Optional[Mapping[str, Any]] = None
) -> Dict[str, Any]:
    """
    Merge user configuration over ``base`` (SECURE_DEFAULTS when omitted).

    Nested dictionaries are merged one level deep so a project can override a
    single limiter or geo option without restating the rest.
    """
    merged = deepcopy(SECURE_DEFAULTS if base is None else dict(base))
    for key, val in (user_cfg or {}).items():
        if isinstance(val, dict) and isinstance(merged.get(key), dict):
            merged[key].update(deepcopy(val))
        else:
            merged[key] = deepcopy(val)
    return merged


def env_config(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Read pipeline options from environment variables.

    Only variables that are actually set end up in the result, so the output
    can be passed straight to merge_config().
    """
    environ = os.environ if environ is None else environ
    cfg: Dict[str, Any] = {}

    environment = environ.get("APP_ENV") or environ.get("NODE_ENV")
    if environment:
        cfg["ENVIRONMENT"] = environment.strip().lower()

    if environ.get("TRUSTED_PROXY_HEADER"):
        cfg["TRUSTED_PROXY_HEADER"] = environ["TRUSTED_PROXY_HEADER"].strip()

    if "ENABLE_GEO_BLOCKING" in environ:
        cfg["ENABLE_GEO_BLOCKING"] = environ["ENABLE_GEO_BLOCKING"].strip() == "true"

    geo: Dict[str, Any] = {}
    if environ.get("GEO_TARGET_COUNTRY"):
        geo["TARGET_COUNTRY"] = environ["GEO_TARGET_COUNTRY"].strip().upper()
    if environ.get("GEO_ON_LOOKUP_FAILURE"):
        geo["ON_LOOKUP_FAILURE"] = environ["GEO_ON_LOOKUP_FAILURE"].strip().lower()
    if geo:
        cfg["GEO_BLOCKING"] = geo

    return cfg


def is_production(cfg: Mapping[str, Any]) -> bool:
    return cfg.get("ENVIRONMENT") == "production"


def validate_security_configuration(cfg: Mapping[str, Any]) -> list:
    """
    Validate pipeline configuration and return warnings.

    Args:
        cfg: Merged HOMECARE_SEC configuration

    Returns:
        List of validation messages
    """
    messages = []

    if not is_production(cfg):
        messages.append(
            "WARNING: ENVIRONMENT is not 'production'. HTTPS enforcement and "
            "public form throttling are off and errors include stack traces."
        )

    geo = cfg.get("GEO_BLOCKING", {})
    if cfg.get("ENABLE_GEO_BLOCKING") and not geo.get("TARGET_COUNTRY"):
        messages.append("ERROR: Geo blocking is enabled without a TARGET_COUNTRY.")

    if geo.get("ON_LOOKUP_FAILURE") not in ("allow", "deny"):
        messages.append("ERROR: GEO_BLOCKING.ON_LOOKUP_FAILURE must be 'allow' or 'deny'.")

    for name, limit in cfg.get("RATE_LIMITS", {}).items():
        if limit.get("MAX", 0) < 1 or limit.get("WINDOW_MS", 0) < 1:
            messages.append(f"ERROR: Rate limit '{name}' needs positive MAX and WINDOW_MS.")

    if cfg.get("ENABLE_GEO_BLOCKING") and not cfg.get("TRUSTED_PROXY_HEADER"):
        messages.append(
            "INFO: Geo blocking without TRUSTED_PROXY_HEADER classifies the socket address only."
        )

    return messages
