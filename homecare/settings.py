"""
Django settings for the homecare project.

Environment variables:
    APP_ENV / NODE_ENV      production | development | test (default development)
    DJANGO_SECRET_KEY       required in production
    ALLOWED_HOSTS           comma separated
    TRUSTED_PROXY_HEADER    header carrying the real client IP
    ENABLE_GEO_BLOCKING     "true" to enable
    GEO_TARGET_COUNTRY      ISO country code (default US)
    GEO_ON_LOOKUP_FAILURE   allow | deny (default allow)
    ADMIN_USERNAME / ADMIN_PASSWORD_HASH   credentials for the admin API
"""

import os

from homecare.security.conf import env_config, get_preset, list_presets, merge_config
from homecare.security.pipeline import install_pipeline

ENVIRONMENT = (os.environ.get("APP_ENV") or os.environ.get("NODE_ENV") or "development").lower()
IS_PRODUCTION = ENVIRONMENT == "production"

DEBUG = not IS_PRODUCTION

SECRET_KEY = os.environ.get(
    "DJANGO_SECRET_KEY",
    "django-insecure-homecare-development-key-change-me",
)

ALLOWED_HOSTS = [
    host.strip()
    for host in os.environ.get("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",")
    if host.strip()
]

INSTALLED_APPS = [
    "django.contrib.sessions",
    "rest_framework",
    "homecare.security.apps.SecurityConfig",
    "hipaa_audit.apps.HipaaAuditConfig",
]

MIDDLEWARE = install_pipeline()

ROOT_URLCONF = "homecare.urls"

DATABASES = {}

# Sessions live in a signed cookie; no session table required.
SESSION_ENGINE = "django.contrib.sessions.backends.signed_cookies"
SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_SECURE = IS_PRODUCTION
SESSION_COOKIE_SAMESITE = "Strict"
SESSION_COOKIE_AGE = 8 * 60 * 60

REST_FRAMEWORK = {
    "UNAUTHENTICATED_USER": None,
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
}

ADMIN_USERNAME = os.environ.get("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD_HASH = os.environ.get("ADMIN_PASSWORD_HASH", "")

USE_TZ = True
TIME_ZONE = "UTC"

# Request-hardening pipeline
HOMECARE_SEC = merge_config(
    env_config(),
    base=get_preset(ENVIRONMENT if ENVIRONMENT in list_presets() else "development"),
)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} {name} {message}",
            "style": "{",
        },
        "audit": {
            "format": "{message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
        "audit": {
            "class": "logging.StreamHandler",
            "formatter": "audit",
        },
    },
    "loggers": {
        "homecare": {
            "handlers": ["console"],
            "level": "INFO",
        },
        "hipaa_audit": {
            "handlers": ["console"],
            "level": "INFO",
        },
        "hipaa_audit.trail": {
            "handlers": ["audit"],
            "level": "INFO",
            "propagate": False,
        },
    },
}
