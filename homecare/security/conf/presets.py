"""
Security Configuration Presets

Provides pipeline configuration presets for the deployment environments.
"""

from typing import Any, Dict

from django.core.exceptions import ImproperlyConfigured

from .settings import merge_config


# Production preset - everything on
PRODUCTION_PRESET = merge_config(
    {
        "ENVIRONMENT": "production",
        "TRUST_PROXY": True,
        "ENABLE_GEO_BLOCKING": True,
    }
)


# Development preset - no HTTPS, no geo lookups, verbose errors
DEVELOPMENT_PRESET = merge_config(
    {
        "ENVIRONMENT": "development",
        "ENABLE_GEO_BLOCKING": False,
    }
)


# Test preset - in-memory audit sink so assertions can read the trail
TEST_PRESET = merge_config(
    {
        "ENVIRONMENT": "test",
        "ENABLE_GEO_BLOCKING": False,
        "AUDIT_LOG": {"BACKEND": "hipaa_audit.backends.memory.MemoryAuditSink"},
    }
)


# Preset registry
PRESETS = {
    "production": PRODUCTION_PRESET,
    "development": DEVELOPMENT_PRESET,
    "dev": DEVELOPMENT_PRESET,
    "test": TEST_PRESET,
    "testing": TEST_PRESET,
}


def get_preset(name: str) -> Dict[str, Any]:
    """
    Get a pipeline configuration preset by name.

    Raises:
        ImproperlyConfigured: If preset name is not found
    """
    name = name.lower()
    preset = PRESETS.get(name)
    if preset is None:
        available = ", ".join(sorted(PRESETS.keys()))
        raise ImproperlyConfigured(f"Unknown preset: {name}. Available presets: {available}")

    return merge_config(preset)


def list_presets() -> list:
    return sorted(PRESETS.keys())
