"""
Security Configuration Module
"""

from .settings import (
    SECURE_DEFAULTS,
    env_config,
    is_production,
    merge_config,
    validate_security_configuration,
)
from .presets import (
    get_preset,
    list_presets,
    PRODUCTION_PRESET,
    DEVELOPMENT_PRESET,
    TEST_PRESET,
)

__all__ = [
    "SECURE_DEFAULTS",
    "env_config",
    "is_production",
    "merge_config",
    "validate_security_configuration",
    "get_preset",
    "list_presets",
    "PRODUCTION_PRESET",
    "DEVELOPMENT_PRESET",
    "TEST_PRESET",
]
