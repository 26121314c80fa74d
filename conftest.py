"""
Shared fixtures.

Every test gets a freshly configured pipeline: test preset, empty rate store,
in-memory audit sink and a geo classifier whose lookup is a Mock, so no test
ever reaches the network.
"""

from unittest.mock import Mock

import pytest

from hipaa_audit.backends.memory import MemoryAuditSink
from homecare.security.conf import get_preset, merge_config
from homecare.security.geo import GeoCache, GeoClassifier
from homecare.security.pipeline import configure_pipeline
from homecare.security.registry import pipeline_state
from homecare.security.throttling import RateLimiterStore


class FakeClock:
    """Manually advanced clock (seconds)."""

    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def geo_lookup():
    return Mock(return_value={"status": "success", "country": "United States", "countryCode": "US"})


@pytest.fixture
def audit_sink():
    return MemoryAuditSink()


@pytest.fixture
def rate_store():
    return RateLimiterStore()


@pytest.fixture
def configure(audit_sink, geo_lookup, rate_store):
    """Reconfigure the pipeline with HOMECARE_SEC-style overrides."""

    def _configure(**overrides):
        cfg = merge_config(overrides, base=get_preset("test"))
        geo_cfg = cfg["GEO_BLOCKING"]
        classifier = GeoClassifier(
            GeoCache(ttl=geo_cfg["CACHE_TTL"], max_size=geo_cfg["CACHE_MAX_SIZE"]),
            geo_lookup,
            target_country=geo_cfg["TARGET_COUNTRY"],
            on_lookup_failure=geo_cfg["ON_LOOKUP_FAILURE"],
        )
        return configure_pipeline(
            cfg,
            rate_store=rate_store,
            geo_classifier=classifier,
            audit_sink=audit_sink,
        )

    return _configure


@pytest.fixture(autouse=True)
def pipeline(configure):
    cfg = configure()
    yield cfg
    pipeline_state.clear()
