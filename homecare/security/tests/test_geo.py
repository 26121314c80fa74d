"""
Unit tests for geo classification and the geo blocking stage
"""

import json
from unittest.mock import Mock, patch

import pytest
import requests
from django.core.exceptions import ImproperlyConfigured
from django.http import HttpResponse
from django.test import RequestFactory

from homecare.security.geo import (
    GeoCache,
    GeoCacheEntry,
    GeoClassifier,
    IPApiLookup,
)
from homecare.security.middleware.geo_blocking import GeoBlockingMiddleware

US = {"status": "success", "country": "United States", "countryCode": "US"}
CA = {"status": "success", "country": "Canada", "countryCode": "CA"}


@pytest.fixture
def factory():
    return RequestFactory()


def make_classifier(lookup, clock, policy="allow", **cache_kwargs):
    cache = GeoCache(clock=clock, **cache_kwargs)
    return GeoClassifier(cache, lookup, target_country="US", on_lookup_failure=policy)


class TestGeoClassifier:
    @pytest.mark.parametrize("ip", ["127.0.0.1", "10.0.0.8", "192.168.0.3", "::1"])
    def test_private_ips_skip_lookup(self, ip, clock):
        lookup = Mock(return_value=CA)
        classifier = make_classifier(lookup, clock)

        decision = classifier.classify(ip)

        assert decision.allowed
        assert decision.country == "Private"
        lookup.assert_not_called()

    def test_target_country_allowed(self, clock):
        classifier = make_classifier(Mock(return_value=US), clock)
        decision = classifier.classify("8.8.8.8")
        assert decision.allowed
        assert decision.country == "United States"

    def test_other_country_blocked(self, clock):
        classifier = make_classifier(Mock(return_value=CA), clock)
        decision = classifier.classify("203.0.113.9")
        assert not decision.allowed
        assert decision.country == "Canada"

    def test_answers_cached_for_ttl(self, clock):
        lookup = Mock(return_value=CA)
        classifier = make_classifier(lookup, clock, ttl=3600)

        classifier.classify("203.0.113.9")
        clock.advance(3599)
        classifier.classify("203.0.113.9")
        assert lookup.call_count == 1

        clock.advance(2)
        classifier.classify("203.0.113.9")
        assert lookup.call_count == 2

    @pytest.mark.parametrize(
        "failure",
        [
            requests.Timeout("timed out"),
            requests.ConnectionError("refused"),
            ValueError("not json"),
        ],
    )
    def test_fail_open_on_lookup_error(self, failure, clock, caplog):
        lookup = Mock(side_effect=failure)
        classifier = make_classifier(lookup, clock)

        decision = classifier.classify("203.0.113.9")

        assert decision.allowed
        assert decision.country == "Unknown"
        assert "[GEOLOCATION]" in caplog.text

    def test_unsuccessful_status_is_a_failure(self, clock):
        lookup = Mock(return_value={"status": "fail", "message": "reserved range"})
        classifier = make_classifier(lookup, clock, policy="deny")

        decision = classifier.classify("203.0.113.9")

        assert not decision.allowed
        assert decision.country == "Unknown"

    def test_missing_country_code_is_a_failure(self, clock):
        classifier = make_classifier(Mock(return_value={"status": "success"}), clock, policy="deny")
        assert not classifier.classify("203.0.113.9").allowed

    def test_failures_not_cached(self, clock):
        lookup = Mock(side_effect=[requests.Timeout("timed out"), US])
        classifier = make_classifier(lookup, clock)

        classifier.classify("203.0.113.9")
        decision = classifier.classify("203.0.113.9")

        assert lookup.call_count == 2
        assert decision.country == "United States"

    def test_invalid_policy_rejected(self, clock):
        with pytest.raises(ImproperlyConfigured):
            make_classifier(Mock(), clock, policy="maybe")

    def test_from_config(self):
        classifier = GeoClassifier.from_config(
            {"TARGET_COUNTRY": "ca", "ON_LOOKUP_FAILURE": "deny", "CACHE_TTL": 60}
        )
        assert classifier.target_country == "CA"
        assert classifier.on_lookup_failure == "deny"
        assert classifier.cache.ttl == 60
        assert isinstance(classifier.lookup, IPApiLookup)


class TestGeoCache:
    def test_sweep_drops_stale_entries(self, clock):
        cache = GeoCache(ttl=100, clock=clock)
        cache.put("1.1.1.1", GeoCacheEntry("US", True, clock()))
        clock.advance(50)
        cache.put("2.2.2.2", GeoCacheEntry("US", True, clock()))
        clock.advance(60)

        removed = cache.sweep()

        assert removed == 1
        assert "1.1.1.1" not in cache
        assert "2.2.2.2" in cache

    def test_sweep_enforces_size_cap_oldest_first(self, clock):
        cache = GeoCache(ttl=3600, max_size=2, clock=clock)
        for ip in ("1.1.1.1", "2.2.2.2", "3.3.3.3"):
            cache.put(ip, GeoCacheEntry("US", True, clock()))
            clock.advance(1)

        cache.sweep()

        assert len(cache) == 2
        assert "1.1.1.1" not in cache

    def test_put_enforces_size_cap_between_sweeps(self, clock):
        cache = GeoCache(ttl=3600, max_size=2, sweep_interval=900, clock=clock)
        for ip in ("1.1.1.1", "2.2.2.2", "3.3.3.3"):
            cache.put(ip, GeoCacheEntry("US", True, clock()))
            clock.advance(1)

        assert len(cache) == 2
        assert "1.1.1.1" not in cache
        assert "3.3.3.3" in cache

    def test_sweep_runs_at_most_once_per_interval(self, clock):
        cache = GeoCache(ttl=10, sweep_interval=900, clock=clock)
        cache.put("1.1.1.1", GeoCacheEntry("US", True, clock()))
        clock.advance(600)

        assert cache.maybe_sweep() is False
        assert "1.1.1.1" in cache

        clock.advance(301)
        assert cache.maybe_sweep() is True
        assert "1.1.1.1" not in cache


class TestIPApiLookup:
    def test_requests_country_fields(self):
        session = Mock()
        session.get.return_value.json.return_value = US
        lookup = IPApiLookup(base_url="http://ip-api.com/json", timeout=2, session=session)

        assert lookup("8.8.8.8") == US
        session.get.assert_called_once_with(
            "http://ip-api.com/json/8.8.8.8",
            params={"fields": "status,country,countryCode"},
            timeout=2,
        )
        session.get.return_value.raise_for_status.assert_called_once()


class TestGeoBlockingMiddleware:
    def test_disabled_by_default(self, factory, geo_lookup):
        middleware = GeoBlockingMiddleware(lambda r: HttpResponse("OK"))
        request = factory.get("/api/health", REMOTE_ADDR="203.0.113.9")

        assert middleware.process_request(request) is None
        geo_lookup.assert_not_called()

    def test_blocks_foreign_ip(self, factory, configure, geo_lookup, caplog):
        geo_lookup.return_value = CA
        configure(ENABLE_GEO_BLOCKING=True)
        middleware = GeoBlockingMiddleware(lambda r: HttpResponse("OK"))

        response = middleware.process_request(factory.get("/api/health", REMOTE_ADDR="203.0.113.9"))

        assert response.status_code == 403
        assert json.loads(response.content) == {
            "error": "Access denied",
            "message": "This service is only available to users in the United States.",
        }
        assert "[SECURITY] Access denied" in caplog.text

    def test_allows_domestic_ip(self, factory, configure):
        configure(ENABLE_GEO_BLOCKING=True)
        middleware = GeoBlockingMiddleware(lambda r: HttpResponse("OK"))
        assert middleware.process_request(factory.get("/", REMOTE_ADDR="8.8.8.8")) is None

    def test_uses_trusted_proxy_header(self, factory, configure, geo_lookup):
        configure(ENABLE_GEO_BLOCKING=True, TRUSTED_PROXY_HEADER="CF-Connecting-IP")
        middleware = GeoBlockingMiddleware(lambda r: HttpResponse("OK"))

        middleware.process_request(
            factory.get("/", HTTP_CF_CONNECTING_IP="198.51.100.4", REMOTE_ADDR="10.0.0.1")
        )

        geo_lookup.assert_called_once_with("198.51.100.4")

    def test_private_client_passes(self, factory, configure, geo_lookup):
        configure(ENABLE_GEO_BLOCKING=True)
        middleware = GeoBlockingMiddleware(lambda r: HttpResponse("OK"))

        assert middleware.process_request(factory.get("/", REMOTE_ADDR="127.0.0.1")) is None
        geo_lookup.assert_not_called()

    def test_skip_paths(self, factory, configure, geo_lookup):
        geo_lookup.return_value = CA
        configure(ENABLE_GEO_BLOCKING=True)
        middleware = GeoBlockingMiddleware(lambda r: HttpResponse("OK"))

        assert middleware.process_request(factory.get("/uploads/a.png", REMOTE_ADDR="203.0.113.9")) is None

    def test_fail_closed_policy(self, factory, configure, geo_lookup):
        geo_lookup.side_effect = requests.Timeout("timed out")
        configure(ENABLE_GEO_BLOCKING=True, GEO_BLOCKING={"ON_LOOKUP_FAILURE": "deny"})
        middleware = GeoBlockingMiddleware(lambda r: HttpResponse("OK"))

        response = middleware.process_request(factory.get("/", REMOTE_ADDR="203.0.113.9"))

        assert response.status_code == 403

    def test_fail_open_policy(self, factory, configure, geo_lookup):
        geo_lookup.side_effect = requests.Timeout("timed out")
        configure(ENABLE_GEO_BLOCKING=True)
        middleware = GeoBlockingMiddleware(lambda r: HttpResponse("OK"))

        assert middleware.process_request(factory.get("/", REMOTE_ADDR="203.0.113.9")) is None

    @patch("homecare.security.geo.requests.Session")
    def test_default_classifier_uses_requests(self, session_cls, factory):
        from homecare.security.pipeline import configure_pipeline
        from homecare.security.registry import pipeline_state

        session_cls.return_value.get.return_value.json.return_value = CA
        configure_pipeline({"ENABLE_GEO_BLOCKING": True})
        middleware = GeoBlockingMiddleware(lambda r: HttpResponse("OK"))

        response = middleware.process_request(factory.get("/", REMOTE_ADDR="203.0.113.9"))

        assert response.status_code == 403
        assert pipeline_state.get_geo_classifier().cache.get("203.0.113.9").country == "Canada"
