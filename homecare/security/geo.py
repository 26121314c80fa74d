"""
Geo/IP classification.

Decides whether a client IP may use the service based on the country an
external IP-geolocation service reports for it. Lookups are cached for a fixed
TTL in a bounded in-memory cache.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests
from django.core.exceptions import ImproperlyConfigured

from .utils.ip import is_private_ip

logger = logging.getLogger(__name__)

FAILURE_POLICIES = ("allow", "deny")


class LookupFailed(Exception):
    """The geolocation service gave no usable answer."""


@dataclass(frozen=True)
class GeoCacheEntry:
    country: str
    allowed: bool
    timestamp: float  # epoch seconds


@dataclass(frozen=True)
class GeoDecision:
    country: str
    allowed: bool


class GeoCache:
    """
    IP -> GeoCacheEntry with a TTL and a size cap.

    Eviction is opportunistic: ``maybe_sweep`` runs a full ``sweep`` at most
    once per ``sweep_interval`` seconds and is called from the request path,
    there is no timer thread.
    """

    def __init__(
        self,
        ttl: float = 60 * 60,
        max_size: int = 10000,
        sweep_interval: float = 15 * 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl = ttl
        self.max_size = max_size
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: Dict[str, GeoCacheEntry] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, ip: str) -> bool:
        return ip in self._entries

    def now(self) -> float:
        return self._clock()

    def is_fresh(self, entry: GeoCacheEntry, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        return now - entry.timestamp < self.ttl

    def get(self, ip: str, now: Optional[float] = None) -> Optional[GeoCacheEntry]:
        """Return the cached entry for ``ip`` if it is younger than the TTL."""
        with self._lock:
            entry = self._entries.get(ip)
        if entry is not None and self.is_fresh(entry, now):
            return entry
        return None

    def put(self, ip: str, entry: GeoCacheEntry) -> None:
        with self._lock:
            self._entries[ip] = entry
            overflow = len(self._entries) > self.max_size
        if overflow:
            self.sweep()

    def maybe_sweep(self, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        with self._lock:
            if now - self._last_sweep <= self.sweep_interval:
                return False
            self._last_sweep = now
        self.sweep(now)
        return True

    def sweep(self, now: Optional[float] = None) -> int:
        """
        Drop stale entries, then the oldest ones until within ``max_size``.

        Returns:
            Number of entries removed
        """
        now = self._clock() if now is None else now
        with self._lock:
            before = len(self._entries)
            self._entries = {
                ip: entry for ip, entry in self._entries.items() if now - entry.timestamp <= self.ttl
            }
            overflow = len(self._entries) - self.max_size
            if overflow > 0:
                oldest = sorted(self._entries.items(), key=lambda item: item[1].timestamp)
                for ip, _entry in oldest[:overflow]:
                    del self._entries[ip]
            return before - len(self._entries)


class IPApiLookup:
    """
    Client for ip-api.com.

    Returns the decoded JSON document: ``{"status", "country", "countryCode"}``.
    """

    def __init__(
        self,
        base_url: str = "http://ip-api.com/json/",
        timeout: float = 2,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.session = session or requests.Session()

    def __call__(self, ip: str) -> Dict[str, Any]:
        response = self.session.get(
            f"{self.base_url}{ip}",
            params={"fields": "status,country,countryCode"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()


class GeoClassifier:
    """
    Classify client IPs as allowed or blocked by country.

    Args:
        cache: GeoCache holding previous answers
        lookup: Callable ip -> response dict (IPApiLookup in production)
        target_country: ISO country code that is allowed
        on_lookup_failure: 'allow' (fail open) or 'deny' (fail closed)
    """

    def __init__(
        self,
        cache: GeoCache,
        lookup: Callable[[str], Dict[str, Any]],
        target_country: str = "US",
        on_lookup_failure: str = "allow",
    ) -> None:
        if on_lookup_failure not in FAILURE_POLICIES:
            raise ImproperlyConfigured(
                f"on_lookup_failure must be one of {FAILURE_POLICIES}, got {on_lookup_failure!r}"
            )
        self.cache = cache
        self.lookup = lookup
        self.target_country = target_country.upper()
        self.on_lookup_failure = on_lookup_failure

    @classmethod
    def from_config(cls, geo_cfg: Dict[str, Any]) -> "GeoClassifier":
        cache = GeoCache(
            ttl=geo_cfg.get("CACHE_TTL", 60 * 60),
            max_size=geo_cfg.get("CACHE_MAX_SIZE", 10000),
            sweep_interval=geo_cfg.get("SWEEP_INTERVAL", 15 * 60),
        )
        lookup = IPApiLookup(
            base_url=geo_cfg.get("LOOKUP_URL", "http://ip-api.com/json/"),
            timeout=geo_cfg.get("LOOKUP_TIMEOUT", 2),
        )
        return cls(
            cache,
            lookup,
            target_country=geo_cfg.get("TARGET_COUNTRY", "US"),
            on_lookup_failure=geo_cfg.get("ON_LOOKUP_FAILURE", "allow"),
        )

    def classify(self, ip: str) -> GeoDecision:
        if is_private_ip(ip):
            return GeoDecision(country="Private", allowed=True)

        self.cache.maybe_sweep()

        cached = self.cache.get(ip)
        if cached is not None:
            return GeoDecision(country=cached.country, allowed=cached.allowed)

        try:
            data = self.lookup(ip)
            if not isinstance(data, dict) or data.get("status") != "success":
                raise LookupFailed(f"unexpected response: {data!r}")
            country_code = data.get("countryCode")
            if not isinstance(country_code, str):
                raise LookupFailed(f"missing countryCode: {data!r}")
        except Exception as exc:
            logger.warning("[GEOLOCATION] IP lookup failed for %s: %s", ip, exc)
            return GeoDecision(country="Unknown", allowed=self.on_lookup_failure == "allow")

        entry = GeoCacheEntry(
            country=data.get("country") or country_code,
            allowed=country_code.upper() == self.target_country,
            timestamp=self.cache.now(),
        )
        self.cache.put(ip, entry)
        return GeoDecision(country=entry.country, allowed=entry.allowed)
