"""
Request throttling.

Fixed-window counters keyed by client IP. A window opens on the first request
from a key and is replaced (not merged) once it has expired, so a burst that
straddles a window boundary can admit up to twice the configured maximum.
"""

import functools
import logging
import math
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional, Tuple

from django.http import HttpRequest, JsonResponse

from .conf import is_production
from .registry import pipeline_state
from .utils.request import get_request_ip

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Too many requests. Please try again later."


def now_ms() -> float:
    return time.time() * 1000


@dataclass
class RateRecord:
    count: int
    reset_at: float  # epoch milliseconds


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    count: int
    reset_at: float
    retry_after: int  # seconds; 0 when allowed


class RateLimiterStore:
    """
    In-memory map of client key -> RateRecord.

    The read-check-write of ``hit`` runs under a lock so two threads can never
    both pass the ``count >= max`` check for the last free slot.
    """

    def __init__(self, clock: Callable[[], float] = now_ms) -> None:
        self._records: Dict[str, RateRecord] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def hit(self, key: str, max_requests: int, window_ms: float, now: Optional[float] = None) -> RateDecision:
        now = self._clock() if now is None else now
        with self._lock:
            record = self._records.get(key)
            if record is None or now > record.reset_at:
                record = RateRecord(count=1, reset_at=now + window_ms)
                self._records[key] = record
                return RateDecision(True, record.count, record.reset_at, 0)

            if record.count >= max_requests:
                retry_after = max(0, math.ceil((record.reset_at - now) / 1000))
                return RateDecision(False, record.count, record.reset_at, retry_after)

            record.count += 1
            return RateDecision(True, record.count, record.reset_at, 0)

    def undo(self, key: str) -> None:
        """Give back one counted request (used when successes are not counted)."""
        with self._lock:
            record = self._records.get(key)
            if record is not None and record.count > 0:
                record.count -= 1

    def get(self, key: str) -> Optional[RateRecord]:
        with self._lock:
            record = self._records.get(key)
            return replace(record) if record is not None else None

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


class Throttle:
    """
    A named limiter.

    Usable as a view decorator, or through ``check()`` from middleware.
    ``max_requests``/``window_ms`` are defaults; HOMECARE_SEC['RATE_LIMITS'][name]
    overrides them at request time.

    Example:
        @Throttle("newsletter", max_requests=3, window_ms=60_000)
        def subscribe(request):
            ...
    """

    def __init__(
        self,
        name: str,
        max_requests: int,
        window_ms: int,
        message: str = DEFAULT_MESSAGE,
        skip: Optional[Callable[[HttpRequest], bool]] = None,
        skip_successful_requests: bool = False,
        store: Optional[RateLimiterStore] = None,
    ) -> None:
        self.name = name
        self.max_requests = max_requests
        self.window_ms = window_ms
        self.message = message
        self.skip = skip
        self.skip_successful_requests = skip_successful_requests
        self._store = store

    def __repr__(self) -> str:
        return f"Throttle({self.name!r}, max_requests={self.max_requests}, window_ms={self.window_ms})"

    @property
    def store(self) -> RateLimiterStore:
        return self._store if self._store is not None else pipeline_state.get_rate_store()

    def limits(self) -> Tuple[int, int]:
        override = pipeline_state.get_config().get("RATE_LIMITS", {}).get(self.name, {})
        return (
            int(override.get("MAX", self.max_requests)),
            int(override.get("WINDOW_MS", self.window_ms)),
        )

    def client_ip(self, request: HttpRequest) -> str:
        return get_request_ip(request, pipeline_state.get_config().get("TRUST_PROXY", False))

    def key_for(self, request: HttpRequest) -> str:
        return f"{self.name}:{self.client_ip(request)}"

    def should_skip(self, request: HttpRequest) -> bool:
        return bool(self.skip and self.skip(request))

    def consume(self, request: HttpRequest, key: str) -> Optional[JsonResponse]:
        max_requests, window_ms = self.limits()
        decision = self.store.hit(key, max_requests, window_ms)
        if decision.allowed:
            return None

        logger.warning(
            "[SECURITY] Rate limit exceeded for IP: %s on %s %s",
            self.client_ip(request),
            request.method,
            request.path,
        )
        response = JsonResponse(
            {"error": self.message, "retryAfter": decision.retry_after},
            status=429,
        )
        response["Retry-After"] = str(decision.retry_after)
        response["X-RateLimit-Limit"] = str(max_requests)
        response["X-RateLimit-Remaining"] = "0"
        return response

    def check(self, request: HttpRequest) -> Optional[JsonResponse]:
        """Count the request; return a 429 response if it is over the limit."""
        if self.should_skip(request):
            return None
        return self.consume(request, self.key_for(request))

    def __call__(self, view_func):
        @functools.wraps(view_func)
        def wrapped_view(request, *args, **kwargs):
            if self.should_skip(request):
                return view_func(request, *args, **kwargs)

            key = self.key_for(request)
            rejection = self.consume(request, key)
            if rejection is not None:
                return rejection

            response = view_func(request, *args, **kwargs)
            if self.skip_successful_requests and response.status_code < 400:
                self.store.undo(key)
            return response

        return wrapped_view


def throttle(max_requests: int = 10, window_ms: int = 60000) -> Throttle:
    """
    Build an ad-hoc per-IP limiter.

    Example:
        @throttle(5, 60000)
        def contact(request):
            ...
    """
    return Throttle(f"throttle:{max_requests}/{window_ms}", max_requests, window_ms)


def _not_production(request: HttpRequest) -> bool:
    return not is_production(pipeline_state.get_config())


general_api_limiter = Throttle(
    "general_api",
    max_requests=100,
    window_ms=15 * 60 * 1000,
    message="Too many requests. Please slow down.",
)

public_form_limiter = Throttle(
    "public_form",
    max_requests=5,
    window_ms=15 * 60 * 1000,
    message="Too many submissions. Please try again in 15 minutes.",
    skip=_not_production,
)

auth_limiter = Throttle(
    "auth",
    max_requests=5,
    window_ms=15 * 60 * 1000,
    message="Too many login attempts. Please try again in 15 minutes.",
    skip_successful_requests=True,
)

password_reset_limiter = Throttle(
    "password_reset",
    max_requests=3,
    window_ms=60 * 60 * 1000,
    message="Too many password reset attempts. Please try again in 1 hour.",
)
