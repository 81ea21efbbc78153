from functools import wraps
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple
import logging
import threading
import time

from jambi.core.config import settings
from jambi.core.exceptions import RateLimited

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitPolicy:
    name: str
    times: int
    window_seconds: int


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int


FORMS_POLICY = RateLimitPolicy("forms", settings.FORMS_RATE_LIMIT_TIMES, settings.FORMS_RATE_LIMIT_SECONDS)
LOGIN_POLICY = RateLimitPolicy("login", settings.LOGIN_RATE_LIMIT_TIMES, settings.LOGIN_RATE_LIMIT_SECONDS)
API_POLICY = RateLimitPolicy("payments_api", settings.API_RATE_LIMIT_TIMES, settings.API_RATE_LIMIT_SECONDS)


class RateLimiter:
    """
    Fixed-window request counter.

    State is process-local: with N replicas the effective cap is N times the
    policy cap. Swap in another implementation of `check` for a shared store.
    """

    def __init__(self, sweep_threshold: int = 10000, clock: Callable[[], float] = time.monotonic):
        self.sweep_threshold = sweep_threshold
        self.clock = clock
        # key -> (count, window_start, window_seconds)
        self._store: Dict[str, Tuple[int, float, int]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._store)

    def check(self, key: str, policy: RateLimitPolicy) -> RateLimitResult:
        now = self.clock()
        with self._lock:
            if len(self._store) > self.sweep_threshold:
                self._sweep(now)

            record = self._store.get(key)
            if record is None or now - record[1] >= record[2]:
                self._store[key] = (1, now, policy.window_seconds)
                return RateLimitResult(allowed=True, remaining=policy.times - 1)

            count, window_start, window_seconds = record
            if count >= policy.times:
                return RateLimitResult(allowed=False, remaining=0)

            self._store[key] = (count + 1, window_start, window_seconds)
            return RateLimitResult(allowed=True, remaining=policy.times - count - 1)

    def _sweep(self, now: float) -> None:
        # each entry expires on the window it was opened with
        for k, (_, window_start, window_seconds) in list(self._store.items()):
            if now - window_start >= window_seconds:
                del self._store[k]

    def reset(self) -> None:
        with self._lock:
            self._store.clear()


# TODO: back this with Redis once the API runs on more than one instance
rate_limiter = RateLimiter(sweep_threshold=settings.RATE_LIMIT_SWEEP_THRESHOLD)


def get_rate_limiter() -> RateLimiter:
    return rate_limiter


def resolve_rate_limiter(request) -> RateLimiter:
    """Honours `app.dependency_overrides[get_rate_limiter]` like any other dependency."""
    app = getattr(request, "app", None)
    overrides = getattr(app, "dependency_overrides", None) or {}
    return overrides.get(get_rate_limiter, get_rate_limiter)()


def get_client_ip(request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client:
        return request.client.host
    return "unknown"


def enforce_rate_limit(request, policy: RateLimitPolicy, limiter: Optional[RateLimiter] = None) -> RateLimitResult:
    if limiter is None:
        limiter = resolve_rate_limiter(request)
    client_ip = get_client_ip(request)
    result = limiter.check(f"{policy.name}:{client_ip}", policy)
    if not result.allowed:
        logger.warning(f"Rate limit exceeded for {client_ip} on policy {policy.name}")
        raise RateLimited(headers={"X-RateLimit-Remaining": str(result.remaining)})
    return result


def rate_limit(policy: RateLimitPolicy, limiter: Optional[RateLimiter] = None):
    """
    Rate limiting decorator.
    Args:
        policy: window and cap to apply, keyed by client IP
        limiter: counter to use, otherwise resolved per request from the app
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            # Get client IP from request
            request = kwargs.get('request')
            if not request:
                for arg in args:
                    if hasattr(arg, 'client'):
                        request = arg
                        break

            if not request:
                return await func(*args, **kwargs)

            enforce_rate_limit(request, policy, limiter)
            return await func(*args, **kwargs)
        return wrapper
    return decorator
