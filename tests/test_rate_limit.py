"""
Fixed-window rate limiter tests.
"""
import asyncio
from types import SimpleNamespace

import pytest

from jambi.core.exceptions import RateLimited
from jambi.core.rate_limit import (
    RateLimitPolicy,
    RateLimiter,
    enforce_rate_limit,
    get_client_ip,
    get_rate_limiter,
    rate_limit,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def fake_request(headers=None, host="10.0.0.1"):
    return SimpleNamespace(headers=headers or {}, client=SimpleNamespace(host=host) if host else None)


POLICY = RateLimitPolicy("test", times=3, window_seconds=60)


class TestRateLimiter:
    def test_allows_up_to_cap_then_denies(self) -> None:
        limiter = RateLimiter(clock=FakeClock())

        remaining = [limiter.check("a", POLICY).remaining for _ in range(3)]
        assert remaining == [2, 1, 0]

        denied = limiter.check("a", POLICY)
        assert denied.allowed is False
        assert denied.remaining == 0

    def test_denied_requests_do_not_extend_count(self) -> None:
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        for _ in range(10):
            limiter.check("a", POLICY)

        clock.advance(60)
        result = limiter.check("a", POLICY)
        assert result.allowed is True
        assert result.remaining == 2

    def test_window_is_still_active_just_before_boundary(self) -> None:
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        for _ in range(3):
            limiter.check("a", POLICY)

        clock.advance(59.9)
        assert limiter.check("a", POLICY).allowed is False

    def test_keys_are_independent(self) -> None:
        limiter = RateLimiter(clock=FakeClock())
        for _ in range(3):
            limiter.check("a", POLICY)

        assert limiter.check("a", POLICY).allowed is False
        assert limiter.check("b", POLICY).allowed is True

    def test_sweep_drops_expired_windows(self) -> None:
        clock = FakeClock()
        limiter = RateLimiter(sweep_threshold=5, clock=clock)
        for i in range(6):
            limiter.check(f"ip-{i}", POLICY)
        assert len(limiter) == 6

        clock.advance(120)
        limiter.check("fresh", POLICY)
        assert len(limiter) == 1

    def test_sweep_keeps_entries_of_longer_policies(self) -> None:
        clock = FakeClock()
        limiter = RateLimiter(sweep_threshold=1, clock=clock)
        hourly = RateLimitPolicy("forms", times=2, window_seconds=3600)
        minutely = RateLimitPolicy("api", times=100, window_seconds=60)
        for _ in range(2):
            limiter.check("forms:10.0.0.1", hourly)

        clock.advance(120)
        limiter.check("api:10.0.0.2", minutely)
        limiter.check("api:10.0.0.3", minutely)

        assert limiter.check("forms:10.0.0.1", hourly).allowed is False

    def test_reset_clears_state(self) -> None:
        limiter = RateLimiter(clock=FakeClock())
        limiter.check("a", POLICY)
        limiter.reset()
        assert len(limiter) == 0


class TestClientIdentity:
    def test_prefers_first_forwarded_hop(self) -> None:
        request = fake_request({"x-forwarded-for": "203.0.113.7, 10.0.0.2", "x-real-ip": "198.51.100.1"})
        assert get_client_ip(request) == "203.0.113.7"

    def test_falls_back_to_real_ip_then_peer(self) -> None:
        assert get_client_ip(fake_request({"x-real-ip": "198.51.100.1"})) == "198.51.100.1"
        assert get_client_ip(fake_request()) == "10.0.0.1"
        assert get_client_ip(fake_request(host=None)) == "unknown"

    def test_enforce_raises_with_remaining_header(self) -> None:
        limiter = RateLimiter(clock=FakeClock())
        request = fake_request()
        for _ in range(3):
            enforce_rate_limit(request, POLICY, limiter)

        with pytest.raises(RateLimited) as exc_info:
            enforce_rate_limit(request, POLICY, limiter)
        assert exc_info.value.status_code == 429
        assert exc_info.value.headers == {"X-RateLimit-Remaining": "0"}


class TestDecorator:
    def test_uses_limiter_passed_explicitly(self) -> None:
        limiter = RateLimiter(clock=FakeClock())

        @rate_limit(POLICY, limiter=limiter)
        async def endpoint(request):
            return "ok"

        request = fake_request()
        for _ in range(3):
            assert asyncio.run(endpoint(request=request)) == "ok"
        with pytest.raises(RateLimited):
            asyncio.run(endpoint(request=request))
        assert len(limiter) == 1

    def test_resolves_limiter_from_app_overrides(self) -> None:
        limiter = RateLimiter(clock=FakeClock())
        app = SimpleNamespace(dependency_overrides={get_rate_limiter: lambda: limiter})
        request = fake_request()
        request.app = app

        @rate_limit(POLICY)
        async def endpoint(request):
            return "ok"

        asyncio.run(endpoint(request=request))
        assert len(limiter) == 1
        assert len(get_rate_limiter()) == 0
