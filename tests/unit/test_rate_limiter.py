import pytest

from services.rate_limiter import InMemoryRateLimitBackend, RateLimitBackend, RateLimiter
from tests.test_config import FakeClock
from utils.config import RateLimitRule


def _limiter(clock, max_requests=30, window_ms=60_000, enabled=True, backend=None):
    return RateLimiter(
        {"follow": RateLimitRule(max_requests=max_requests, window_ms=window_ms)},
        backend or InMemoryRateLimitBackend(),
        enabled=enabled,
        clock=clock,
    )


@pytest.mark.unit
def test_max_requests_within_window_are_admitted_then_rejected():
    clock = FakeClock()
    limiter = _limiter(clock)

    results = [limiter.check("follow", "user:1") for _ in range(30)]
    assert all(r.allowed for r in results)
    assert [r.remaining for r in results[:3]] == [29, 28, 27]
    assert results[-1].remaining == 0

    clock.advance(12.5)
    rejected = limiter.check("follow", "user:1")
    assert rejected.allowed is False
    assert rejected.remaining == 0
    # 47.5s left in the window, rounded up
    assert rejected.retry_after_seconds() == 48
    assert rejected.headers()["Retry-After"] == "48"


@pytest.mark.unit
def test_window_resets_after_expiry():
    clock = FakeClock()
    limiter = _limiter(clock, max_requests=2, window_ms=1_000)
    assert limiter.check("follow", "u").allowed
    assert limiter.check("follow", "u").allowed
    assert not limiter.check("follow", "u").allowed

    clock.advance(1.0)
    fresh = limiter.check("follow", "u")
    assert fresh.allowed
    assert fresh.remaining == 1


@pytest.mark.unit
def test_identifiers_and_actions_have_separate_budgets():
    clock = FakeClock()
    limiter = RateLimiter(
        {
            "follow": RateLimitRule(max_requests=1, window_ms=60_000),
            "follow-status": RateLimitRule(max_requests=1, window_ms=60_000),
        },
        InMemoryRateLimitBackend(),
        clock=clock,
    )
    assert limiter.check("follow", "a").allowed
    assert limiter.check("follow", "b").allowed
    assert limiter.check("follow-status", "a").allowed
    assert not limiter.check("follow", "a").allowed


@pytest.mark.unit
def test_retry_after_is_at_least_one_second():
    clock = FakeClock()
    limiter = _limiter(clock, max_requests=1, window_ms=60_000)
    limiter.check("follow", "u")
    clock.advance(59.999)
    assert limiter.check("follow", "u").retry_after_seconds() == 1


@pytest.mark.unit
def test_disabled_limiter_always_admits_with_full_budget():
    limiter = _limiter(FakeClock(), max_requests=1, enabled=False)
    for _ in range(5):
        result = limiter.check("follow", "u")
        assert result.allowed
        assert result.remaining == 1


@pytest.mark.unit
def test_headers_expose_backend_and_iso_reset():
    clock = FakeClock(start=1_700_000_000.0)
    result = _limiter(clock).check("follow", "u")
    headers = result.headers()
    assert headers["X-RateLimit-Limit"] == "30"
    assert headers["X-RateLimit-Remaining"] == "29"
    assert headers["X-RateLimit-Backend"] == "memory"
    assert headers["X-RateLimit-Reset"] == "2023-11-14T22:14:20.000000Z"
    assert "Retry-After" not in headers


@pytest.mark.unit
def test_unknown_action_is_a_programming_error():
    with pytest.raises(ValueError, match="No rate limit rule"):
        _limiter(FakeClock()).check("delete-everything", "u")


class _BrokenBackend(RateLimitBackend):
    name = "broken"

    def hit(self, key, now_ms, window_ms):
        raise ConnectionError("store down")


@pytest.mark.unit
def test_backend_failure_admits_instead_of_starving():
    result = _limiter(FakeClock(), backend=_BrokenBackend()).check("follow", "u")
    assert result.allowed
    assert result.backend == "broken-unavailable"
