import pytest
from sqlalchemy import text

from db.postgres_db import get_db_session
from repositories.rate_limit_repo import RateLimitRepository
from services.rate_limiter import DatabaseRateLimitBackend, RateLimiter
from tests.test_config import FakeClock
from utils.config import RateLimitRule


@pytest.mark.repo
def test_shared_window_counts_and_resets(social_db):
    repo = RateLimitRepository()
    assert repo.hit("follow:u", 1_000, 60_000) == (1, 61_000)
    assert repo.hit("follow:u", 2_000, 60_000) == (2, 61_000)
    assert repo.hit("follow:other", 2_000, 60_000) == (1, 62_000)
    # Window expired: counter restarts with a new reset time
    assert repo.hit("follow:u", 61_000, 60_000) == (1, 121_000)
    assert repo.purge_expired(120_000) == 1


@pytest.mark.repo
def test_database_backend_enforces_boundary(social_db):
    clock = FakeClock()
    limiter = RateLimiter(
        {"follow-status": RateLimitRule(max_requests=20, window_ms=60_000)},
        DatabaseRateLimitBackend(),
        clock=clock,
    )
    assert all(limiter.check("follow-status", "user:1").allowed for _ in range(20))
    clock.advance(30)
    rejected = limiter.check("follow-status", "user:1")
    assert not rejected.allowed
    assert rejected.backend == "database"
    assert rejected.retry_after_seconds() == 30


@pytest.mark.repo
def test_database_backend_purges_expired_windows(social_db):
    backend = DatabaseRateLimitBackend(purge_interval_ms=60_000)
    base = 1_700_000_000_000
    # 200 one-off callers, each window long expired before the next caller arrives
    for i in range(200):
        assert backend.hit(f"read:ip:10.0.0.{i}", base + i * 2_000, 1_000)[0] == 1

    with get_db_session() as session:
        rows = session.execute(text("SELECT bucket_key FROM rate_limit_windows;")).fetchall()
    # Last purge ran at i=180; only windows opened since then remain
    assert sorted(r[0] for r in rows) == sorted(f"read:ip:10.0.0.{i}" for i in range(180, 200))
