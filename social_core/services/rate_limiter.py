"""
Fixed-window admission control keyed by (action, identifier).

The limiter is an injected component: routes receive it from app state and
never touch module-level counters. Two backends exist, an in-process map for
single-instance deployments and a store-backed one shared between instances.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from db.postgres_db import dt_to_utc_iso
from repositories.rate_limit_repo import RateLimitRepository
from utils.config import RateLimitRule, SocialConfig
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at_ms: int
    backend: str
    checked_at_ms: int

    @property
    def reset_at(self) -> datetime:
        return datetime.fromtimestamp(self.reset_at_ms / 1000.0, tz=timezone.utc)

    def retry_after_seconds(self) -> int:
        """Seconds until the window resets, rounded up, never less than 1."""
        return max(1, math.ceil((self.reset_at_ms - self.checked_at_ms) / 1000.0))

    def headers(self) -> Dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Backend": self.backend,
            "X-RateLimit-Reset": dt_to_utc_iso(self.reset_at),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after_seconds())
        return headers


class RateLimitBackend:
    name = "base"

    def hit(self, key: str, now_ms: int, window_ms: int) -> Tuple[int, int]:
        """Count one request for key; return (hits in the current window, reset epoch ms)."""
        raise NotImplementedError


class InMemoryRateLimitBackend(RateLimitBackend):
    """Per-process counters behind a mutex."""

    name = "memory"

    def __init__(self, max_keys: int = 10_000) -> None:
        self._windows: Dict[str, Tuple[int, int]] = {}
        self._lock = Lock()
        self.max_keys = max_keys

    def hit(self, key: str, now_ms: int, window_ms: int) -> Tuple[int, int]:
        with self._lock:
            count, reset_at_ms = self._windows.get(key, (0, 0))
            if reset_at_ms <= now_ms:
                count, reset_at_ms = 0, now_ms + window_ms
            count += 1
            self._windows[key] = (count, reset_at_ms)
            if len(self._windows) > self.max_keys:
                self._purge(now_ms)
            return count, reset_at_ms

    def _purge(self, now_ms: int) -> None:
        expired = [k for k, (_, reset) in self._windows.items() if reset <= now_ms]
        for k in expired:
            del self._windows[k]


class DatabaseRateLimitBackend(RateLimitBackend):
    """
    Counters in the shared relational store, for multi-instance deployments.

    Expired windows are deleted at most once per purge_interval_ms of this
    instance's clock, after the hit that triggers the purge.
    """

    name = "database"

    def __init__(self, repo: Optional[RateLimitRepository] = None, purge_interval_ms: int = 60_000) -> None:
        self.repo = repo or RateLimitRepository()
        self.purge_interval_ms = purge_interval_ms
        self._next_purge_ms = 0
        self._purge_lock = Lock()

    def hit(self, key: str, now_ms: int, window_ms: int) -> Tuple[int, int]:
        result = self.repo.hit(key, now_ms, window_ms)
        self._maybe_purge(now_ms)
        return result

    def _maybe_purge(self, now_ms: int) -> None:
        with self._purge_lock:
            if now_ms < self._next_purge_ms:
                return
            self._next_purge_ms = now_ms + self.purge_interval_ms
        try:
            purged = self.repo.purge_expired(now_ms)
        except Exception as e:
            # The hit is already counted; the next interval retries the purge
            logger.warning(f"Failed to purge expired rate limit windows: {e}")
            return
        if purged:
            logger.info({"event": "rate_limit_windows_purged", "count": purged})


class RateLimiter:
    def __init__(
        self,
        rules: Dict[str, RateLimitRule],
        backend: RateLimitBackend,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.rules = dict(rules)
        self.backend = backend
        self.enabled = enabled
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def check(self, action: str, identifier: str) -> RateLimitResult:
        """
        Count one request for (action, identifier) and report whether it is admitted.

        Raises ValueError for an action without a configured rule.
        """
        rule = self.rules.get(action)
        if rule is None:
            raise ValueError(f"No rate limit rule configured for action '{action}'")

        now_ms = self._now_ms()
        if not self.enabled:
            return RateLimitResult(
                allowed=True,
                limit=rule.max_requests,
                remaining=rule.max_requests,
                reset_at_ms=now_ms + rule.window_ms,
                backend=self.backend.name,
                checked_at_ms=now_ms,
            )

        key = f"{action}:{identifier}"
        try:
            count, reset_at_ms = self.backend.hit(key, now_ms, rule.window_ms)
        except Exception:
            # Admission control is best-effort; a broken backend must not starve callers
            logger.exception(f"Rate limit backend '{self.backend.name}' failed for {key}; admitting request")
            return RateLimitResult(
                allowed=True,
                limit=rule.max_requests,
                remaining=rule.max_requests,
                reset_at_ms=now_ms + rule.window_ms,
                backend=f"{self.backend.name}-unavailable",
                checked_at_ms=now_ms,
            )

        allowed = count <= rule.max_requests
        if not allowed:
            logger.info({
                "event": "rate_limited",
                "action": action,
                "identifier": identifier,
                "count": count,
                "limit": rule.max_requests,
            })
        return RateLimitResult(
            allowed=allowed,
            limit=rule.max_requests,
            remaining=max(0, rule.max_requests - count),
            reset_at_ms=reset_at_ms,
            backend=self.backend.name,
            checked_at_ms=now_ms,
        )


def build_rate_limiter(config: SocialConfig, clock: Callable[[], float] = time.time) -> RateLimiter:
    if config.rate_limit_backend == "database":
        backend: RateLimitBackend = DatabaseRateLimitBackend()
    else:
        backend = InMemoryRateLimitBackend()
    return RateLimiter(config.rate_limits, backend, enabled=config.rate_limit_enabled, clock=clock)
