"""
Environment-driven configuration for the social interaction service.
"""
import os
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


@dataclass(frozen=True)
class RateLimitRule:
    """Admission limit for one action: at most max_requests per window_ms."""
    max_requests: int
    window_ms: int


# action name -> (env prefix, default max, default window ms)
RATE_LIMIT_DEFAULTS = {
    "follow": ("FOLLOW_RATE_LIMIT", 30, 60_000),
    "follow-status": ("FOLLOW_STATUS_RATE_LIMIT", 20, 60_000),
    "like": ("LIKE_RATE_LIMIT", 30, 60_000),
    "read": ("READ_RATE_LIMIT", 100, 60_000),
}


@dataclass
class SocialConfig:
    rate_limit_enabled: bool = True
    rate_limit_backend: str = "memory"  # "memory" | "database"
    rate_limits: Dict[str, RateLimitRule] = field(default_factory=dict)
    admin_ids: FrozenSet[str] = frozenset()
    app_base_url: str = ""
    cors_origins: tuple = ("http://localhost:3000", "http://localhost:5173")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def _parse_admin_ids(raw: Optional[str]) -> FrozenSet[str]:
    return frozenset(part.strip() for part in (raw or "").split(",") if part.strip())


def load_config() -> SocialConfig:
    """Build a SocialConfig from the process environment."""
    rules = {
        action: RateLimitRule(
            max_requests=_env_int(f"{prefix}_MAX", default_max),
            window_ms=_env_int(f"{prefix}_WINDOW_MS", default_window),
        )
        for action, (prefix, default_max, default_window) in RATE_LIMIT_DEFAULTS.items()
    }

    backend = (os.getenv("RATE_LIMIT_BACKEND") or "memory").strip().lower()
    if backend not in ("memory", "database"):
        raise ValueError(f"RATE_LIMIT_BACKEND must be 'memory' or 'database', got {backend!r}")

    origins = tuple(
        o.strip() for o in (os.getenv("CORS_ORIGINS") or "").split(",") if o.strip()
    ) or SocialConfig.cors_origins

    return SocialConfig(
        rate_limit_enabled=_env_bool("RATE_LIMIT_ENABLED", True),
        rate_limit_backend=backend,
        rate_limits=rules,
        admin_ids=_parse_admin_ids(os.getenv("ADMIN_IDS")),
        app_base_url=(os.getenv("APP_BASE_URL") or "").rstrip("/"),
        cors_origins=origins,
    )
