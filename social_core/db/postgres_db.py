"""
Relational store access: URL selection, a lazily built engine and the
get_db_session() transaction scope used by every repository.

PostgreSQL (psycopg2) in deployed environments; a SQLite file for local runs
and tests. Timestamps are stored as fixed-width UTC strings so that ORDER BY on
the text column is chronological.
"""

from __future__ import annotations

import os
import socket
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional
from urllib.parse import urlparse, urlunparse

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

# ENVIRONMENT value -> variable holding that environment's URL
_ENVIRONMENT_URL_VARS = {
    "production": "DATABASE_URL_PROD",
    "prod": "DATABASE_URL_PROD",
    "staging": "DATABASE_URL_STAGING",
    "stage": "DATABASE_URL_STAGING",
}

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).strftime(ISO_FORMAT)


def dt_to_utc_iso(dt: Optional[datetime]) -> Optional[str]:
    """Render a datetime in the stored format; naive values count as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(ISO_FORMAT)


def _force_ipv4_in_url(url: str) -> str:
    """Swap the host of a network URL for its IPv4 address (hosts without IPv6 routes)."""
    parsed = urlparse(url)
    host = parsed.hostname
    if not host or parsed.scheme.startswith("sqlite"):
        return url
    try:
        infos = socket.getaddrinfo(host, None, socket.AF_INET, socket.SOCK_STREAM)
    except OSError:
        return url
    if not infos or infos[0][4][0] == host:
        return url
    return urlunparse(parsed._replace(netloc=parsed.netloc.replace(host, infos[0][4][0])))


def get_database_url() -> str:
    """
    Pick the store URL for the current ENVIRONMENT.

    production/prod reads DATABASE_URL_PROD, staging/stage reads
    DATABASE_URL_STAGING; anything else, or an unset specific variable, falls
    back to DATABASE_URL.
    """
    specific = _ENVIRONMENT_URL_VARS.get(os.getenv("ENVIRONMENT", "").strip().lower())
    url = (os.getenv(specific) if specific else None) or os.getenv("DATABASE_URL")
    if not url:
        raise ValueError("No database URL found. Set DATABASE_URL_PROD, DATABASE_URL_STAGING, or DATABASE_URL")
    return _force_ipv4_in_url(url)


def _engine_options(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        # Request threads share the file; writers wait on its lock instead of failing
        return {"connect_args": {"check_same_thread": False, "timeout": 30}}
    return {
        "pool_size": int(os.getenv("DB_POOL_SIZE", "10")),
        "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "20")),
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        url = get_database_url()
        _engine = create_engine(url, echo=False, **_engine_options(url))
    return _engine


def reset_engine() -> None:
    """Dispose the cached engine so the next session reads DATABASE_URL again."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


@contextmanager
def get_db_session() -> Iterator[Session]:
    """
    One session, one transaction.

    Commits when the block exits normally; rolls back and re-raises otherwise.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)
    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
