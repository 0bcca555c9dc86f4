import os
import sys

import pytest

# Ensure social_core is importable in tests (e.g., `import services...`).
SOCIAL_CORE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "social_core"))
if SOCIAL_CORE_DIR not in sys.path:
    sys.path.insert(0, SOCIAL_CORE_DIR)


@pytest.fixture
def social_db(tmp_path, monkeypatch):
    """Fresh SQLite store with the full schema, isolated per test."""
    from db.postgres_db import reset_engine
    from db.schema import ensure_schema

    for var in ("ENVIRONMENT", "DATABASE_URL_PROD", "DATABASE_URL_STAGING"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'social.db'}")
    reset_engine()
    ensure_schema()
    yield
    reset_engine()


@pytest.fixture
def postgres_db(monkeypatch):
    """Schema on the PostgreSQL server named by TEST_DATABASE_URL; skipped when unset."""
    url = os.getenv("TEST_DATABASE_URL")
    if not url or not url.startswith("postgres"):
        pytest.skip("TEST_DATABASE_URL does not point at PostgreSQL")

    from db.postgres_db import reset_engine
    from db.schema import ensure_schema

    for var in ("ENVIRONMENT", "DATABASE_URL_PROD", "DATABASE_URL_STAGING"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("DATABASE_URL", url)
    reset_engine()
    ensure_schema()
    yield
    reset_engine()
