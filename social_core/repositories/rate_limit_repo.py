from typing import Tuple

from sqlalchemy import text

from db.postgres_db import get_db_session


class RateLimitRepository:
    """Shared fixed-window hit counters for multi-instance deployments."""

    def hit(self, bucket_key: str, now_ms: int, window_ms: int) -> Tuple[int, int]:
        """
        Record one hit on bucket_key and return (hits in current window, window reset in epoch ms).

        A window that has expired is restarted by the same upsert, so the
        read-modify-write happens inside the store.
        """
        with get_db_session() as session:
            session.execute(
                text("""
                    INSERT INTO rate_limit_windows(bucket_key, hit_count, reset_at_ms)
                    VALUES (:bucket_key, 1, :new_reset_ms)
                    ON CONFLICT (bucket_key) DO UPDATE SET
                        hit_count = CASE
                            WHEN rate_limit_windows.reset_at_ms <= :now_ms THEN 1
                            ELSE rate_limit_windows.hit_count + 1
                        END,
                        reset_at_ms = CASE
                            WHEN rate_limit_windows.reset_at_ms <= :now_ms THEN :new_reset_ms
                            ELSE rate_limit_windows.reset_at_ms
                        END;
                """),
                {"bucket_key": bucket_key, "now_ms": int(now_ms), "new_reset_ms": int(now_ms + window_ms)},
            )
            row = session.execute(
                text("SELECT hit_count, reset_at_ms FROM rate_limit_windows WHERE bucket_key = :bucket_key;"),
                {"bucket_key": bucket_key},
            ).fetchone()
            return int(row[0]), int(row[1])

    def purge_expired(self, now_ms: int) -> int:
        with get_db_session() as session:
            result = session.execute(
                text("DELETE FROM rate_limit_windows WHERE reset_at_ms <= :now_ms;"),
                {"now_ms": int(now_ms)},
            )
            return result.rowcount
