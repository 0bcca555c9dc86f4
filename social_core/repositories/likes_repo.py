from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import bindparam, text
from sqlalchemy.orm import Session

from db.postgres_db import get_db_session, utc_now_iso
from models.cursor import CursorKey
from models.enums import TargetType
from models.models import CountMismatch, LikeState
from repositories.content_repo import TARGET_TABLES


class TargetUnavailableError(LookupError):
    """The like target vanished or was soft-deleted before the write started."""


def _lock_target(session: Session, table: str, target_id: str) -> bool:
    # A no-op write takes the row lock (and the SQLite write lock) before any read,
    # so every counter recompute for this target is serialized.
    result = session.execute(
        text(f"UPDATE {table} SET likes_count = likes_count WHERE id = :id AND deleted_at IS NULL;"),
        {"id": target_id},
    )
    return result.rowcount > 0


def _recompute_count(session: Session, table: str, target_type: TargetType, target_id: str) -> int:
    session.execute(
        text(f"""
            UPDATE {table}
            SET likes_count = (
                SELECT COUNT(*) FROM likes
                WHERE likes.target_type = :target_type AND likes.target_id = :id
            )
            WHERE id = :id;
        """),
        {"target_type": target_type.value, "id": target_id},
    )
    return int(session.execute(
        text(f"SELECT likes_count FROM {table} WHERE id = :id;"),
        {"id": target_id},
    ).scalar() or 0)


class LikesRepository:
    """Like edges plus the denormalized likes_count on posts and activities."""

    def toggle_like(self, target_type: TargetType, target_id: str, user_id: str) -> Tuple[LikeState, bool]:
        """
        Flip the like state of (user, target) and refresh the counter atomically.

        Returns the post-mutation state and whether a new like row was created.
        """
        table = TARGET_TABLES[target_type]
        params = {"author_id": str(user_id), "target_type": target_type.value, "target_id": str(target_id)}
        with get_db_session() as session:
            if not _lock_target(session, table, str(target_id)):
                raise TargetUnavailableError(f"{target_type.value} {target_id} is not available")
            deleted = session.execute(
                text("""
                    DELETE FROM likes
                    WHERE author_id = :author_id AND target_type = :target_type AND target_id = :target_id;
                """),
                params,
            ).rowcount
            created = False
            if deleted == 0:
                created = self._insert_like(session, params)
            count = _recompute_count(session, table, target_type, str(target_id))
            return LikeState(is_liked=deleted == 0, count=count), created

    def set_like(self, target_type: TargetType, target_id: str, user_id: str, liked: bool) -> Tuple[LikeState, bool]:
        """
        Converge (user, target) to the requested like state.

        Returns the resulting state and whether anything changed.
        """
        table = TARGET_TABLES[target_type]
        params = {"author_id": str(user_id), "target_type": target_type.value, "target_id": str(target_id)}
        with get_db_session() as session:
            if not _lock_target(session, table, str(target_id)):
                raise TargetUnavailableError(f"{target_type.value} {target_id} is not available")
            if liked:
                changed = self._insert_like(session, params)
            else:
                changed = session.execute(
                    text("""
                        DELETE FROM likes
                        WHERE author_id = :author_id AND target_type = :target_type AND target_id = :target_id;
                    """),
                    params,
                ).rowcount > 0
            count = _recompute_count(session, table, target_type, str(target_id))
            return LikeState(is_liked=liked, count=count), changed

    @staticmethod
    def _insert_like(session: Session, params: Dict[str, str]) -> bool:
        result = session.execute(
            text("""
                INSERT INTO likes(author_id, target_type, target_id, created_at)
                VALUES (:author_id, :target_type, :target_id, :created_at)
                ON CONFLICT (author_id, target_type, target_id) DO NOTHING;
            """),
            {**params, "created_at": utc_now_iso()},
        )
        return result.rowcount == 1

    def is_liked(self, target_type: TargetType, target_id: str, user_id: str) -> bool:
        with get_db_session() as session:
            row = session.execute(
                text("""
                    SELECT 1 FROM likes
                    WHERE author_id = :author_id AND target_type = :target_type AND target_id = :target_id
                    LIMIT 1;
                """),
                {"author_id": str(user_id), "target_type": target_type.value, "target_id": str(target_id)},
            ).fetchone()
            return bool(row)

    def liked_among(self, target_type: TargetType, target_ids: Iterable[str], user_id: str) -> Set[str]:
        ids = list({str(t) for t in target_ids})
        if not ids:
            return set()
        stmt = text("""
            SELECT target_id FROM likes
            WHERE author_id = :author_id AND target_type = :target_type AND target_id IN :ids;
        """).bindparams(bindparam("ids", expanding=True))
        with get_db_session() as session:
            rows = session.execute(
                stmt, {"author_id": str(user_id), "target_type": target_type.value, "ids": ids}
            ).fetchall()
            return {str(r[0]) for r in rows}

    def stored_counts(self, target_type: TargetType, target_ids: Iterable[str]) -> Dict[str, int]:
        ids = list({str(t) for t in target_ids})
        if not ids:
            return {}
        table = TARGET_TABLES[target_type]
        stmt = text(f"SELECT id, likes_count FROM {table} WHERE id IN :ids;").bindparams(
            bindparam("ids", expanding=True)
        )
        with get_db_session() as session:
            rows = session.execute(stmt, {"ids": ids}).fetchall()
            return {str(r[0]): int(r[1] or 0) for r in rows}

    def count_likes(self, target_type: TargetType, target_id: str) -> int:
        """Live row count, independent of the denormalized counter."""
        with get_db_session() as session:
            return int(session.execute(
                text("SELECT COUNT(*) FROM likes WHERE target_type = :target_type AND target_id = :target_id;"),
                {"target_type": target_type.value, "target_id": str(target_id)},
            ).scalar() or 0)

    def list_likers(
        self,
        target_type: TargetType,
        target_id: str,
        after: Optional[CursorKey],
        limit: int,
    ) -> List[Tuple[str, str]]:
        """(author_id, created_at) pairs, newest first, tie-broken by author id ascending."""
        params = {"target_type": target_type.value, "target_id": str(target_id), "limit": int(limit)}
        cursor_clause = ""
        if after is not None:
            cursor_clause = """
                AND (created_at < :cursor_created_at
                     OR (created_at = :cursor_created_at AND author_id > :cursor_id))
            """
            params["cursor_created_at"] = after.created_at
            params["cursor_id"] = after.id
        with get_db_session() as session:
            rows = session.execute(
                text(f"""
                    SELECT author_id, created_at FROM likes
                    WHERE target_type = :target_type AND target_id = :target_id
                    {cursor_clause}
                    ORDER BY created_at DESC, author_id ASC
                    LIMIT :limit;
                """),
                params,
            ).fetchall()
            return [(str(r[0]), r[1]) for r in rows]

    def clear_user_likes(self, user_id: str) -> int:
        """Delete every like by user_id and refresh each affected counter. Returns rows removed."""
        removed = 0
        with get_db_session() as session:
            targets = session.execute(
                text("SELECT target_type, target_id FROM likes WHERE author_id = :author_id;"),
                {"author_id": str(user_id)},
            ).fetchall()
            # Fixed lock order keeps concurrent cleanups from deadlocking each other
            for target_type_value, target_id in sorted((str(t), str(i)) for t, i in targets):
                target_type = TargetType(target_type_value)
                table = TARGET_TABLES[target_type]
                _lock_target(session, table, target_id)
                removed += session.execute(
                    text("""
                        DELETE FROM likes
                        WHERE author_id = :author_id AND target_type = :target_type AND target_id = :target_id;
                    """),
                    {"author_id": str(user_id), "target_type": target_type_value, "target_id": target_id},
                ).rowcount
                _recompute_count(session, table, target_type, target_id)
        return removed

    def find_count_mismatches(self, target_type: TargetType) -> List[CountMismatch]:
        table = TARGET_TABLES[target_type]
        with get_db_session() as session:
            rows = session.execute(
                text(f"""
                    SELECT id, likes_count, actual FROM (
                        SELECT t.id AS id, t.likes_count AS likes_count,
                               (SELECT COUNT(*) FROM likes l
                                WHERE l.target_type = :target_type AND l.target_id = t.id) AS actual
                        FROM {table} t
                    ) counted
                    WHERE likes_count <> actual
                    ORDER BY id;
                """),
                {"target_type": target_type.value},
            ).fetchall()
            return [
                CountMismatch(
                    target_type=target_type,
                    target_id=str(r[0]),
                    stored_count=int(r[1] or 0),
                    actual_count=int(r[2] or 0),
                )
                for r in rows
            ]

    def recompute_count(self, target_type: TargetType, target_id: str) -> int:
        table = TARGET_TABLES[target_type]
        with get_db_session() as session:
            session.execute(
                text(f"UPDATE {table} SET likes_count = likes_count WHERE id = :id;"),
                {"id": str(target_id)},
            )
            return _recompute_count(session, table, target_type, str(target_id))
