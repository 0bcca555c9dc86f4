from typing import Iterable, List, Optional, Set, Tuple

from sqlalchemy import bindparam, text

from db.postgres_db import get_db_session, utc_now_iso
from models.cursor import CursorKey
from models.models import Follow


def _row_to_follow(row) -> Follow:
    return Follow(follower_id=str(row[0]), following_id=str(row[1]), created_at=row[2])


class FollowsRepository:
    """Repository for user follow edges."""

    def create_follow(self, follower_id: str, following_id: str) -> Tuple[Follow, bool]:
        """
        Create a follow edge if it does not exist yet.

        Returns the stored edge and whether this call created it. A concurrent
        duplicate insert resolves through the unique constraint and yields the
        already stored row with created=False.
        """
        follower = str(follower_id)
        following = str(following_id)
        if follower == following:
            raise ValueError("Cannot follow yourself")

        with get_db_session() as session:
            result = session.execute(
                text("""
                    INSERT INTO follows(follower_id, following_id, created_at)
                    VALUES (:follower_id, :following_id, :created_at)
                    ON CONFLICT (follower_id, following_id) DO NOTHING;
                """),
                {"follower_id": follower, "following_id": following, "created_at": utc_now_iso()},
            )
            created = result.rowcount == 1
            row = session.execute(
                text("""
                    SELECT follower_id, following_id, created_at FROM follows
                    WHERE follower_id = :follower_id AND following_id = :following_id
                    LIMIT 1;
                """),
                {"follower_id": follower, "following_id": following},
            ).fetchone()
            return _row_to_follow(row), created

    def delete_follow(self, follower_id: str, following_id: str) -> bool:
        """Remove a follow edge. Returns False if there was none."""
        with get_db_session() as session:
            result = session.execute(
                text("""
                    DELETE FROM follows
                    WHERE follower_id = :follower_id AND following_id = :following_id;
                """),
                {"follower_id": str(follower_id), "following_id": str(following_id)},
            )
            return result.rowcount > 0

    def get_follow(self, follower_id: str, following_id: str) -> Optional[Follow]:
        with get_db_session() as session:
            row = session.execute(
                text("""
                    SELECT follower_id, following_id, created_at FROM follows
                    WHERE follower_id = :follower_id AND following_id = :following_id
                    LIMIT 1;
                """),
                {"follower_id": str(follower_id), "following_id": str(following_id)},
            ).fetchone()
            return _row_to_follow(row) if row else None

    def is_following(self, follower_id: str, following_id: str) -> bool:
        return self.get_follow(follower_id, following_id) is not None

    def following_among(self, follower_id: str, candidate_ids: Iterable[str]) -> Set[str]:
        """Return the subset of candidate_ids that follower_id follows (one query)."""
        ids = list({str(c) for c in candidate_ids})
        if not ids:
            return set()
        stmt = text("""
            SELECT following_id FROM follows
            WHERE follower_id = :follower_id AND following_id IN :ids;
        """).bindparams(bindparam("ids", expanding=True))
        with get_db_session() as session:
            rows = session.execute(stmt, {"follower_id": str(follower_id), "ids": ids}).fetchall()
            return {str(r[0]) for r in rows}

    def followers_among(self, following_id: str, candidate_ids: Iterable[str]) -> Set[str]:
        """Return the subset of candidate_ids that follow following_id (one query)."""
        ids = list({str(c) for c in candidate_ids})
        if not ids:
            return set()
        stmt = text("""
            SELECT follower_id FROM follows
            WHERE following_id = :following_id AND follower_id IN :ids;
        """).bindparams(bindparam("ids", expanding=True))
        with get_db_session() as session:
            rows = session.execute(stmt, {"following_id": str(following_id), "ids": ids}).fetchall()
            return {str(r[0]) for r in rows}

    def list_followers(self, user_id: str, after: Optional[CursorKey], limit: int) -> List[Follow]:
        """Followers of user_id, newest first, tie-broken by follower id ascending."""
        return self._list_edges("following_id", "follower_id", user_id, after, limit)

    def list_following(self, user_id: str, after: Optional[CursorKey], limit: int) -> List[Follow]:
        """Users that user_id follows, newest first, tie-broken by followed id ascending."""
        return self._list_edges("follower_id", "following_id", user_id, after, limit)

    def _list_edges(
        self,
        anchor_column: str,
        other_column: str,
        user_id: str,
        after: Optional[CursorKey],
        limit: int,
    ) -> List[Follow]:
        params = {"user_id": str(user_id), "limit": int(limit)}
        cursor_clause = ""
        if after is not None:
            cursor_clause = f"""
                AND (created_at < :cursor_created_at
                     OR (created_at = :cursor_created_at AND {other_column} > :cursor_id))
            """
            params["cursor_created_at"] = after.created_at
            params["cursor_id"] = after.id
        with get_db_session() as session:
            rows = session.execute(
                text(f"""
                    SELECT follower_id, following_id, created_at FROM follows
                    WHERE {anchor_column} = :user_id
                    {cursor_clause}
                    ORDER BY created_at DESC, {other_column} ASC
                    LIMIT :limit;
                """),
                params,
            ).fetchall()
            return [_row_to_follow(r) for r in rows]

    def count_followers(self, user_id: str) -> int:
        with get_db_session() as session:
            return int(session.execute(
                text("SELECT COUNT(*) FROM follows WHERE following_id = :user_id;"),
                {"user_id": str(user_id)},
            ).scalar() or 0)

    def count_following(self, user_id: str) -> int:
        with get_db_session() as session:
            return int(session.execute(
                text("SELECT COUNT(*) FROM follows WHERE follower_id = :user_id;"),
                {"user_id": str(user_id)},
            ).scalar() or 0)
