from typing import List, Optional, Tuple

from sqlalchemy import text

from db.postgres_db import get_db_session, utc_now_iso
from models.cursor import CursorKey
from models.models import BookmarkState


class BookmarksRepository:
    """Repository for (user, post) bookmark edges."""

    def toggle_bookmark(self, post_id: str, user_id: str) -> Tuple[BookmarkState, bool]:
        """Flip the bookmark of user_id on post_id. Returns the new state and whether a row was created."""
        params = {"user_id": str(user_id), "post_id": str(post_id)}
        with get_db_session() as session:
            deleted = session.execute(
                text("DELETE FROM bookmarks WHERE user_id = :user_id AND post_id = :post_id;"),
                params,
            ).rowcount
            created = False
            if deleted == 0:
                created = session.execute(
                    text("""
                        INSERT INTO bookmarks(user_id, post_id, created_at)
                        VALUES (:user_id, :post_id, :created_at)
                        ON CONFLICT (user_id, post_id) DO NOTHING;
                    """),
                    {**params, "created_at": utc_now_iso()},
                ).rowcount == 1
            count = int(session.execute(
                text("SELECT COUNT(*) FROM bookmarks WHERE post_id = :post_id;"),
                {"post_id": str(post_id)},
            ).scalar() or 0)
            return BookmarkState(is_bookmarked=deleted == 0, count=count), created

    def get_state(self, post_id: str, user_id: str) -> BookmarkState:
        with get_db_session() as session:
            row = session.execute(
                text("SELECT 1 FROM bookmarks WHERE user_id = :user_id AND post_id = :post_id LIMIT 1;"),
                {"user_id": str(user_id), "post_id": str(post_id)},
            ).fetchone()
            count = int(session.execute(
                text("SELECT COUNT(*) FROM bookmarks WHERE post_id = :post_id;"),
                {"post_id": str(post_id)},
            ).scalar() or 0)
            return BookmarkState(is_bookmarked=bool(row), count=count)

    def list_bookmarks(self, user_id: str, after: Optional[CursorKey], limit: int) -> List[Tuple[str, str]]:
        """(post_id, created_at) pairs, newest first, tie-broken by post id ascending."""
        params = {"user_id": str(user_id), "limit": int(limit)}
        cursor_clause = ""
        if after is not None:
            cursor_clause = """
                AND (created_at < :cursor_created_at
                     OR (created_at = :cursor_created_at AND post_id > :cursor_id))
            """
            params["cursor_created_at"] = after.created_at
            params["cursor_id"] = after.id
        with get_db_session() as session:
            rows = session.execute(
                text(f"""
                    SELECT post_id, created_at FROM bookmarks
                    WHERE user_id = :user_id
                    {cursor_clause}
                    ORDER BY created_at DESC, post_id ASC
                    LIMIT :limit;
                """),
                params,
            ).fetchall()
            return [(str(r[0]), r[1]) for r in rows]

