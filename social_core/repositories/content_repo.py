import uuid
from typing import Dict, Iterable, Optional

from sqlalchemy import bindparam, text

from db.postgres_db import get_db_session, utc_now_iso
from models.enums import TargetType, UserStatus
from models.models import ContentTarget
from utils.logger import get_logger

logger = get_logger(__name__)

# Likeable content tables; both carry a denormalized likes_count
TARGET_TABLES: Dict[TargetType, str] = {
    TargetType.POST: "posts",
    TargetType.ACTIVITY: "activities",
}


class ContentRepository:
    """Posts, activities and comments as far as the interaction layer needs them."""

    def create_post(self, author_id: str, title: Optional[str] = None, post_id: Optional[str] = None) -> str:
        post_id = post_id or str(uuid.uuid4())
        with get_db_session() as session:
            session.execute(
                text("""
                    INSERT INTO posts(id, author_id, title, likes_count, created_at)
                    VALUES (:id, :author_id, :title, 0, :created_at);
                """),
                {"id": post_id, "author_id": str(author_id), "title": title, "created_at": utc_now_iso()},
            )
        return post_id

    def create_activity(self, author_id: str, content: Optional[str] = None, activity_id: Optional[str] = None) -> str:
        activity_id = activity_id or str(uuid.uuid4())
        with get_db_session() as session:
            session.execute(
                text("""
                    INSERT INTO activities(id, author_id, content, likes_count, created_at)
                    VALUES (:id, :author_id, :content, 0, :created_at);
                """),
                {"id": activity_id, "author_id": str(author_id), "content": content, "created_at": utc_now_iso()},
            )
        return activity_id

    def create_comment(
        self,
        author_id: str,
        content: str,
        post_id: Optional[str] = None,
        activity_id: Optional[str] = None,
    ) -> str:
        if bool(post_id) == bool(activity_id):
            raise ValueError("A comment belongs to exactly one post or activity")
        comment_id = str(uuid.uuid4())
        with get_db_session() as session:
            session.execute(
                text("""
                    INSERT INTO comments(id, author_id, post_id, activity_id, content, created_at)
                    VALUES (:id, :author_id, :post_id, :activity_id, :content, :created_at);
                """),
                {
                    "id": comment_id,
                    "author_id": str(author_id),
                    "post_id": post_id,
                    "activity_id": activity_id,
                    "content": content,
                    "created_at": utc_now_iso(),
                },
            )
        return comment_id

    def get_target(self, target_type: TargetType, target_id: str) -> Optional[ContentTarget]:
        """Load a post or activity with its author's status. Soft-deleted rows are returned too."""
        table = TARGET_TABLES[target_type]
        with get_db_session() as session:
            row = session.execute(
                text(f"""
                    SELECT t.id, t.author_id, t.likes_count, t.deleted_at, u.status
                    FROM {table} t
                    LEFT JOIN users u ON u.id = t.author_id
                    WHERE t.id = :id
                    LIMIT 1;
                """),
                {"id": str(target_id)},
            ).fetchone()
            if not row:
                return None
            return ContentTarget(
                target_type=target_type,
                id=str(row[0]),
                author_id=str(row[1]),
                likes_count=int(row[2] or 0),
                deleted_at=row[3],
                author_status=UserStatus(row[4]) if row[4] else None,
            )

    def get_post_titles(self, post_ids: Iterable[str]) -> Dict[str, Optional[str]]:
        ids = list({str(p) for p in post_ids})
        if not ids:
            return {}
        stmt = text("SELECT id, title FROM posts WHERE id IN :ids;").bindparams(
            bindparam("ids", expanding=True)
        )
        with get_db_session() as session:
            rows = session.execute(stmt, {"ids": ids}).fetchall()
            return {str(r[0]): r[1] for r in rows}

    def delete_target(self, target_type: TargetType, target_id: str) -> bool:
        """
        Soft-delete a post or activity and cascade its likes.

        The row lock is taken first, then likes are removed and the counter is
        zeroed in the same transaction.
        """
        table = TARGET_TABLES[target_type]
        now = utc_now_iso()
        with get_db_session() as session:
            result = session.execute(
                text(f"UPDATE {table} SET deleted_at = :now WHERE id = :id AND deleted_at IS NULL;"),
                {"now": now, "id": str(target_id)},
            )
            if result.rowcount == 0:
                return False
            session.execute(
                text("DELETE FROM likes WHERE target_type = :target_type AND target_id = :id;"),
                {"target_type": target_type.value, "id": str(target_id)},
            )
            if target_type == TargetType.POST:
                session.execute(
                    text("DELETE FROM bookmarks WHERE post_id = :id;"),
                    {"id": str(target_id)},
                )
            session.execute(
                text(f"""
                    UPDATE {table}
                    SET likes_count = (
                        SELECT COUNT(*) FROM likes
                        WHERE likes.target_type = :target_type AND likes.target_id = :id
                    )
                    WHERE id = :id;
                """),
                {"target_type": target_type.value, "id": str(target_id)},
            )
        logger.info({"event": "content_deleted", "target_type": target_type.value, "target_id": str(target_id)})
        return True
