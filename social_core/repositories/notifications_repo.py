from typing import List, Optional, Sequence

from sqlalchemy import bindparam, text

from db.postgres_db import get_db_session
from models.cursor import CursorKey
from models.enums import NotificationType
from models.models import Notification, target_from_columns, target_to_columns

_COLUMNS = (
    "id, recipient_id, actor_id, type, post_id, activity_id, follower_id, "
    "comment_id, created_at, read_at"
)


def _row_to_notification(row) -> Notification:
    m = row._mapping
    notification_type = NotificationType(m["type"])
    return Notification(
        id=str(m["id"]),
        recipient_id=str(m["recipient_id"]),
        actor_id=str(m["actor_id"]),
        type=notification_type,
        target=target_from_columns(
            notification_type,
            m["post_id"],
            m["activity_id"],
            m["follower_id"],
            m["comment_id"],
        ),
        created_at=m["created_at"],
        read_at=m["read_at"],
    )


class NotificationsRepository:
    """Append-mostly notification ledger keyed by recipient."""

    def insert(self, notification: Notification) -> None:
        columns = target_to_columns(notification.target)
        with get_db_session() as session:
            session.execute(
                text("""
                    INSERT INTO notifications(
                        id, recipient_id, actor_id, type, post_id, activity_id,
                        follower_id, comment_id, created_at, read_at
                    ) VALUES (
                        :id, :recipient_id, :actor_id, :type, :post_id, :activity_id,
                        :follower_id, :comment_id, :created_at, NULL
                    );
                """),
                {
                    "id": notification.id,
                    "recipient_id": notification.recipient_id,
                    "actor_id": notification.actor_id,
                    "type": notification.type.value,
                    "created_at": notification.created_at,
                    **columns,
                },
            )

    def get(self, notification_id: str) -> Optional[Notification]:
        with get_db_session() as session:
            row = session.execute(
                text(f"SELECT {_COLUMNS} FROM notifications WHERE id = :id LIMIT 1;"),
                {"id": str(notification_id)},
            ).fetchone()
            return _row_to_notification(row) if row else None

    def list_for_recipient(
        self,
        recipient_id: str,
        notification_type: Optional[NotificationType],
        ids: Optional[Sequence[str]],
        after: Optional[CursorKey],
        limit: int,
    ) -> List[Notification]:
        """Newest first, tie-broken by id descending."""
        clauses = ["recipient_id = :recipient_id"]
        params = {"recipient_id": str(recipient_id), "limit": int(limit)}
        expanding = []
        if notification_type is not None:
            clauses.append("type = :type")
            params["type"] = notification_type.value
        if ids:
            clauses.append("id IN :ids")
            params["ids"] = list(ids)
            expanding.append(bindparam("ids", expanding=True))
        if after is not None:
            clauses.append(
                "(created_at < :cursor_created_at OR (created_at = :cursor_created_at AND id < :cursor_id))"
            )
            params["cursor_created_at"] = after.created_at
            params["cursor_id"] = after.id

        stmt = text(f"""
            SELECT {_COLUMNS} FROM notifications
            WHERE {" AND ".join(clauses)}
            ORDER BY created_at DESC, id DESC
            LIMIT :limit;
        """)
        if expanding:
            stmt = stmt.bindparams(*expanding)
        with get_db_session() as session:
            rows = session.execute(stmt, params).fetchall()
            return [_row_to_notification(r) for r in rows]

    def unread_count(self, recipient_id: str, notification_type: Optional[NotificationType] = None) -> int:
        sql = "SELECT COUNT(*) FROM notifications WHERE recipient_id = :recipient_id AND read_at IS NULL"
        params = {"recipient_id": str(recipient_id)}
        if notification_type is not None:
            sql += " AND type = :type"
            params["type"] = notification_type.value
        with get_db_session() as session:
            return int(session.execute(text(sql + ";"), params).scalar() or 0)

    def count_owned(self, recipient_id: str, ids: Sequence[str]) -> int:
        """How many of ids exist and belong to recipient_id."""
        if not ids:
            return 0
        stmt = text("""
            SELECT COUNT(*) FROM notifications
            WHERE recipient_id = :recipient_id AND id IN :ids;
        """).bindparams(bindparam("ids", expanding=True))
        with get_db_session() as session:
            return int(session.execute(stmt, {"recipient_id": str(recipient_id), "ids": list(ids)}).scalar() or 0)

    def mark_read(self, recipient_id: str, ids: Sequence[str], read_at: str) -> int:
        """
        Set read_at on the unread rows among ids owned by recipient_id.

        Rows that are already read are not touched, so each row is counted at
        most once across any number of concurrent calls.
        """
        if not ids:
            return 0
        stmt = text("""
            UPDATE notifications SET read_at = :read_at
            WHERE recipient_id = :recipient_id AND id IN :ids AND read_at IS NULL;
        """).bindparams(bindparam("ids", expanding=True))
        with get_db_session() as session:
            result = session.execute(
                stmt, {"read_at": read_at, "recipient_id": str(recipient_id), "ids": list(ids)}
            )
            return result.rowcount

    def mark_all_read(self, recipient_id: str, read_at: str) -> int:
        with get_db_session() as session:
            result = session.execute(
                text("""
                    UPDATE notifications SET read_at = :read_at
                    WHERE recipient_id = :recipient_id AND read_at IS NULL;
                """),
                {"read_at": read_at, "recipient_id": str(recipient_id)},
            )
            return result.rowcount
