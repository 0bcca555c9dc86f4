import json
from typing import Dict, Iterable, Optional

from sqlalchemy import bindparam, text

from db.postgres_db import get_db_session, utc_now_iso
from models.enums import ProfileVisibility, UserRole, UserStatus
from models.models import User, UserSummary
from utils.logger import get_logger

logger = get_logger(__name__)


def _parse_preferences(raw: Optional[str]) -> Dict[str, bool]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed notification_preferences: {raw!r}")
        return {}
    if not isinstance(data, dict):
        return {}
    return {str(k).upper(): bool(v) for k, v in data.items()}


def _row_to_user(row) -> User:
    m = row._mapping
    return User(
        id=str(m["id"]),
        name=m["name"],
        avatar_url=m["avatar_url"],
        role=UserRole(m["role"]),
        status=UserStatus(m["status"]),
        profile_visibility=ProfileVisibility(m["profile_visibility"]),
        notification_preferences=_parse_preferences(m["notification_preferences"]),
        created_at=m["created_at"],
        deleted_at=m["deleted_at"],
    )


class UsersRepository:
    """Read access to user profile fields the social graph depends on."""

    _COLUMNS = (
        "id, name, avatar_url, role, status, profile_visibility, "
        "notification_preferences, created_at, deleted_at"
    )

    def create_user(
        self,
        user_id: str,
        name: Optional[str] = None,
        avatar_url: Optional[str] = None,
        role: UserRole = UserRole.USER,
        status: UserStatus = UserStatus.ACTIVE,
        profile_visibility: ProfileVisibility = ProfileVisibility.PUBLIC,
        notification_preferences: Optional[Dict[str, bool]] = None,
    ) -> User:
        """Insert a user row (used by seeding and tests; profiles are owned elsewhere)."""
        now = utc_now_iso()
        prefs = json.dumps(notification_preferences) if notification_preferences else None
        with get_db_session() as session:
            session.execute(
                text("""
                    INSERT INTO users(
                        id, name, avatar_url, role, status, profile_visibility,
                        notification_preferences, created_at
                    ) VALUES (:id, :name, :avatar_url, :role, :status, :visibility, :prefs, :created_at);
                """),
                {
                    "id": str(user_id),
                    "name": name,
                    "avatar_url": avatar_url,
                    "role": role.value,
                    "status": status.value,
                    "visibility": profile_visibility.value,
                    "prefs": prefs,
                    "created_at": now,
                },
            )
        return User(
            id=str(user_id),
            name=name,
            avatar_url=avatar_url,
            role=role,
            status=status,
            profile_visibility=profile_visibility,
            notification_preferences=dict(notification_preferences or {}),
            created_at=now,
        )

    def get_user(self, user_id: str) -> Optional[User]:
        with get_db_session() as session:
            row = session.execute(
                text(f"SELECT {self._COLUMNS} FROM users WHERE id = :id LIMIT 1;"),
                {"id": str(user_id)},
            ).fetchone()
            return _row_to_user(row) if row else None

    def get_user_summaries(self, user_ids: Iterable[str]) -> Dict[str, UserSummary]:
        """Batch-load display fields for a set of users."""
        ids = list({str(u) for u in user_ids})
        if not ids:
            return {}
        stmt = text(
            "SELECT id, name, avatar_url FROM users WHERE id IN :ids;"
        ).bindparams(bindparam("ids", expanding=True))
        with get_db_session() as session:
            rows = session.execute(stmt, {"ids": ids}).fetchall()
            return {
                str(r[0]): UserSummary(id=str(r[0]), name=r[1], avatar_url=r[2])
                for r in rows
            }

    def set_status(self, user_id: str, status: UserStatus) -> bool:
        with get_db_session() as session:
            result = session.execute(
                text("UPDATE users SET status = :status WHERE id = :id;"),
                {"status": status.value, "id": str(user_id)},
            )
            return result.rowcount > 0

