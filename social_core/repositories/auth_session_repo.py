"""
Repository for bearer session tokens issued by the auth provider.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import text

from db.postgres_db import dt_to_utc_iso, get_db_session, utc_now_iso
from utils.logger import get_logger

logger = get_logger(__name__)


class AuthSessionRepository:
    """Maps session tokens to user ids."""

    def create_session(self, user_id: str, expires_in_days: int = 7) -> str:
        """
        Create a new authentication session.

        Returns:
            The session token
        """
        token = uuid.uuid4().hex
        expires_at = dt_to_utc_iso(datetime.now(timezone.utc) + timedelta(days=expires_in_days))
        with get_db_session() as session:
            session.execute(
                text("""
                    INSERT INTO auth_sessions(token, user_id, created_at, expires_at)
                    VALUES (:token, :user_id, :created_at, :expires_at);
                """),
                {
                    "token": token,
                    "user_id": str(user_id),
                    "created_at": utc_now_iso(),
                    "expires_at": expires_at,
                },
            )
        logger.debug(f"Created auth session for user {user_id}, expires at {expires_at}")
        return token

    def get_user_id(self, token: str) -> Optional[str]:
        """Return the user id for a live token, or None if unknown or expired."""
        if not token:
            return None
        with get_db_session() as session:
            row = session.execute(
                text("""
                    SELECT user_id FROM auth_sessions
                    WHERE token = :token AND expires_at > :now
                    LIMIT 1;
                """),
                {"token": token, "now": utc_now_iso()},
            ).fetchone()
            return str(row[0]) if row else None

