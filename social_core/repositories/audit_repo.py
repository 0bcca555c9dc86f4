import json
import uuid
from typing import List, Optional

from sqlalchemy import text

from db.postgres_db import get_db_session, utc_now_iso
from models.models import AuditEvent


class AuditRepository:
    """Persists audit events for interaction operations."""

    def insert(self, event: AuditEvent) -> str:
        event_id = str(uuid.uuid4())
        with get_db_session() as session:
            session.execute(
                text("""
                    INSERT INTO audit_events(id, action, actor_id, resource, success, error_code, details, created_at)
                    VALUES (:id, :action, :actor_id, :resource, :success, :error_code, :details, :created_at);
                """),
                {
                    "id": event_id,
                    "action": event.action,
                    "actor_id": event.actor_id,
                    "resource": event.resource,
                    "success": 1 if event.success else 0,
                    "error_code": event.error_code,
                    "details": json.dumps(event.details, default=str) if event.details else None,
                    "created_at": event.created_at or utc_now_iso(),
                },
            )
        return event_id

    def list_events(self, action: Optional[str] = None, limit: int = 100) -> List[AuditEvent]:
        sql = "SELECT action, actor_id, resource, success, error_code, details, created_at FROM audit_events"
        params = {"limit": int(limit)}
        if action:
            sql += " WHERE action = :action"
            params["action"] = action
        sql += " ORDER BY created_at DESC LIMIT :limit;"
        with get_db_session() as session:
            rows = session.execute(text(sql), params).fetchall()
            return [
                AuditEvent(
                    action=r[0],
                    actor_id=r[1],
                    resource=r[2],
                    success=bool(r[3]),
                    error_code=r[4],
                    details=json.loads(r[5]) if r[5] else {},
                    created_at=r[6],
                )
                for r in rows
            ]
