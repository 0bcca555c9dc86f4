"""
Audit trail for interaction operations.
"""

from typing import Any, Dict, Optional

from models.enums import AuditAction
from models.models import AuditEvent
from repositories.audit_repo import AuditRepository
from utils.logger import get_logger

logger = get_logger(__name__)


class AuditRecorder:
    def __init__(self, repo: Optional[AuditRepository] = None):
        self.repo = repo or AuditRepository()

    def record(
        self,
        action: AuditAction,
        actor_id: Optional[str],
        resource: Optional[str],
        success: bool,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        event = AuditEvent(
            action=action.value,
            actor_id=str(actor_id) if actor_id is not None else None,
            resource=resource,
            success=success,
            error_code=error_code,
            details=details or {},
        )
        logger.info({
            "event": "audit",
            "action": event.action,
            "actor_id": event.actor_id,
            "resource": resource,
            "success": success,
            "error_code": error_code,
        })
        try:
            self.repo.insert(event)
        except Exception as e:
            # The audited operation already completed; losing the row is logged, not raised
            logger.warning(f"Failed to persist audit event {event.action} for {resource}: {e}")
