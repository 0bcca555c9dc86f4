"""
Notification inbox endpoints: listing with unread counters and mark-read.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from models.enums import AuditAction
from models.models import Viewer
from services.errors import SocialError
from services.notification_service import NotificationService
from services.rate_limiter import RateLimiter
from utils.logger import get_logger
from ..dependencies import (
    audited_viewer,
    enforce_audited_rate_limit,
    enforce_rate_limit,
    get_current_viewer,
    get_notification_service,
    get_rate_limiter,
)
from ..responses import success_response
from ..schemas import (
    MarkReadRequest,
    MarkReadResponse,
    NotificationListResponse,
    NotificationResponse,
    PaginationMeta,
)

router = APIRouter(prefix="/api", tags=["notifications"])
logger = get_logger(__name__)


@router.get("/notifications")
async def list_notifications(
    notification_type: Optional[str] = Query(None, alias="type"),
    cursor: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
    ids: Optional[str] = Query(None, description="Comma separated notification ids"),
    viewer: Viewer = Depends(get_current_viewer),
    notifications: NotificationService = Depends(get_notification_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """The caller's notifications, newest first, with unread counters."""
    rate = enforce_rate_limit(limiter, "read", f"user:{viewer.id}")
    try:
        id_filter = [i.strip() for i in ids.split(",")] if ids is not None else None
        result = notifications.list(viewer.id, notification_type, cursor=cursor, limit=limit, ids=id_filter)
        data = NotificationListResponse(
            items=[
                NotificationResponse.from_notification(n, notifications.target_url(n))
                for n in result.items
            ],
            pagination=PaginationMeta.from_info(result.pagination),
            unread_count=result.unread_count,
            filtered_unread_count=result.filtered_unread_count,
        )
        return success_response(data, headers=rate.headers())
    except SocialError:
        raise
    except Exception as e:
        logger.exception(f"Error listing notifications for user {viewer.id}: {e}")
        raise SocialError("Failed to list notifications")


@router.get("/notifications/unread-count")
async def unread_count(
    viewer: Viewer = Depends(get_current_viewer),
    notifications: NotificationService = Depends(get_notification_service),
):
    try:
        return success_response({"unreadCount": notifications.unread_count(viewer.id)})
    except SocialError:
        raise
    except Exception as e:
        logger.exception(f"Error counting unread notifications for user {viewer.id}: {e}")
        raise SocialError("Failed to count notifications")


@router.patch("/notifications")
async def mark_notifications_read(
    request: Request,
    body: MarkReadRequest,
    viewer: Viewer = Depends(audited_viewer(AuditAction.NOTIFICATIONS_MARK_READ, active=False)),
    notifications: NotificationService = Depends(get_notification_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Mark a batch of the caller's notifications read, or all of them with {"all": true}."""
    rate = enforce_audited_rate_limit(
        request, limiter, "read", viewer, AuditAction.NOTIFICATIONS_MARK_READ, f"user:{viewer.id}:notifications"
    )
    try:
        if body.all:
            updated = notifications.mark_all_read(viewer.id)
        else:
            updated = notifications.mark_read(viewer.id, body.ids)
        data = MarkReadResponse(updated=updated, unread_count=notifications.unread_count(viewer.id))
        return success_response(data, headers=rate.headers())
    except SocialError:
        raise
    except Exception as e:
        logger.exception(f"Error marking notifications read for user {viewer.id}: {e}")
        raise SocialError("Failed to update notifications")


@router.patch("/notifications/{notification_id}")
async def mark_notification_read(
    request: Request,
    notification_id: str,
    viewer: Viewer = Depends(audited_viewer(AuditAction.NOTIFICATIONS_MARK_READ, active=False)),
    notifications: NotificationService = Depends(get_notification_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    rate = enforce_audited_rate_limit(
        request, limiter, "read", viewer, AuditAction.NOTIFICATIONS_MARK_READ, f"notification:{notification_id}"
    )
    try:
        updated = notifications.mark_read_single(viewer.id, notification_id)
        data = MarkReadResponse(updated=updated, unread_count=notifications.unread_count(viewer.id))
        return success_response(data, headers=rate.headers())
    except SocialError:
        raise
    except Exception as e:
        logger.exception(f"Error marking notification {notification_id} read: {e}")
        raise SocialError("Failed to update notification")
