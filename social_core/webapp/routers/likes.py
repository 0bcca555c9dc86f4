"""
Like endpoints for posts and activities.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from models.enums import AuditAction
from models.models import Viewer
from services.errors import SocialError
from services.interaction_service import InteractionService
from services.rate_limiter import RateLimiter
from utils.logger import get_logger
from ..dependencies import (
    audited_viewer,
    client_identifier,
    enforce_audited_rate_limit,
    enforce_rate_limit,
    get_current_viewer_optional,
    get_interaction_service,
    get_rate_limiter,
)
from ..responses import success_response
from ..schemas import (
    BatchLikeStatusRequest,
    LikerResponse,
    LikeStateResponse,
    PaginationMeta,
    ToggleLikeRequest,
)

router = APIRouter(prefix="/api", tags=["likes"])
logger = get_logger(__name__)


@router.post("/likes")
async def toggle_like(
    request: Request,
    body: ToggleLikeRequest,
    viewer: Viewer = Depends(audited_viewer(AuditAction.LIKE_TOGGLE)),
    interactions: InteractionService = Depends(get_interaction_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """
    Like or unlike a post/activity.

    Without `liked` the call flips the current state; with `liked` it sets it.
    """
    audit_action = AuditAction.LIKE_TOGGLE if body.liked is None else AuditAction.LIKE_SET
    resource = f"{body.target_type.strip().lower()}:{body.target_id}"
    limit = enforce_audited_rate_limit(request, limiter, "like", viewer, audit_action, resource)
    try:
        if body.liked is None:
            state = interactions.toggle_like(body.target_type, body.target_id, viewer.id)
        else:
            state = interactions.set_like(body.target_type, body.target_id, viewer.id, body.liked)
        return success_response(LikeStateResponse.from_state(state), headers=limit.headers())
    except SocialError:
        raise
    except Exception as e:
        logger.exception(f"Error toggling like on {body.target_type} {body.target_id}: {e}")
        raise SocialError("Failed to update like")


@router.post("/likes/status")
async def batch_like_status(
    body: BatchLikeStatusRequest,
    viewer: Optional[Viewer] = Depends(get_current_viewer_optional),
    interactions: InteractionService = Depends(get_interaction_service),
):
    try:
        statuses = interactions.get_batch_like_status(
            body.target_type, body.target_ids, viewer.id if viewer else None
        )
        return success_response({tid: LikeStateResponse.from_state(s) for tid, s in statuses.items()})
    except SocialError:
        raise
    except Exception as e:
        logger.exception(f"Error getting batch like status: {e}")
        raise SocialError("Failed to get like status")


@router.get("/likes/{target_type}/{target_id}")
async def like_status(
    target_type: str,
    target_id: str,
    viewer: Optional[Viewer] = Depends(get_current_viewer_optional),
    interactions: InteractionService = Depends(get_interaction_service),
):
    try:
        state = interactions.get_like_status(target_type, target_id, viewer.id if viewer else None)
        return success_response(LikeStateResponse.from_state(state))
    except SocialError:
        raise
    except Exception as e:
        logger.exception(f"Error getting like status of {target_type} {target_id}: {e}")
        raise SocialError("Failed to get like status")


@router.get("/likes/{target_type}/{target_id}/users")
async def list_likers(
    request: Request,
    target_type: str,
    target_id: str,
    limit: Optional[int] = Query(None),
    cursor: Optional[str] = Query(None),
    viewer: Optional[Viewer] = Depends(get_current_viewer_optional),
    interactions: InteractionService = Depends(get_interaction_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Users who liked a post/activity, newest first."""
    rate = enforce_rate_limit(limiter, "read", client_identifier(request, viewer))
    try:
        page = interactions.list_likers(target_type, target_id, cursor=cursor, limit=limit)
        return success_response(
            [LikerResponse.from_item(item) for item in page.items],
            meta={"pagination": PaginationMeta.from_info(page.pagination)},
            headers=rate.headers(),
        )
    except SocialError:
        raise
    except Exception as e:
        logger.exception(f"Error listing likers of {target_type} {target_id}: {e}")
        raise SocialError("Failed to list likes")
