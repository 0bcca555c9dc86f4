"""
Bookmark endpoints.
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
    enforce_audited_rate_limit,
    get_current_viewer,
    get_interaction_service,
    get_rate_limiter,
)
from ..responses import success_response
from ..schemas import (
    BookmarkItemResponse,
    BookmarkStateResponse,
    PaginationMeta,
    ToggleBookmarkRequest,
)

router = APIRouter(prefix="/api", tags=["bookmarks"])
logger = get_logger(__name__)


@router.post("/bookmarks")
async def toggle_bookmark(
    request: Request,
    body: ToggleBookmarkRequest,
    viewer: Viewer = Depends(audited_viewer(AuditAction.BOOKMARK_TOGGLE)),
    interactions: InteractionService = Depends(get_interaction_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Bookmark or un-bookmark a post."""
    limit = enforce_audited_rate_limit(
        request, limiter, "like", viewer, AuditAction.BOOKMARK_TOGGLE, f"post:{body.post_id}"
    )
    try:
        state = interactions.toggle_bookmark(body.post_id, viewer.id)
        return success_response(BookmarkStateResponse.from_state(state), headers=limit.headers())
    except SocialError:
        raise
    except Exception as e:
        logger.exception(f"Error toggling bookmark on post {body.post_id}: {e}")
        raise SocialError("Failed to update bookmark")


@router.get("/bookmarks")
async def list_bookmarks(
    limit: Optional[int] = Query(None),
    cursor: Optional[str] = Query(None),
    viewer: Viewer = Depends(get_current_viewer),
    interactions: InteractionService = Depends(get_interaction_service),
):
    """The caller's bookmarks, newest first."""
    try:
        page = interactions.list_bookmarks(viewer.id, cursor=cursor, limit=limit)
        return success_response(
            [BookmarkItemResponse.from_item(item) for item in page.items],
            meta={"pagination": PaginationMeta.from_info(page.pagination)},
        )
    except SocialError:
        raise
    except Exception as e:
        logger.exception(f"Error listing bookmarks of user {viewer.id}: {e}")
        raise SocialError("Failed to list bookmarks")


@router.get("/bookmarks/{post_id}")
async def bookmark_status(
    post_id: str,
    viewer: Viewer = Depends(get_current_viewer),
    interactions: InteractionService = Depends(get_interaction_service),
):
    try:
        state = interactions.get_bookmark_status(post_id, viewer.id)
        return success_response(BookmarkStateResponse.from_state(state))
    except SocialError:
        raise
    except Exception as e:
        logger.exception(f"Error getting bookmark status of post {post_id}: {e}")
        raise SocialError("Failed to get bookmark status")
