"""
Follow graph endpoints: follow/unfollow, batch status, follower and following lists.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from models.enums import AuditAction
from models.models import Viewer
from services.errors import SocialError
from services.follow_query_service import FollowQueryService
from services.interaction_service import InteractionService
from services.rate_limiter import RateLimiter
from utils.logger import get_logger
from ..dependencies import (
    audited_viewer,
    client_identifier,
    enforce_audited_rate_limit,
    enforce_rate_limit,
    get_current_viewer_optional,
    get_follow_query_service,
    get_interaction_service,
    get_rate_limiter,
)
from ..responses import success_response
from ..schemas import (
    FollowListItemResponse,
    FollowResponse,
    FollowStatusBatchRequest,
    FollowStatusResponse,
    PaginationMeta,
    UnfollowResponse,
)

router = APIRouter(prefix="/api", tags=["follows"])
logger = get_logger(__name__)


@router.post("/users/follow/status")
async def follow_status_batch(
    request: Request,
    body: FollowStatusBatchRequest,
    viewer: Viewer = Depends(audited_viewer(AuditAction.USER_FOLLOW_STATUS_BATCH)),
    queries: FollowQueryService = Depends(get_follow_query_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """isFollowing / isMutual for up to 50 users."""
    limit = enforce_audited_rate_limit(
        request, limiter, "follow-status", viewer, AuditAction.USER_FOLLOW_STATUS_BATCH, "users:follow-status"
    )
    try:
        statuses = queries.follow_status_batch(viewer.id, body.target_ids)
        data = {
            uid: FollowStatusResponse(is_following=s.is_following, is_mutual=s.is_mutual)
            for uid, s in statuses.items()
        }
        return success_response(data, headers=limit.headers())
    except SocialError:
        raise
    except Exception as e:
        logger.exception(f"Error getting follow status for user {viewer.id}: {e}")
        raise SocialError("Failed to get follow status")


@router.post("/users/{user_id}/follow")
async def follow_user(
    request: Request,
    user_id: str,
    viewer: Viewer = Depends(audited_viewer(AuditAction.USER_FOLLOW)),
    interactions: InteractionService = Depends(get_interaction_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Follow a user. Repeating the call is safe and returns wasNew=false."""
    limit = enforce_audited_rate_limit(request, limiter, "follow", viewer, AuditAction.USER_FOLLOW, f"user:{user_id}")
    try:
        result = interactions.follow_user(viewer.id, user_id)
        return success_response(FollowResponse.from_result(result), headers=limit.headers())
    except SocialError:
        raise
    except Exception as e:
        logger.exception(f"Error following user {user_id} as {viewer.id}: {e}")
        raise SocialError("Failed to follow user")


@router.delete("/users/{user_id}/follow")
async def unfollow_user(
    request: Request,
    user_id: str,
    viewer: Viewer = Depends(audited_viewer(AuditAction.USER_UNFOLLOW)),
    interactions: InteractionService = Depends(get_interaction_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Unfollow a user. Unfollowing someone you do not follow returns wasDeleted=false."""
    limit = enforce_audited_rate_limit(request, limiter, "follow", viewer, AuditAction.USER_UNFOLLOW, f"user:{user_id}")
    try:
        result = interactions.unfollow_user(viewer.id, user_id)
        return success_response(UnfollowResponse.from_result(result), headers=limit.headers())
    except SocialError:
        raise
    except Exception as e:
        logger.exception(f"Error unfollowing user {user_id} as {viewer.id}: {e}")
        raise SocialError("Failed to unfollow user")


def _follow_list(kind: str, request: Request, user_id: str, viewer: Optional[Viewer],
                 queries: FollowQueryService, limiter: RateLimiter,
                 limit: Optional[int], cursor: Optional[str], include_total: bool):
    rate = enforce_rate_limit(limiter, "read", client_identifier(request, viewer))
    try:
        lister = queries.list_followers if kind == "followers" else queries.list_following
        page = lister(user_id, viewer, cursor=cursor, limit=limit, include_total=include_total)
        return success_response(
            [FollowListItemResponse.from_item(item) for item in page.items],
            meta={"pagination": PaginationMeta.from_info(page.pagination)},
            headers=rate.headers(),
        )
    except SocialError:
        raise
    except Exception as e:
        logger.exception(f"Error listing {kind} of user {user_id}: {e}")
        raise SocialError(f"Failed to list {kind}")


@router.get("/users/{user_id}/followers")
async def list_followers(
    request: Request,
    user_id: str,
    limit: Optional[int] = Query(None),
    cursor: Optional[str] = Query(None),
    include_total: bool = Query(False, alias="includeTotal"),
    viewer: Optional[Viewer] = Depends(get_current_viewer_optional),
    queries: FollowQueryService = Depends(get_follow_query_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Followers of a user, subject to their profile visibility."""
    return _follow_list("followers", request, user_id, viewer, queries, limiter, limit, cursor, include_total)


@router.get("/users/{user_id}/following")
async def list_following(
    request: Request,
    user_id: str,
    limit: Optional[int] = Query(None),
    cursor: Optional[str] = Query(None),
    include_total: bool = Query(False, alias="includeTotal"),
    viewer: Optional[Viewer] = Depends(get_current_viewer_optional),
    queries: FollowQueryService = Depends(get_follow_query_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Users someone follows, subject to their profile visibility."""
    return _follow_list("following", request, user_id, viewer, queries, limiter, limit, cursor, include_total)


@router.get("/users/{user_id}/follow-counts")
async def follow_counts(
    user_id: str,
    queries: FollowQueryService = Depends(get_follow_query_service),
):
    """Follower and following totals."""
    try:
        return success_response(queries.follow_counts(user_id))
    except SocialError:
        raise
    except Exception as e:
        logger.exception(f"Error counting follows of user {user_id}: {e}")
        raise SocialError("Failed to count follows")
