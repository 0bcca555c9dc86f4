"""
Shared dependencies for FastAPI routes.
"""

from typing import Optional

from fastapi import Depends, Header, Request

from models.enums import AuditAction, UserStatus
from models.models import Viewer
from services.errors import ForbiddenError, RateLimitExceededError, SocialError, UnauthorizedError
from services.follow_query_service import FollowQueryService
from services.interaction_service import InteractionService
from services.notification_service import NotificationService
from services.rate_limiter import RateLimiter, RateLimitResult
from utils.admin_utils import is_admin
from utils.logger import get_logger

logger = get_logger(__name__)


async def get_current_viewer(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> Viewer:
    """
    Resolve the caller from a session token: Authorization: Bearer <token>.
    """
    app = request.app
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Missing authentication token")

    token = authorization[7:].strip()
    user_id = app.state.auth_session_repo.get_user_id(token)
    if not user_id:
        raise UnauthorizedError("Invalid or expired session")

    user = app.state.users_repo.get_user(user_id)
    if user is None or user.deleted_at is not None:
        raise UnauthorizedError("Session user no longer exists")

    return Viewer(
        id=user.id,
        role=user.role,
        status=user.status,
        is_admin=is_admin(user.id, user.role, app.state.config.admin_ids),
    )


async def get_current_viewer_optional(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> Optional[Viewer]:
    """Optional version of get_current_viewer that returns None if not authenticated."""
    try:
        return await get_current_viewer(request, authorization)
    except UnauthorizedError:
        return None


async def get_active_viewer(viewer: Viewer = Depends(get_current_viewer)) -> Viewer:
    """Authenticated viewer allowed to mutate the graph. Banned accounts get 403."""
    if viewer.status == UserStatus.BANNED:
        raise ForbiddenError("Your account is suspended")
    return viewer


def get_interaction_service(request: Request) -> InteractionService:
    return request.app.state.interaction_service


def get_follow_query_service(request: Request) -> FollowQueryService:
    return request.app.state.follow_query_service


def get_notification_service(request: Request) -> NotificationService:
    return request.app.state.notification_service


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def client_identifier(request: Request, viewer: Optional[Viewer]) -> str:
    if viewer is not None:
        return f"user:{viewer.id}"
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    host = request.client.host if request.client else "unknown"
    return f"ip:{host}"


def enforce_rate_limit(limiter: RateLimiter, action: str, identifier: str) -> RateLimitResult:
    """Check the limiter and raise RATE_LIMIT_EXCEEDED (429) when the caller is over budget."""
    result = limiter.check(action, identifier)
    if not result.allowed:
        raise RateLimitExceededError(result)
    return result


def audited_viewer(action: AuditAction, active: bool = True):
    """
    get_active_viewer (get_current_viewer when active=False) for an audited mutation.

    Missing or invalid sessions (401) and, when active, banned accounts (403) are recorded
    under `action` with success=False before the error propagates. The
    resource is the request path since the body is not parsed yet.
    """

    async def _dependency(request: Request, authorization: Optional[str] = Header(None)) -> Viewer:
        viewer: Optional[Viewer] = None
        try:
            viewer = await get_current_viewer(request, authorization)
            return await get_active_viewer(viewer) if active else viewer
        except SocialError as e:
            request.app.state.audit.record(
                action, viewer.id if viewer else None, request.url.path, False, e.code
            )
            raise

    return _dependency


def enforce_audited_rate_limit(
    request: Request,
    limiter: RateLimiter,
    action: str,
    viewer: Viewer,
    audit_action: AuditAction,
    resource: str,
) -> RateLimitResult:
    """enforce_rate_limit for a viewer's mutation; a 429 is audited as a failed `audit_action`."""
    try:
        return enforce_rate_limit(limiter, action, f"user:{viewer.id}")
    except RateLimitExceededError as e:
        request.app.state.audit.record(
            audit_action,
            viewer.id,
            resource,
            False,
            e.code,
            {"rateLimited": True, "backend": e.result.backend},
        )
        raise
