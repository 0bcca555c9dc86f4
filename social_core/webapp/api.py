"""
FastAPI application for the social interaction service.
"""

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from repositories.auth_session_repo import AuthSessionRepository
from repositories.content_repo import ContentRepository
from repositories.users_repo import UsersRepository
from services.audit import AuditRecorder
from services.follow_query_service import FollowQueryService
from services.interaction_service import InteractionService
from services.notification_service import NotificationService
from services.rate_limiter import RateLimiter, build_rate_limiter
from utils.config import SocialConfig, load_config
from utils.logger import get_logger
from .responses import install_exception_handlers
from .routers import bookmarks, follows, health, likes, notifications

logger = get_logger(__name__)


def create_social_api(
    config: Optional[SocialConfig] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Service configuration (defaults to the environment)
        rate_limiter: Limiter to inject; built from config when omitted

    Returns:
        Configured FastAPI application
    """
    config = config or load_config()

    app = FastAPI(
        title="Social Interaction API",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "Retry-After",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Backend",
            "X-RateLimit-Reset",
        ],
    )

    users_repo = UsersRepository()
    content_repo = ContentRepository()
    audit = AuditRecorder()
    notification_service = NotificationService(
        users_repo=users_repo, content_repo=content_repo, base_url=config.app_base_url, audit=audit
    )

    app.state.config = config
    app.state.audit = audit
    app.state.users_repo = users_repo
    app.state.auth_session_repo = AuthSessionRepository()
    app.state.rate_limiter = rate_limiter or build_rate_limiter(config)
    app.state.notification_service = notification_service
    app.state.interaction_service = InteractionService(
        users_repo=users_repo,
        content_repo=content_repo,
        notification_service=notification_service,
        audit=audit,
    )
    app.state.follow_query_service = FollowQueryService(users_repo=users_repo, audit=audit)

    install_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(follows.router)
    app.include_router(likes.router)
    app.include_router(bookmarks.router)
    app.include_router(notifications.router)

    logger.info({
        "event": "api_created",
        "rate_limit_backend": app.state.rate_limiter.backend.name,
        "rate_limit_enabled": app.state.rate_limiter.enabled,
    })
    return app
