"""
Error taxonomy for social interaction operations.

Services raise these; the HTTP facade turns them into error envelopes.
"""

from typing import Any, Dict, Optional


class SocialError(Exception):
    code = "UNKNOWN_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        if code:
            self.code = code


class ValidationError(SocialError):
    code = "VALIDATION_ERROR"
    status_code = 400


class SelfFollowError(ValidationError):
    code = "SELF_FOLLOW"


class UnauthorizedError(SocialError):
    code = "UNAUTHORIZED"
    status_code = 401


class ForbiddenError(SocialError):
    code = "FORBIDDEN"
    status_code = 403


class NotFoundError(SocialError):
    code = "NOT_FOUND"
    status_code = 404


class TargetNotFoundError(NotFoundError):
    code = "TARGET_NOT_FOUND"


class LimitExceededError(SocialError):
    """Request shape exceeds a hard limit (e.g. batch size)."""
    code = "LIMIT_EXCEEDED"
    status_code = 429


class RateLimitExceededError(SocialError):
    code = "RATE_LIMIT_EXCEEDED"
    status_code = 429

    def __init__(self, result, message: str = "Too many requests, please try again later"):
        self.result = result
        super().__init__(message, details={"retryAfter": result.retry_after_seconds()})
