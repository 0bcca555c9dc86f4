from enum import Enum


class UserRole(Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class UserStatus(Enum):
    ACTIVE = "ACTIVE"
    BANNED = "BANNED"


class ProfileVisibility(Enum):
    PUBLIC = "public"
    FOLLOWERS = "followers"
    PRIVATE = "private"


class TargetType(Enum):
    POST = "post"
    ACTIVITY = "activity"


class NotificationType(Enum):
    LIKE = "LIKE"
    COMMENT = "COMMENT"
    FOLLOW = "FOLLOW"
    SYSTEM = "SYSTEM"


class AuditAction(Enum):
    USER_FOLLOW = "USER_FOLLOW"
    USER_UNFOLLOW = "USER_UNFOLLOW"
    USER_FOLLOW_LIST_VIEW = "USER_FOLLOW_LIST_VIEW"
    USER_FOLLOW_STATUS_BATCH = "USER_FOLLOW_STATUS_BATCH"
    LIKE_TOGGLE = "LIKE_TOGGLE"
    LIKE_SET = "LIKE_SET"
    BOOKMARK_TOGGLE = "BOOKMARK_TOGGLE"
    NOTIFICATIONS_MARK_READ = "NOTIFICATIONS_MARK_READ"
    LIKES_COUNT_FIX = "LIKES_COUNT_FIX"
