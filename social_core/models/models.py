from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from models.enums import (
    NotificationType,
    ProfileVisibility,
    TargetType,
    UserRole,
    UserStatus,
)

T = TypeVar("T")


@dataclass
class User:
    id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.ACTIVE
    profile_visibility: ProfileVisibility = ProfileVisibility.PUBLIC
    notification_preferences: Dict[str, bool] = field(default_factory=dict)
    created_at: Optional[str] = None
    deleted_at: Optional[str] = None

    @property
    def is_available(self) -> bool:
        """False for banned or deleted accounts, which cannot be interaction targets."""
        return self.status == UserStatus.ACTIVE and self.deleted_at is None


@dataclass
class Viewer:
    """Resolved identity of the caller, as handed over by the auth layer."""
    id: str
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.ACTIVE
    is_admin: bool = False


@dataclass
class UserSummary:
    id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None


@dataclass
class ContentTarget:
    """A likeable row (post or activity) joined with its author's status."""
    target_type: TargetType
    id: str
    author_id: str
    likes_count: int
    author_status: Optional[UserStatus] = None
    deleted_at: Optional[str] = None


@dataclass
class Follow:
    follower_id: str
    following_id: str
    created_at: str


@dataclass
class FollowResult:
    follower_id: str
    following_id: str
    created_at: str
    was_new: bool
    target_name: Optional[str] = None


@dataclass
class UnfollowResult:
    follower_id: str
    following_id: str
    was_deleted: bool


@dataclass
class FollowStatus:
    is_following: bool
    is_mutual: bool


@dataclass
class LikeState:
    is_liked: bool
    count: int


@dataclass
class BookmarkState:
    is_bookmarked: bool
    count: int


@dataclass
class FollowListItem:
    id: str
    name: Optional[str]
    avatar_url: Optional[str]
    is_mutual: bool
    followed_at: str


@dataclass
class LikerItem:
    id: str
    name: Optional[str]
    avatar_url: Optional[str]
    liked_at: str


@dataclass
class BookmarkItem:
    post_id: str
    title: Optional[str]
    bookmarked_at: str


@dataclass
class PageInfo:
    has_more: bool
    next_cursor: Optional[str] = None
    total: Optional[int] = None
    limit: Optional[int] = None


@dataclass
class Page(Generic[T]):
    items: List[T]
    pagination: PageInfo


@dataclass
class CountMismatch:
    target_type: TargetType
    target_id: str
    stored_count: int
    actual_count: int


# Notification targets: exactly one reference per notification, keyed by type.

@dataclass(frozen=True)
class PostTarget:
    post_id: str
    comment_id: Optional[str] = None


@dataclass(frozen=True)
class ActivityTarget:
    activity_id: str
    comment_id: Optional[str] = None


@dataclass(frozen=True)
class FollowerTarget:
    follower_id: str


@dataclass(frozen=True)
class SystemTarget:
    """System notices reference the recipient themself."""
    user_id: str


NotificationTarget = Union[PostTarget, ActivityTarget, FollowerTarget, SystemTarget]


def build_notification_target(
    notification_type: NotificationType,
    recipient_id: str,
    post_id: Optional[str] = None,
    activity_id: Optional[str] = None,
    follower_id: Optional[str] = None,
    comment_id: Optional[str] = None,
) -> NotificationTarget:
    """
    Build the target for a notification, enforcing the exactly-one-reference rule.

    Raises ValueError when the combination of references does not fit the type.
    """
    refs = [r for r in (post_id, activity_id, follower_id) if r]
    if notification_type == NotificationType.SYSTEM:
        if refs or comment_id:
            raise ValueError("SYSTEM notifications carry no content or follower reference")
        return SystemTarget(user_id=recipient_id)

    if len(refs) != 1:
        raise ValueError(
            f"{notification_type.value} notification needs exactly one of postId, activityId, followerId"
        )
    if comment_id and notification_type != NotificationType.COMMENT:
        raise ValueError("commentId is only allowed on COMMENT notifications")

    if notification_type == NotificationType.FOLLOW:
        if not follower_id:
            raise ValueError("FOLLOW notification needs followerId")
        return FollowerTarget(follower_id=follower_id)

    # LIKE and COMMENT point at content
    if follower_id:
        raise ValueError(f"{notification_type.value} notification needs postId or activityId")
    if notification_type == NotificationType.COMMENT and not comment_id:
        raise ValueError("COMMENT notification needs commentId")
    if post_id:
        return PostTarget(post_id=post_id, comment_id=comment_id)
    return ActivityTarget(activity_id=activity_id, comment_id=comment_id)


def target_to_columns(target: NotificationTarget) -> Dict[str, Optional[str]]:
    """Flatten a notification target into its storage columns."""
    columns: Dict[str, Optional[str]] = {
        "post_id": None,
        "activity_id": None,
        "follower_id": None,
        "comment_id": None,
    }
    if isinstance(target, PostTarget):
        columns["post_id"] = target.post_id
        columns["comment_id"] = target.comment_id
    elif isinstance(target, ActivityTarget):
        columns["activity_id"] = target.activity_id
        columns["comment_id"] = target.comment_id
    elif isinstance(target, FollowerTarget):
        columns["follower_id"] = target.follower_id
    elif isinstance(target, SystemTarget):
        columns["follower_id"] = target.user_id
    return columns


def target_from_columns(
    notification_type: NotificationType,
    post_id: Optional[str],
    activity_id: Optional[str],
    follower_id: Optional[str],
    comment_id: Optional[str],
) -> NotificationTarget:
    if notification_type == NotificationType.SYSTEM:
        return SystemTarget(user_id=follower_id)
    if notification_type == NotificationType.FOLLOW:
        return FollowerTarget(follower_id=follower_id)
    if post_id:
        return PostTarget(post_id=post_id, comment_id=comment_id)
    return ActivityTarget(activity_id=activity_id, comment_id=comment_id)


@dataclass
class Notification:
    id: str
    recipient_id: str
    actor_id: str
    type: NotificationType
    target: NotificationTarget
    created_at: str
    read_at: Optional[str] = None
    actor: Optional[UserSummary] = None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None


@dataclass
class NotificationList:
    items: List[Notification]
    pagination: PageInfo
    unread_count: int
    filtered_unread_count: int


@dataclass
class AuditEvent:
    action: str
    actor_id: Optional[str]
    resource: Optional[str]
    success: bool
    error_code: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[str] = None
