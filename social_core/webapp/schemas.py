"""
Pydantic models for API request/response schemas.

Wire names are camelCase; Python attributes stay snake_case.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from models.models import (
    BookmarkItem,
    BookmarkState,
    FollowListItem,
    FollowResult,
    LikerItem,
    LikeState,
    Notification,
    PageInfo,
    UnfollowResult,
    target_to_columns,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Requests

class FollowStatusBatchRequest(CamelModel):
    """Element types are checked by the service so bad entries map to VALIDATION_ERROR."""
    target_ids: List[Any]


class ToggleLikeRequest(CamelModel):
    target_type: str
    target_id: str
    liked: Optional[bool] = None  # explicit intent; omitted means flip


class BatchLikeStatusRequest(CamelModel):
    target_type: str
    target_ids: List[str]


class ToggleBookmarkRequest(CamelModel):
    post_id: str


class MarkReadRequest(CamelModel):
    ids: Optional[List[Any]] = None
    all: bool = False


# Responses

class FollowResponse(CamelModel):
    follower_id: str
    following_id: str
    created_at: str
    was_new: bool
    target_name: Optional[str] = None

    @classmethod
    def from_result(cls, result: FollowResult) -> "FollowResponse":
        return cls(
            follower_id=result.follower_id,
            following_id=result.following_id,
            created_at=result.created_at,
            was_new=result.was_new,
            target_name=result.target_name,
        )


class UnfollowResponse(CamelModel):
    follower_id: str
    following_id: str
    was_deleted: bool

    @classmethod
    def from_result(cls, result: UnfollowResult) -> "UnfollowResponse":
        return cls(
            follower_id=result.follower_id,
            following_id=result.following_id,
            was_deleted=result.was_deleted,
        )


class FollowStatusResponse(CamelModel):
    is_following: bool
    is_mutual: bool


class FollowListItemResponse(CamelModel):
    id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_mutual: bool
    followed_at: str

    @classmethod
    def from_item(cls, item: FollowListItem) -> "FollowListItemResponse":
        return cls(
            id=item.id,
            name=item.name,
            avatar_url=item.avatar_url,
            is_mutual=item.is_mutual,
            followed_at=item.followed_at,
        )


class PaginationMeta(CamelModel):
    has_more: bool
    next_cursor: Optional[str] = None
    total: Optional[int] = None
    limit: Optional[int] = None

    @classmethod
    def from_info(cls, info: PageInfo) -> "PaginationMeta":
        return cls(has_more=info.has_more, next_cursor=info.next_cursor, total=info.total, limit=info.limit)


class LikeStateResponse(CamelModel):
    is_liked: bool
    count: int

    @classmethod
    def from_state(cls, state: LikeState) -> "LikeStateResponse":
        return cls(is_liked=state.is_liked, count=state.count)


class LikerResponse(CamelModel):
    id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    liked_at: str

    @classmethod
    def from_item(cls, item: LikerItem) -> "LikerResponse":
        return cls(id=item.id, name=item.name, avatar_url=item.avatar_url, liked_at=item.liked_at)


class BookmarkStateResponse(CamelModel):
    is_bookmarked: bool
    count: int

    @classmethod
    def from_state(cls, state: BookmarkState) -> "BookmarkStateResponse":
        return cls(is_bookmarked=state.is_bookmarked, count=state.count)


class BookmarkItemResponse(CamelModel):
    post_id: str
    title: Optional[str] = None
    bookmarked_at: str

    @classmethod
    def from_item(cls, item: BookmarkItem) -> "BookmarkItemResponse":
        return cls(post_id=item.post_id, title=item.title, bookmarked_at=item.bookmarked_at)


class ActorResponse(CamelModel):
    id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class NotificationResponse(CamelModel):
    id: str
    type: str
    recipient_id: str
    actor_id: str
    actor: Optional[ActorResponse] = None
    post_id: Optional[str] = None
    activity_id: Optional[str] = None
    follower_id: Optional[str] = None
    comment_id: Optional[str] = None
    created_at: str
    read_at: Optional[str] = None
    target_url: str

    @classmethod
    def from_notification(cls, notification: Notification, target_url: str) -> "NotificationResponse":
        columns = target_to_columns(notification.target)
        actor = None
        if notification.actor is not None:
            actor = ActorResponse(
                id=notification.actor.id,
                name=notification.actor.name,
                avatar_url=notification.actor.avatar_url,
            )
        return cls(
            id=notification.id,
            type=notification.type.value,
            recipient_id=notification.recipient_id,
            actor_id=notification.actor_id,
            actor=actor,
            created_at=notification.created_at,
            read_at=notification.read_at,
            target_url=target_url,
            **columns,
        )


class NotificationListResponse(CamelModel):
    items: List[NotificationResponse]
    pagination: PaginationMeta
    unread_count: int
    filtered_unread_count: int


class MarkReadResponse(CamelModel):
    updated: int
    unread_count: int
