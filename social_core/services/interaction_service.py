"""
Idempotent mutations of the social graph: follow, like and bookmark edges.

Each public mutation touches exactly one edge inside one store transaction
and reports its outcome to the audit trail.
"""

from typing import Callable, Dict, List, Optional, TypeVar, Union

from models.enums import AuditAction, NotificationType, TargetType, UserStatus
from models.models import (
    BookmarkItem,
    BookmarkState,
    ContentTarget,
    FollowResult,
    LikerItem,
    LikeState,
    Page,
    UnfollowResult,
)
from repositories.bookmarks_repo import BookmarksRepository
from repositories.content_repo import ContentRepository
from repositories.follows_repo import FollowsRepository
from repositories.likes_repo import LikesRepository, TargetUnavailableError
from repositories.users_repo import UsersRepository
from services.audit import AuditRecorder
from services.errors import (
    LimitExceededError,
    NotFoundError,
    SelfFollowError,
    SocialError,
    TargetNotFoundError,
    ValidationError,
)
from services.notification_service import NotificationService
from services.pagination import MAX_PAGE_SIZE, clamp_limit, paginate, parse_cursor
from utils.logger import get_logger

logger = get_logger(__name__)

R = TypeVar("R")

MAX_BATCH_SIZE = 50


def parse_target_type(value: Union[str, TargetType]) -> TargetType:
    if isinstance(value, TargetType):
        return value
    try:
        return TargetType(str(value).strip().lower())
    except ValueError:
        raise ValidationError(
            f"Invalid targetType '{value}'",
            details={"targetType": value, "allowed": [t.value for t in TargetType]},
        )


class InteractionService:
    def __init__(
        self,
        follows_repo: Optional[FollowsRepository] = None,
        likes_repo: Optional[LikesRepository] = None,
        bookmarks_repo: Optional[BookmarksRepository] = None,
        users_repo: Optional[UsersRepository] = None,
        content_repo: Optional[ContentRepository] = None,
        notification_service: Optional[NotificationService] = None,
        audit: Optional[AuditRecorder] = None,
    ):
        self.follows_repo = follows_repo or FollowsRepository()
        self.likes_repo = likes_repo or LikesRepository()
        self.bookmarks_repo = bookmarks_repo or BookmarksRepository()
        self.users_repo = users_repo or UsersRepository()
        self.content_repo = content_repo or ContentRepository()
        self.notification_service = notification_service or NotificationService(
            users_repo=self.users_repo, content_repo=self.content_repo
        )
        self.audit = audit or AuditRecorder()

    def _audited(self, action: AuditAction, actor_id: str, resource: str, operation: Callable[[], R]) -> R:
        try:
            result = operation()
        except SocialError as e:
            self.audit.record(action, actor_id, resource, False, e.code, {"message": e.message})
            raise
        except Exception:
            self.audit.record(action, actor_id, resource, False, "UNKNOWN_ERROR")
            raise
        self.audit.record(action, actor_id, resource, True)
        return result

    def _fanout(self, recipient_id: str, notification_type: NotificationType, actor_id: str, **refs) -> None:
        # The edge is already committed; a failed notification must not turn it into an error
        try:
            self.notification_service.notify(recipient_id, notification_type, actor_id=actor_id, **refs)
        except Exception as e:
            logger.warning(
                f"Failed to create {notification_type.value} notification for {recipient_id} from {actor_id}: {e}"
            )

    # Follow

    def follow_user(self, follower_id: str, target_id: str) -> FollowResult:
        """
        Make follower_id follow target_id.

        Repeating the call (sequentially or concurrently) returns the stored
        edge with was_new=False and the original created_at.
        """
        follower_id, target_id = str(follower_id), str(target_id)

        def _follow() -> FollowResult:
            if follower_id == target_id:
                raise SelfFollowError("Cannot follow yourself")
            target = self.users_repo.get_user(target_id)
            if target is None or not target.is_available:
                raise TargetNotFoundError("User not found", details={"userId": target_id})

            follow, created = self.follows_repo.create_follow(follower_id, target_id)
            if created:
                logger.info({"event": "follow_created", "follower_id": follower_id, "following_id": target_id})
                self._fanout(target_id, NotificationType.FOLLOW, follower_id, follower_id=follower_id)
            return FollowResult(
                follower_id=follow.follower_id,
                following_id=follow.following_id,
                created_at=follow.created_at,
                was_new=created,
                target_name=target.name,
            )

        return self._audited(AuditAction.USER_FOLLOW, follower_id, f"user:{target_id}", _follow)

    def unfollow_user(self, follower_id: str, target_id: str) -> UnfollowResult:
        """Remove the follow edge. Removing a missing edge reports was_deleted=False."""
        follower_id, target_id = str(follower_id), str(target_id)

        def _unfollow() -> UnfollowResult:
            if follower_id == target_id:
                raise SelfFollowError("Cannot unfollow yourself")
            if self.users_repo.get_user(target_id) is None:
                raise TargetNotFoundError("User not found", details={"userId": target_id})
            deleted = self.follows_repo.delete_follow(follower_id, target_id)
            if deleted:
                logger.info({"event": "follow_deleted", "follower_id": follower_id, "following_id": target_id})
            return UnfollowResult(follower_id=follower_id, following_id=target_id, was_deleted=deleted)

        return self._audited(AuditAction.USER_UNFOLLOW, follower_id, f"user:{target_id}", _unfollow)

    # Likes

    def _likeable_target(self, target_type: TargetType, target_id: str, user_id: str) -> ContentTarget:
        content = self.content_repo.get_target(target_type, target_id)
        if content is None:
            raise NotFoundError(f"{target_type.value} not found", details={"targetId": target_id})
        if content.deleted_at is not None:
            raise ValidationError(f"{target_type.value} has been deleted", details={"targetId": target_id})
        if content.author_status == UserStatus.BANNED:
            raise ValidationError("Cannot like content of a banned user", details={"targetId": target_id})
        if target_type == TargetType.ACTIVITY and content.author_id == str(user_id):
            raise ValidationError("Cannot like your own activity", details={"targetId": target_id})
        return content

    def _like_fanout(self, content: ContentTarget, user_id: str) -> None:
        if content.author_id == str(user_id):
            return
        ref = "post_id" if content.target_type == TargetType.POST else "activity_id"
        self._fanout(content.author_id, NotificationType.LIKE, str(user_id), **{ref: content.id})

    def toggle_like(self, target_type: Union[str, TargetType], target_id: str, user_id: str) -> LikeState:
        """Flip the caller's like on a post or activity and return the new state."""
        ttype = parse_target_type(target_type)
        target_id, user_id = str(target_id), str(user_id)

        def _toggle() -> LikeState:
            content = self._likeable_target(ttype, target_id, user_id)
            try:
                state, created = self.likes_repo.toggle_like(ttype, target_id, user_id)
            except TargetUnavailableError:
                raise ValidationError(f"{ttype.value} has been deleted", details={"targetId": target_id})
            if created:
                self._like_fanout(content, user_id)
            return state

        return self._audited(AuditAction.LIKE_TOGGLE, user_id, f"{ttype.value}:{target_id}", _toggle)

    def set_like(self, target_type: Union[str, TargetType], target_id: str, user_id: str, liked: bool) -> LikeState:
        """Converge the caller's like to an explicit state; repeating it changes nothing."""
        ttype = parse_target_type(target_type)
        target_id, user_id = str(target_id), str(user_id)

        def _set() -> LikeState:
            content = self._likeable_target(ttype, target_id, user_id)
            try:
                state, changed = self.likes_repo.set_like(ttype, target_id, user_id, liked)
            except TargetUnavailableError:
                raise ValidationError(f"{ttype.value} has been deleted", details={"targetId": target_id})
            if liked and changed:
                self._like_fanout(content, user_id)
            return state

        return self._audited(AuditAction.LIKE_SET, user_id, f"{ttype.value}:{target_id}", _set)

    def ensure_liked(self, target_type: Union[str, TargetType], target_id: str, user_id: str) -> LikeState:
        return self.set_like(target_type, target_id, user_id, True)

    def ensure_unliked(self, target_type: Union[str, TargetType], target_id: str, user_id: str) -> LikeState:
        return self.set_like(target_type, target_id, user_id, False)

    def get_like_status(self, target_type: Union[str, TargetType], target_id: str, user_id: Optional[str]) -> LikeState:
        ttype = parse_target_type(target_type)
        content = self.content_repo.get_target(ttype, str(target_id))
        if content is None:
            raise NotFoundError(f"{ttype.value} not found", details={"targetId": str(target_id)})
        is_liked = bool(user_id) and self.likes_repo.is_liked(ttype, str(target_id), str(user_id))
        return LikeState(is_liked=is_liked, count=content.likes_count)

    def get_batch_like_status(
        self,
        target_type: Union[str, TargetType],
        target_ids: List[str],
        user_id: Optional[str],
    ) -> Dict[str, LikeState]:
        ttype = parse_target_type(target_type)
        ids = list(dict.fromkeys(str(t) for t in target_ids if str(t).strip()))
        if len(ids) > MAX_BATCH_SIZE:
            raise LimitExceededError(
                f"At most {MAX_BATCH_SIZE} targets per request",
                details={"max": MAX_BATCH_SIZE, "received": len(ids)},
            )
        counts = self.likes_repo.stored_counts(ttype, ids)
        liked = self.likes_repo.liked_among(ttype, ids, str(user_id)) if user_id else set()
        return {
            tid: LikeState(is_liked=tid in liked, count=counts.get(tid, 0))
            for tid in ids
        }

    def list_likers(
        self,
        target_type: Union[str, TargetType],
        target_id: str,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Page[LikerItem]:
        ttype = parse_target_type(target_type)
        content = self.content_repo.get_target(ttype, str(target_id))
        if content is None or content.deleted_at is not None:
            raise NotFoundError(f"{ttype.value} not found", details={"targetId": str(target_id)})

        page_size = clamp_limit(limit, maximum=MAX_PAGE_SIZE)
        rows = self.likes_repo.list_likers(ttype, str(target_id), parse_cursor(cursor), page_size + 1)
        page, info = paginate(rows, page_size, lambda r: (r[1], r[0]))
        users = self.users_repo.get_user_summaries(author_id for author_id, _ in page)
        items = []
        for author_id, liked_at in page:
            summary = users.get(author_id)
            items.append(LikerItem(
                id=author_id,
                name=summary.name if summary else None,
                avatar_url=summary.avatar_url if summary else None,
                liked_at=liked_at,
            ))
        return Page(items=items, pagination=info)

    def clear_user_likes(self, user_id: str) -> int:
        removed = self.likes_repo.clear_user_likes(str(user_id))
        logger.info({"event": "user_likes_cleared", "user_id": str(user_id), "removed": removed})
        return removed

    # Bookmarks

    def _bookmarkable_post(self, post_id: str) -> ContentTarget:
        post = self.content_repo.get_target(TargetType.POST, post_id)
        if post is None or post.deleted_at is not None:
            raise NotFoundError("Post not found", details={"postId": post_id})
        return post

    def toggle_bookmark(self, post_id: str, user_id: str) -> BookmarkState:
        post_id, user_id = str(post_id), str(user_id)

        def _toggle() -> BookmarkState:
            self._bookmarkable_post(post_id)
            state, _ = self.bookmarks_repo.toggle_bookmark(post_id, user_id)
            return state

        return self._audited(AuditAction.BOOKMARK_TOGGLE, user_id, f"post:{post_id}", _toggle)

    def get_bookmark_status(self, post_id: str, user_id: str) -> BookmarkState:
        self._bookmarkable_post(str(post_id))
        return self.bookmarks_repo.get_state(str(post_id), str(user_id))

    def list_bookmarks(
        self,
        user_id: str,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Page[BookmarkItem]:
        page_size = clamp_limit(limit)
        rows = self.bookmarks_repo.list_bookmarks(str(user_id), parse_cursor(cursor), page_size + 1)
        page, info = paginate(rows, page_size, lambda r: (r[1], r[0]))
        titles = self.content_repo.get_post_titles(post_id for post_id, _ in page)
        items = [
            BookmarkItem(post_id=post_id, title=titles.get(post_id), bookmarked_at=created_at)
            for post_id, created_at in page
        ]
        return Page(items=items, pagination=info)
