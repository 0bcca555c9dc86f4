"""
Privacy-scoped follower/following listings and follow-status lookups.
"""

from typing import Dict, List, Optional

from models.enums import AuditAction, ProfileVisibility
from models.models import FollowListItem, FollowStatus, Page, User, Viewer
from repositories.follows_repo import FollowsRepository
from repositories.users_repo import UsersRepository
from services.audit import AuditRecorder
from services.errors import (
    ForbiddenError,
    LimitExceededError,
    NotFoundError,
    SocialError,
    ValidationError,
)
from services.pagination import clamp_limit, paginate, parse_cursor
from utils.logger import get_logger

logger = get_logger(__name__)

MAX_STATUS_BATCH = 50


def can_view_follow_lists(target: User, viewer: Optional[Viewer], viewer_follows_target: bool) -> bool:
    """
    Visibility rule for a user's follower and following lists.

    public: everyone. followers: the user, admins and their followers.
    private: the user and admins only. Anonymous viewers only see public lists.
    """
    if target.profile_visibility == ProfileVisibility.PUBLIC:
        return True
    if viewer is None:
        return False
    if viewer.is_admin or viewer.id == target.id:
        return True
    if target.profile_visibility == ProfileVisibility.FOLLOWERS:
        return viewer_follows_target
    return False


class FollowQueryService:
    def __init__(
        self,
        follows_repo: Optional[FollowsRepository] = None,
        users_repo: Optional[UsersRepository] = None,
        audit: Optional[AuditRecorder] = None,
    ):
        self.follows_repo = follows_repo or FollowsRepository()
        self.users_repo = users_repo or UsersRepository()
        self.audit = audit or AuditRecorder()

    def list_followers(
        self,
        target_id: str,
        viewer: Optional[Viewer],
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
        include_total: bool = False,
    ) -> Page[FollowListItem]:
        return self._list("followers", str(target_id), viewer, cursor, limit, include_total)

    def list_following(
        self,
        target_id: str,
        viewer: Optional[Viewer],
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
        include_total: bool = False,
    ) -> Page[FollowListItem]:
        return self._list("following", str(target_id), viewer, cursor, limit, include_total)

    def _list(
        self,
        kind: str,
        target_id: str,
        viewer: Optional[Viewer],
        cursor: Optional[str],
        limit: Optional[int],
        include_total: bool,
    ) -> Page[FollowListItem]:
        viewer_id = viewer.id if viewer else None
        resource = f"user:{target_id}:{kind}"
        try:
            page = self._load_page(kind, target_id, viewer, cursor, limit, include_total)
        except SocialError as e:
            self.audit.record(AuditAction.USER_FOLLOW_LIST_VIEW, viewer_id, resource, False, e.code)
            raise
        self.audit.record(
            AuditAction.USER_FOLLOW_LIST_VIEW, viewer_id, resource, True, details={"count": len(page.items)}
        )
        return page

    def _load_page(
        self,
        kind: str,
        target_id: str,
        viewer: Optional[Viewer],
        cursor: Optional[str],
        limit: Optional[int],
        include_total: bool,
    ) -> Page[FollowListItem]:
        target = self.users_repo.get_user(target_id)
        if target is None or target.deleted_at is not None:
            raise NotFoundError("User not found", details={"userId": target_id})

        viewer_follows = False
        if (
            viewer is not None
            and viewer.id != target.id
            and target.profile_visibility == ProfileVisibility.FOLLOWERS
        ):
            viewer_follows = self.follows_repo.is_following(viewer.id, target.id)
        if not can_view_follow_lists(target, viewer, viewer_follows):
            raise ForbiddenError(f"This user's {kind} list is not visible to you")

        page_size = clamp_limit(limit)
        after = parse_cursor(cursor)
        if kind == "followers":
            rows = self.follows_repo.list_followers(target.id, after, page_size + 1)
            page, info = paginate(rows, page_size, lambda f: (f.created_at, f.follower_id))
            other_ids = [f.follower_id for f in page]
            # Listed user follows target; mutual when target follows them back
            mutual = self.follows_repo.following_among(target.id, other_ids)
        else:
            rows = self.follows_repo.list_following(target.id, after, page_size + 1)
            page, info = paginate(rows, page_size, lambda f: (f.created_at, f.following_id))
            other_ids = [f.following_id for f in page]
            mutual = self.follows_repo.followers_among(target.id, other_ids)

        if include_total:
            info.total = (
                self.follows_repo.count_followers(target.id)
                if kind == "followers"
                else self.follows_repo.count_following(target.id)
            )

        users = self.users_repo.get_user_summaries(other_ids)
        items = []
        for follow, other_id in zip(page, other_ids):
            summary = users.get(other_id)
            items.append(FollowListItem(
                id=other_id,
                name=summary.name if summary else None,
                avatar_url=summary.avatar_url if summary else None,
                is_mutual=other_id in mutual,
                followed_at=follow.created_at,
            ))
        return Page(items=items, pagination=info)

    def follow_status_batch(self, viewer_id: str, target_ids: List[str]) -> Dict[str, FollowStatus]:
        """
        isFollowing / isMutual for up to 50 users at once.

        Ids are de-duplicated and the viewer's own id is dropped before the
        size limit is applied.
        """
        viewer_id = str(viewer_id)
        resource = "users:follow-status"
        try:
            if not isinstance(target_ids, list) or not target_ids:
                raise ValidationError("targetIds must be a non-empty array")
            if not all(isinstance(t, str) and t.strip() for t in target_ids):
                raise ValidationError("targetIds must contain non-empty strings")
            ids = [t for t in dict.fromkeys(t.strip() for t in target_ids) if t != viewer_id]
            if len(ids) > MAX_STATUS_BATCH:
                raise LimitExceededError(
                    f"At most {MAX_STATUS_BATCH} users per request",
                    details={"max": MAX_STATUS_BATCH, "received": len(ids)},
                )
            following = self.follows_repo.following_among(viewer_id, ids)
            followed_by = self.follows_repo.followers_among(viewer_id, ids)
        except SocialError as e:
            self.audit.record(AuditAction.USER_FOLLOW_STATUS_BATCH, viewer_id, resource, False, e.code)
            raise
        self.audit.record(
            AuditAction.USER_FOLLOW_STATUS_BATCH, viewer_id, resource, True, details={"count": len(ids)}
        )
        return {
            uid: FollowStatus(is_following=uid in following, is_mutual=uid in following and uid in followed_by)
            for uid in ids
        }

    def follow_counts(self, user_id: str) -> Dict[str, int]:
        user = self.users_repo.get_user(str(user_id))
        if user is None or user.deleted_at is not None:
            raise NotFoundError("User not found", details={"userId": str(user_id)})
        return {
            "followers": self.follows_repo.count_followers(user.id),
            "following": self.follows_repo.count_following(user.id),
        }
