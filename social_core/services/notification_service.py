"""
Notification fanout and per-recipient read state.
"""

import uuid
from typing import Iterable, List, Optional, Union

from db.postgres_db import utc_now_iso
from models.enums import AuditAction, NotificationType, TargetType
from models.models import (
    ActivityTarget,
    FollowerTarget,
    Notification,
    NotificationList,
    PostTarget,
    SystemTarget,
    build_notification_target,
)
from repositories.content_repo import ContentRepository
from repositories.notifications_repo import NotificationsRepository
from repositories.users_repo import UsersRepository
from services.audit import AuditRecorder
from services.errors import ForbiddenError, NotFoundError, SocialError, ValidationError
from services.pagination import clamp_limit, paginate, parse_cursor
from utils.logger import get_logger

logger = get_logger(__name__)


def parse_notification_type(value: Union[str, NotificationType, None]) -> Optional[NotificationType]:
    """Map a caller-supplied type onto the closed enum. Matching is exact: "like" is rejected."""
    if value is None or value == "":
        return None
    if isinstance(value, NotificationType):
        return value
    try:
        return NotificationType(str(value).strip())
    except ValueError:
        allowed = ", ".join(t.value for t in NotificationType)
        raise ValidationError(
            f"Invalid notification type '{value}'",
            details={"type": value, "allowed": allowed},
        )


class NotificationService:
    def __init__(
        self,
        notifications_repo: Optional[NotificationsRepository] = None,
        users_repo: Optional[UsersRepository] = None,
        content_repo: Optional[ContentRepository] = None,
        base_url: str = "",
        audit: Optional[AuditRecorder] = None,
    ):
        self.notifications_repo = notifications_repo or NotificationsRepository()
        self.users_repo = users_repo or UsersRepository()
        self.content_repo = content_repo or ContentRepository()
        self.base_url = base_url.rstrip("/")
        self.audit = audit or AuditRecorder()

    def notify(
        self,
        recipient_id: str,
        notification_type: Union[str, NotificationType],
        actor_id: Optional[str] = None,
        post_id: Optional[str] = None,
        activity_id: Optional[str] = None,
        comment_id: Optional[str] = None,
        follower_id: Optional[str] = None,
    ) -> Optional[Notification]:
        """
        Create one notification for recipient_id.

        Returns None without raising when the event is suppressed: the
        recipient is gone, the actor is the recipient, or the recipient turned
        this type off in their notification preferences.
        """
        ntype = parse_notification_type(notification_type)
        if ntype is None:
            raise ValidationError("Notification type is required")
        if not actor_id:
            raise ValidationError("actorId is required")

        recipient_id = str(recipient_id)
        actor_id = str(actor_id)
        if ntype == NotificationType.FOLLOW and not follower_id:
            follower_id = actor_id

        try:
            target = build_notification_target(
                ntype,
                recipient_id,
                post_id=post_id,
                activity_id=activity_id,
                follower_id=follower_id,
                comment_id=comment_id,
            )
        except ValueError as e:
            raise ValidationError(str(e))

        if ntype != NotificationType.SYSTEM and actor_id == recipient_id:
            return None

        recipient = self.users_repo.get_user(recipient_id)
        if recipient is None:
            logger.info(f"Skipping {ntype.value} notification for unknown recipient {recipient_id}")
            return None
        if recipient.notification_preferences.get(ntype.value) is False:
            logger.debug(f"Recipient {recipient_id} disabled {ntype.value} notifications")
            return None

        notification = Notification(
            id=str(uuid.uuid4()),
            recipient_id=recipient_id,
            actor_id=actor_id,
            type=ntype,
            target=target,
            created_at=utc_now_iso(),
        )
        self.notifications_repo.insert(notification)
        logger.info({
            "event": "notification_created",
            "notification_id": notification.id,
            "recipient_id": recipient_id,
            "actor_id": actor_id,
            "type": ntype.value,
        })
        return notification

    def notify_comment(
        self,
        comment_id: str,
        actor_id: str,
        post_id: Optional[str] = None,
        activity_id: Optional[str] = None,
    ) -> Optional[Notification]:
        """Notify the owner of the commented post or activity."""
        if bool(post_id) == bool(activity_id):
            raise ValidationError("Exactly one of postId or activityId is required")
        target_type = TargetType.POST if post_id else TargetType.ACTIVITY
        content = self.content_repo.get_target(target_type, post_id or activity_id)
        if content is None or content.deleted_at is not None:
            raise NotFoundError(f"{target_type.value} not found")
        return self.notify(
            content.author_id,
            NotificationType.COMMENT,
            actor_id=actor_id,
            post_id=post_id,
            activity_id=activity_id,
            comment_id=comment_id,
        )

    def target_url(self, notification: Notification) -> str:
        target = notification.target
        if isinstance(target, PostTarget):
            path = f"/posts/{target.post_id}"
            if target.comment_id:
                path += f"#comment-{target.comment_id}"
        elif isinstance(target, ActivityTarget):
            path = f"/activities/{target.activity_id}"
            if target.comment_id:
                path += f"#comment-{target.comment_id}"
        elif isinstance(target, FollowerTarget):
            path = f"/users/{target.follower_id}"
        elif isinstance(target, SystemTarget):
            path = "/notifications"
        else:
            path = "/"
        return f"{self.base_url}{path}"

    def list(
        self,
        recipient_id: str,
        notification_type: Union[str, NotificationType, None] = None,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
        ids: Optional[Iterable[str]] = None,
    ) -> NotificationList:
        ntype = parse_notification_type(notification_type)
        page_size = clamp_limit(limit)
        after = parse_cursor(cursor)
        id_filter: Optional[List[str]] = None
        if ids is not None:
            id_filter = [str(i) for i in ids if str(i).strip()]
            if not id_filter:
                raise ValidationError("ids filter must not be empty")

        rows = self.notifications_repo.list_for_recipient(
            str(recipient_id), ntype, id_filter, after, page_size + 1
        )
        items, page_info = paginate(rows, page_size, lambda n: (n.created_at, n.id))

        actors = self.users_repo.get_user_summaries(n.actor_id for n in items)
        for n in items:
            n.actor = actors.get(n.actor_id)

        unread = self.notifications_repo.unread_count(str(recipient_id))
        filtered_unread = (
            self.notifications_repo.unread_count(str(recipient_id), ntype) if ntype else unread
        )
        return NotificationList(
            items=items,
            pagination=page_info,
            unread_count=unread,
            filtered_unread_count=filtered_unread,
        )

    def unread_count(self, recipient_id: str) -> int:
        return self.notifications_repo.unread_count(str(recipient_id))

    def _audited_mark(self, recipient_id: str, resource: str, mark) -> int:
        try:
            updated = mark()
        except SocialError as e:
            self.audit.record(AuditAction.NOTIFICATIONS_MARK_READ, recipient_id, resource, False, e.code)
            raise
        self.audit.record(
            AuditAction.NOTIFICATIONS_MARK_READ, recipient_id, resource, True, details={"updated": updated}
        )
        logger.info({"event": "notifications_marked_read", "recipient_id": recipient_id, "updated": updated})
        return updated

    def mark_read(self, recipient_id: str, ids: List[str]) -> int:
        """
        Mark the given notifications read for their owner.

        All-or-nothing on ownership: if any id is unknown or belongs to
        someone else, nothing is updated. Already-read rows count zero.
        """
        recipient_id = str(recipient_id)

        def _mark() -> int:
            if not isinstance(ids, list) or not ids:
                raise ValidationError("ids must be a non-empty array")
            if not all(isinstance(i, str) and i.strip() for i in ids):
                raise ValidationError("ids must contain non-empty strings")
            unique_ids = list(dict.fromkeys(i.strip() for i in ids))

            owned = self.notifications_repo.count_owned(recipient_id, unique_ids)
            if owned != len(unique_ids):
                logger.warning(
                    f"User {recipient_id} tried to mark {len(unique_ids) - owned} foreign or unknown notifications"
                )
                raise ForbiddenError("Cannot modify notifications that do not belong to you")
            return self.notifications_repo.mark_read(recipient_id, unique_ids, utc_now_iso())

        return self._audited_mark(recipient_id, f"user:{recipient_id}:notifications", _mark)

    def mark_read_single(self, recipient_id: str, notification_id: str) -> int:
        recipient_id = str(recipient_id)

        def _mark() -> int:
            notification = self.notifications_repo.get(notification_id)
            if notification is None:
                raise NotFoundError("Notification not found")
            if notification.recipient_id != recipient_id:
                raise ForbiddenError("Cannot modify notifications that do not belong to you")
            return self.notifications_repo.mark_read(recipient_id, [notification.id], utc_now_iso())

        return self._audited_mark(recipient_id, f"notification:{notification_id}", _mark)

    def mark_all_read(self, recipient_id: str) -> int:
        recipient_id = str(recipient_id)
        return self._audited_mark(
            recipient_id,
            f"user:{recipient_id}:notifications",
            lambda: self.notifications_repo.mark_all_read(recipient_id, utc_now_iso()),
        )
