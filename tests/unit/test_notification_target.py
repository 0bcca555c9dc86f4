import pytest

from models.enums import NotificationType
from models.models import (
    ActivityTarget,
    FollowerTarget,
    PostTarget,
    SystemTarget,
    build_notification_target,
    target_from_columns,
    target_to_columns,
)


@pytest.mark.unit
def test_follow_target_carries_follower():
    target = build_notification_target(NotificationType.FOLLOW, "r1", follower_id="f1")
    assert target == FollowerTarget(follower_id="f1")
    assert target_to_columns(target) == {
        "post_id": None, "activity_id": None, "follower_id": "f1", "comment_id": None,
    }


@pytest.mark.unit
def test_like_target_points_at_post_or_activity():
    assert build_notification_target(NotificationType.LIKE, "r1", post_id="p1") == PostTarget("p1")
    assert build_notification_target(NotificationType.LIKE, "r1", activity_id="a1") == ActivityTarget("a1")


@pytest.mark.unit
def test_comment_target_requires_comment_id():
    target = build_notification_target(NotificationType.COMMENT, "r1", post_id="p1", comment_id="c1")
    assert target == PostTarget(post_id="p1", comment_id="c1")
    with pytest.raises(ValueError, match="commentId"):
        build_notification_target(NotificationType.COMMENT, "r1", post_id="p1")


@pytest.mark.unit
@pytest.mark.parametrize(
    "ntype, refs",
    [
        (NotificationType.LIKE, {}),
        (NotificationType.LIKE, {"post_id": "p1", "activity_id": "a1"}),
        (NotificationType.LIKE, {"follower_id": "f1"}),
        (NotificationType.FOLLOW, {"post_id": "p1"}),
        (NotificationType.FOLLOW, {"follower_id": "f1", "post_id": "p1"}),
        (NotificationType.LIKE, {"post_id": "p1", "comment_id": "c1"}),
        (NotificationType.SYSTEM, {"post_id": "p1"}),
    ],
)
def test_invalid_reference_combinations_are_rejected(ntype, refs):
    with pytest.raises(ValueError):
        build_notification_target(ntype, "r1", **refs)


@pytest.mark.unit
def test_system_target_references_recipient_and_survives_storage():
    target = build_notification_target(NotificationType.SYSTEM, "r1")
    assert target == SystemTarget(user_id="r1")
    columns = target_to_columns(target)
    assert target_from_columns(NotificationType.SYSTEM, **columns) == target
