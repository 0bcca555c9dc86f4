import pytest

from models.enums import NotificationType
from models.models import FollowerTarget, Notification, PostTarget
from repositories.notifications_repo import NotificationsRepository


def _notification(nid, recipient, created_at, ntype=NotificationType.FOLLOW, target=None):
    return Notification(
        id=nid,
        recipient_id=recipient,
        actor_id="actor",
        type=ntype,
        target=target or FollowerTarget(follower_id="actor"),
        created_at=created_at,
    )


@pytest.mark.repo
def test_listing_is_newest_first_with_id_tiebreak(social_db):
    repo = NotificationsRepository()
    repo.insert(_notification("n1", "r", "2025-01-01T00:00:00.000000Z"))
    repo.insert(_notification("n2", "r", "2025-01-02T00:00:00.000000Z"))
    repo.insert(_notification("n3", "r", "2025-01-02T00:00:00.000000Z"))
    repo.insert(_notification("x1", "someone-else", "2025-01-03T00:00:00.000000Z"))

    rows = repo.list_for_recipient("r", None, None, None, 10)
    assert [n.id for n in rows] == ["n3", "n2", "n1"]


@pytest.mark.repo
def test_type_and_id_filters(social_db):
    repo = NotificationsRepository()
    repo.insert(_notification("f1", "r", "2025-01-01T00:00:00.000000Z"))
    repo.insert(_notification(
        "l1", "r", "2025-01-02T00:00:00.000000Z", NotificationType.LIKE, PostTarget(post_id="p1"),
    ))

    likes = repo.list_for_recipient("r", NotificationType.LIKE, None, None, 10)
    assert [n.id for n in likes] == ["l1"]
    assert likes[0].target == PostTarget(post_id="p1")
    assert [n.id for n in repo.list_for_recipient("r", None, ["f1"], None, 10)] == ["f1"]
    assert repo.unread_count("r") == 2
    assert repo.unread_count("r", NotificationType.LIKE) == 1


@pytest.mark.repo
def test_mark_read_counts_each_row_once(social_db):
    repo = NotificationsRepository()
    repo.insert(_notification("n1", "r", "2025-01-01T00:00:00.000000Z"))
    repo.insert(_notification("n2", "r", "2025-01-02T00:00:00.000000Z"))

    assert repo.count_owned("r", ["n1", "n2"]) == 2
    assert repo.count_owned("other", ["n1"]) == 0
    assert repo.mark_read("r", ["n1"], "2025-02-01T00:00:00.000000Z") == 1
    assert repo.mark_read("r", ["n1", "n2"], "2025-02-02T00:00:00.000000Z") == 1
    # First read timestamp is kept
    assert repo.get("n1").read_at == "2025-02-01T00:00:00.000000Z"
    assert repo.mark_all_read("r", "2025-02-03T00:00:00.000000Z") == 0


@pytest.mark.repo
def test_storage_rejects_notifications_without_exactly_one_target(social_db):
    from sqlalchemy import text
    from sqlalchemy.exc import IntegrityError
    from db.postgres_db import get_db_session

    with pytest.raises(IntegrityError):
        with get_db_session() as session:
            session.execute(text("""
                INSERT INTO notifications(id, recipient_id, actor_id, type, post_id, activity_id, created_at)
                VALUES ('bad', 'r', 'a', 'LIKE', 'p1', 'a1', '2025-01-01T00:00:00.000000Z')
            """))
