import pytest

from models.cursor import CursorKey
from repositories.follows_repo import FollowsRepository
from tests.test_config import seed_user


@pytest.mark.repo
def test_follows_repo_create_is_idempotent(social_db):
    repo = FollowsRepository()
    a, b = seed_user(), seed_user()

    first, created = repo.create_follow(a, b)
    assert created is True
    second, created_again = repo.create_follow(a, b)
    assert created_again is False
    assert second == first
    assert repo.count_followers(b) == 1

    with pytest.raises(ValueError, match="Cannot follow yourself"):
        repo.create_follow(a, a)


@pytest.mark.repo
def test_follows_repo_delete_reports_whether_edge_existed(social_db):
    repo = FollowsRepository()
    a, b = seed_user(), seed_user()
    repo.create_follow(a, b)

    assert repo.delete_follow(a, b) is True
    assert repo.delete_follow(a, b) is False
    assert repo.is_following(a, b) is False


@pytest.mark.repo
def test_follows_repo_batched_direction_lookups(social_db):
    repo = FollowsRepository()
    me, x, y, z = (seed_user() for _ in range(4))
    repo.create_follow(me, x)
    repo.create_follow(me, y)
    repo.create_follow(y, me)
    repo.create_follow(z, me)

    assert repo.following_among(me, [x, y, z]) == {x, y}
    assert repo.followers_among(me, [x, y, z]) == {y, z}
    assert repo.following_among(me, []) == set()


@pytest.mark.repo
def test_follows_repo_listing_orders_by_time_then_id(social_db, monkeypatch):
    import repositories.follows_repo as follows_module

    repo = FollowsRepository()
    target = seed_user()
    fans = [seed_user() for _ in range(3)]
    stamps = iter([
        "2025-01-01T00:00:00.000000Z",
        "2025-01-02T00:00:00.000000Z",
        "2025-01-02T00:00:00.000000Z",
    ])
    monkeypatch.setattr(follows_module, "utc_now_iso", lambda: next(stamps))
    for fan in fans:
        repo.create_follow(fan, target)

    rows = repo.list_followers(target, None, 10)
    # Same timestamp for the last two: ascending id breaks the tie
    assert [r.follower_id for r in rows] == [fans[1], fans[2], fans[0]]

    after = CursorKey(created_at=rows[0].created_at, id=rows[0].follower_id)
    assert [r.follower_id for r in repo.list_followers(target, after, 10)] == [fans[2], fans[0]]
    assert [r.following_id for r in repo.list_following(fans[0], None, 10)] == [target]
