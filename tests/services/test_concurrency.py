from concurrent.futures import ThreadPoolExecutor

import pytest

from models.enums import NotificationType, TargetType
from repositories.follows_repo import FollowsRepository
from repositories.likes_repo import LikesRepository
from repositories.notifications_repo import NotificationsRepository
from services.interaction_service import InteractionService
from services.notification_service import NotificationService
from tests.test_config import seed_post, seed_user

WORKERS = 8


def _run_parallel(fn, args_list):
    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        return list(pool.map(lambda args: fn(*args), args_list))


@pytest.mark.concurrency
def test_concurrent_follow_creates_one_edge(social_db):
    service = InteractionService()
    fan, star = seed_user(), seed_user()

    results = _run_parallel(service.follow_user, [(fan, star)] * 10)

    assert sum(r.was_new for r in results) == 1
    assert len({r.created_at for r in results}) == 1
    assert FollowsRepository().count_followers(star) == 1
    follows = NotificationsRepository().list_for_recipient(star, NotificationType.FOLLOW, None, None, 50)
    assert len(follows) == 1


@pytest.mark.concurrency
def test_concurrent_toggles_keep_counter_exact(social_db):
    service = InteractionService()
    likes = LikesRepository()
    author = seed_user()
    post = seed_post(author)
    fans = [seed_user() for _ in range(6)]

    # Each fan toggles three times, so every fan ends up liking the post
    _run_parallel(service.toggle_like, [("post", post, fan) for fan in fans for _ in range(3)])

    stored = likes.stored_counts(TargetType.POST, [post])[post]
    assert stored == likes.count_likes(TargetType.POST, post)
    assert stored == sum(likes.is_liked(TargetType.POST, post, fan) for fan in fans)


@pytest.mark.concurrency
def test_overlapping_mark_read_counts_each_row_once(social_db):
    service = NotificationService()
    me, fan = seed_user(), seed_user()
    ids = [service.notify(me, "FOLLOW", actor_id=fan).id for _ in range(6)]
    batches = [(me, ids[:4]), (me, ids[2:]), (me, ids), (me, ids[1:3])]

    updated = _run_parallel(service.mark_read, batches)

    assert sum(updated) == len(ids)
    assert service.unread_count(me) == 0
