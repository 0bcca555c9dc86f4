import pytest

from models.enums import TargetType
from repositories.content_repo import ContentRepository
from repositories.likes_repo import LikesRepository, TargetUnavailableError
from tests.test_config import seed_activity, seed_post, seed_user


def _stored(target_type, target_id):
    return LikesRepository().stored_counts(target_type, [target_id])[target_id]


@pytest.mark.repo
def test_toggle_like_flips_state_and_counter(social_db):
    repo = LikesRepository()
    author, fan = seed_user(), seed_user()
    post = seed_post(author)

    state, created = repo.toggle_like(TargetType.POST, post, fan)
    assert (state.is_liked, state.count, created) == (True, 1, True)
    state, created = repo.toggle_like(TargetType.POST, post, fan)
    assert (state.is_liked, state.count, created) == (False, 0, False)
    assert _stored(TargetType.POST, post) == repo.count_likes(TargetType.POST, post) == 0


@pytest.mark.repo
def test_set_like_converges(social_db):
    repo = LikesRepository()
    author, fan = seed_user(), seed_user()
    activity = seed_activity(author)

    _, changed = repo.set_like(TargetType.ACTIVITY, activity, fan, True)
    assert changed is True
    state, changed = repo.set_like(TargetType.ACTIVITY, activity, fan, True)
    assert changed is False
    assert state.count == 1
    state, changed = repo.set_like(TargetType.ACTIVITY, activity, fan, False)
    assert (state.is_liked, state.count, changed) == (False, 0, True)


@pytest.mark.repo
def test_like_on_deleted_target_is_refused(social_db):
    repo = LikesRepository()
    author, fan = seed_user(), seed_user()
    post = seed_post(author)
    ContentRepository().delete_target(TargetType.POST, post)

    with pytest.raises(TargetUnavailableError):
        repo.toggle_like(TargetType.POST, post, fan)


@pytest.mark.repo
def test_deleting_target_cascades_likes_and_zeroes_counter(social_db):
    repo = LikesRepository()
    author = seed_user()
    activity = seed_activity(author)
    for _ in range(3):
        repo.toggle_like(TargetType.ACTIVITY, activity, seed_user())
    assert _stored(TargetType.ACTIVITY, activity) == 3

    assert ContentRepository().delete_target(TargetType.ACTIVITY, activity) is True
    assert repo.count_likes(TargetType.ACTIVITY, activity) == 0
    assert _stored(TargetType.ACTIVITY, activity) == 0
    assert ContentRepository().delete_target(TargetType.ACTIVITY, activity) is False


@pytest.mark.repo
def test_clear_user_likes_refreshes_every_counter(social_db):
    repo = LikesRepository()
    author, fan, other = seed_user(), seed_user(), seed_user()
    post, activity = seed_post(author), seed_activity(author)
    repo.toggle_like(TargetType.POST, post, fan)
    repo.toggle_like(TargetType.POST, post, other)
    repo.toggle_like(TargetType.ACTIVITY, activity, fan)

    assert repo.clear_user_likes(fan) == 2
    assert _stored(TargetType.POST, post) == 1
    assert _stored(TargetType.ACTIVITY, activity) == 0
    assert repo.liked_among(TargetType.POST, [post], other) == {post}


@pytest.mark.repo
def test_mismatch_detection_and_recompute(social_db):
    from sqlalchemy import text
    from db.postgres_db import get_db_session

    repo = LikesRepository()
    author, fan = seed_user(), seed_user()
    post = seed_post(author)
    repo.toggle_like(TargetType.POST, post, fan)
    with get_db_session() as session:
        session.execute(text("UPDATE posts SET likes_count = 7 WHERE id = :id"), {"id": post})

    mismatches = repo.find_count_mismatches(TargetType.POST)
    assert [(m.target_id, m.stored_count, m.actual_count) for m in mismatches] == [(post, 7, 1)]
    assert repo.recompute_count(TargetType.POST, post) == 1
    assert repo.find_count_mismatches(TargetType.POST) == []
