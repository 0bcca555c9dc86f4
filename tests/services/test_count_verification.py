import pytest
from sqlalchemy import text

from db.postgres_db import get_db_session
from models.enums import TargetType
from repositories.audit_repo import AuditRepository
from services.count_verification import CountVerificationService
from services.interaction_service import InteractionService
from tests.test_config import seed_activity, seed_post, seed_user


def _corrupt(table, target_id, value):
    with get_db_session() as session:
        session.execute(text(f"UPDATE {table} SET likes_count = :v WHERE id = :id;"), {"v": value, "id": target_id})


@pytest.mark.repo
def test_consistent_counters_report_nothing(social_db):
    author, fan = seed_user(), seed_user()
    post = seed_post(author)
    InteractionService().toggle_like("post", post, fan)

    service = CountVerificationService()
    assert service.verify_likes_count(TargetType.POST, post) is None
    assert service.verify_likes_count(TargetType.POST, "missing") is None
    assert service.verify_and_fix_counts() == {"post": 0, "activity": 0}


@pytest.mark.repo
def test_drifted_counters_are_found_and_fixed(social_db):
    author, fan = seed_user(), seed_user()
    post, activity = seed_post(author), seed_activity(author)
    InteractionService().toggle_like("activity", activity, fan)
    _corrupt("posts", post, 7)
    _corrupt("activities", activity, 0)

    service = CountVerificationService()
    mismatch = service.verify_likes_count(TargetType.POST, post)
    assert (mismatch.stored_count, mismatch.actual_count) == (7, 0)

    assert service.verify_and_fix_counts() == {"post": 1, "activity": 1}
    assert service.find_count_mismatches(TargetType.POST) == []
    assert service.find_count_mismatches(TargetType.ACTIVITY) == []
    assert InteractionService().get_like_status("activity", activity, fan).count == 1

    fixes = AuditRepository().list_events("LIKES_COUNT_FIX")
    assert {e.resource for e in fixes} == {f"post:{post}", f"activity:{activity}"}
