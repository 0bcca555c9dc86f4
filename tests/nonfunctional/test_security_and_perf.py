import pytest

from repositories.likes_repo import LikesRepository
from models.enums import TargetType
from services.rate_limiter import RateLimitBackend, RateLimiter
from utils.config import RateLimitRule
from tests.test_config import FakeClock, TestClient, auth_headers, build_test_app, seed_post, seed_user


class _BrokenBackend(RateLimitBackend):
    name = "database"

    def hit(self, key, now_ms, window_ms):
        raise ConnectionError("store unreachable")


@pytest.mark.nonfunctional
def test_limiter_admits_when_backend_fails():
    limiter = RateLimiter({"follow": RateLimitRule(1, 60_000)}, _BrokenBackend(), clock=FakeClock())
    for _ in range(3):
        result = limiter.check("follow", "user:1")
        assert result.allowed is True
        assert result.backend == "database-unavailable"


@pytest.mark.nonfunctional
def test_forged_or_expired_tokens_are_rejected(social_db):
    client = TestClient(build_test_app())
    for header in ("Bearer forged", "Basic abc", "Bearer "):
        response = client.get("/api/notifications", headers={"Authorization": header})
        assert response.status_code == 401
        assert response.json()["success"] is False


@pytest.mark.nonfunctional
def test_notifications_are_isolated_per_recipient(social_db):
    client = TestClient(build_test_app())
    alice, bob, fan = seed_user(), seed_user(), seed_user()
    client.post(f"/api/users/{alice}/follow", headers=auth_headers(fan))
    alice_notification = client.get("/api/notifications", headers=auth_headers(alice)).json()["data"]["items"][0]

    bob_view = client.get(
        "/api/notifications", params={"ids": alice_notification["id"]}, headers=auth_headers(bob)
    ).json()["data"]
    assert bob_view["items"] == []
    assert bob_view["unreadCount"] == 0


@pytest.mark.nonfunctional
def test_ids_are_bound_not_interpolated(social_db):
    author, fan = seed_user(), seed_user()
    post = seed_post(author)
    LikesRepository().toggle_like(TargetType.POST, post, fan)
    hostile = "x' OR '1'='1"

    assert LikesRepository().liked_among(TargetType.POST, [hostile], fan) == set()
    client = TestClient(build_test_app())
    response = client.get(f"/api/likes/post/{hostile}")
    assert response.status_code == 404


@pytest.mark.nonfunctional
def test_page_size_is_capped_for_huge_limits(social_db):
    client = TestClient(build_test_app())
    star = seed_user()
    for _ in range(55):
        client.post(f"/api/users/{star}/follow", headers=auth_headers(seed_user()))

    body = client.get(f"/api/users/{star}/followers", params={"limit": 100000}).json()
    assert len(body["data"]) == 50
    assert body["meta"]["pagination"]["limit"] == 50
    assert body["meta"]["pagination"]["hasMore"] is True
