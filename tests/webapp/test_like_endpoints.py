import pytest

from repositories.audit_repo import AuditRepository
from utils.config import RateLimitRule
from tests.test_config import FakeClock, TestClient, auth_headers, build_test_app, seed_activity, seed_post, seed_user


@pytest.fixture
def client(social_db):
    return TestClient(build_test_app(clock=FakeClock(), rate_limits={"like": RateLimitRule(5, 60_000)}))


@pytest.mark.integration
def test_toggle_like_flips_state(client):
    author, fan = seed_user(), seed_user()
    post = seed_post(author)
    headers = auth_headers(fan)
    payload = {"targetType": "post", "targetId": post}

    liked = client.post("/api/likes", json=payload, headers=headers)
    assert liked.status_code == 200
    assert liked.json()["data"] == {"isLiked": True, "count": 1}
    assert liked.headers["X-RateLimit-Remaining"] == "4"

    unliked = client.post("/api/likes", json=payload, headers=headers).json()["data"]
    assert unliked == {"isLiked": False, "count": 0}

    status = client.get(f"/api/likes/post/{post}", headers=headers).json()["data"]
    assert status == {"isLiked": False, "count": 0}


@pytest.mark.integration
def test_explicit_like_intent(client):
    author, fan = seed_user(), seed_user()
    post = seed_post(author)
    headers = auth_headers(fan)
    payload = {"targetType": "post", "targetId": post, "liked": True}

    assert client.post("/api/likes", json=payload, headers=headers).json()["data"]["count"] == 1
    assert client.post("/api/likes", json=payload, headers=headers).json()["data"]["count"] == 1


@pytest.mark.integration
def test_like_errors(client):
    author = seed_user()
    activity = seed_activity(author)
    headers = auth_headers(author)

    own = client.post("/api/likes", json={"targetType": "activity", "targetId": activity}, headers=headers)
    assert own.status_code == 400
    assert own.json()["error"]["code"] == "VALIDATION_ERROR"

    bad_type = client.post("/api/likes", json={"targetType": "comment", "targetId": activity}, headers=headers)
    assert bad_type.status_code == 400

    missing = client.post("/api/likes", json={"targetType": "post", "targetId": "nope"}, headers=headers)
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "NOT_FOUND"

    anonymous = client.post("/api/likes", json={"targetType": "post", "targetId": "nope"})
    assert anonymous.status_code == 401
    assert anonymous.json()["error"]["code"] == "UNAUTHORIZED"


@pytest.mark.integration
def test_like_rate_limit_is_shared_with_bookmarks(client):
    author, fan = seed_user(), seed_user()
    posts = [seed_post(author) for _ in range(3)]
    headers = auth_headers(fan)

    for post in posts:
        assert client.post("/api/likes", json={"targetType": "post", "targetId": post}, headers=headers).status_code == 200
    for post in posts[:2]:
        assert client.post("/api/bookmarks", json={"postId": post}, headers=headers).status_code == 200

    limited = client.post("/api/bookmarks", json={"postId": posts[2]}, headers=headers)
    assert limited.status_code == 429
    assert int(limited.headers["Retry-After"]) >= 1

    rejected = AuditRepository().list_events("BOOKMARK_TOGGLE")
    assert [(e.success, e.error_code, e.resource) for e in rejected if not e.success] == [
        (False, "RATE_LIMIT_EXCEEDED", f"post:{posts[2]}")
    ]

    explicit = client.post(
        "/api/likes", json={"targetType": "Post", "targetId": posts[0], "liked": False}, headers=headers
    )
    assert explicit.status_code == 429
    sets = AuditRepository().list_events("LIKE_SET")
    assert [(e.success, e.error_code, e.resource) for e in sets] == [(False, "RATE_LIMIT_EXCEEDED", f"post:{posts[0]}")]


@pytest.mark.integration
def test_batch_status_and_likers(client):
    author = seed_user()
    post = seed_post(author)
    fans = [seed_user(name=f"Fan {i}") for i in range(3)]
    for fan in fans:
        client.post("/api/likes", json={"targetType": "post", "targetId": post}, headers=auth_headers(fan))

    batch = client.post(
        "/api/likes/status",
        json={"targetType": "post", "targetIds": [post, "other"]},
        headers=auth_headers(fans[0]),
    ).json()["data"]
    assert batch == {post: {"isLiked": True, "count": 3}, "other": {"isLiked": False, "count": 0}}

    likers = client.get(f"/api/likes/post/{post}/users?limit=2").json()
    assert [u["name"] for u in likers["data"]] == ["Fan 2", "Fan 1"]
    assert likers["meta"]["pagination"]["hasMore"] is True


@pytest.mark.integration
def test_bookmark_endpoints(client):
    author, reader = seed_user(), seed_user()
    post = seed_post(author, title="Saved")
    headers = auth_headers(reader)

    toggled = client.post("/api/bookmarks", json={"postId": post}, headers=headers).json()["data"]
    assert toggled == {"isBookmarked": True, "count": 1}
    assert client.get(f"/api/bookmarks/{post}", headers=headers).json()["data"]["isBookmarked"] is True

    listed = client.get("/api/bookmarks", headers=headers).json()
    assert [(b["postId"], b["title"]) for b in listed["data"]] == [(post, "Saved")]

    missing = client.post("/api/bookmarks", json={"postId": "nope"}, headers=headers)
    assert missing.status_code == 404
