"""
End-to-end: follow / refollow / unfollow / unfollow again through the HTTP API,
with the follow notification read back and acknowledged by the followed user.
"""

import pytest

from tests.test_config import FakeClock, TestClient, auth_headers, build_test_app, seed_user


@pytest.mark.integration
def test_follow_lifecycle_produces_one_notification(social_db):
    client = TestClient(build_test_app(clock=FakeClock()))
    alice, bob = seed_user(name="Alice"), seed_user(name="Bob")
    alice_headers, bob_headers = auth_headers(alice), auth_headers(bob)

    first = client.post(f"/api/users/{bob}/follow", headers=alice_headers).json()["data"]
    second = client.post(f"/api/users/{bob}/follow", headers=alice_headers).json()["data"]
    assert (first["wasNew"], second["wasNew"]) == (True, False)
    assert first["createdAt"] == second["createdAt"]

    followers = client.get(f"/api/users/{bob}/followers").json()["data"]
    assert [(f["id"], f["isMutual"]) for f in followers] == [(alice, False)]

    assert client.delete(f"/api/users/{bob}/follow", headers=alice_headers).json()["data"]["wasDeleted"] is True
    assert client.delete(f"/api/users/{bob}/follow", headers=alice_headers).json()["data"]["wasDeleted"] is False
    assert client.get(f"/api/users/{bob}/followers").json()["data"] == []

    inbox = client.get("/api/notifications", headers=bob_headers).json()["data"]
    assert len(inbox["items"]) == 1
    notification = inbox["items"][0]
    assert (notification["type"], notification["actorId"]) == ("FOLLOW", alice)
    assert notification["readAt"] is None
    assert inbox["unreadCount"] == 1

    marked = client.patch("/api/notifications", json={"ids": [notification["id"]]}, headers=bob_headers).json()
    assert marked["data"] == {"updated": 1, "unreadCount": 0}

    after = client.get("/api/notifications", headers=bob_headers).json()["data"]
    assert after["items"][0]["readAt"] is not None
    assert after["unreadCount"] == 0
