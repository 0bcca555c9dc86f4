import pytest

from models.enums import ProfileVisibility, UserRole
from models.models import User, Viewer
from services.follow_query_service import can_view_follow_lists

TARGET_ID = "target"

# viewer relationship -> (viewer, viewer follows target)
RELATIONSHIPS = {
    "anonymous": (None, False),
    "non_follower": (Viewer(id="stranger"), False),
    "follower": (Viewer(id="fan"), True),
    "self": (Viewer(id=TARGET_ID), False),
    "admin": (Viewer(id="mod", role=UserRole.ADMIN, is_admin=True), False),
}

EXPECTED = {
    ProfileVisibility.PUBLIC: {
        "anonymous": True, "non_follower": True, "follower": True, "self": True, "admin": True,
    },
    ProfileVisibility.FOLLOWERS: {
        "anonymous": False, "non_follower": False, "follower": True, "self": True, "admin": True,
    },
    ProfileVisibility.PRIVATE: {
        "anonymous": False, "non_follower": False, "follower": False, "self": True, "admin": True,
    },
}


@pytest.mark.unit
@pytest.mark.parametrize(
    "visibility, relationship",
    [(v, r) for v in ProfileVisibility for r in RELATIONSHIPS],
)
def test_follow_list_visibility_matrix(visibility, relationship):
    viewer, follows = RELATIONSHIPS[relationship]
    target = User(id=TARGET_ID, profile_visibility=visibility)
    assert can_view_follow_lists(target, viewer, follows) is EXPECTED[visibility][relationship]
