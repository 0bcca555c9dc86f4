"""
Admin utility functions for checking admin status.
"""
from typing import Iterable, Optional

from models.enums import UserRole


def is_admin(user_id: str, role: Optional[UserRole] = None, admin_ids: Iterable[str] = ()) -> bool:
    """
    Check if a user is an admin.

    A user is an admin when their stored role is ADMIN or when their id is
    listed in the ADMIN_IDS override.
    """
    if role == UserRole.ADMIN:
        return True
    return str(user_id) in {str(a) for a in admin_ids}
