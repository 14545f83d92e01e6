"""ORM models exposed for easy imports."""

from .claim import CLAIM_STATUSES, Claim
from .profile import Profile
from .user_role import UserRole

__all__ = [
    "CLAIM_STATUSES",
    "Claim",
    "Profile",
    "UserRole",
]
