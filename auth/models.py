"""
auth/models.py -- Domain dataclasses and enums for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in listings/models.py -- dataclasses own domain shape; stores and routes do
the work.

Layer rule: no imports from api/, listings/, or geocode/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    user = "user"
    admin = "admin"


class UserStatus(str, Enum):
    active = "active"
    blocked = "blocked"


@dataclass
class User:
    """A registered member of the platform.

    email is the identity key: unique, stored lower-cased, and never changed
    after registration. Owned resources reference users by id, not email, so
    the ownership link survives any future change to the identity key.

    rating_total / rating_count hold the rating aggregate; the average is
    derived rather than stored so it cannot drift from its inputs.
    """

    email: str
    name: str
    hashed_password: str
    role: Role = Role.user
    status: UserStatus = UserStatus.active
    id: int | None = None
    phone: str = ""
    avatar: str = ""
    blood_group: str = ""
    district: str = ""
    upazila: str = ""
    rating_total: float = 0.0
    rating_count: int = 0
    created_at: str | None = None

    @property
    def rating_avg(self) -> float:
        if self.rating_count == 0:
            return 0.0
        return round(self.rating_total / self.rating_count, 2)

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.active


@dataclass(frozen=True)
class SessionClaim:
    """The verified content of a session token."""

    email: str
    expires_at: int  # unix seconds
