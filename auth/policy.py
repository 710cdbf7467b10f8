"""
auth/policy.py -- Authorization decisions for owned records.

Two rules, composed by every mutation path:
  can_mutate  -- the record's owner_id equals the caller's internal user id.
                 The token email is never compared directly.
  is_admin    -- the caller's stored role is admin.

authorize_mutation() allows when either rule holds. Admin-only management
paths pass admin_only=True, where owning the record is not a substitute for
the admin role.

Callers must load the record first: a missing record is NotFound, raised
before the policy is consulted, so NotFound always wins over Forbidden.

Layer rule: no imports from api/, listings/, or geocode/. Records are
accepted structurally (anything with an owner_id attribute).
"""

from __future__ import annotations

from typing import Protocol

from auth.models import Role, User
from core.errors import Forbidden


class Owned(Protocol):
    owner_id: int


def is_admin(user: User) -> bool:
    return user.role == Role.admin


def can_mutate(user: User, record: Owned) -> bool:
    return user.id is not None and record.owner_id == user.id


def require_admin_role(user: User) -> None:
    if not is_admin(user):
        raise Forbidden("Admin access required.")


def authorize_mutation(user: User, record: Owned, admin_only: bool = False) -> None:
    """Raise Forbidden unless user may change or delete record."""
    if admin_only:
        require_admin_role(user)
        return
    if is_admin(user) or can_mutate(user, record):
        return
    raise Forbidden("You do not own this record.", code="not_owner")
