"""
api/routes/users.py -- Profile self-service and admin user management.

Routes:
  PATCH /api/users/{user_id:int}  -- change role/status (admin only)
  PATCH /api/users/{email}        -- partial profile update (self only)
  GET   /api/users                -- list all users (admin only)
  GET   /users/admin/{email}      -- {"isAdmin": bool} (self or admin)

The int route is registered first. Starlette's int convertor only matches
digits, so an email path segment always falls through to the profile route.

Admin safety: an admin cannot demote or block their own account, and the
last active admin cannot be demoted or blocked -- either would leave the
platform with no recovery path short of editing the database.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from api.models import AdminUserPatch, IsAdminResponse, ProfilePatch, UserEnvelope, UserResponse
from auth.dependencies import get_current_user, require_admin
from auth.models import Role, User, UserStatus
from auth.policy import is_admin
from auth.store import UserStore
from core.errors import Forbidden, NotFound, ValidationFailed

logger = logging.getLogger("localhelp.api.users")

router = APIRouter()


@router.patch("/api/users/{user_id:int}", response_model=UserEnvelope)
def update_user_admin(
    request: Request,
    user_id: int,
    body: AdminUserPatch,
    current_user: User = Depends(require_admin),
) -> UserEnvelope:
    """Update a user's role or status. Admin only."""
    user_store: UserStore = request.app.state.user_store

    target = user_store.get_by_id(user_id)
    if target is None:
        raise NotFound("User not found.", code="user_not_found")

    updates = body.changes()
    if not updates:
        raise ValidationFailed("No fields to update.", code="no_changes")

    loses_admin = (updates.get("role", target.role) != Role.admin) or (
        updates.get("status", target.status) != UserStatus.active
    )
    if target.role == Role.admin and target.status == UserStatus.active and loses_admin:
        if target.id == current_user.id:
            raise ValidationFailed("You cannot demote or block your own account.", code="self_demotion")
        if user_store.count_active_admins() <= 1:
            raise ValidationFailed("Cannot demote or block the last active admin.", code="last_admin")

    user_store.update_user(user_id, **updates)
    logger.info("Admin %d changed user %d: %s", current_user.id, user_id, updates)
    updated = user_store.get_by_id(user_id)
    return UserEnvelope(message="User updated successfully", user=UserResponse.from_user(updated))


@router.patch("/api/users/{email}", response_model=UserEnvelope)
def update_profile(
    request: Request,
    email: str,
    body: ProfilePatch,
    current_user: User = Depends(get_current_user),
) -> UserEnvelope:
    """Partial update of the caller's own profile.

    Only keys present in the body change. address may carry just one of
    district/upazila; the other is left alone.
    """
    if email.strip().lower() != current_user.email:
        raise Forbidden("Forbidden: not your profile.", code="not_owner")

    sent = body.changes()
    updates: dict = {}
    for key in ("name", "phone", "blood_group"):
        if key in sent:
            updates[key] = sent[key]
    if "avatar_url" in sent:
        updates["avatar"] = sent["avatar_url"]
    if "address" in sent:
        updates.update(sent["address"])
    if not updates:
        raise ValidationFailed("No fields to update.", code="no_changes")

    user_store: UserStore = request.app.state.user_store
    if user_store.update_by_email(current_user.email, **updates) == 0:
        raise NotFound("User not found.", code="user_not_found")
    updated = user_store.get_by_email(current_user.email)
    return UserEnvelope(message="Profile updated successfully", user=UserResponse.from_user(updated))


@router.get("/api/users", response_model=list[UserResponse])
def list_users(request: Request, current_user: User = Depends(require_admin)) -> list[UserResponse]:
    """List all user accounts, newest first. Admin only."""
    user_store: UserStore = request.app.state.user_store
    return [UserResponse.from_user(u) for u in user_store.list_users()]


@router.get("/users/admin/{email}", response_model=IsAdminResponse)
def check_admin(request: Request, email: str, current_user: User = Depends(get_current_user)) -> IsAdminResponse:
    """Report whether email belongs to an admin. Callers may ask about themselves; admins about anyone."""
    email = email.strip().lower()
    if email != current_user.email and not is_admin(current_user):
        raise Forbidden("Forbidden: not your account.", code="not_owner")
    user_store: UserStore = request.app.state.user_store
    target = user_store.get_by_email(email)
    return IsAdminResponse(is_admin=target is not None and is_admin(target))
