"""
auth/dependencies.py -- FastAPI Depends() helpers for session authentication.

Token carriers are checked in priority order:
  1. Session cookie (Settings.cookie_name, "token") -- set by /api/register and /api/login.
  2. Authorization: Bearer <token> header -- API clients, when
     Settings.accept_bearer_tokens is on.

try_get_session() is the soft variant (returns None on failure).
get_session() raises Unauthenticated (401) when no token is present and
Forbidden (403) when a token is present but does not verify.
get_current_user() resolves the claim to the stored User -- one extra lookup,
needed wherever the caller's id or role matters.
require_admin() wraps get_current_user() and raises Forbidden if not admin.

Layer rule: no imports from listings/ or geocode/.
  auth/dependencies.py may import from fastapi (for Depends/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Depends, Request

from auth.models import SessionClaim, User
from auth.policy import require_admin_role
from auth.store import UserStore
from auth.tokens import InvalidToken, verify_token
from core.config import get_settings
from core.errors import Forbidden, NotFound, Unauthenticated


def read_session_token(request: Request) -> str | None:
    """Return the raw session token carried by the request, if any."""
    settings = get_settings()
    token: str | None = request.cookies.get(settings.cookie_name)
    if not token and settings.accept_bearer_tokens:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:].strip()
    return token or None


def try_get_session(request: Request) -> SessionClaim | None:
    """Return the verified claim, or None on any failure. Never raises."""
    try:
        return verify_token(read_session_token(request))
    except InvalidToken:
        return None


def get_session(request: Request) -> SessionClaim:
    """Require a valid session token and attach its claim to request.state.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(claim: SessionClaim = Depends(get_session)): ...
    """
    token = read_session_token(request)
    if token is None:
        raise Unauthenticated("Unauthorized: no session token.")
    try:
        claim = verify_token(token)
    except InvalidToken as exc:
        raise Forbidden("Forbidden: invalid session token.", code="invalid_token") from exc
    request.state.session = claim
    return claim


def get_current_user(request: Request, claim: SessionClaim = Depends(get_session)) -> User:
    """Resolve the session claim to the stored User.

    A token can outlive the account it names, so a missing user is NotFound
    rather than a silent anonymous pass-through. Blocked accounts are
    Forbidden even with an otherwise valid token.
    """
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_email(claim.email)
    if user is None:
        raise NotFound("User not found.", code="user_not_found")
    if not user.is_active:
        raise Forbidden("Account is not active.", code="account_blocked")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Require the admin role. 401/403 from get_session, 403 if not admin."""
    require_admin_role(user)
    return user
