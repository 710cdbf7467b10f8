"""
api/routes/auth.py -- Registration, login, logout, and session introspection.

Routes (mounted under /api):
  POST /api/register  -- create account; sets session cookie; 201
  POST /api/login     -- password login; sets session cookie
  POST /api/logout    -- clears session cookie; 200
  GET  /api/me        -- current user (401 without a valid session)

Security:
  POST /register and POST /login are rate-limited per client IP.
  Cache-Control: no-store on every response that sets a session cookie.
  Logout only clears the cookie. Tokens are stateless, so a copied token
  stays valid until it expires.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import LoginRequest, MessageResponse, RegisterRequest, RegisterResponse, UserEnvelope, UserResponse
from auth.dependencies import try_get_session
from auth.models import User
from auth.store import UserStore
from auth.tokens import clear_session_cookie, hash_password, issue_token, set_session_cookie, verify_password
from core.config import get_settings
from core.errors import Conflict, Forbidden, NotFound, Unauthenticated

logger = logging.getLogger("localhelp.api.auth")

_settings = get_settings()

# Auth policy:
# - POST /api/register: public -- rate limited
# - POST /api/login:    public -- rate limited
# - POST /api/logout:   public -- clearing a cookie needs no prior auth
# - GET  /api/me:       requires a valid session (401 otherwise)
router = APIRouter()


@router.post("/register", response_model=RegisterResponse, status_code=201)
@limiter.limit(_settings.register_rate_limit)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create a user account and start a session for it.

    The duplicate check up front avoids a wasted bcrypt hash; the UNIQUE
    index in the store still decides races between concurrent registrations.
    """
    user_store: UserStore = request.app.state.user_store
    email = body.email.lower()
    if user_store.get_by_email(email) is not None:
        raise Conflict("User already exists.", code="user_exists")

    user_id = user_store.create_user(
        User(
            email=email,
            name=body.name,
            hashed_password=hash_password(body.password),
            phone=body.phone,
            avatar=body.avatar_url,
            blood_group=body.blood_group,
            district=body.address.district,
            upazila=body.address.upazila,
        )
    )
    logger.info("Registered user %d", user_id)

    resp = JSONResponse(
        status_code=201,
        content=RegisterResponse(message="Registration successful", user_id=user_id).model_dump(by_alias=True),
    )
    set_session_cookie(resp, issue_token(email))
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/login", response_model=UserEnvelope)
@limiter.limit(_settings.login_rate_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; set the session cookie.

    Unknown email is 404 and a wrong password is 401, matching the web
    client's existing error handling.
    """
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_email(body.email)
    if user is None:
        raise NotFound("User not found.", code="user_not_found")
    if not verify_password(body.password, user.hashed_password):
        logger.warning("Failed login for user %d", user.id)
        raise Unauthenticated("Invalid password.", code="bad_credentials")
    if not user.is_active:
        raise Forbidden("Account is not active.", code="account_blocked")

    resp = JSONResponse(
        status_code=200,
        content=UserEnvelope(message="Login successful", user=UserResponse.from_user(user)).model_dump(
            by_alias=True, mode="json"
        ),
    )
    set_session_cookie(resp, issue_token(user.email))
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout", response_model=MessageResponse)
def logout() -> JSONResponse:
    """Clear the session cookie."""
    resp = JSONResponse(content={"message": "Logout successful"})
    clear_session_cookie(resp)
    return resp


@router.get("/me", response_model=UserEnvelope, response_model_exclude_none=True)
def me(request: Request) -> UserEnvelope:
    """Return the user behind the current session.

    Any missing or invalid token is 401 here, unlike protected routes where
    an invalid token is 403: the web client calls /api/me on every page load
    to decide whether to show the login screen.
    """
    claim = try_get_session(request)
    if claim is None:
        raise Unauthenticated("Unauthorized")
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_email(claim.email)
    if user is None:
        raise NotFound("User not found.", code="user_not_found")
    return UserEnvelope(user=UserResponse.from_user(user))
