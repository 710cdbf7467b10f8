"""
auth/tokens.py -- Session tokens, password hashing, and the session cookie.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry the
       user's email (sub), issue time, and expiry. Nothing is stored server
       side; a token is valid exactly when its signature checks out and it has
       not expired. verify_token() raises InvalidToken for every failure mode
       so callers cannot tell "expired" from "tampered".

  Passwords: bcrypt used directly (no passlib wrapper). The cost factor comes
       from Settings.bcrypt_rounds so tests can run with the minimum.

  Cookie: httpOnly so JS cannot read it. secure + SameSite=None by default
       because the web client lives on another origin; max_age matches the
       token lifetime so both expire together.

  SECRET_KEY: sourced from core.config.get_settings(), which validates it at
       startup.

Layer rule: no imports from api/, listings/, or geocode/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from auth.models import SessionClaim
from core.config import MAX_PASSWORD_BYTES, get_settings
from core.errors import ValidationFailed

logger = logging.getLogger("localhelp.auth")

_settings = get_settings()

_ALGORITHM = "HS256"


class InvalidToken(Exception):
    """Raised by verify_token() for missing, malformed, forged, or expired tokens."""


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt rejects secrets over MAX_PASSWORD_BYTES UTF-8 bytes. Request models
    check this first; the guard here covers every other caller.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValidationFailed(
            f"Password must be at most {MAX_PASSWORD_BYTES} bytes in UTF-8.", code="password_too_long"
        )
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(encoded, salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# ---------------------------------------------------------------------------
# JWT issue / verify
# ---------------------------------------------------------------------------


def issue_token(email: str, expire_seconds: int = 0) -> str:
    """Encode a signed session token for email.

    Args:
        email:          Identity claim stored as the JWT subject.
        expire_seconds: Lifetime in seconds. 0 (default) means
                        Settings.token_expire_seconds (7 days).
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    now = datetime.now(timezone.utc)
    payload = {
        "sub": email,
        "iat": now,
        "exp": now + timedelta(seconds=duration),
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def verify_token(token: str | None) -> SessionClaim:
    """Verify signature and expiry and return the decoded claim.

    Raises InvalidToken on any failure. jose checks exp itself; a token
    without exp is rejected here because sessions must always expire.
    """
    if not token:
        raise InvalidToken("missing token")
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError as exc:
        raise InvalidToken(str(exc)) from exc
    email = payload.get("sub")
    exp = payload.get("exp")
    if not isinstance(email, str) or not email or exp is None:
        raise InvalidToken("incomplete claims")
    return SessionClaim(email=email, expires_at=int(exp))


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookie(response, token: str, expire_seconds: int = 0) -> None:
    """Write the session token as an httpOnly cookie on the response.

    Args:
        response:       FastAPI/Starlette response object.
        token:          Encoded JWT string.
        expire_seconds: Cookie max_age in seconds. 0 (default) means
                        Settings.token_expire_seconds. Pass the same value
                        used in issue_token() to keep cookie and token in sync.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    response.set_cookie(
        _settings.cookie_name,
        value=token,
        httponly=True,
        samesite=_settings.cookie_samesite.lower(),
        secure=_settings.cookie_secure,
        max_age=duration,
    )


def clear_session_cookie(response) -> None:
    """Expire the session cookie. Attributes must match the ones it was set with."""
    response.delete_cookie(
        _settings.cookie_name,
        httponly=True,
        samesite=_settings.cookie_samesite.lower(),
        secure=_settings.cookie_secure,
    )
