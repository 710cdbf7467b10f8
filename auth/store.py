"""
auth/store.py -- SQLAlchemy Core persistence layer for users (Credential Store).

Pattern: Repository + Data Mapper (same as listings/store.py).
UserStore is the repository; _row_to_user is the mapper. Route and dependency
code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  The store only ever receives pre-hashed secrets. hash_password() in
  auth/tokens.py is the single place plaintext passwords are turned into
  hashes.

  Updatable columns are a whitelist. email, id, hashed_password and
  created_at can never be changed through update_user()/update_by_email().

Layer rule: no imports from api/, listings/, or geocode/.
"""

from __future__ import annotations

import logging

from sqlalchemy import Column, Float, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Role, User, UserStatus
from core.database import now_iso
from core.errors import Conflict, ValidationFailed

logger = logging.getLogger("localhelp.auth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(20), nullable=False, server_default="user"),
    Column("status", String(20), nullable=False, server_default="active"),
    Column("phone", String(30), nullable=False, server_default=""),
    Column("avatar", Text, nullable=False, server_default=""),
    Column("blood_group", String(5), nullable=False, server_default=""),
    Column("district", String(100), nullable=False, server_default=""),
    Column("upazila", String(100), nullable=False, server_default=""),
    Column("rating_total", Float, nullable=False, server_default="0"),
    Column("rating_count", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)

_UPDATABLE_FIELDS = frozenset(
    {"name", "phone", "avatar", "blood_group", "district", "upazila", "role", "status", "rating_total", "rating_count"}
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore(engine)
        uid = store.create_user(User(email="a@b.c", name="A", hashed_password=hash_password("secret")))
        user = store.get_by_email("a@b.c")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_users(self) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return (result or 0) > 0

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by email (case-insensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email.strip().lower())).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users, newest first. Admin-only operation."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.created_at.desc(), _users.c.id.desc())).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_active_admins(self) -> int:
        """Return the number of active admin users.

        Used by PATCH /api/users/{id} to prevent demoting or blocking the last admin.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count())
                .select_from(_users)
                .where((_users.c.role == Role.admin.value) & (_users.c.status == UserStatus.active.value))
            ).scalar()
        return result or 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises Conflict if the email is already registered. The UNIQUE index
        on email is the source of truth, so two concurrent registrations for
        the same address cannot both succeed.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        email=user.email.strip().lower(),
                        name=user.name,
                        hashed_password=user.hashed_password,
                        role=Role(user.role).value,
                        status=UserStatus(user.status).value,
                        phone=user.phone,
                        avatar=user.avatar,
                        blood_group=user.blood_group,
                        district=user.district,
                        upazila=user.upazila,
                        rating_total=user.rating_total,
                        rating_count=user.rating_count,
                        created_at=user.created_at or now_iso(),
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise Conflict("User already exists.", code="user_exists") from exc
        return result.inserted_primary_key[0]

    def update_user(self, user_id: int, **fields) -> bool:
        """Update whitelisted fields on the user with user_id.

        Returns True if a row matched, False if user_id was not found.
        """
        values = _clean_fields(fields)
        if not values:
            return self.get_by_id(user_id) is not None
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**values))
            conn.commit()
        return result.rowcount > 0

    def update_by_email(self, email: str, **fields) -> int:
        """Update whitelisted fields on the user with email. Returns the matched count."""
        values = _clean_fields(fields)
        key = email.strip().lower()
        if not values:
            return 1 if self.get_by_email(key) is not None else 0
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.email == key).values(**values))
            conn.commit()
        return result.rowcount


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _clean_fields(fields: dict) -> dict:
    unknown = set(fields) - _UPDATABLE_FIELDS
    if unknown:
        raise ValidationFailed(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
    values = dict(fields)
    if "role" in values:
        values["role"] = Role(values["role"]).value
    if "status" in values:
        values["status"] = UserStatus(values["status"]).value
    return values


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        hashed_password=row.hashed_password,
        role=Role(row.role),
        status=UserStatus(row.status),
        phone=row.phone,
        avatar=row.avatar,
        blood_group=row.blood_group,
        district=row.district,
        upazila=row.upazila,
        rating_total=row.rating_total,
        rating_count=row.rating_count,
        created_at=row.created_at,
    )
