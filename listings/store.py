"""
listings/store.py -- SQLAlchemy Core persistence for owned resources.

Pattern: Repository + Data Mapper. ResourceStore is the repository for every
resource kind; each kind gets its own table with an identical column layout
(built by _resource_table). _row_to_resource is the mapper.

Ordering: listings are newest first by created_at, then by id. created_at is
an ISO 8601 UTC string, so string order is time order; the id tie-break makes
the order total even when two rows share a timestamp.

Security: all queries use bound parameters. Column names passed to update()
are checked against _UPDATABLE_COLUMNS before reaching SQL.

Usage:
    store = ResourceStore(engine)
    rid = store.insert(resource)
    store.list_by_owner(ResourceKind.rental, owner_id)
    store.update(ResourceKind.rental, rid, status="rented", updated_at=now_iso())
    store.delete(ResourceKind.rental, rid)
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Column, Float, Index, Integer, MetaData, String, Table, Text
from sqlalchemy.engine import Engine

from core.database import now_iso
from core.errors import ValidationFailed
from listings.models import KIND_SPECS, OwnedResource, ResourceKind

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()


def _resource_table(name: str) -> Table:
    return Table(
        name,
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("owner_id", Integer, nullable=False),
        Column("owner_name", String(255), nullable=False, server_default=""),
        Column("owner_avatar", Text, nullable=False, server_default=""),
        Column("category", String(100), nullable=False),
        Column("title", String(255), nullable=False, server_default=""),
        Column("description", Text, nullable=False),
        Column("price", Float),
        Column("availability", String(255), nullable=False, server_default=""),
        Column("district", String(100), nullable=False, server_default=""),
        Column("upazila", String(100), nullable=False, server_default=""),
        Column("contact", String(100), nullable=False, server_default=""),
        Column("status", String(30), nullable=False),
        Column("created_at", String(32), nullable=False),
        Column("updated_at", String(32)),
        Index(f"ix_{name}_owner_created", "owner_id", "created_at"),
    )


_tables: dict[ResourceKind, Table] = {kind: _resource_table(spec.table) for kind, spec in KIND_SPECS.items()}

_UPDATABLE_COLUMNS = frozenset(
    {
        "category",
        "title",
        "description",
        "price",
        "availability",
        "district",
        "upazila",
        "contact",
        "status",
        "updated_at",
    }
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ResourceStore:
    """Repository for OwnedResource records of every kind."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        metadata.create_all(self.engine)

    def insert(self, resource: OwnedResource) -> int:
        """Insert resource into its kind's table and return the new id."""
        table = _tables[resource.kind]
        with self.engine.connect() as conn:
            result = conn.execute(
                table.insert().values(
                    owner_id=resource.owner_id,
                    owner_name=resource.owner_name,
                    owner_avatar=resource.owner_avatar,
                    category=resource.category,
                    title=resource.title,
                    description=resource.description,
                    price=resource.price,
                    availability=resource.availability,
                    district=resource.district,
                    upazila=resource.upazila,
                    contact=resource.contact,
                    status=resource.status,
                    created_at=resource.created_at or now_iso(),
                    updated_at=resource.updated_at,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get(self, kind: ResourceKind, resource_id: int) -> Optional[OwnedResource]:
        table = _tables[kind]
        with self.engine.connect() as conn:
            row = conn.execute(table.select().where(table.c.id == resource_id)).fetchone()
        return _row_to_resource(kind, row) if row is not None else None

    def list_by_owner(self, kind: ResourceKind, owner_id: int) -> list[OwnedResource]:
        """Return owner_id's records of kind, newest first."""
        table = _tables[kind]
        with self.engine.connect() as conn:
            rows = conn.execute(
                table.select()
                .where(table.c.owner_id == owner_id)
                .order_by(table.c.created_at.desc(), table.c.id.desc())
            ).fetchall()
        return [_row_to_resource(kind, r) for r in rows]

    def list_all(self, kind: ResourceKind) -> list[OwnedResource]:
        """Return every record of kind, newest first."""
        table = _tables[kind]
        with self.engine.connect() as conn:
            rows = conn.execute(table.select().order_by(table.c.created_at.desc(), table.c.id.desc())).fetchall()
        return [_row_to_resource(kind, r) for r in rows]

    def update(self, kind: ResourceKind, resource_id: int, **fields) -> bool:
        """Set the given columns on one record. Returns True if a row matched.

        owner_id and the denormalized owner fields are not in the whitelist,
        so ownership can never change after insert.
        """
        unknown = set(fields) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValidationFailed(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        if not fields:
            return False
        table = _tables[kind]
        with self.engine.connect() as conn:
            result = conn.execute(table.update().where(table.c.id == resource_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete(self, kind: ResourceKind, resource_id: int) -> bool:
        """Hard-delete one record. Returns True if a row was removed."""
        table = _tables[kind]
        with self.engine.connect() as conn:
            result = conn.execute(table.delete().where(table.c.id == resource_id))
            conn.commit()
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_resource(kind: ResourceKind, row) -> OwnedResource:
    return OwnedResource(
        id=row.id,
        kind=kind,
        owner_id=row.owner_id,
        owner_name=row.owner_name,
        owner_avatar=row.owner_avatar,
        category=row.category,
        title=row.title,
        description=row.description,
        price=row.price,
        availability=row.availability,
        district=row.district,
        upazila=row.upazila,
        contact=row.contact,
        status=row.status,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
