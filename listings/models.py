"""
listings/models.py -- Domain dataclasses for owned resources.

Service offers, service requests and rental listings share one shape,
OwnedResource. What differs per kind (table, URL segment, initial status,
the closed set of allowed statuses) lives in KindSpec, looked up through
KIND_SPECS. Adding a resource kind means adding one KindSpec entry.

These are pure data containers. Behaviour lives in listings/store.py and
listings/lifecycle.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ResourceKind(str, Enum):
    service = "service"
    request = "request"
    rental = "rental"


@dataclass(frozen=True)
class KindSpec:
    kind: ResourceKind
    table: str
    route: str  # URL segment: /api/{route}, /api/my-{route}
    label: str
    initial_status: str
    statuses: tuple[str, ...]


KIND_SPECS: dict[ResourceKind, KindSpec] = {
    ResourceKind.service: KindSpec(
        kind=ResourceKind.service,
        table="services",
        route="services",
        label="Service",
        initial_status="pending",
        statuses=("pending", "active", "completed", "cancelled"),
    ),
    ResourceKind.request: KindSpec(
        kind=ResourceKind.request,
        table="service_requests",
        route="requests",
        label="Service request",
        initial_status="pending",
        statuses=("pending", "accepted", "fulfilled", "cancelled"),
    ),
    ResourceKind.rental: KindSpec(
        kind=ResourceKind.rental,
        table="rentals",
        route="rents",
        label="Rental",
        initial_status="available",
        statuses=("available", "rented", "unavailable"),
    ),
}


@dataclass
class OwnedResource:
    """A record bound to exactly one creating user.

    owner_id is the internal id of the creating User and never changes.
    owner_name / owner_avatar are copies taken at creation time for display;
    they are not kept in sync with later profile edits.

    id is None before the record is written to the database.
    """

    kind: ResourceKind
    owner_id: int
    category: str
    description: str
    status: str
    owner_name: str = ""
    owner_avatar: str = ""
    title: str = ""
    price: Optional[float] = None
    availability: str = ""
    district: str = ""
    upazila: str = ""
    contact: str = ""
    created_at: str = ""  # ISO 8601, set on insert
    updated_at: Optional[str] = None
    id: Optional[int] = None

    @property
    def spec(self) -> KindSpec:
        return KIND_SPECS[self.kind]
