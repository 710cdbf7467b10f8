"""
listings/lifecycle.py -- Create/read/update/delete/list for owned resources.

ResourceLifecycle is the one implementation behind every resource kind's
routes. Each mutation follows the same order:

    load record  -> NotFound if absent
    policy check -> Forbidden if the caller is neither owner nor admin
    write        -> single-row statement, last writer wins

Loading before authorizing means a missing id is always NotFound, whoever
asks. The tradeoff is that resource ids are not opaque to authorization:
any signed-in user can tell whether an id exists.

Status is a closed set per kind (KindSpec.statuses). Any allowed status may
follow any other; there is no transition table.
"""

from __future__ import annotations

import logging
from typing import Any

from auth.models import User
from auth.policy import authorize_mutation, require_admin_role
from auth.store import UserStore
from core.database import now_iso
from core.errors import NotFound, ValidationFailed
from listings.models import KIND_SPECS, OwnedResource, ResourceKind
from listings.store import ResourceStore

logger = logging.getLogger("localhelp.listings")

# Fields a caller may supply on create or change on update.
_EDITABLE_FIELDS = frozenset(
    {"category", "title", "description", "price", "availability", "district", "upazila", "contact", "status"}
)


class ResourceLifecycle:
    """Ownership-scoped lifecycle operations over a ResourceStore.

    The UserStore is used on create to re-read the caller's profile for the
    denormalized owner fields and the location/contact fallbacks.
    """

    def __init__(self, resources: ResourceStore, users: UserStore) -> None:
        self.resources = resources
        self.users = users

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, kind: ResourceKind, actor: User, fields: dict[str, Any]) -> OwnedResource:
        spec = KIND_SPECS[kind]
        owner = self.users.get_by_id(actor.id) if actor.id is not None else None
        if owner is None:
            raise NotFound("User not found.", code="user_not_found")

        unknown = set(fields) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationFailed(f"Unknown fields: {', '.join(sorted(unknown))}")
        if "status" in fields:
            raise ValidationFailed(f"A new {spec.label.lower()} always starts as '{spec.initial_status}'.")
        for required in ("category", "description"):
            if not fields.get(required):
                raise ValidationFailed(f"'{required}' is required.")

        resource = OwnedResource(
            kind=kind,
            owner_id=owner.id,
            owner_name=owner.name,
            owner_avatar=owner.avatar,
            category=fields["category"],
            description=fields["description"],
            title=fields.get("title") or "",
            price=fields.get("price"),
            availability=fields.get("availability") or "",
            district=fields.get("district") or owner.district,
            upazila=fields.get("upazila") or owner.upazila,
            contact=fields.get("contact") or owner.phone,
            status=spec.initial_status,
            created_at=now_iso(),
        )
        resource.id = self.resources.insert(resource)
        logger.info("%s %d created by user %d", spec.label, resource.id, owner.id)
        return resource

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, kind: ResourceKind, resource_id: int) -> OwnedResource:
        resource = self.resources.get(kind, resource_id)
        if resource is None:
            raise NotFound(f"{KIND_SPECS[kind].label} {resource_id} not found.")
        return resource

    def list_mine(self, kind: ResourceKind, actor: User) -> list[OwnedResource]:
        return self.resources.list_by_owner(kind, actor.id)

    def list_all(self, kind: ResourceKind, actor: User) -> list[OwnedResource]:
        require_admin_role(actor)
        return self.resources.list_all(kind)

    # ------------------------------------------------------------------
    # Update / delete
    # ------------------------------------------------------------------

    def update(
        self,
        kind: ResourceKind,
        actor: User,
        resource_id: int,
        changes: dict[str, Any],
        admin_only: bool = False,
    ) -> OwnedResource:
        """Apply a partial update.

        changes holds only the fields the caller sent; anything absent is
        left as stored. Values are written as given, so an empty string
        clears a text field.
        """
        spec = KIND_SPECS[kind]
        resource = self.get(kind, resource_id)
        authorize_mutation(actor, resource, admin_only=admin_only)

        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationFailed(f"Unknown fields: {', '.join(sorted(unknown))}")
        if not changes:
            raise ValidationFailed("No fields to update.", code="no_changes")
        for required in ("category", "description"):
            if required in changes and not changes[required]:
                raise ValidationFailed(f"'{required}' cannot be empty.")
        if "status" in changes and changes["status"] not in spec.statuses:
            raise ValidationFailed(
                f"Invalid status for {spec.label.lower()}: must be one of {', '.join(spec.statuses)}.",
                code="invalid_status",
            )

        self.resources.update(kind, resource_id, **changes, updated_at=now_iso())
        logger.info("%s %d updated by user %d (%s)", spec.label, resource_id, actor.id, ", ".join(sorted(changes)))
        return self.get(kind, resource_id)

    def delete(self, kind: ResourceKind, actor: User, resource_id: int, admin_only: bool = False) -> None:
        spec = KIND_SPECS[kind]
        resource = self.get(kind, resource_id)
        authorize_mutation(actor, resource, admin_only=admin_only)
        if not self.resources.delete(kind, resource_id):
            # Removed by a concurrent request between load and delete
            raise NotFound(f"{spec.label} {resource_id} not found.")
        if resource.owner_id != actor.id:
            logger.warning("%s %d (owner %d) deleted by admin %d", spec.label, resource_id, resource.owner_id, actor.id)
        else:
            logger.info("%s %d deleted by owner %d", spec.label, resource_id, actor.id)
