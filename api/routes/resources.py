"""
api/routes/resources.py -- Owned-resource routes, generated once per resource kind.

build_resource_router(kind) returns the full route set for one kind; api/main.py
mounts one router each for services, requests and rents. For route segment R:

  POST   /api/R                    -- create (session)
  GET    /api/my-R                 -- caller's records, newest first (session)
  GET    /api/R                    -- every record, newest first (admin)
  GET    /api/R/admin              -- same as above (admin)
  DELETE /api/R/admin/{id}         -- forced delete (admin strictly)
  GET    /api/R/{id}               -- single record (session)
  PATCH  /api/R/{id}               -- partial update (owner or admin)
  DELETE /api/R/{id}               -- delete (owner or admin)

All authorization decisions are made in ResourceLifecycle via auth/policy.py;
these handlers only translate HTTP to lifecycle calls and back. /admin routes
are registered before /{id}, and {id} uses the int convertor, so "admin" is
never parsed as an id.
"""

from fastapi import APIRouter, Depends, Request

from api.models import (
    ResourceCreatedResponse,
    ResourceDeletedResponse,
    ResourceResponse,
    ResourceUpdatedResponse,
    resource_models,
)
from auth.dependencies import get_current_user, require_admin
from auth.models import User
from listings.lifecycle import ResourceLifecycle
from listings.models import KIND_SPECS, ResourceKind


def _lifecycle(request: Request) -> ResourceLifecycle:
    return request.app.state.lifecycle


def build_resource_router(kind: ResourceKind) -> APIRouter:
    spec = KIND_SPECS[kind]
    route = spec.route
    router = APIRouter(tags=[spec.label + "s"])
    create_body, patch_body = resource_models(kind)

    @router.post(f"/api/{route}", response_model=ResourceCreatedResponse, status_code=201, name=f"create_{kind.value}")
    def create_resource(
        body: create_body,
        current_user: User = Depends(get_current_user),
        lifecycle: ResourceLifecycle = Depends(_lifecycle),
    ) -> ResourceCreatedResponse:
        created = lifecycle.create(kind, current_user, body.model_dump())
        return ResourceCreatedResponse(
            message=f"{spec.label} created successfully",
            id=created.id,
            resource=ResourceResponse.from_resource(created),
        )

    @router.get(f"/api/my-{route}", response_model=list[ResourceResponse], name=f"list_my_{kind.value}s")
    def list_mine(
        current_user: User = Depends(get_current_user),
        lifecycle: ResourceLifecycle = Depends(_lifecycle),
    ) -> list[ResourceResponse]:
        return [ResourceResponse.from_resource(r) for r in lifecycle.list_mine(kind, current_user)]

    def list_all(
        current_user: User = Depends(require_admin),
        lifecycle: ResourceLifecycle = Depends(_lifecycle),
    ) -> list[ResourceResponse]:
        return [ResourceResponse.from_resource(r) for r in lifecycle.list_all(kind, current_user)]

    router.add_api_route(
        f"/api/{route}", list_all, methods=["GET"], response_model=list[ResourceResponse], name=f"list_{kind.value}s"
    )
    router.add_api_route(
        f"/api/{route}/admin",
        list_all,
        methods=["GET"],
        response_model=list[ResourceResponse],
        name=f"admin_list_{kind.value}s",
    )

    @router.delete(
        f"/api/{route}/admin/{{resource_id:int}}",
        response_model=ResourceDeletedResponse,
        name=f"admin_delete_{kind.value}",
    )
    def admin_delete(
        resource_id: int,
        current_user: User = Depends(require_admin),
        lifecycle: ResourceLifecycle = Depends(_lifecycle),
    ) -> ResourceDeletedResponse:
        lifecycle.delete(kind, current_user, resource_id, admin_only=True)
        return ResourceDeletedResponse(message=f"{spec.label} deleted by admin", deleted_id=resource_id)

    @router.get(f"/api/{route}/{{resource_id:int}}", response_model=ResourceResponse, name=f"get_{kind.value}")
    def get_resource(
        resource_id: int,
        current_user: User = Depends(get_current_user),
        lifecycle: ResourceLifecycle = Depends(_lifecycle),
    ) -> ResourceResponse:
        return ResourceResponse.from_resource(lifecycle.get(kind, resource_id))

    @router.patch(
        f"/api/{route}/{{resource_id:int}}", response_model=ResourceUpdatedResponse, name=f"update_{kind.value}"
    )
    def update_resource(
        resource_id: int,
        body: patch_body,
        current_user: User = Depends(get_current_user),
        lifecycle: ResourceLifecycle = Depends(_lifecycle),
    ) -> ResourceUpdatedResponse:
        updated = lifecycle.update(kind, current_user, resource_id, body.changes())
        return ResourceUpdatedResponse(
            message=f"{spec.label} updated successfully",
            resource=ResourceResponse.from_resource(updated),
        )

    @router.delete(
        f"/api/{route}/{{resource_id:int}}", response_model=ResourceDeletedResponse, name=f"delete_{kind.value}"
    )
    def delete_resource(
        resource_id: int,
        current_user: User = Depends(get_current_user),
        lifecycle: ResourceLifecycle = Depends(_lifecycle),
    ) -> ResourceDeletedResponse:
        lifecycle.delete(kind, current_user, resource_id)
        return ResourceDeletedResponse(message=f"{spec.label} deleted successfully", deleted_id=resource_id)

    return router
