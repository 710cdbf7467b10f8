"""
api/routes/geocode.py -- District/upazila reference data import and listing.

Routes (public, like the rest of the reference data):
  POST /upload-districts, POST /upload-upazilas  -- bulk import a JSON array
  GET  /upload-districts, GET  /upload-upazilas  -- list (legacy paths)
  GET  /geocode/districts, GET /geocode/upazilas -- list
"""

from typing import Any

from fastapi import APIRouter, Body, Request

from api.models import UploadResponse
from geocode.store import LEVELS, GeocodeStore

router = APIRouter()


def _register(level: str) -> None:
    def upload(request: Request, records: list[dict[str, Any]] = Body(...)) -> UploadResponse:
        store: GeocodeStore = request.app.state.geocode_store
        count = store.insert_many(level, records)
        return UploadResponse(message=f"{level.capitalize()} uploaded successfully", inserted_count=count)

    def list_records(request: Request) -> list[dict[str, Any]]:
        store: GeocodeStore = request.app.state.geocode_store
        return store.list(level)

    router.add_api_route(
        f"/upload-{level}",
        upload,
        methods=["POST"],
        status_code=201,
        response_model=UploadResponse,
        name=f"upload_{level}",
    )
    router.add_api_route(f"/upload-{level}", list_records, methods=["GET"], name=f"legacy_list_{level}")
    router.add_api_route(f"/geocode/{level}", list_records, methods=["GET"], name=f"list_{level}")


for _level in LEVELS:
    _register(_level)
