"""
tests/test_resource_routes.py -- Integration tests for /api/services,
/api/requests and /api/rents.

Coverage:
  - Create: 201 with id and resource; kind-specific category keys, another
    kind's key 400; profile fallbacks; client status, owner fields and unknown keys rejected
  - my-*: exclusive to the caller, newest first
  - Mutations: owner 200, admin 200, stranger 403 with the record unchanged
  - Missing id: 404 for owner, stranger and admin alike
  - Status: closed per kind, invalid values 400
  - Patch: null 400, unknown key 400, empty body 400
  - Admin listing and forced delete: admin only
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from auth.models import Role

KINDS = [
    ("services", "serviceType", "pending", "completed"),
    ("requests", "requestType", "pending", "fulfilled"),
    ("rents", "rentType", "available", "rented"),
]


@pytest.fixture
def people(make_user):
    owner = make_user("owner@example.com", name="Owner", phone="01700000000", district="Comilla", upazila="Laksam")
    stranger = make_user("stranger@example.com")
    admin = make_user("admin@example.com", role=Role.admin)
    return owner, stranger, admin


def _create(client: TestClient, route: str, **fields) -> dict:
    body = {"category": "Plumbing", "description": "Fix a leaking tap"}
    body.update(fields)
    resp = client.post(f"/api/{route}", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.parametrize("route,category_key,initial,other_status", KINDS)
class TestEveryKind:
    def test_create_and_read(self, client, people, login, route, category_key, initial, other_status) -> None:
        owner, _, _ = people
        login(client, "owner@example.com")
        resp = client.post(f"/api/{route}", json={category_key: "Tools", "description": "Cordless drill"})
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["message"].endswith("created successfully")
        resource = body["resource"]
        assert body["id"] == resource["id"]
        assert resource["category"] == "Tools"
        assert resource["status"] == initial
        assert resource["ownerId"] == owner.id
        assert resource["ownerName"] == "Owner"
        assert (resource["district"], resource["upazila"], resource["contact"]) == (
            "Comilla",
            "Laksam",
            "01700000000",
        )
        got = client.get(f"/api/{route}/{body['id']}")
        assert got.status_code == 200
        assert got.json()["description"] == "Cordless drill"

    def test_owner_changes_status(self, client, people, login, route, category_key, initial, other_status) -> None:
        login(client, "owner@example.com")
        rid = _create(client, route)["id"]
        resp = client.patch(f"/api/{route}/{rid}", json={"status": other_status})
        assert resp.status_code == 200, resp.text
        assert resp.json()["resource"]["status"] == other_status
        assert resp.json()["resource"]["updatedAt"]

    def test_stranger_403_and_unchanged(
        self, client, people, login, route, category_key, initial, other_status
    ) -> None:
        login(client, "owner@example.com")
        rid = _create(client, route)["id"]
        login(client, "stranger@example.com")
        assert client.patch(f"/api/{route}/{rid}", json={"status": other_status}).status_code == 403
        assert client.delete(f"/api/{route}/{rid}").status_code == 403
        assert client.get(f"/api/{route}/{rid}").json()["status"] == initial

    def test_missing_id_404_for_everyone(
        self, client, people, login, route, category_key, initial, other_status
    ) -> None:
        for email in ("owner@example.com", "stranger@example.com", "admin@example.com"):
            login(client, email)
            assert client.patch(f"/api/{route}/9999", json={"status": other_status}).status_code == 404
            assert client.delete(f"/api/{route}/9999").status_code == 404
            assert client.get(f"/api/{route}/9999").status_code == 404

    def test_admin_listing(self, client, people, login, route, category_key, initial, other_status) -> None:
        login(client, "owner@example.com")
        _create(client, route)
        login(client, "stranger@example.com")
        _create(client, route)
        assert client.get(f"/api/{route}").status_code == 403
        assert client.get(f"/api/{route}/admin").status_code == 403
        login(client, "admin@example.com")
        assert len(client.get(f"/api/{route}").json()) == 2
        assert len(client.get(f"/api/{route}/admin").json()) == 2


class TestCreateValidation:
    def test_explicit_location_overrides_profile(self, client, people, login) -> None:
        login(client, "owner@example.com")
        resource = _create(client, "services", district="Dhaka", upazila="Mirpur", contact="555")["resource"]
        assert (resource["district"], resource["upazila"], resource["contact"]) == ("Dhaka", "Mirpur", "555")

    def test_price_and_title(self, client, people, login) -> None:
        login(client, "owner@example.com")
        resource = _create(client, "rents", title="Drill", price=250, availability="Weekends")["resource"]
        assert resource["price"] == 250
        assert resource["title"] == "Drill"
        assert resource["availability"] == "Weekends"

    def test_negative_price_400(self, client, people, login) -> None:
        login(client, "owner@example.com")
        resp = client.post("/api/rents", json={"category": "Tools", "description": "d", "price": -1})
        assert resp.status_code == 400

    @pytest.mark.parametrize(
        "extra",
        [{"status": "active"}, {"ownerId": 2}, {"ownerName": "Mallory"}, {"colour": "red"}],
    )
    def test_forbidden_keys_400(self, client, people, login, extra) -> None:
        login(client, "owner@example.com")
        body = {"category": "Plumbing", "description": "d", **extra}
        assert client.post("/api/services", json=body).status_code == 400

    def test_missing_description_400(self, client, people, login) -> None:
        login(client, "owner@example.com")
        assert client.post("/api/services", json={"category": "Plumbing"}).status_code == 400

    @pytest.mark.parametrize(
        "route,foreign_key",
        [("rents", "serviceType"), ("services", "rentType"), ("requests", "serviceType")],
    )
    def test_other_kinds_category_key_400(self, client, people, login, route, foreign_key) -> None:
        login(client, "owner@example.com")
        resp = client.post(f"/api/{route}", json={foreign_key: "Tools", "description": "d"})
        assert resp.status_code == 400
        assert client.get(f"/api/my-{route}").json() == []

    def test_requires_session(self, client, people) -> None:
        assert client.post("/api/services", json={"category": "x", "description": "y"}).status_code == 401


class TestMyListings:
    def test_exclusive_and_newest_first(self, client, people, login) -> None:
        login(client, "owner@example.com")
        first = _create(client, "services", description="first")["id"]
        second = _create(client, "services", description="second")["id"]
        login(client, "stranger@example.com")
        theirs = _create(client, "services")["id"]

        assert [r["id"] for r in client.get("/api/my-services").json()] == [theirs]
        login(client, "owner@example.com")
        assert [r["id"] for r in client.get("/api/my-services").json()] == [second, first]

    def test_empty_list(self, client, people, login) -> None:
        login(client, "owner@example.com")
        assert client.get("/api/my-requests").json() == []


class TestPatch:
    def test_partial_update_keeps_other_fields(self, client, people, login) -> None:
        login(client, "owner@example.com")
        created = _create(client, "rents", title="Drill", price=100)["resource"]
        resp = client.patch(f"/api/rents/{created['id']}", json={"price": 120})
        resource = resp.json()["resource"]
        assert resource["price"] == 120
        assert resource["title"] == "Drill"
        assert resource["description"] == created["description"]
        assert resource["createdAt"] == created["createdAt"]

    def test_kind_specific_category_key(self, client, people, login) -> None:
        login(client, "owner@example.com")
        rid = _create(client, "requests")["id"]
        resp = client.patch(f"/api/requests/{rid}", json={"requestType": "Electrical"})
        assert resp.json()["resource"]["category"] == "Electrical"

    def test_other_kinds_category_key_400(self, client, people, login) -> None:
        login(client, "owner@example.com")
        rid = _create(client, "services")["id"]
        assert client.patch(f"/api/services/{rid}", json={"rentType": "Tools"}).status_code == 400
        assert client.get(f"/api/services/{rid}").json()["category"] == "Plumbing"

    def test_invalid_status_400(self, client, people, login) -> None:
        login(client, "owner@example.com")
        rid = _create(client, "rents")["id"]
        resp = client.patch(f"/api/rents/{rid}", json={"status": "completed"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_status"

    def test_null_400(self, client, people, login) -> None:
        login(client, "owner@example.com")
        rid = _create(client, "services", title="Tap")["id"]
        assert client.patch(f"/api/services/{rid}", json={"title": None}).status_code == 400
        assert client.get(f"/api/services/{rid}").json()["title"] == "Tap"

    def test_owner_key_400(self, client, people, login) -> None:
        owner, stranger, _ = people
        login(client, "owner@example.com")
        rid = _create(client, "services")["id"]
        assert client.patch(f"/api/services/{rid}", json={"ownerId": stranger.id}).status_code == 400
        assert client.get(f"/api/services/{rid}").json()["ownerId"] == owner.id

    def test_empty_body_400(self, client, people, login) -> None:
        login(client, "owner@example.com")
        rid = _create(client, "services")["id"]
        assert client.patch(f"/api/services/{rid}", json={}).status_code == 400

    def test_admin_may_edit_any(self, client, people, login) -> None:
        login(client, "owner@example.com")
        rid = _create(client, "services")["id"]
        login(client, "admin@example.com")
        resp = client.patch(f"/api/services/{rid}", json={"status": "cancelled"})
        assert resp.status_code == 200
        assert resp.json()["resource"]["status"] == "cancelled"


class TestDelete:
    def test_owner_deletes(self, client, people, login) -> None:
        login(client, "owner@example.com")
        rid = _create(client, "services")["id"]
        resp = client.delete(f"/api/services/{rid}")
        assert resp.status_code == 200
        assert resp.json() == {"message": "Service deleted successfully", "deletedId": rid}
        assert client.get(f"/api/services/{rid}").status_code == 404
        assert client.delete(f"/api/services/{rid}").status_code == 404

    def test_admin_deletes_any(self, client, people, login) -> None:
        login(client, "owner@example.com")
        rid = _create(client, "services")["id"]
        login(client, "admin@example.com")
        assert client.delete(f"/api/services/{rid}").status_code == 200

    def test_forced_delete_admin_only(self, client, people, login) -> None:
        login(client, "owner@example.com")
        rid = _create(client, "rents")["id"]
        assert client.delete(f"/api/rents/admin/{rid}").status_code == 403
        login(client, "admin@example.com")
        resp = client.delete(f"/api/rents/admin/{rid}")
        assert resp.status_code == 200
        assert resp.json()["deletedId"] == rid
        assert client.delete(f"/api/rents/admin/{rid}").status_code == 404
