"""Unit tests for listings/store.py and listings/lifecycle.py.

Covers:
- create() stamps owner fields, initial status, and profile fallbacks
- create() refuses a client-chosen status and missing required fields
- list_mine() is exclusive to the owner and newest first
- update() is partial, owner-or-admin, NotFound before Forbidden
- update() validates status against the kind's closed set
- delete() removes the record; second delete is NotFound
- list_all() is admin only
- the store never lets owner_id change
"""

import pytest

from auth.models import Role
from core.errors import Forbidden, NotFound, ValidationFailed
from listings.models import KIND_SPECS, ResourceKind

RENTAL = ResourceKind.rental
SERVICE = ResourceKind.service


@pytest.fixture
def owner(make_user):
    return make_user(
        "owner@example.com", name="Owner", phone="01700000000", avatar="a.png", district="Comilla", upazila="Laksam"
    )


@pytest.fixture
def stranger(make_user):
    return make_user("stranger@example.com")


@pytest.fixture
def admin(make_user):
    return make_user("admin@example.com", role=Role.admin)


def _create(lifecycle, kind, actor, **fields):
    body = {"category": "Tools", "description": "A drill"}
    body.update(fields)
    return lifecycle.create(kind, actor, body)


class TestCreate:
    def test_initial_status_per_kind(self, lifecycle, owner) -> None:
        for kind in ResourceKind:
            created = _create(lifecycle, kind, owner)
            assert created.status == KIND_SPECS[kind].initial_status

    def test_owner_fields_copied_from_profile(self, lifecycle, owner) -> None:
        created = _create(lifecycle, RENTAL, owner)
        assert created.id is not None
        assert created.owner_id == owner.id
        assert created.owner_name == "Owner"
        assert created.owner_avatar == "a.png"

    def test_location_and_contact_fall_back_to_profile(self, lifecycle, owner) -> None:
        created = _create(lifecycle, RENTAL, owner)
        assert (created.district, created.upazila, created.contact) == ("Comilla", "Laksam", "01700000000")

    def test_explicit_location_wins(self, lifecycle, owner) -> None:
        created = _create(lifecycle, RENTAL, owner, district="Dhaka", upazila="Mirpur", contact="999")
        assert (created.district, created.upazila, created.contact) == ("Dhaka", "Mirpur", "999")

    def test_client_status_refused(self, lifecycle, owner) -> None:
        with pytest.raises(ValidationFailed):
            _create(lifecycle, RENTAL, owner, status="rented")

    @pytest.mark.parametrize("missing", ["category", "description"])
    def test_required_fields(self, lifecycle, owner, missing) -> None:
        with pytest.raises(ValidationFailed):
            _create(lifecycle, SERVICE, owner, **{missing: ""})

    def test_unknown_field_refused(self, lifecycle, owner) -> None:
        with pytest.raises(ValidationFailed):
            _create(lifecycle, SERVICE, owner, owner_id=42)


class TestList:
    def test_list_mine_exclusive_and_newest_first(self, lifecycle, owner, stranger) -> None:
        first = _create(lifecycle, SERVICE, owner, description="first")
        second = _create(lifecycle, SERVICE, owner, description="second")
        _create(lifecycle, SERVICE, stranger)
        mine = lifecycle.list_mine(SERVICE, owner)
        assert [r.id for r in mine] == [second.id, first.id]

    def test_kinds_do_not_mix(self, lifecycle, owner) -> None:
        _create(lifecycle, SERVICE, owner)
        assert lifecycle.list_mine(RENTAL, owner) == []

    def test_list_all_requires_admin(self, lifecycle, owner, stranger, admin) -> None:
        _create(lifecycle, SERVICE, owner)
        _create(lifecycle, SERVICE, stranger)
        with pytest.raises(Forbidden):
            lifecycle.list_all(SERVICE, owner)
        assert len(lifecycle.list_all(SERVICE, admin)) == 2


class TestUpdate:
    def test_partial_update_keeps_other_fields(self, lifecycle, owner) -> None:
        created = _create(lifecycle, RENTAL, owner, title="Drill", price=5.0)
        updated = lifecycle.update(RENTAL, owner, created.id, {"price": 7.5})
        assert updated.price == 7.5
        assert updated.title == "Drill"
        assert updated.description == "A drill"
        assert updated.updated_at is not None

    def test_empty_string_clears_optional_field(self, lifecycle, owner) -> None:
        created = _create(lifecycle, RENTAL, owner, title="Drill")
        assert lifecycle.update(RENTAL, owner, created.id, {"title": ""}).title == ""

    def test_stranger_forbidden_and_record_unchanged(self, lifecycle, owner, stranger) -> None:
        created = _create(lifecycle, RENTAL, owner)
        with pytest.raises(Forbidden):
            lifecycle.update(RENTAL, stranger, created.id, {"status": "rented"})
        assert lifecycle.get(RENTAL, created.id).status == "available"

    def test_admin_may_update(self, lifecycle, owner, admin) -> None:
        created = _create(lifecycle, RENTAL, owner)
        assert lifecycle.update(RENTAL, admin, created.id, {"status": "unavailable"}).status == "unavailable"

    def test_missing_id_is_not_found_for_anyone(self, lifecycle, stranger, admin) -> None:
        for actor in (stranger, admin):
            with pytest.raises(NotFound):
                lifecycle.update(RENTAL, actor, 999, {"status": "rented"})

    def test_invalid_status(self, lifecycle, owner) -> None:
        created = _create(lifecycle, RENTAL, owner)
        with pytest.raises(ValidationFailed) as exc:
            lifecycle.update(RENTAL, owner, created.id, {"status": "fulfilled"})
        assert exc.value.code == "invalid_status"

    def test_any_allowed_status_may_follow_any_other(self, lifecycle, owner) -> None:
        created = _create(lifecycle, SERVICE, owner)
        lifecycle.update(SERVICE, owner, created.id, {"status": "completed"})
        assert lifecycle.update(SERVICE, owner, created.id, {"status": "pending"}).status == "pending"

    def test_no_changes(self, lifecycle, owner) -> None:
        created = _create(lifecycle, RENTAL, owner)
        with pytest.raises(ValidationFailed) as exc:
            lifecycle.update(RENTAL, owner, created.id, {})
        assert exc.value.code == "no_changes"

    def test_owner_fields_not_editable(self, lifecycle, owner, stranger) -> None:
        created = _create(lifecycle, RENTAL, owner)
        with pytest.raises(ValidationFailed):
            lifecycle.update(RENTAL, owner, created.id, {"owner_id": stranger.id})

    def test_store_whitelist_protects_owner(self, resource_store, lifecycle, owner, stranger) -> None:
        created = _create(lifecycle, RENTAL, owner)
        with pytest.raises(ValidationFailed):
            resource_store.update(RENTAL, created.id, owner_id=stranger.id)
        assert resource_store.get(RENTAL, created.id).owner_id == owner.id


class TestDelete:
    def test_owner_deletes(self, lifecycle, owner) -> None:
        created = _create(lifecycle, RENTAL, owner)
        lifecycle.delete(RENTAL, owner, created.id)
        with pytest.raises(NotFound):
            lifecycle.get(RENTAL, created.id)
        with pytest.raises(NotFound):
            lifecycle.delete(RENTAL, owner, created.id)

    def test_stranger_cannot_delete(self, lifecycle, owner, stranger) -> None:
        created = _create(lifecycle, RENTAL, owner)
        with pytest.raises(Forbidden):
            lifecycle.delete(RENTAL, stranger, created.id)
        assert lifecycle.get(RENTAL, created.id).id == created.id

    def test_admin_only_delete_refuses_owner(self, lifecycle, owner, admin) -> None:
        created = _create(lifecycle, RENTAL, owner)
        with pytest.raises(Forbidden):
            lifecycle.delete(RENTAL, owner, created.id, admin_only=True)
        lifecycle.delete(RENTAL, admin, created.id, admin_only=True)
        assert lifecycle.list_mine(RENTAL, owner) == []
