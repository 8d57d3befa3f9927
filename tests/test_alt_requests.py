"""Tests for the reassignment request workflow."""

from datetime import date

import pytest

from conftest import ALICE, BOB, CAROL, MAIN_CHANNEL
from core.database import fetch_livestream
from core.errors import ConflictError, ForbiddenError, FrozenStateError, NotFoundError, ValidationError
from models.schedule import AltKind
from models.workflow import AltRequestStatus
from services import alt_requests, snapshots, synchronizer

DAY = date(2025, 11, 5)


@pytest.fixture
def host_snapshot(conn, add_period):
    """(livestream_id, snapshot_id) of a host snapshot assigned to Alice."""
    add_period("host", "09:00", "11:00")
    livestream = synchronizer.materialize(conn, DAY, MAIN_CHANNEL)
    snapshot_id = livestream.snapshots[0].id
    snapshots.update_snapshot(conn, livestream.id, snapshot_id, {"assignee": ALICE})
    return livestream.id, snapshot_id


class TestCreate:
    def test_create_pending(self, conn, host_snapshot):
        request = alt_requests.create_request(conn, BOB, *host_snapshot, "Alice is sick")
        assert request.status == AltRequestStatus.PENDING
        assert request.created_by == BOB

    def test_one_pending_per_snapshot(self, conn, host_snapshot):
        alt_requests.create_request(conn, BOB, *host_snapshot, "first")
        with pytest.raises(ConflictError):
            alt_requests.create_request(conn, CAROL, *host_snapshot, "second")

    def test_new_request_after_rejection(self, conn, host_snapshot):
        first = alt_requests.create_request(conn, BOB, *host_snapshot, "first")
        alt_requests.reject_request(conn, first.id)
        second = alt_requests.create_request(conn, BOB, *host_snapshot, "second")
        assert second.id != first.id

    def test_unknown_creator_and_snapshot(self, conn, host_snapshot):
        livestream_id, _ = host_snapshot
        with pytest.raises(NotFoundError):
            alt_requests.create_request(conn, 99, *host_snapshot, "note")
        with pytest.raises(NotFoundError):
            alt_requests.create_request(conn, BOB, livestream_id, "missing", "note")

    def test_note_required(self, conn, host_snapshot):
        with pytest.raises(ValidationError):
            alt_requests.create_request(conn, BOB, *host_snapshot, "   ")


class TestCreatorOnly:
    def test_edit_by_creator(self, conn, host_snapshot):
        request = alt_requests.create_request(conn, BOB, *host_snapshot, "old")
        updated = alt_requests.update_request_note(conn, request.id, BOB, "new")
        assert updated.alt_note == "new"

    def test_edit_by_someone_else(self, conn, host_snapshot):
        request = alt_requests.create_request(conn, BOB, *host_snapshot, "old")
        with pytest.raises(ForbiddenError):
            alt_requests.update_request_note(conn, request.id, CAROL, "new")

    def test_delete_only_while_pending(self, conn, host_snapshot):
        request = alt_requests.create_request(conn, BOB, *host_snapshot, "note")
        alt_requests.reject_request(conn, request.id)
        with pytest.raises(ConflictError):
            alt_requests.delete_request(conn, request.id, BOB)

    def test_delete(self, conn, host_snapshot):
        request = alt_requests.create_request(conn, BOB, *host_snapshot, "note")
        alt_requests.delete_request(conn, request.id, BOB)
        with pytest.raises(NotFoundError):
            alt_requests.get_request(conn, request.id)


class TestAccept:
    def test_accept_writes_snapshot(self, conn, host_snapshot):
        livestream_id, snapshot_id = host_snapshot
        request = alt_requests.create_request(conn, BOB, *host_snapshot, "covering")
        accepted = alt_requests.accept_request(conn, request.id, CAROL)

        assert accepted.status == AltRequestStatus.ACCEPTED
        snapshot = fetch_livestream(conn, livestream_id).find_snapshot(snapshot_id)
        assert snapshot.alt_assignee.kind == AltKind.USER
        assert snapshot.alt_assignee.user_id == CAROL
        assert snapshot.alt_note == "covering"

    def test_accept_same_as_assignee_fails(self, conn, host_snapshot):
        request = alt_requests.create_request(conn, BOB, *host_snapshot, "note")
        with pytest.raises(ValidationError):
            alt_requests.accept_request(conn, request.id, ALICE)
        assert alt_requests.get_request(conn, request.id).is_pending

    def test_accept_other(self, conn, host_snapshot):
        livestream_id, snapshot_id = host_snapshot
        request = alt_requests.create_request(conn, BOB, *host_snapshot, "guest host")
        alt_requests.accept_request(conn, request.id, "other", alt_note="guest from agency")
        snapshot = fetch_livestream(conn, livestream_id).find_snapshot(snapshot_id)
        assert snapshot.alt_assignee.kind == AltKind.OTHER
        assert snapshot.alt_note == "guest from agency"

    def test_accept_unknown_user(self, conn, host_snapshot):
        request = alt_requests.create_request(conn, BOB, *host_snapshot, "note")
        with pytest.raises(NotFoundError):
            alt_requests.accept_request(conn, request.id, 99)

    def test_terminal_states_are_final(self, conn, host_snapshot):
        request = alt_requests.create_request(conn, BOB, *host_snapshot, "note")
        alt_requests.accept_request(conn, request.id, CAROL)
        with pytest.raises(ConflictError):
            alt_requests.reject_request(conn, request.id)
        with pytest.raises(ConflictError):
            alt_requests.accept_request(conn, request.id, BOB)

    def test_accept_on_fixed_livestream(self, conn, host_snapshot):
        request = alt_requests.create_request(conn, BOB, *host_snapshot, "note")
        synchronizer.fix_livestreams(conn, DAY, DAY, MAIN_CHANNEL)
        with pytest.raises(FrozenStateError):
            alt_requests.accept_request(conn, request.id, CAROL)
        assert alt_requests.get_request(conn, request.id).is_pending


class TestReject:
    def test_reject_leaves_snapshot(self, conn, host_snapshot):
        livestream_id, snapshot_id = host_snapshot
        request = alt_requests.create_request(conn, BOB, *host_snapshot, "note")
        rejected = alt_requests.reject_request(conn, request.id)
        assert rejected.status == AltRequestStatus.REJECTED
        snapshot = fetch_livestream(conn, livestream_id).find_snapshot(snapshot_id)
        assert not snapshot.alt_assignee.is_set
        latest = alt_requests.get_request_for_snapshot(conn, livestream_id, snapshot_id)
        assert latest.id == request.id
