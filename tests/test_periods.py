"""Tests for the period registry."""

import itertools

import pytest

from conftest import MAIN_CHANNEL, OUTLET_CHANNEL, t
from core.errors import NotFoundError, ValidationError
from core.intervals import window_overlaps
from models.schedule import Role
from services import periods


class TestCreatePeriod:
    def test_create_and_list(self, conn, add_period):
        add_period("host", "09:00", "11:00")
        add_period("assistant", "09:30", "10:30")
        listed = periods.list_by_channel(conn, MAIN_CHANNEL)
        assert [(p.role, str(p.start_time)) for p in listed] == [
            (Role.HOST, "09:00"),
            (Role.ASSISTANT, "09:30"),
        ]

    def test_zero_length_window_rejected(self, add_period):
        with pytest.raises(ValidationError):
            add_period("host", "09:00", "09:00")

    def test_same_role_overlap_rejected(self, add_period):
        add_period("host", "09:00", "11:00")
        with pytest.raises(ValidationError, match="overlaps"):
            add_period("host", "10:00", "12:00")

    def test_adjacent_windows_allowed(self, add_period):
        add_period("host", "09:00", "11:00")
        add_period("host", "11:00", "13:00")

    def test_other_role_may_overlap(self, add_period):
        add_period("host", "09:00", "11:00")
        add_period("assistant", "09:00", "11:00")

    def test_other_channel_may_overlap(self, add_period):
        add_period("host", "09:00", "11:00")
        add_period("host", "09:00", "11:00", channel_id=OUTLET_CHANNEL)

    def test_wrapping_window_overlap(self, add_period):
        add_period("host", "23:00", "01:00")
        with pytest.raises(ValidationError):
            add_period("host", "00:30", "02:00")
        add_period("host", "01:00", "03:00")

    def test_unknown_channel(self, conn):
        with pytest.raises(NotFoundError):
            periods.create_period(conn, 99, "host", t("09:00"), t("10:00"))

    def test_bad_role(self, conn):
        with pytest.raises(ValidationError):
            periods.create_period(conn, MAIN_CHANNEL, "producer", t("09:00"), t("10:00"))


class TestUpdatePeriod:
    def test_update_excludes_self(self, conn, add_period):
        period = add_period("host", "09:00", "11:00")
        updated = periods.update_period(conn, period.id, end_time=t("11:30"))
        assert str(updated.end_time) == "11:30"

    def test_update_into_overlap_rejected(self, conn, add_period):
        add_period("host", "09:00", "11:00")
        later = add_period("host", "12:00", "13:00")
        with pytest.raises(ValidationError):
            periods.update_period(conn, later.id, start_time=t("10:30"))
        assert str(periods.get_period(conn, later.id).start_time) == "12:00"

    def test_missing(self, conn):
        with pytest.raises(NotFoundError):
            periods.update_period(conn, 404, end_time=t("10:00"))


class TestDeletePeriod:
    def test_delete(self, conn, add_period):
        period = add_period("host", "09:00", "11:00")
        periods.delete_period(conn, period.id)
        assert periods.list_by_channel(conn, MAIN_CHANNEL) == []

    def test_delete_missing(self, conn):
        with pytest.raises(NotFoundError):
            periods.delete_period(conn, 404)


class TestNonOverlapHolds:
    def test_accepted_sequence_never_overlaps(self, conn, add_period):
        attempts = [
            ("08:00", "10:00"), ("09:00", "11:00"), ("10:00", "12:00"),
            ("11:30", "12:30"), ("22:00", "02:00"), ("01:00", "03:00"),
            ("12:00", "13:00"), ("03:00", "08:00"),
        ]
        for start, end in attempts:
            try:
                add_period("host", start, end)
            except ValidationError:
                pass

        accepted = periods.list_by_channel(conn, MAIN_CHANNEL)
        assert len(accepted) >= 4
        for a, b in itertools.combinations(accepted, 2):
            assert not window_overlaps(
                a.start_time.minutes, a.end_time.minutes,
                b.start_time.minutes, b.end_time.minutes,
            )
