"""Tests for livestream materialization and synchronization."""

from datetime import date

import pytest

from conftest import ALICE, MAIN_CHANNEL, OUTLET_CHANNEL, t
from core.database import fetch_livestream, fetch_livestream_by_date
from core.errors import ConflictError, FrozenStateError, ValidationError
from services import periods, snapshots, synchronizer

DAY = date(2025, 11, 5)


class TestMaterialize:
    def test_one_snapshot_per_period(self, conn, add_period):
        add_period("host", "09:00", "11:00")
        add_period("assistant", "09:30", "10:30")
        livestream = synchronizer.materialize(conn, DAY, MAIN_CHANNEL)

        assert livestream.id is not None
        assert len(livestream.snapshots) == 2
        assert all(s.income == 0 and s.orders == 0 for s in livestream.snapshots)
        assert {s.period.channel_id for s in livestream.snapshots} == {MAIN_CHANNEL}

    def test_no_periods_gives_empty_livestream(self, conn):
        livestream = synchronizer.materialize(conn, DAY, MAIN_CHANNEL)
        assert livestream.snapshots == []
        assert livestream.date_kpi == 0

    def test_duplicate_rejected(self, conn, add_period):
        add_period("host", "09:00", "11:00")
        synchronizer.materialize(conn, DAY, MAIN_CHANNEL)
        with pytest.raises(ConflictError):
            synchronizer.materialize(conn, DAY, MAIN_CHANNEL)

    def test_same_date_other_channel_allowed(self, conn):
        synchronizer.materialize(conn, DAY, MAIN_CHANNEL)
        synchronizer.materialize(conn, DAY, OUTLET_CHANNEL)

    def test_kpi_distribution(self, conn, add_period, set_goal):
        # 100,000,000 over 30 days = 3,333,333.33 -> 3,333,000; over 2 periods -> 1,666,500 -> 1,667,000
        set_goal(MAIN_CHANNEL, 2025, 11, 100_000_000)
        add_period("host", "09:00", "11:00")
        add_period("host", "11:00", "13:00")
        livestream = synchronizer.materialize(conn, DAY, MAIN_CHANNEL)

        assert livestream.date_kpi == 3_333_000
        assert [s.snapshot_kpi for s in livestream.snapshots] == [1_667_000, 1_667_000]

    def test_range_skips_existing(self, conn, add_period):
        add_period("host", "09:00", "11:00")
        synchronizer.materialize(conn, date(2025, 11, 2), MAIN_CHANNEL)
        created = synchronizer.materialize_range(conn, date(2025, 11, 1), date(2025, 11, 3), MAIN_CHANNEL)
        assert [ls.date.day for ls in created] == [1, 3]

    def test_range_reversed(self, conn):
        with pytest.raises(ValidationError):
            synchronizer.materialize_range(conn, date(2025, 11, 3), date(2025, 11, 1), MAIN_CHANNEL)


class TestSynchronize:
    def test_second_run_writes_nothing(self, conn, add_period):
        add_period("host", "09:00", "11:00")
        livestream = synchronizer.materialize(conn, DAY, MAIN_CHANNEL)
        add_period("host", "11:00", "13:00")

        first = synchronizer.synchronize(conn, DAY, DAY, MAIN_CHANNEL)
        version_after_first = fetch_livestream(conn, livestream.id).version
        second = synchronizer.synchronize(conn, DAY, DAY, MAIN_CHANNEL)

        assert first["updated_count"] == 1
        assert second["updated_count"] == 0
        assert fetch_livestream(conn, livestream.id).version == version_after_first

    def test_no_change_is_noop(self, conn, add_period):
        add_period("host", "09:00", "11:00")
        livestream = synchronizer.materialize(conn, DAY, MAIN_CHANNEL)
        result = synchronizer.synchronize(conn, DAY, DAY, MAIN_CHANNEL)
        assert result["updated_count"] == 0
        assert fetch_livestream(conn, livestream.id).version == 0

    def test_retimed_period_keeps_recorded_data(self, conn, add_period):
        host = add_period("host", "09:00", "11:00")
        livestream = synchronizer.materialize(conn, DAY, MAIN_CHANNEL)
        snapshot_id = livestream.snapshots[0].id
        snapshots.update_snapshot(
            conn, livestream.id, snapshot_id, {"assignee": ALICE, "income": 2_000_000}
        )

        periods.update_period(conn, host.id, end_time=t("12:00"))
        synchronizer.synchronize(conn, DAY, DAY, MAIN_CHANNEL)

        refreshed = fetch_livestream(conn, livestream.id)
        snapshot = refreshed.find_snapshot(snapshot_id)
        assert str(snapshot.period.end_time) == "12:00"
        assert snapshot.assignee == ALICE
        assert snapshot.income == 2_000_000
        assert refreshed.total_income == 2_000_000

    def test_deleted_period_dropped_only_on_sync(self, conn, add_period):
        host = add_period("host", "09:00", "11:00")
        add_period("host", "11:00", "13:00")
        livestream = synchronizer.materialize(conn, DAY, MAIN_CHANNEL)

        periods.delete_period(conn, host.id)
        assert len(fetch_livestream(conn, livestream.id).snapshots) == 2

        synchronizer.synchronize(conn, DAY, DAY, MAIN_CHANNEL)
        remaining = fetch_livestream(conn, livestream.id).snapshots
        assert [str(s.period.start_time) for s in remaining] == ["11:00"]

    def test_fixed_livestream_untouched(self, conn, add_period):
        host = add_period("host", "09:00", "11:00")
        livestream = synchronizer.materialize(conn, DAY, MAIN_CHANNEL)
        assert synchronizer.fix_livestreams(conn, DAY, DAY, MAIN_CHANNEL) == 1

        periods.delete_period(conn, host.id)
        result = synchronizer.synchronize(conn, DAY, DAY, MAIN_CHANNEL)

        assert result == {"updated_count": 0, "skipped_fixed": 1}
        assert len(fetch_livestream(conn, livestream.id).snapshots) == 1

    def test_guard_raises_when_called_directly(self, conn, add_period):
        add_period("host", "09:00", "11:00")
        synchronizer.materialize(conn, DAY, MAIN_CHANNEL)
        synchronizer.fix_livestreams(conn, DAY, DAY, MAIN_CHANNEL)
        livestream = fetch_livestream_by_date(conn, DAY, MAIN_CHANNEL)
        with pytest.raises(FrozenStateError):
            synchronizer.synchronize_livestream(conn, livestream, [])

    def test_other_channels_untouched(self, conn, add_period):
        add_period("host", "09:00", "11:00")
        add_period("host", "09:00", "11:00", channel_id=OUTLET_CHANNEL)
        main = synchronizer.materialize(conn, DAY, MAIN_CHANNEL)
        outlet = synchronizer.materialize(conn, DAY, OUTLET_CHANNEL)
        add_period("host", "12:00", "13:00")

        synchronizer.synchronize(conn, DAY, DAY, MAIN_CHANNEL)

        assert len(fetch_livestream(conn, main.id).snapshots) == 2
        assert fetch_livestream(conn, outlet.id).version == 0


class TestFix:
    def test_fix_counts_only_unfixed(self, conn):
        synchronizer.materialize_range(conn, date(2025, 11, 1), date(2025, 11, 3), MAIN_CHANNEL)
        assert synchronizer.fix_livestreams(conn, date(2025, 11, 1), date(2025, 11, 2), MAIN_CHANNEL) == 2
        assert synchronizer.fix_livestreams(conn, date(2025, 11, 1), date(2025, 11, 3), MAIN_CHANNEL) == 1
