"""Tests for snapshot mutations and host-to-assistant propagation."""

from datetime import date

import pytest

from conftest import ALICE, BOB, DAN, MAIN_CHANNEL, OUTLET_CHANNEL, t
from core.database import fetch_livestream, save_livestream
from core.errors import ConflictError, FrozenStateError, NotFoundError, ValidationError
from models.schedule import AltKind
from services import snapshots, synchronizer

DAY = date(2025, 11, 5)


@pytest.fixture
def day_schedule(conn, add_period):
    """Host 09-11 with assistant 09:30-10:30 inside it and assistant 11-12 outside."""
    add_period("host", "09:00", "11:00")
    add_period("assistant", "09:30", "10:30")
    add_period("assistant", "11:00", "12:00")
    livestream = synchronizer.materialize(conn, DAY, MAIN_CHANNEL)
    by_start = {str(s.period.start_time): s.id for s in livestream.snapshots}
    return livestream.id, by_start["09:00"], by_start["09:30"], by_start["11:00"]


class TestHostPropagation:
    def test_income_delta_reaches_contained_assistant(self, conn, day_schedule):
        livestream_id, host, inside, outside = day_schedule
        snapshots.update_snapshot(conn, livestream_id, host, {"income": 1_000_000})
        snapshots.update_snapshot(conn, livestream_id, inside, {"income": 200_000})

        snapshots.update_snapshot(conn, livestream_id, host, {"income": 1_500_000})

        livestream = fetch_livestream(conn, livestream_id)
        assert livestream.find_snapshot(host).income == 1_500_000
        # 1,000,000 from the first host edit, overwritten by 200,000, then +500,000
        assert livestream.find_snapshot(inside).income == 700_000
        assert livestream.find_snapshot(outside).income == 0
        assert livestream.total_income == 2_200_000

    def test_several_metrics_propagate(self, conn, day_schedule):
        livestream_id, host, inside, _ = day_schedule
        snapshots.update_snapshot(conn, livestream_id, host, {"orders": 10, "comments": 4, "ads_cost": 50})
        assistant = fetch_livestream(conn, livestream_id).find_snapshot(inside)
        assert (assistant.orders, assistant.comments, assistant.ads_cost) == (10, 4, 50)

    def test_assistant_edit_does_not_propagate(self, conn, day_schedule):
        livestream_id, host, inside, _ = day_schedule
        snapshots.update_snapshot(conn, livestream_id, inside, {"income": 300_000})
        assert fetch_livestream(conn, livestream_id).find_snapshot(host).income == 0

    def test_report_propagates(self, conn, day_schedule):
        livestream_id, host, inside, _ = day_schedule
        snapshots.report_snapshot(
            conn, livestream_id, host,
            income=800_000, ads_cost=20_000, click_rate=1.2, avg_viewing_duration=35,
            comments=12, orders=9, orders_note="two returns",
        )
        livestream = fetch_livestream(conn, livestream_id)
        assert livestream.find_snapshot(host).orders_note == "two returns"
        assert livestream.find_snapshot(inside).income == 800_000
        assert livestream.find_snapshot(inside).click_rate is None


class TestAddAndUpdate:
    def test_add_rejects_same_role_overlap(self, conn, add_period, day_schedule):
        livestream_id, host, _, _ = day_schedule
        snapshots.update_snapshot_times(conn, livestream_id, [(host, t("09:00"), t("13:00"))])
        late = add_period("host", "12:00", "13:00")
        with pytest.raises(ValidationError, match="overlaps"):
            snapshots.add_snapshot(conn, livestream_id, late.id)

    def test_add_rejects_other_channel(self, conn, add_period, day_schedule):
        livestream_id = day_schedule[0]
        other = add_period("host", "14:00", "15:00", channel_id=OUTLET_CHANNEL)
        with pytest.raises(ValidationError, match="channel"):
            snapshots.add_snapshot(conn, livestream_id, other.id)

    def test_add_for_new_period(self, conn, add_period, day_schedule):
        livestream_id = day_schedule[0]
        evening = add_period("host", "20:00", "22:00")
        livestream = snapshots.add_snapshot(conn, livestream_id, evening.id, assignee=ALICE, income=5)
        assert len(livestream.snapshots) == 4
        assert livestream.total_income == 5

    def test_add_for_period_already_in_livestream(self, conn, day_schedule):
        livestream_id, host, _, _ = day_schedule
        snapshots.update_snapshot(conn, livestream_id, host, {"income": 700})
        snapshots.update_snapshot_times(conn, livestream_id, [(host, t("12:00"), t("13:00"))])
        period_id = fetch_livestream(conn, livestream_id).find_snapshot(host).period.period_id

        with pytest.raises(ConflictError):
            snapshots.add_snapshot(conn, livestream_id, period_id, income=100)

        synchronizer.synchronize(conn, DAY, DAY, MAIN_CHANNEL)
        livestream = fetch_livestream(conn, livestream_id)
        assert livestream.find_snapshot(host).income == 700
        assert sum(s.role.value == "host" for s in livestream.snapshots) == 1

    def test_update_to_period_of_another_snapshot(self, conn, day_schedule):
        livestream_id, _, inside, outside = day_schedule
        taken = fetch_livestream(conn, livestream_id).find_snapshot(inside).period.period_id
        with pytest.raises(ConflictError):
            snapshots.update_snapshot(conn, livestream_id, outside, {"period_id": taken})

    def test_update_null_metric_rejected(self, conn, day_schedule):
        livestream_id, host, _, _ = day_schedule
        version = fetch_livestream(conn, livestream_id).version
        with pytest.raises(ValidationError, match="income"):
            snapshots.update_snapshot(conn, livestream_id, host, {"income": None})
        assert fetch_livestream(conn, livestream_id).version == version

    def test_add_unknown_period(self, conn, day_schedule):
        with pytest.raises(NotFoundError):
            snapshots.add_snapshot(conn, day_schedule[0], 999)

    def test_update_unknown_field(self, conn, day_schedule):
        livestream_id, host, _, _ = day_schedule
        with pytest.raises(ValidationError):
            snapshots.update_snapshot(conn, livestream_id, host, {"fixed": True})

    def test_update_missing_snapshot(self, conn, day_schedule):
        with pytest.raises(NotFoundError):
            snapshots.update_snapshot(conn, day_schedule[0], "nope", {"income": 1})

    def test_remove(self, conn, day_schedule):
        livestream_id, _, _, outside = day_schedule
        snapshots.remove_snapshot(conn, livestream_id, outside)
        assert fetch_livestream(conn, livestream_id).find_snapshot(outside) is None


class TestFrozen:
    def test_every_mutation_refused(self, conn, day_schedule):
        livestream_id, host, inside, outside = day_schedule
        synchronizer.fix_livestreams(conn, DAY, DAY, MAIN_CHANNEL)

        with pytest.raises(FrozenStateError):
            snapshots.update_snapshot(conn, livestream_id, host, {"income": 1})
        with pytest.raises(FrozenStateError):
            snapshots.remove_snapshot(conn, livestream_id, outside)
        with pytest.raises(FrozenStateError):
            snapshots.set_livestream_metrics(conn, livestream_id, total_orders=3)
        with pytest.raises(FrozenStateError):
            snapshots.set_snapshot_alt(conn, livestream_id, host, BOB, alt_note="cover")
        assert fetch_livestream(conn, livestream_id).find_snapshot(host).income == 0


class TestConcurrency:
    def test_stale_write_rejected(self, conn, day_schedule):
        livestream_id, host, _, _ = day_schedule
        stale = fetch_livestream(conn, livestream_id)
        snapshots.update_snapshot(conn, livestream_id, host, {"income": 10})

        stale.find_snapshot(host).income = 99
        with pytest.raises(ConflictError):
            with conn:
                save_livestream(conn, stale)
        assert fetch_livestream(conn, livestream_id).find_snapshot(host).income == 10


class TestAlt:
    def test_set_user_alt(self, conn, day_schedule):
        livestream_id, host, _, _ = day_schedule
        snapshots.update_snapshot(conn, livestream_id, host, {"assignee": ALICE})
        livestream = snapshots.set_snapshot_alt(conn, livestream_id, host, BOB, alt_note="swap")
        alt = livestream.find_snapshot(host).alt_assignee
        assert alt.kind == AltKind.USER and alt.user_id == BOB

    def test_alt_same_as_assignee_rejected(self, conn, day_schedule):
        livestream_id, host, _, _ = day_schedule
        snapshots.update_snapshot(conn, livestream_id, host, {"assignee": ALICE})
        with pytest.raises(ValidationError):
            snapshots.set_snapshot_alt(conn, livestream_id, host, ALICE, alt_note="same")

    def test_other_with_name_and_clear(self, conn, day_schedule):
        livestream_id, host, _, _ = day_schedule
        livestream = snapshots.set_snapshot_alt(
            conn, livestream_id, host, "other", alt_other_name="Guest KOL", alt_note="guest"
        )
        alt = livestream.find_snapshot(host).alt_assignee
        assert alt.kind == AltKind.OTHER and alt.other_name == "Guest KOL"

        cleared = snapshots.set_snapshot_alt(conn, livestream_id, host)
        assert not cleared.find_snapshot(host).alt_assignee.is_set
        assert cleared.find_snapshot(host).alt_note is None

    def test_note_required(self, conn, day_schedule):
        livestream_id, host, _, _ = day_schedule
        with pytest.raises(ValidationError):
            snapshots.set_snapshot_alt(conn, livestream_id, host, DAN)


class TestMergeAndRetime:
    def test_merge_adjacent(self, conn, add_period):
        add_period("host", "09:00", "10:00")
        add_period("host", "10:00", "11:00")
        livestream = synchronizer.materialize(conn, DAY, MAIN_CHANNEL)
        first, second = (s.id for s in livestream.snapshots)

        merged = snapshots.merge_snapshots(conn, livestream.id, second, first)
        assert len(merged.snapshots) == 1
        survivor = merged.snapshots[0]
        assert survivor.id == first
        assert (str(survivor.period.start_time), str(survivor.period.end_time)) == ("09:00", "11:00")

    def test_merge_reported_rejected(self, conn, add_period):
        add_period("host", "09:00", "10:00")
        add_period("host", "10:00", "11:00")
        livestream = synchronizer.materialize(conn, DAY, MAIN_CHANNEL)
        first, second = (s.id for s in livestream.snapshots)
        snapshots.update_snapshot(conn, livestream.id, first, {"comments": 1})
        with pytest.raises(ValidationError):
            snapshots.merge_snapshots(conn, livestream.id, first, second)

    def test_merge_not_adjacent(self, conn, day_schedule):
        livestream_id, _, inside, outside = day_schedule
        with pytest.raises(ValidationError, match="adjacent"):
            snapshots.merge_snapshots(conn, livestream_id, inside, outside)

    def test_retime_all_or_nothing(self, conn, day_schedule):
        livestream_id, host, inside, outside = day_schedule
        with pytest.raises(ValidationError):
            snapshots.update_snapshot_times(conn, livestream_id, [
                (outside, t("12:00"), t("13:00")),
                (inside, t("12:30"), t("13:30")),
            ])
        unchanged = fetch_livestream(conn, livestream_id)
        assert str(unchanged.find_snapshot(outside).period.start_time) == "11:00"

    def test_retime(self, conn, day_schedule):
        livestream_id, host, _, _ = day_schedule
        livestream = snapshots.update_snapshot_times(conn, livestream_id, [(host, t("08:30"), t("11:00"))])
        assert str(livestream.find_snapshot(host).period.start_time) == "08:30"


class TestListing:
    def test_filters(self, conn, day_schedule):
        livestream_id, host, _, _ = day_schedule
        snapshots.update_snapshot(conn, livestream_id, host, {"assignee": ALICE})
        synchronizer.materialize(conn, date(2025, 11, 6), MAIN_CHANNEL)

        everything = snapshots.list_livestreams(conn, DAY, date(2025, 11, 6))
        alice = snapshots.list_livestreams(conn, DAY, date(2025, 11, 6), assignee=ALICE)
        assert len(everything) == 2
        assert [ls.id for ls in alice] == [livestream_id]

    def test_delete(self, conn, day_schedule):
        snapshots.delete_livestream(conn, day_schedule[0])
        with pytest.raises(NotFoundError):
            snapshots.get_livestream(conn, day_schedule[0])
