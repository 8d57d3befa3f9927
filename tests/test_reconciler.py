"""Tests for revenue reconciliation."""

from datetime import date

import pytest

from conftest import MAIN_CHANNEL, OUTLET_CHANNEL
from core.database import fetch_livestream
from core.errors import FrozenStateError, NotFoundError, ValidationError
from services import synchronizer
from services.reconciler import build_ledger, is_cancelled, is_livestream_order, reconcile

DAY = date(2025, 11, 5)


def ledger(order_id, subtotal, discount="0", status="Completed"):
    return {"order_id": order_id, "status": status, "subtotal": subtotal, "seller_discount": discount}


def source(order_id, created_at, content_type="Livestream"):
    return {"order_id": order_id, "content_type": content_type, "created_at": created_at}


@pytest.fixture
def livestream(conn, add_period):
    add_period("host", "09:00", "11:00")
    add_period("assistant", "09:30", "10:30")
    add_period("host", "11:00", "13:00")
    return synchronizer.materialize(conn, DAY, MAIN_CHANNEL)


def by_start(conn, livestream_id):
    stored = fetch_livestream(conn, livestream_id)
    return {(s.role.value, str(s.period.start_time)): s.real_income for s in stored.snapshots}


class TestLedger:
    def test_sums_per_order_net_of_discount(self):
        skipped = []
        income, statuses = build_ledger(
            [ledger("A1", "1.000.000", "100,000"), ledger("A1", "50,000"), ledger("B2", "0")],
            skipped,
        )
        assert income == {"A1": 950_000}
        assert statuses["A1"] == "Completed"
        assert skipped == []

    def test_bad_rows_are_skipped(self):
        skipped = []
        income, _ = build_ledger([ledger("", "10"), ledger("C3", "abc")], skipped)
        assert income == {}
        assert len(skipped) == 2

    def test_markers(self):
        assert is_livestream_order("Phát trực tiếp")
        assert not is_livestream_order("Video")
        assert is_cancelled("Đã hủy")
        assert not is_cancelled("Completed")
        assert not is_cancelled("Yêu cầu hủy bị từ chối")
        assert not is_cancelled("Cancellation rejected")


class TestReconcile:
    def test_orders_credit_every_covering_snapshot(self, conn, livestream):
        result = reconcile(
            conn, DAY,
            [ledger("A1", "500000"), ledger("B2", "200000")],
            [source("A1", "05/11/2025 10:00:00"), source("B2", "05/11/2025 12:15")],
        )
        assert result["processed_orders"] == 2
        assert result["updated_snapshots"] == 3
        assert by_start(conn, livestream.id) == {
            ("host", "09:00"): 500_000,
            ("assistant", "09:30"): 500_000,
            ("host", "11:00"): 200_000,
        }

    def test_replay_gives_same_result(self, conn, livestream):
        args = (
            [ledger("A1", "500000")],
            [source("A1", "05/11/2025 10:00:00")],
        )
        reconcile(conn, DAY, *args)
        first = by_start(conn, livestream.id)
        reconcile(conn, DAY, *args)
        assert by_start(conn, livestream.id) == first

    def test_duplicate_source_rows_count_once(self, conn, livestream):
        result = reconcile(
            conn, DAY,
            [ledger("A1", "300000")],
            [source("A1", "05/11/2025 09:10"), source("A1.0", "05/11/2025 09:10")],
        )
        assert result["processed_orders"] == 1
        assert by_start(conn, livestream.id)[("host", "09:00")] == 300_000

    def test_filters(self, conn, livestream):
        result = reconcile(
            conn, DAY,
            [ledger("A1", "100"), ledger("B2", "100", status="Cancelled"), ledger("C3", "100"), ledger("D4", "100")],
            [
                source("A1", "05/11/2025 09:10", content_type="Video"),
                source("B2", "05/11/2025 09:10"),
                source("C3", "06/11/2025 09:10"),
                source("D4", "05/11/2025 20:00"),
                source("E5", "05/11/2025 09:10"),
            ],
        )
        assert result["processed_orders"] == 0
        assert set(by_start(conn, livestream.id).values()) == {0}

    def test_bad_timestamps_skipped(self, conn, livestream):
        result = reconcile(
            conn, DAY,
            [ledger("A1", "100")],
            [source("A1", "yesterday"), source("A1", "05/11/2025 09:10")],
        )
        assert result["skipped_rows"] == 1
        assert result["processed_orders"] == 1

    def test_window_crossing_midnight(self, conn, add_period):
        add_period("host", "23:00", "01:00")
        livestream = synchronizer.materialize(conn, DAY, MAIN_CHANNEL)
        reconcile(
            conn, DAY,
            [ledger("A1", "100"), ledger("B2", "50")],
            [source("A1", "05/11/2025 23:30"), source("B2", "05/11/2025 00:30")],
        )
        assert fetch_livestream(conn, livestream.id).snapshots[0].real_income == 150

    def test_no_livestream(self, conn):
        with pytest.raises(NotFoundError):
            reconcile(conn, DAY, [], [])

    def test_ambiguous_day_needs_channel(self, conn, livestream):
        synchronizer.materialize(conn, DAY, OUTLET_CHANNEL)
        with pytest.raises(ValidationError):
            reconcile(conn, DAY, [], [])
        result = reconcile(conn, DAY, [], [], channel_id=MAIN_CHANNEL)
        assert result["livestream_id"] == livestream.id

    def test_fixed_livestream_refused(self, conn, livestream):
        synchronizer.fix_livestreams(conn, DAY, DAY, MAIN_CHANNEL)
        with pytest.raises(FrozenStateError):
            reconcile(conn, DAY, [ledger("A1", "100")], [source("A1", "05/11/2025 09:10")])
