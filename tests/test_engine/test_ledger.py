"""Tests for the inventory ledger and direct stock edits."""

import logging
import sqlite3

import pytest

from shop_ledger.config import Config
from shop_ledger.engine import ledger
from shop_ledger.engine.errors import NotFound
from shop_ledger.utils.constants import (
    MOVEMENT_ADJUST,
    MOVEMENT_COUNT,
    REF_WORK_ORDER,
)


class TestApplyDelta:
    def test_zero_delta_records_nothing(self, db, make_part):
        part = make_part(quantity_on_hand=3)
        with db.get_connection() as conn:
            assert ledger.apply_delta(conn, part.id, 0, MOVEMENT_ADJUST) is None
            assert len(ledger_rows(conn, part.id)) == 1

    def test_unknown_movement_type(self, db, make_part):
        part = make_part()
        with pytest.raises(ValueError):
            with db.get_connection() as conn:
                ledger.apply_delta(conn, part.id, 1, "TELEPORT")

    def test_consumption_is_all_or_nothing(self, db, repo, make_part):
        part = make_part(quantity_on_hand=5)
        with pytest.raises(NotFound):
            with db.get_connection() as conn:
                ledger.apply_consumption(
                    conn, {part.id: 2, 9999: 1}, "test", REF_WORK_ORDER, 1
                )
        assert repo.get_part_by_id(part.id).quantity_on_hand == 5
        assert len(repo.get_movements(part_id=part.id)) == 1

    def test_zero_net_consumption_skipped(self, db, make_part):
        part = make_part(quantity_on_hand=5)
        with db.get_connection() as conn:
            moved = ledger.apply_consumption(
                conn, {part.id: 0}, "test", REF_WORK_ORDER, 1
            )
        assert moved == []


def ledger_rows(conn, part_id):
    return conn.execute(
        "SELECT * FROM inventory_movements WHERE part_id = ?", (part_id,)
    ).fetchall()


class TestAppendOnly:
    def test_movements_cannot_be_updated(self, db, make_part):
        make_part(quantity_on_hand=2)
        with pytest.raises(sqlite3.DatabaseError):
            with db.get_connection() as conn:
                conn.execute("UPDATE inventory_movements SET qty_delta = 99")

    def test_movements_cannot_be_deleted(self, db, repo, make_part):
        part = make_part(quantity_on_hand=2)
        with pytest.raises(sqlite3.DatabaseError):
            with db.get_connection() as conn:
                conn.execute("DELETE FROM inventory_movements")
        assert len(repo.get_movements(part_id=part.id)) == 1


class TestAdjustAndCount:
    def test_adjust_records_movement(self, service, repo, make_part):
        part = make_part(quantity_on_hand=4)
        result = service.adjust_part_quantity(part.id, -1, "Damaged")
        assert result["success"] is True
        movement = result["movement"]
        assert movement.movement_type == MOVEMENT_ADJUST
        assert movement.qty_delta == -1
        assert movement.reason == "Damaged"
        assert repo.get_part_by_id(part.id).quantity_on_hand == 3

    def test_count_records_difference(self, service, repo, make_part):
        part = make_part(quantity_on_hand=10)
        result = service.count_part(part.id, 7)
        assert result["movement"].movement_type == MOVEMENT_COUNT
        assert result["movement"].qty_delta == -3
        assert repo.get_part_by_id(part.id).quantity_on_hand == 7

    def test_count_matching_book(self, service, make_part):
        part = make_part(quantity_on_hand=6)
        result = service.count_part(part.id, 6)
        assert result == {"success": True, "movement": None}

    def test_block_policy(self, service, repo, make_part):
        Config.NEGATIVE_INVENTORY_POLICY = "BLOCK"
        part = make_part(quantity_on_hand=2)
        result = service.adjust_part_quantity(part.id, -3)
        assert result["code"] == "VALIDATION_BLOCKED"
        assert repo.get_part_by_id(part.id).quantity_on_hand == 2
        assert len(repo.get_movements(part_id=part.id)) == 1

        assert service.count_part(part.id, -1)["code"] == "VALIDATION_BLOCKED"

    def test_warn_policy(self, service, repo, make_part, caplog):
        part = make_part(part_number="WARN-1", quantity_on_hand=2)
        with caplog.at_level(logging.WARNING, logger="shop_ledger"):
            result = service.adjust_part_quantity(part.id, -3)
        assert result["success"] is True
        assert repo.get_part_by_id(part.id).quantity_on_hand == -1
        assert "WARN-1" in caplog.text

    def test_non_integer_adjustment(self, service, make_part):
        part = make_part()
        assert service.adjust_part_quantity(
            part.id, 1.5)["code"] == "INVALID_INPUT"

    def test_unknown_part(self, service):
        assert service.adjust_part_quantity(77, 1)["code"] == "NOT_FOUND"


class TestReconciliation:
    def test_ledger_sum_matches_quantity(
        self, service, repo, make_part, customer_id
    ):
        part = make_part(quantity_on_hand=8)
        wo = service.create_work_order(customer_id)["order"]
        so = service.create_sales_order(customer_id)["order"]

        line = service.add_part_line(wo.id, part.id, 3)["line"]
        service.update_part_qty(line.id, 5)
        service.add_part_line(so.id, part.id, 6)
        service.invoice(so.id)
        service.remove_part_line(line.id)
        service.adjust_part_quantity(part.id, 4)
        service.count_part(part.id, 1)

        qoh = repo.get_part_by_id(part.id).quantity_on_hand
        assert qoh == 1
        assert repo.get_ledger_balance(part.id) == qoh
