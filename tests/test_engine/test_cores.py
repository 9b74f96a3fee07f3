"""Tests for core deposit tracking and refund lines."""

import pytest

from shop_ledger.utils.constants import (
    CORE_CREDITED,
    CORE_NOT_APPLICABLE,
    CORE_OWED,
    LINE_KIND_CORE_REFUND,
    LINE_KIND_NORMAL,
)


@pytest.fixture
def core_part(make_part):
    return make_part(
        part_number="ALT-1", description="Alternator",
        selling_price=100.0, core_required=1, core_charge=15.0,
        quantity_on_hand=10,
    )


@pytest.fixture
def core_line(service, sales_order, core_part):
    return service.add_part_line(sales_order.id, core_part.id, 2)["line"]


class TestCoreState:
    def test_new_line_owes_core(self, core_line):
        assert core_line.core_status == CORE_OWED
        assert core_line.core_charge == 15.0
        assert core_line.kind == LINE_KIND_NORMAL

    def test_part_without_core(self, service, make_part, sales_order):
        part = make_part(core_required=1, core_charge=0.0)
        line = service.add_part_line(sales_order.id, part.id, 1)["line"]
        assert line.core_status == CORE_NOT_APPLICABLE

    def test_core_charge_in_totals(self, repo, sales_order, core_line):
        order = repo.get_order_by_id(sales_order.id)
        assert order.parts_subtotal == 200.0
        assert order.core_charges_total == 30.0
        assert order.subtotal == 230.0


class TestMarkCoreReturned:
    def test_credits_once_and_creates_refund_line(
        self, service, repo, sales_order, core_line
    ):
        result = service.mark_core_returned(core_line.id)
        assert result["success"] is True
        refund = result["refund_line"]
        assert refund.is_core_refund_line == 1
        assert refund.kind == LINE_KIND_CORE_REFUND
        assert refund.core_refund_for_line_id == core_line.id
        assert refund.unit_price == -15.0
        assert refund.quantity == 2
        assert refund.line_total == -30.0
        assert refund.description == "Core Refund (ALT-1)"

        parent = repo.get_part_line(core_line.id)
        assert parent.core_status == CORE_CREDITED
        assert parent.core_returned_at is not None
        assert parent.core_refunded_at is not None

        lines = repo.get_part_lines(sales_order.id)
        assert len(lines) == 2
        assert sum(1 for l in lines if l.is_core_refund_line) == 1

    def test_totals_after_credit(self, service, repo, sales_order, core_line):
        service.mark_core_returned(core_line.id)
        order = repo.get_order_by_id(sales_order.id)
        assert order.core_charges_total == 0.0
        assert order.parts_subtotal == 170.0
        assert order.subtotal == 170.0

    def test_second_call_fails(self, service, repo, sales_order, core_line):
        service.mark_core_returned(core_line.id)
        result = service.mark_core_returned(core_line.id)
        assert result["success"] is False
        assert result["code"] == "CORE_ALREADY_PROCESSED"
        assert len(repo.get_part_lines(sales_order.id)) == 2

    def test_no_core_on_line(self, service, make_part, sales_order):
        part = make_part()
        line = service.add_part_line(sales_order.id, part.id, 1)["line"]
        result = service.mark_core_returned(line.id)
        assert result["code"] == "INVALID_INPUT"

    def test_locked_order(self, service, sales_order, core_line):
        service.invoice(sales_order.id)
        result = service.mark_core_returned(core_line.id)
        assert result["code"] == "LOCKED_ORDER"


class TestRefundLineRestrictions:
    @pytest.fixture
    def refund(self, service, core_line):
        return service.mark_core_returned(core_line.id)["refund_line"]

    def test_refund_line_cannot_be_returned(self, service, refund):
        assert service.mark_core_returned(refund.id)["code"] == "INVALID_INPUT"

    @pytest.mark.parametrize("call", [
        lambda s, lid: s.toggle_warranty(lid),
        lambda s, lid: s.remove_part_line(lid),
        lambda s, lid: s.update_part_qty(lid, 5),
        lambda s, lid: s.update_line_unit_price(lid, 1.0),
    ])
    def test_refund_line_mutations_rejected(self, service, repo, refund, call):
        result = call(service, refund.id)
        assert result["code"] == "INVALID_INPUT"
        assert repo.get_part_line(refund.id).line_total == -30.0

    def test_parent_quantity_change_follows(
        self, service, repo, sales_order, core_line, refund
    ):
        service.update_part_qty(core_line.id, 3)
        updated = repo.get_part_line(refund.id)
        assert updated.quantity == 3
        assert updated.line_total == -45.0
        assert repo.get_order_by_id(sales_order.id).parts_subtotal == 255.0

    def test_adding_more_units_opens_owed_line(
        self, service, repo, sales_order, core_line, core_part, refund
    ):
        added = service.add_part_line(sales_order.id, core_part.id, 1)["line"]
        assert added.id not in (core_line.id, refund.id)
        assert added.quantity == 1
        assert added.core_status == CORE_OWED

        assert repo.get_part_line(core_line.id).quantity == 2
        assert repo.get_part_line(refund.id).quantity == 2
        order = repo.get_order_by_id(sales_order.id)
        assert order.core_charges_total == 15.0
        assert order.parts_subtotal == 270.0

    def test_later_units_merge_into_owed_line(
        self, service, repo, sales_order, core_part, refund
    ):
        first = service.add_part_line(sales_order.id, core_part.id, 1)["line"]
        second = service.add_part_line(sales_order.id, core_part.id, 2)["line"]
        assert second.id == first.id
        assert second.quantity == 3
        assert repo.get_part_line(refund.id).quantity == 2

    def test_removing_parent_removes_refund(
        self, service, repo, sales_order, core_line, refund
    ):
        service.remove_part_line(core_line.id)
        assert repo.get_part_lines(sales_order.id) == []
        assert repo.get_order_by_id(sales_order.id).total == 0.0
