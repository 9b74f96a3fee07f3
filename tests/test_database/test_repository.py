"""Tests for the Repository layer."""

import pytest

from shop_ledger.database.models import Customer, Part, Technician, Vendor
from shop_ledger.engine.errors import InvalidInput
from shop_ledger.utils.constants import MOVEMENT_ADJUST, REF_PART


class TestPartsCRUD:
    def test_create_and_get_part(self, repo):
        part_id = repo.create_part(Part(
            part_number="BP-100",
            description="Brake pads",
            quantity_on_hand=10,
            cost=22.0,
            selling_price=54.99,
        ))
        assert part_id > 0

        fetched = repo.get_part_by_id(part_id)
        assert fetched.part_number == "BP-100"
        assert fetched.quantity_on_hand == 10
        assert fetched.selling_price == 54.99
        assert fetched.avg_cost == 22.0
        assert fetched.last_cost == 22.0

    def test_opening_balance_movement(self, repo):
        part_id = repo.create_part(Part(
            part_number="OPEN-1", description="Opening", quantity_on_hand=7,
        ), performed_by="import")
        movements = repo.get_movements(part_id=part_id)
        assert len(movements) == 1
        assert movements[0].movement_type == MOVEMENT_ADJUST
        assert movements[0].qty_delta == 7
        assert movements[0].ref_type == REF_PART
        assert movements[0].performed_by == "import"
        assert movements[0].part_number == "OPEN-1"
        assert repo.get_ledger_balance(part_id) == 7

    def test_zero_quantity_has_no_movement(self, repo):
        part_id = repo.create_part(Part(part_number="Z-1", description="Z"))
        assert repo.get_movements(part_id=part_id) == []

    def test_get_part_by_number(self, repo, make_part):
        make_part(part_number="TEST-001", description="Test part")
        found = repo.get_part_by_number("TEST-001")
        assert found is not None
        assert found.description == "Test part"
        assert repo.get_part_by_number("NOPE") is None

    def test_update_part_never_touches_quantity(self, repo, make_part):
        part = make_part(quantity_on_hand=3)
        part.description = "Updated"
        part.selling_price = 99.0
        part.quantity_on_hand = 500
        repo.update_part(part)

        updated = repo.get_part_by_id(part.id)
        assert updated.description == "Updated"
        assert updated.selling_price == 99.0
        assert updated.quantity_on_hand == 3

    def test_update_missing_part(self, repo):
        with pytest.raises(ValueError):
            repo.update_part(Part(id=404, part_number="X"))

    def test_duplicate_part_number(self, repo, make_part):
        import sqlite3
        make_part(part_number="DUP")
        with pytest.raises(sqlite3.IntegrityError):
            repo.create_part(Part(part_number="DUP", description="again"))

    def test_negative_stock_parts(self, service, repo, make_part):
        make_part(part_number="OK", quantity_on_hand=1)
        low = make_part(part_number="LOW", quantity_on_hand=1)
        service.adjust_part_quantity(low.id, -4)
        negatives = repo.get_negative_stock_parts()
        assert [p.part_number for p in negatives] == ["LOW"]
        assert negatives[0].quantity_on_hand == -3

    def test_deactivate(self, repo, make_part):
        part = make_part()
        repo.deactivate_part(part.id)
        assert repo.get_part_by_id(part.id).is_active == 0

    def test_inventory_summary(self, service, repo, make_part):
        make_part(quantity_on_hand=2, cost=5.0)
        neg = make_part(quantity_on_hand=0)
        service.adjust_part_quantity(neg.id, -1)
        summary = repo.get_inventory_summary()
        assert summary["total_parts"] == 2
        assert summary["total_value"] == 10.0
        assert summary["negative_count"] == 1


class TestPartModel:
    def test_cost_basis_falls_back(self):
        assert Part(cost=5.0, avg_cost=0.0).cost_basis == 5.0
        assert Part(cost=5.0, avg_cost=6.5).cost_basis == 6.5

    def test_reorder_quantity(self):
        assert Part(quantity_on_hand=-3, max_qty=10).reorder_quantity == 13
        assert Part(quantity_on_hand=12, max_qty=10).reorder_quantity == 0
        assert Part(quantity_on_hand=-3, max_qty=0).reorder_quantity == 0

    def test_has_core(self):
        assert Part(core_required=1, core_charge=10.0).has_core
        assert not Part(core_required=1, core_charge=0.0).has_core
        assert not Part(core_required=0, core_charge=10.0).has_core


class TestCustomers:
    def test_create_and_update(self, repo):
        cid = repo.create_customer(Customer(
            company_name="Ridgeline", price_level="FLEET",
            tax_rate_override=6.0,
        ))
        customer = repo.get_customer_by_id(cid)
        assert customer.price_level == "FLEET"
        assert customer.tax_rate_override == 6.0

        customer.phone = "555-0100"
        repo.update_customer(customer)
        assert repo.get_customer_by_id(cid).phone == "555-0100"

    def test_active_filter(self, repo):
        repo.create_customer(Customer(company_name="A"))
        repo.create_customer(Customer(company_name="B", is_active=0))
        assert [c.company_name for c in repo.get_all_customers()] == ["A"]
        assert len(repo.get_all_customers(active_only=False)) == 2

    def test_unknown_price_level_rejected(self, repo):
        with pytest.raises(InvalidInput):
            repo.create_customer(Customer(company_name="X", price_level="VIP"))
        assert repo.get_all_customers() == []

        cid = repo.create_customer(Customer(company_name="Y"))
        customer = repo.get_customer_by_id(cid)
        customer.price_level = "wholesale"
        with pytest.raises(InvalidInput):
            repo.update_customer(customer)
        assert repo.get_customer_by_id(cid).price_level == "RETAIL"


class TestVendorsAndTechnicians:
    def test_vendors(self, repo):
        vid = repo.create_vendor(Vendor(vendor_name="NAPA", phone="555"))
        assert repo.get_vendor_by_id(vid).vendor_name == "NAPA"
        assert [v.id for v in repo.get_all_vendors()] == [vid]
        assert repo.get_vendor_by_id(999) is None

    def test_technician(self, repo):
        tid = repo.create_technician(Technician(name="Luis",
                                                hourly_cost_rate=30.0))
        assert tid > 0


class TestOrderReads:
    def test_get_all_orders_filters(self, service, repo, customer_id):
        service.create_sales_order(customer_id)
        service.create_work_order(customer_id)
        service.create_work_order(customer_id, status="ESTIMATE")

        assert len(repo.get_all_orders()) == 3
        assert len(repo.get_all_orders(order_type="WORK")) == 2
        assert len(repo.get_all_orders(order_type="WORK",
                                       status="ESTIMATE")) == 1

    def test_get_by_number(self, service, repo, work_order):
        found = repo.get_order_by_number(work_order.order_number)
        assert found.id == work_order.id

    def test_service_order_lines(self, service, make_part, work_order):
        part = make_part(quantity_on_hand=3)
        service.add_part_line(work_order.id, part.id, 1)
        service.add_labor_line(work_order.id, "Inspect", 0.5)
        service.upsert_charge_line(work_order.id, "Supplies", 1, 4.0)

        lines = service.get_order_lines(work_order.id)["lines"]
        assert len(lines["parts"]) == 1
        assert len(lines["labor"]) == 1
        assert len(lines["charges"]) == 1
        assert service.get_order_lines(999)["code"] == "NOT_FOUND"

    def test_service_get_order(self, service, work_order):
        assert service.get_order(work_order.id)["order"] == work_order
