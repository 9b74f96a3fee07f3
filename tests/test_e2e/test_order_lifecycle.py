"""End-to-end order flows through the service layer."""

import logging

from shop_ledger.app import create_service, setup_logging
from shop_ledger.database.models import Customer, Part, Vendor
from shop_ledger.database.repository import Repository
from shop_ledger.utils.constants import (
    MOVEMENT_ISSUE,
    MOVEMENT_RECEIVE,
    PO_STATUS_CLOSED,
    REF_SALES_ORDER,
    REF_WORK_ORDER,
    STATUS_INVOICED,
)


class TestWorkOrderLifecycle:
    def test_stock_follows_lines_until_invoice(self, service, repo,
                                               make_part, work_order):
        part = make_part(quantity_on_hand=5)

        result = service.add_part_line(work_order.id, part.id, 3)
        assert result["success"]
        line = result["line"]
        assert line.line_total == 30.0
        assert repo.get_part_by_id(part.id).quantity_on_hand == 2

        issues = repo.get_movements(part_id=part.id, ref_type=REF_WORK_ORDER)
        assert [(m.movement_type, m.qty_delta) for m in issues] == [
            (MOVEMENT_ISSUE, -3)
        ]

        assert service.toggle_warranty(line.id)["success"]
        order = service.get_order(work_order.id)["order"]
        assert order.parts_subtotal == 0
        assert repo.get_part_by_id(part.id).quantity_on_hand == 2

        invoiced = service.invoice(work_order.id)
        assert invoiced["success"]
        assert invoiced["order"].status == STATUS_INVOICED
        assert invoiced["movements"] == []

        blocked = service.add_part_line(work_order.id, part.id, 1)
        assert blocked["success"] is False
        assert blocked["code"] == "LOCKED_ORDER"
        assert repo.get_part_by_id(part.id).quantity_on_hand == 2
        assert repo.get_ledger_balance(part.id) == 2


class TestSalesOrderLifecycle:
    def test_invoice_issues_and_replenishes(self, service, repo, make_part,
                                            vendor_id, sales_order):
        part = make_part(quantity_on_hand=1, max_qty=4, vendor_id=vendor_id)

        line = service.add_part_line(sales_order.id, part.id, 3)["line"]
        assert repo.get_part_by_id(part.id).quantity_on_hand == 1

        invoiced = service.invoice(sales_order.id)
        assert invoiced["success"]
        assert [m.qty_delta for m in invoiced["movements"]] == [-3]
        assert repo.get_part_by_id(part.id).quantity_on_hand == -2
        assert repo.get_movements(
            part_id=part.id, ref_type=REF_SALES_ORDER, ref_id=sales_order.id
        )[0].performed_by == "tester"

        po = invoiced["purchase_orders"][0]
        po_line = repo.get_purchase_order_lines(po.id)[0]
        assert po_line.part_id == part.id
        assert po_line.ordered_quantity == 6

        received = service.receive_purchase_order_line(po_line.id, 6)
        assert received["success"]
        assert repo.get_part_by_id(part.id).quantity_on_hand == 4
        assert repo.get_purchase_order_by_id(po.id).status == PO_STATUS_CLOSED
        assert repo.get_movements(part_id=part.id)[-1].movement_type == (
            MOVEMENT_RECEIVE
        )

        assert service.update_part_qty(line.id, 1)["code"] == "LOCKED_ORDER"


class TestApp:
    def test_create_service_opens_fresh_database(self, tmp_path):
        db_path = tmp_path / "shop" / "ledger.db"
        svc = create_service(db_path, performed_by="front-desk")
        repo = Repository(svc.db)

        customer_id = repo.create_customer(Customer(company_name="Walk-in"))
        repo.create_vendor(Vendor(vendor_name="Parts Co"))
        part_id = repo.create_part(Part(part_number="A-1", description="Bulb",
                                        quantity_on_hand=2,
                                        selling_price=3.0))
        order = svc.create_sales_order(customer_id)["order"]
        assert svc.add_part_line(order.id, part_id, 1)["success"]
        assert db_path.exists()

    def test_setup_logging_level(self, monkeypatch):
        calls = {}
        monkeypatch.setattr(logging, "basicConfig",
                            lambda **kw: calls.update(kw))
        setup_logging("debug")
        assert calls["level"] == logging.DEBUG
