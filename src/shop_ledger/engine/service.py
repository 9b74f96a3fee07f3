"""OrderService — the public boundary of the order and inventory engine.

Each call runs in one write transaction.  Expected failures come back as
``{"success": False, "error": ..., "code": ...}`` after a full rollback;
successes return ``{"success": True}`` plus the touched entity.
"""

import logging
from typing import Callable, Optional

from shop_ledger.config import Config
from shop_ledger.database.connection import DatabaseConnection
from shop_ledger.database.queries import (
    fetch_charge_lines,
    fetch_labor_lines,
    fetch_part_lines,
    require_customer,
    require_order,
)
from shop_ledger.engine import (
    cores,
    ledger,
    lines,
    purchasing,
    replenishment,
    state,
    totals,
)
from shop_ledger.engine.errors import EngineError, InvalidInput
from shop_ledger.utils.constants import (
    ORDER_TYPE_SALES,
    ORDER_TYPE_WORK,
    STATUS_OPEN,
)

logger = logging.getLogger(__name__)


class OrderService:
    """Order, line, invoicing and stock operations with result values."""

    def __init__(self, db: DatabaseConnection,
                 price_calculator: Optional[lines.PriceCalculator] = None,
                 performed_by: str = "system"):
        self.db = db
        self.price_calculator = price_calculator
        self.performed_by = performed_by

    def _run(self, key: str, operation: Callable, *args, **kwargs) -> dict:
        """Run ``operation(conn, ...)`` in one transaction."""
        try:
            with self.db.get_connection() as conn:
                result = operation(conn, *args, **kwargs)
        except EngineError as e:
            logger.debug(f"{operation.__name__} refused: {e.code} {e}")
            return e.as_result()
        return {"success": True, key: result}

    # ── Orders ──────────────────────────────────────────────────

    def create_sales_order(self, customer_id: int,
                           unit_id: Optional[int] = None,
                           status: str = STATUS_OPEN,
                           notes: str = "") -> dict:
        return self._run(
            "order", state.create_order, ORDER_TYPE_SALES, customer_id,
            unit_id=unit_id, status=status, notes=notes,
        )

    def create_work_order(self, customer_id: int,
                          unit_id: Optional[int] = None,
                          status: str = STATUS_OPEN, notes: str = "",
                          technician_id: Optional[int] = None,
                          priority: Optional[int] = None,
                          promised_at: Optional[str] = None) -> dict:
        return self._run(
            "order", state.create_order, ORDER_TYPE_WORK, customer_id,
            unit_id=unit_id, status=status, notes=notes,
            technician_id=technician_id, priority=priority,
            promised_at=promised_at,
        )

    def get_order(self, order_id: int) -> dict:
        return self._run("order", require_order, order_id)

    def get_order_lines(self, order_id: int) -> dict:
        """Active part, labor and charge lines of an order."""
        def _load(conn, order_id):
            require_order(conn, order_id)
            return {
                "parts": fetch_part_lines(conn, order_id),
                "labor": fetch_labor_lines(conn, order_id),
                "charges": fetch_charge_lines(conn, order_id),
            }
        return self._run("lines", _load, order_id)

    def update_order_notes(self, order_id: int, notes: str) -> dict:
        def _update(conn, order_id, notes):
            state.require_unlocked_order(conn, order_id)
            conn.execute(
                "UPDATE orders SET notes = ?, "
                "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (notes, order_id),
            )
            return require_order(conn, order_id)
        return self._run("order", _update, order_id, notes)

    def assign_technician(self, order_id: int,
                          technician_id: Optional[int]) -> dict:
        def _assign(conn, order_id, technician_id):
            order = state.require_unlocked_order(conn, order_id)
            if not order.is_work_order:
                raise InvalidInput("Technicians are assigned to work orders")
            conn.execute(
                "UPDATE orders SET technician_id = ?, "
                "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (technician_id, order_id),
            )
            return require_order(conn, order_id)
        return self._run("order", _assign, order_id, technician_id)

    def set_status(self, order_id: int, status: str) -> dict:
        return self._run("order", state.set_status, order_id, status)

    def cancel(self, order_id: int) -> dict:
        return self._run("order", state.cancel, order_id)

    def invoice(self, order_id: int) -> dict:
        """Invoice an order, then top up any stock it drove negative."""
        result = self._run(
            "invoice", state.invoice, order_id,
            performed_by=self.performed_by,
        )
        if not result["success"]:
            return result
        invoiced = result.pop("invoice")
        order = invoiced["order"]
        result.update(
            order=order,
            movements=invoiced["movements"],
            clocked_out=invoiced["clocked_out"],
            purchase_orders=replenishment.trigger_after_invoice(
                self.db, order.order_number
            ),
        )
        return result

    # ── Part lines ──────────────────────────────────────────────

    def add_part_line(self, order_id: int, part_id: int, qty: int,
                      job_line_id: Optional[int] = None) -> dict:
        return self._run(
            "line", lines.add_part_line, order_id, part_id, qty,
            price_calculator=self.price_calculator,
            job_line_id=job_line_id, performed_by=self.performed_by,
        )

    def update_part_qty(self, line_id: int, new_qty: int) -> dict:
        return self._run(
            "line", lines.update_part_qty, line_id, new_qty,
            performed_by=self.performed_by,
        )

    def remove_part_line(self, line_id: int) -> dict:
        return self._run(
            "line", lines.remove_part_line, line_id,
            performed_by=self.performed_by,
        )

    def update_line_unit_price(self, line_id: int, new_price: float) -> dict:
        return self._run(
            "line", lines.update_line_unit_price, line_id, new_price
        )

    def toggle_warranty(self, line_id: int) -> dict:
        return self._run("line", lines.toggle_warranty, line_id)

    def mark_core_returned(self, line_id: int) -> dict:
        """Credit a core; the result carries the new refund line."""
        def _mark(conn, line_id):
            refund = cores.mark_core_returned(conn, line_id)
            totals.recalculate_order_totals(conn, refund.order_id)
            return refund
        return self._run("refund_line", _mark, line_id)

    # ── Labor & charge lines ────────────────────────────────────

    def add_labor_line(self, order_id: int, description: str, hours: float,
                       technician_id: Optional[int] = None) -> dict:
        return self._run(
            "line", lines.add_labor_line, order_id, description, hours,
            technician_id=technician_id,
        )

    def update_labor_line(self, line_id: int, description: str,
                          hours: float) -> dict:
        return self._run(
            "line", lines.update_labor_line, line_id, description, hours
        )

    def remove_labor_line(self, line_id: int) -> dict:
        return self._run("line", lines.remove_labor_line, line_id)

    def toggle_labor_warranty(self, line_id: int) -> dict:
        return self._run("line", lines.toggle_labor_warranty, line_id)

    def upsert_charge_line(self, order_id: int, description: str,
                           qty: float, unit_price: float,
                           source_ref_type: Optional[str] = None,
                           source_ref_id=None) -> dict:
        return self._run(
            "line", lines.upsert_charge_line, order_id, description, qty,
            unit_price, source_ref_type=source_ref_type,
            source_ref_id=source_ref_id,
        )

    def remove_charge_line(self, line_id: int) -> dict:
        return self._run("line", lines.remove_charge_line, line_id)

    # ── Totals & tax ────────────────────────────────────────────

    def recalculate_totals(self, order_id: int) -> dict:
        return self._run(
            "totals", totals.recalculate_order_totals, order_id
        )

    def update_customer_tax(self, customer_id: int, is_tax_exempt: bool,
                            tax_rate_override: Optional[float] = None
                            ) -> dict:
        """Change a customer's tax settings and reprice their open orders."""
        def _update(conn, customer_id, is_tax_exempt, tax_rate_override):
            if tax_rate_override is not None:
                tax_rate_override = lines.require_price(tax_rate_override)
            require_customer(conn, customer_id)
            conn.execute(
                "UPDATE customers SET is_tax_exempt = ?, "
                "tax_rate_override = ?, updated_at = CURRENT_TIMESTAMP "
                "WHERE id = ?",
                (1 if is_tax_exempt else 0, tax_rate_override, customer_id),
            )
            return totals.recalculate_open_orders(conn, customer_id)
        return self._run(
            "orders_recalculated", _update, customer_id, is_tax_exempt,
            tax_rate_override,
        )

    def set_default_tax_rate(self, rate: float) -> dict:
        """Persist a new shop tax rate and reprice every open order."""
        try:
            rate = lines.require_price(rate)
        except InvalidInput as e:
            return e.as_result()
        result = self._run(
            "orders_recalculated", totals.recalculate_open_orders,
            default_rate=rate,
        )
        # Persist only once the repricing has committed
        if result["success"]:
            Config.update_tax_rate(rate)
        return result

    # ── Direct stock edits ──────────────────────────────────────

    def adjust_part_quantity(self, part_id: int, delta: int,
                             reason: str = "") -> dict:
        return self._run(
            "movement", ledger.adjust_quantity, part_id, delta, reason,
            performed_by=self.performed_by,
        )

    def count_part(self, part_id: int, counted_qty: int,
                   reason: str = "") -> dict:
        return self._run(
            "movement", ledger.count_quantity, part_id, counted_qty, reason,
            performed_by=self.performed_by,
        )

    # ── Purchasing ──────────────────────────────────────────────

    def receive_purchase_order_line(self, po_line_id: int, qty: int) -> dict:
        return self._run(
            "po_line", purchasing.receive_line, po_line_id, qty,
            performed_by=self.performed_by,
            auto_close=Config.AUTO_CLOSE_RECEIVED_ORDERS,
        )

    def close_purchase_order(self, po_id: int) -> dict:
        return self._run("purchase_order", purchasing.close, po_id)
