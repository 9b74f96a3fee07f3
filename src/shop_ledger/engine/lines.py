"""Order line engine — part, labor and charge lines on sales and work orders.

Work orders move stock as soon as a part line changes.  Sales orders only
record the commitment; their stock moves when they are invoiced.  Every
function here runs on the caller's connection and finishes by
recalculating the order totals.
"""

import logging
import math
from typing import Callable, Optional

from shop_ledger.config import Config
from shop_ledger.database.models import (
    Order,
    OrderChargeLine,
    OrderLaborLine,
    OrderPartLine,
    Part,
)
from shop_ledger.database.queries import (
    fetch_customer,
    now_iso,
    require_charge_line,
    require_labor_line,
    require_part,
    require_part_line,
)
from shop_ledger.engine import cores, kits, ledger
from shop_ledger.engine.errors import InvalidInput
from shop_ledger.engine.state import (
    ledger_reason,
    ref_type_for,
    require_unlocked_order,
)
from shop_ledger.engine.totals import recalculate_order_totals
from shop_ledger.utils.constants import CORE_CREDITED, PRICE_LEVEL_RETAIL

logger = logging.getLogger(__name__)

# (part, settings, price_level) -> suggested unit price or None
PriceCalculator = Callable[[Part, dict, str], Optional[float]]


# ── Validation ──────────────────────────────────────────────────

def _is_number(value) -> bool:
    return (isinstance(value, (int, float)) and not isinstance(value, bool)
            and math.isfinite(value))


def _require_quantity(qty) -> int:
    if not isinstance(qty, int) or isinstance(qty, bool) or qty <= 0:
        raise InvalidInput("Quantity must be a positive whole number")
    return qty


def require_price(price) -> float:
    if not _is_number(price) or price < 0:
        raise InvalidInput("Price must be a non-negative number")
    return float(price)


def _require_positive(value, label: str) -> float:
    if not _is_number(value) or value <= 0:
        raise InvalidInput(f"{label} must be a positive number")
    return float(value)


def _require_editable_part_line(conn, line_id: int
                                ) -> tuple[OrderPartLine, Order]:
    line = require_part_line(conn, line_id)
    if line.is_core_refund_line:
        raise InvalidInput(
            "Core refund lines follow their original line and cannot be "
            "changed directly"
        )
    order = require_unlocked_order(conn, line.order_id)
    return line, order


def _line_total(quantity: float, unit_price: float, is_warranty) -> float:
    return 0.0 if is_warranty else round(quantity * unit_price, 2)


# ── Pricing ─────────────────────────────────────────────────────

def resolve_unit_price(conn, order: Order, part: Part,
                       price_calculator: Optional[PriceCalculator] = None
                       ) -> float:
    """Suggested price for the customer's level, else the part's selling price.

    A calculator that fails or suggests nothing usable falls back to the
    selling price.
    """
    if price_calculator is not None:
        customer = fetch_customer(conn, order.customer_id)
        level = customer.price_level if customer else PRICE_LEVEL_RETAIL
        try:
            suggested = price_calculator(
                part, Config.pricing_settings(), level
            )
        except Exception:
            logger.warning(
                f"Price calculator failed for {part.part_number}; "
                f"using selling price",
                exc_info=True,
            )
            suggested = None
        if _is_number(suggested) and suggested >= 0:
            return round(float(suggested), 2)
    return part.selling_price


# ── Stock side effects ──────────────────────────────────────────

def _move_work_order_stock(conn, order: Order, part: Part, qty: int,
                           performed_by: Optional[str]):
    """Issue (qty > 0) or return (qty < 0) stock for a work order line."""
    if not order.is_work_order or qty == 0:
        return []
    return ledger.apply_consumption(
        conn, kits.stock_deltas(conn, part, qty),
        ledger_reason(order), ref_type_for(order), order.id, performed_by,
    )


# ── Part lines ──────────────────────────────────────────────────

def _find_mergeable_line(conn, order: Order, part_id: int,
                         job_line_id: Optional[int]
                         ) -> Optional[OrderPartLine]:
    sql = (
        "SELECT id FROM order_part_lines "
        "WHERE order_id = ? AND part_id = ? AND is_core_refund_line = 0 "
        "AND core_status != ? "
        "AND removed_at IS NULL"
    )
    params = [order.id, part_id, CORE_CREDITED]
    if order.is_work_order:
        sql += " AND job_line_id IS ?"
        params.append(job_line_id)
    row = conn.execute(sql + " ORDER BY id LIMIT 1", tuple(params)).fetchone()
    return require_part_line(conn, row["id"]) if row else None


def add_part_line(conn, order_id: int, part_id: int, qty: int,
                  price_calculator: Optional[PriceCalculator] = None,
                  job_line_id: Optional[int] = None,
                  performed_by: Optional[str] = None) -> OrderPartLine:
    """Add a part to an order, merging into an existing line for that part.

    Lines whose core was already credited are not merged into; new units
    start a fresh line that owes its own core.
    """
    qty = _require_quantity(qty)
    order = require_unlocked_order(conn, order_id)
    part = require_part(conn, part_id)

    existing = _find_mergeable_line(conn, order, part_id, job_line_id)
    if existing:
        new_qty = existing.quantity + qty
        conn.execute(
            "UPDATE order_part_lines SET quantity = ?, line_total = ?, "
            "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (new_qty,
             _line_total(new_qty, existing.unit_price, existing.is_warranty),
             existing.id),
        )
        line_id = existing.id
    else:
        unit_price = resolve_unit_price(conn, order, part, price_calculator)
        core_charge, core_status = cores.initial_core_state(part)
        cursor = conn.execute(
            "INSERT INTO order_part_lines "
            "(order_id, part_id, job_line_id, description, quantity, "
            "unit_price, unit_cost, line_total, core_charge, core_status) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (order.id, part.id,
             job_line_id if order.is_work_order else None,
             part.description, qty, unit_price, part.cost_basis,
             _line_total(qty, unit_price, False), core_charge, core_status),
        )
        line_id = cursor.lastrowid

    _move_work_order_stock(conn, order, part, qty, performed_by)
    recalculate_order_totals(conn, order.id)
    return require_part_line(conn, line_id)


def update_part_qty(conn, line_id: int, new_qty: int,
                    performed_by: Optional[str] = None) -> OrderPartLine:
    """Set a part line's quantity; work orders move the difference."""
    new_qty = _require_quantity(new_qty)
    line, order = _require_editable_part_line(conn, line_id)
    delta = new_qty - line.quantity
    if delta == 0:
        return line

    conn.execute(
        "UPDATE order_part_lines SET quantity = ?, line_total = ?, "
        "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
        (new_qty, _line_total(new_qty, line.unit_price, line.is_warranty),
         line_id),
    )
    cores.sync_refund_quantity(conn, line, new_qty)
    part = require_part(conn, line.part_id)
    _move_work_order_stock(conn, order, part, delta, performed_by)
    recalculate_order_totals(conn, order.id)
    return require_part_line(conn, line_id)


def remove_part_line(conn, line_id: int,
                     performed_by: Optional[str] = None) -> OrderPartLine:
    """Remove a part line; work orders get the stock back."""
    line, order = _require_editable_part_line(conn, line_id)
    part = require_part(conn, line.part_id)
    _move_work_order_stock(conn, order, part, -line.quantity, performed_by)

    removed_at = now_iso()
    conn.execute(
        "UPDATE order_part_lines SET removed_at = ?, "
        "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
        (removed_at, line_id),
    )
    cores.remove_refund_line(conn, line, removed_at)
    recalculate_order_totals(conn, order.id)
    line.removed_at = removed_at
    return line


def update_line_unit_price(conn, line_id: int,
                           new_price: float) -> OrderPartLine:
    new_price = require_price(new_price)
    line, order = _require_editable_part_line(conn, line_id)
    conn.execute(
        "UPDATE order_part_lines SET unit_price = ?, line_total = ?, "
        "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
        (new_price, _line_total(line.quantity, new_price, line.is_warranty),
         line_id),
    )
    recalculate_order_totals(conn, order.id)
    return require_part_line(conn, line_id)


def toggle_warranty(conn, line_id: int) -> OrderPartLine:
    """Flip the warranty flag.  Billing only; stock and cost are untouched."""
    line, order = _require_editable_part_line(conn, line_id)
    is_warranty = 0 if line.is_warranty else 1
    conn.execute(
        "UPDATE order_part_lines SET is_warranty = ?, line_total = ?, "
        "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
        (is_warranty, _line_total(line.quantity, line.unit_price, is_warranty),
         line_id),
    )
    recalculate_order_totals(conn, order.id)
    return require_part_line(conn, line_id)


# ── Labor lines ─────────────────────────────────────────────────

def add_labor_line(conn, order_id: int, description: str, hours: float,
                   technician_id: Optional[int] = None) -> OrderLaborLine:
    """Add labor at the shop rate in effect right now."""
    hours = _require_positive(hours, "Hours")
    order = require_unlocked_order(conn, order_id)
    if not order.is_work_order:
        raise InvalidInput("Labor lines belong on work orders")

    rate = Config.DEFAULT_LABOR_RATE
    cursor = conn.execute(
        "INSERT INTO order_labor_lines "
        "(order_id, description, hours, rate, line_total, technician_id) "
        "VALUES (?, ?, ?, ?, ?, ?)",
        (order_id, (description or "").strip(), hours, rate,
         _line_total(hours, rate, False), technician_id),
    )
    recalculate_order_totals(conn, order_id)
    return require_labor_line(conn, cursor.lastrowid)


def update_labor_line(conn, line_id: int, description: str,
                      hours: float) -> OrderLaborLine:
    hours = _require_positive(hours, "Hours")
    line = require_labor_line(conn, line_id)
    require_unlocked_order(conn, line.order_id)
    conn.execute(
        "UPDATE order_labor_lines SET description = ?, hours = ?, "
        "line_total = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
        ((description or "").strip(), hours,
         _line_total(hours, line.rate, line.is_warranty), line_id),
    )
    recalculate_order_totals(conn, line.order_id)
    return require_labor_line(conn, line_id)


def remove_labor_line(conn, line_id: int) -> OrderLaborLine:
    line = require_labor_line(conn, line_id)
    require_unlocked_order(conn, line.order_id)
    line.removed_at = now_iso()
    conn.execute(
        "UPDATE order_labor_lines SET removed_at = ? WHERE id = ?",
        (line.removed_at, line_id),
    )
    recalculate_order_totals(conn, line.order_id)
    return line


def toggle_labor_warranty(conn, line_id: int) -> OrderLaborLine:
    line = require_labor_line(conn, line_id)
    require_unlocked_order(conn, line.order_id)
    is_warranty = 0 if line.is_warranty else 1
    conn.execute(
        "UPDATE order_labor_lines SET is_warranty = ?, line_total = ?, "
        "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
        (is_warranty, _line_total(line.hours, line.rate, is_warranty),
         line_id),
    )
    recalculate_order_totals(conn, line.order_id)
    return require_labor_line(conn, line_id)


# ── Charge lines ────────────────────────────────────────────────

def upsert_charge_line(conn, order_id: int, description: str, qty: float,
                       unit_price: float,
                       source_ref_type: Optional[str] = None,
                       source_ref_id=None) -> OrderChargeLine:
    """Add a fee line, or update the one already linked to the same source."""
    qty = _require_positive(qty, "Quantity")
    unit_price = require_price(unit_price)
    require_unlocked_order(conn, order_id)
    if (source_ref_type is None) != (source_ref_id is None):
        raise InvalidInput("Source reference needs both a type and an id")
    if source_ref_id is not None:
        source_ref_id = str(source_ref_id)

    total_price = round(qty * unit_price, 2)
    row = None
    if source_ref_type is not None:
        row = conn.execute(
            "SELECT id FROM order_charge_lines "
            "WHERE order_id = ? AND source_ref_type = ? "
            "AND source_ref_id = ? AND removed_at IS NULL",
            (order_id, source_ref_type, source_ref_id),
        ).fetchone()

    if row:
        line_id = row["id"]
        conn.execute(
            "UPDATE order_charge_lines SET description = ?, qty = ?, "
            "unit_price = ?, total_price = ?, "
            "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (description, qty, unit_price, total_price, line_id),
        )
    else:
        cursor = conn.execute(
            "INSERT INTO order_charge_lines "
            "(order_id, description, qty, unit_price, total_price, "
            "source_ref_type, source_ref_id) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (order_id, description, qty, unit_price, total_price,
             source_ref_type, source_ref_id),
        )
        line_id = cursor.lastrowid

    recalculate_order_totals(conn, order_id)
    return require_charge_line(conn, line_id)


def remove_charge_line(conn, line_id: int) -> OrderChargeLine:
    line = require_charge_line(conn, line_id)
    require_unlocked_order(conn, line.order_id)
    line.removed_at = now_iso()
    conn.execute(
        "UPDATE order_charge_lines SET removed_at = ? WHERE id = ?",
        (line.removed_at, line_id),
    )
    recalculate_order_totals(conn, line.order_id)
    return line
