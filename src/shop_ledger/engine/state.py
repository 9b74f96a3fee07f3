"""Order state machine — creation, status transitions, locking, invoicing."""

import logging
from typing import Optional

from shop_ledger.config import Config
from shop_ledger.database.models import Order, TimeEntry
from shop_ledger.database.queries import (
    close_time_entry,
    fetch_open_time_entries,
    fetch_part_lines,
    now_iso,
    require_customer,
    require_order,
    require_part,
)
from shop_ledger.engine import kits, ledger
from shop_ledger.engine.errors import InvalidInput, LockedOrder
from shop_ledger.engine.totals import recalculate_order_totals, resolve_tax_rate
from shop_ledger.utils.constants import (
    LOCKED_STATUSES,
    ORDER_TYPE_WORK,
    ORDER_TYPES,
    REF_SALES_ORDER,
    REF_WORK_ORDER,
    SALES_ORDER_INVOICEABLE,
    SALES_ORDER_SETTABLE,
    STATUS_CANCELLED,
    STATUS_ESTIMATE,
    STATUS_IN_PROGRESS,
    STATUS_INVOICED,
    STATUS_OPEN,
    WORK_ORDER_INVOICEABLE,
    WORK_ORDER_TRANSITIONS,
)
from shop_ledger.utils.formatters import format_order_number

logger = logging.getLogger(__name__)

_INITIAL_STATUSES = [STATUS_ESTIMATE, STATUS_OPEN]


def is_locked(order: Order) -> bool:
    return order.status in LOCKED_STATUSES[order.order_type]


def require_unlocked_order(conn, order_id: int) -> Order:
    """Load an order and refuse if it no longer accepts line changes."""
    order = require_order(conn, order_id)
    if is_locked(order):
        verb = "invoiced" if order.status == STATUS_INVOICED else "cancelled"
        raise LockedOrder(f"Cannot modify {verb} order {order.order_number}")
    return order


def ref_type_for(order: Order) -> str:
    return REF_WORK_ORDER if order.is_work_order else REF_SALES_ORDER


def ledger_reason(order: Order) -> str:
    label = "Work Order" if order.is_work_order else "Sales Order"
    return f"{label} {order.order_number}"


def next_order_number(conn, order_type: str) -> str:
    prefix = (Config.WORK_ORDER_PREFIX if order_type == ORDER_TYPE_WORK
              else Config.SALES_ORDER_PREFIX)
    row = conn.execute(
        "SELECT COUNT(*) AS cnt FROM orders WHERE order_type = ?",
        (order_type,),
    ).fetchone()
    return format_order_number(prefix, row["cnt"] + 1)


def create_order(conn, order_type: str, customer_id: int,
                 unit_id: Optional[int] = None, status: str = STATUS_OPEN,
                 notes: str = "", technician_id: Optional[int] = None,
                 priority: Optional[int] = None,
                 promised_at: Optional[str] = None) -> Order:
    """Open a new sales or work order with the customer's tax rate."""
    if order_type not in ORDER_TYPES:
        raise InvalidInput(f"Unknown order type: {order_type}")
    if status not in _INITIAL_STATUSES:
        raise InvalidInput(f"Orders cannot start in status {status}")
    customer = require_customer(conn, customer_id)

    cursor = conn.execute(
        "INSERT INTO orders "
        "(order_number, order_type, customer_id, unit_id, status, notes, "
        "technician_id, priority, promised_at, tax_rate) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (next_order_number(conn, order_type), order_type, customer_id,
         unit_id, status, notes, technician_id, priority, promised_at,
         resolve_tax_rate(customer)),
    )
    return require_order(conn, cursor.lastrowid)


def set_status(conn, order_id: int, status: str) -> Order:
    """Move an order to a new non-invoiced status."""
    order = require_unlocked_order(conn, order_id)
    if status == STATUS_INVOICED:
        raise InvalidInput("Use invoicing to mark an order INVOICED")

    if order.is_sales_order:
        if status not in SALES_ORDER_SETTABLE:
            raise InvalidInput(f"Invalid sales order status: {status}")
    else:
        if order.status == status == STATUS_IN_PROGRESS:
            raise InvalidInput("Order already in progress")
        if status not in WORK_ORDER_TRANSITIONS.get(order.status, []):
            raise InvalidInput(
                f"Work order cannot move from {order.status} to {status}"
            )

    if status != order.status:
        conn.execute(
            "UPDATE orders SET status = ?, updated_at = CURRENT_TIMESTAMP "
            "WHERE id = ?",
            (status, order_id),
        )
        logger.info(f"{order.order_number}: {order.status} -> {status}")
    return require_order(conn, order_id)


def cancel(conn, order_id: int) -> Order:
    """Cancel a sales order.  Stock is untouched; none was taken yet."""
    order = require_order(conn, order_id)
    if order.is_work_order:
        raise InvalidInput("Work orders cannot be cancelled")
    return set_status(conn, order_id, STATUS_CANCELLED)


def sales_order_consumption(conn, order_id: int) -> dict[int, int]:
    """Per-part stock needed to fill a sales order, kits expanded."""
    consumption: dict[int, int] = {}
    for line in fetch_part_lines(conn, order_id):
        if line.is_core_refund_line:
            continue
        part = require_part(conn, line.part_id)
        kits.merge_deltas(
            consumption, kits.stock_deltas(conn, part, line.quantity)
        )
    return consumption


def clock_out_order(conn, order_id: int) -> list[TimeEntry]:
    """Close every open time entry on a work order."""
    return [
        close_time_entry(conn, entry)
        for entry in fetch_open_time_entries(conn, order_id=order_id)
    ]


def invoice(conn, order_id: int,
            performed_by: Optional[str] = None) -> dict:
    """Lock an order as INVOICED.

    Sales orders take their stock here, one ISSUE per part.  Work orders
    already took theirs line by line, so only open time entries are
    closed.  Returns the invoiced order plus what moved.
    """
    order = require_order(conn, order_id)
    if order.status == STATUS_INVOICED:
        raise LockedOrder(f"Order {order.order_number} already invoiced")
    if is_locked(order):
        raise LockedOrder(f"Order {order.order_number} is cancelled")
    allowed = (SALES_ORDER_INVOICEABLE if order.is_sales_order
               else WORK_ORDER_INVOICEABLE)
    if order.status not in allowed:
        raise InvalidInput(
            f"Cannot invoice {order.order_number} from status {order.status}"
        )

    movements, clocked_out = [], []
    if order.is_sales_order:
        movements = ledger.apply_consumption(
            conn, sales_order_consumption(conn, order_id),
            ledger_reason(order), ref_type_for(order), order.id,
            performed_by,
        )
    else:
        clocked_out = clock_out_order(conn, order_id)

    recalculate_order_totals(conn, order_id)
    conn.execute(
        "UPDATE orders SET status = ?, invoiced_at = ?, "
        "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
        (STATUS_INVOICED, now_iso(), order_id),
    )
    logger.info(
        f"Invoiced {order.order_number}: {len(movements)} stock movements, "
        f"{len(clocked_out)} technicians clocked out"
    )
    return {
        "order": require_order(conn, order_id),
        "movements": movements,
        "clocked_out": clocked_out,
    }
