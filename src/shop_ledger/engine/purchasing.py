"""Purchase order receiving and closing."""

import logging
from typing import Optional

from shop_ledger.database.models import PurchaseOrder, PurchaseOrderLine
from shop_ledger.database.queries import (
    fetch_po_line,
    fetch_po_lines,
    fetch_purchase_order,
    now_iso,
)
from shop_ledger.engine import ledger
from shop_ledger.engine.errors import InvalidInput, LockedOrder, NotFound
from shop_ledger.utils.constants import PO_STATUS_CLOSED, REF_PURCHASE_ORDER

logger = logging.getLogger(__name__)


def require_open_purchase_order(conn, po_id: int) -> PurchaseOrder:
    po = fetch_purchase_order(conn, po_id)
    if po is None:
        raise NotFound(f"Purchase order {po_id} not found")
    if not po.is_open:
        raise LockedOrder(f"{po.po_number} is closed")
    return po


def close(conn, po_id: int) -> PurchaseOrder:
    po = require_open_purchase_order(conn, po_id)
    conn.execute(
        "UPDATE purchase_orders SET status = ?, closed_at = ?, "
        "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
        (PO_STATUS_CLOSED, now_iso(), po_id),
    )
    logger.info(f"Closed {po.po_number}")
    return fetch_purchase_order(conn, po_id)


def receive_line(conn, po_line_id: int, qty: int,
                 performed_by: Optional[str] = None,
                 auto_close: bool = True) -> PurchaseOrderLine:
    """Receive stock against one PO line.

    Records a RECEIVE movement at the line's unit cost and, when every
    line is fully received and ``auto_close`` is set, closes the PO.
    """
    if not isinstance(qty, int) or isinstance(qty, bool) or qty <= 0:
        raise InvalidInput("Received quantity must be a positive whole number")
    line = fetch_po_line(conn, po_line_id)
    if line is None:
        raise NotFound(f"Purchase order line {po_line_id} not found")
    po = require_open_purchase_order(conn, line.purchase_order_id)
    if qty > line.outstanding_quantity:
        raise InvalidInput(
            f"Cannot receive {qty} of {line.part_number}; only "
            f"{line.outstanding_quantity} outstanding"
        )

    conn.execute(
        "UPDATE purchase_order_lines "
        "SET received_quantity = received_quantity + ?, "
        "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
        (qty, po_line_id),
    )
    ledger.receive_quantity(
        conn, line.part_id, qty, line.unit_cost,
        f"Received on {po.po_number}", REF_PURCHASE_ORDER, po.id,
        performed_by,
    )
    logger.info(f"Received {qty} x {line.part_number} on {po.po_number}")

    if auto_close and all(
        l.outstanding_quantity == 0 for l in fetch_po_lines(conn, po.id)
    ):
        close(conn, po.id)
    return fetch_po_line(conn, po_line_id)
