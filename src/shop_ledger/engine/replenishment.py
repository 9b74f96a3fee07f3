"""Replenishment — reorder stock that invoicing drove below zero.

Runs after an invoice has committed, in its own transaction.  Parts with
negative stock, a vendor and a positive ``max_qty`` are grouped by vendor
and put on that vendor's OPEN purchase order (created if needed), ordering
enough to bring each part back up to ``max_qty``.
"""

import logging
from collections import defaultdict
from datetime import datetime

from shop_ledger.database.connection import DatabaseConnection
from shop_ledger.database.models import Part, PurchaseOrder, from_row
from shop_ledger.database.queries import (
    fetch_purchase_order,
    fetch_purchase_orders,
    next_po_number,
)
from shop_ledger.utils.constants import PO_STATUS_OPEN

logger = logging.getLogger(__name__)


def find_shortfall_parts(conn) -> dict[int, list[Part]]:
    """Negative-stock parts that can be reordered, keyed by vendor."""
    rows = conn.execute(
        "SELECT * FROM parts WHERE quantity_on_hand < 0 "
        "AND vendor_id IS NOT NULL AND max_qty > 0 ORDER BY id"
    ).fetchall()
    by_vendor: dict[int, list[Part]] = defaultdict(list)
    for row in rows:
        part = from_row(Part, row)
        by_vendor[part.vendor_id].append(part)
    return dict(by_vendor)


def _open_po_for_vendor(conn, vendor_id: int, note: str) -> PurchaseOrder:
    existing = fetch_purchase_orders(conn, status=PO_STATUS_OPEN,
                                     vendor_id=vendor_id)
    if existing:
        po = existing[0]
        notes = f"{po.notes}\n{note}" if po.notes else note
        conn.execute(
            "UPDATE purchase_orders SET notes = ?, "
            "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (notes, po.id),
        )
        return fetch_purchase_order(conn, po.id)

    cursor = conn.execute(
        "INSERT INTO purchase_orders (po_number, vendor_id, status, notes) "
        "VALUES (?, ?, ?, ?)",
        (next_po_number(conn), vendor_id, PO_STATUS_OPEN, note),
    )
    po = fetch_purchase_order(conn, cursor.lastrowid)
    logger.info(f"Opened {po.po_number} for vendor {vendor_id}")
    return po


def _order_part(conn, po: PurchaseOrder, part: Part):
    """Add the part to the PO, or raise its outstanding quantity to the shortfall.

    Units already received on a line no longer count toward the shortfall.
    """
    needed = part.reorder_quantity
    row = conn.execute(
        "SELECT id, ordered_quantity, received_quantity "
        "FROM purchase_order_lines "
        "WHERE purchase_order_id = ? AND part_id = ?",
        (po.id, part.id),
    ).fetchone()
    if row is None:
        conn.execute(
            "INSERT INTO purchase_order_lines "
            "(purchase_order_id, part_id, ordered_quantity, unit_cost) "
            "VALUES (?, ?, ?, ?)",
            (po.id, part.id, needed, part.cost_basis),
        )
    elif row["ordered_quantity"] - row["received_quantity"] < needed:
        conn.execute(
            "UPDATE purchase_order_lines SET ordered_quantity = ?, "
            "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (row["received_quantity"] + needed, row["id"]),
        )


def replenish(conn, source: str) -> list[PurchaseOrder]:
    """Create or extend purchase orders for every shortfall part."""
    stamp = datetime.now().strftime("%Y-%m-%d %H:%M")
    note = f"Auto-replenishment after {source} ({stamp})"
    touched = []
    for vendor_id, parts in find_shortfall_parts(conn).items():
        po = _open_po_for_vendor(conn, vendor_id, note)
        for part in parts:
            _order_part(conn, po, part)
        touched.append(fetch_purchase_order(conn, po.id))
    return touched


def trigger_after_invoice(db: DatabaseConnection,
                          source: str) -> list[PurchaseOrder]:
    """Best-effort replenishment; failures are logged, never raised."""
    try:
        with db.get_connection() as conn:
            return replenish(conn, source)
    except Exception:
        logger.exception(f"Replenishment after {source} failed")
        return []
