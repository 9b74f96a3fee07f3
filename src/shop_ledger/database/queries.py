"""Row loaders that run on an already-open connection.

The repository and the engine both read through these so that a single
engine operation can load, validate and write inside one transaction.
"""

from datetime import datetime
from typing import Optional

from shop_ledger.database.models import (
    Customer,
    InventoryMovement,
    KitComponent,
    Order,
    OrderChargeLine,
    OrderLaborLine,
    OrderPartLine,
    Part,
    PurchaseOrder,
    PurchaseOrderLine,
    TimeEntry,
    from_row,
)
from shop_ledger.engine.errors import NotFound


def now_iso() -> str:
    return datetime.now().isoformat()


# ── Parts ───────────────────────────────────────────────────────

def fetch_part(conn, part_id: int) -> Optional[Part]:
    row = conn.execute(
        "SELECT * FROM parts WHERE id = ?", (part_id,)
    ).fetchone()
    return from_row(Part, row) if row else None


def require_part(conn, part_id: int) -> Part:
    part = fetch_part(conn, part_id)
    if part is None:
        raise NotFound(f"Part {part_id} not found")
    return part


def fetch_kit_components(conn, kit_part_id: int,
                         active_only: bool = True) -> list[KitComponent]:
    sql = """
        SELECT kc.*, p.part_number
        FROM kit_components kc
        JOIN parts p ON kc.component_part_id = p.id
        WHERE kc.kit_part_id = ?
    """
    if active_only:
        sql += " AND kc.is_active = 1"
    rows = conn.execute(sql + " ORDER BY kc.id", (kit_part_id,)).fetchall()
    return [from_row(KitComponent, r) for r in rows]


# ── Customers ───────────────────────────────────────────────────

def fetch_customer(conn, customer_id: int) -> Optional[Customer]:
    row = conn.execute(
        "SELECT * FROM customers WHERE id = ?", (customer_id,)
    ).fetchone()
    return from_row(Customer, row) if row else None


def require_customer(conn, customer_id: int) -> Customer:
    customer = fetch_customer(conn, customer_id)
    if customer is None:
        raise NotFound(f"Customer {customer_id} not found")
    return customer


# ── Orders & lines ──────────────────────────────────────────────

def fetch_order(conn, order_id: int) -> Optional[Order]:
    row = conn.execute(
        "SELECT * FROM orders WHERE id = ?", (order_id,)
    ).fetchone()
    return from_row(Order, row) if row else None


def require_order(conn, order_id: int) -> Order:
    order = fetch_order(conn, order_id)
    if order is None:
        raise NotFound(f"Order {order_id} not found")
    return order


_PART_LINE_SELECT = """
    SELECT l.*, p.part_number
    FROM order_part_lines l
    JOIN parts p ON l.part_id = p.id
"""


def fetch_part_line(conn, line_id: int) -> Optional[OrderPartLine]:
    row = conn.execute(
        _PART_LINE_SELECT + " WHERE l.id = ? AND l.removed_at IS NULL",
        (line_id,),
    ).fetchone()
    return from_row(OrderPartLine, row) if row else None


def require_part_line(conn, line_id: int) -> OrderPartLine:
    line = fetch_part_line(conn, line_id)
    if line is None:
        raise NotFound(f"Line {line_id} not found")
    return line


def fetch_part_lines(conn, order_id: int) -> list[OrderPartLine]:
    rows = conn.execute(
        _PART_LINE_SELECT
        + " WHERE l.order_id = ? AND l.removed_at IS NULL ORDER BY l.id",
        (order_id,),
    ).fetchall()
    return [from_row(OrderPartLine, r) for r in rows]


def fetch_refund_line_for(conn, parent_line_id: int) -> Optional[OrderPartLine]:
    row = conn.execute(
        _PART_LINE_SELECT
        + " WHERE l.core_refund_for_line_id = ? AND l.removed_at IS NULL",
        (parent_line_id,),
    ).fetchone()
    return from_row(OrderPartLine, row) if row else None


def fetch_labor_line(conn, line_id: int) -> Optional[OrderLaborLine]:
    row = conn.execute(
        "SELECT * FROM order_labor_lines "
        "WHERE id = ? AND removed_at IS NULL",
        (line_id,),
    ).fetchone()
    return from_row(OrderLaborLine, row) if row else None


def require_labor_line(conn, line_id: int) -> OrderLaborLine:
    line = fetch_labor_line(conn, line_id)
    if line is None:
        raise NotFound(f"Labor line {line_id} not found")
    return line


def fetch_labor_lines(conn, order_id: int) -> list[OrderLaborLine]:
    rows = conn.execute(
        "SELECT * FROM order_labor_lines "
        "WHERE order_id = ? AND removed_at IS NULL ORDER BY id",
        (order_id,),
    ).fetchall()
    return [from_row(OrderLaborLine, r) for r in rows]


def fetch_charge_line(conn, line_id: int) -> Optional[OrderChargeLine]:
    row = conn.execute(
        "SELECT * FROM order_charge_lines "
        "WHERE id = ? AND removed_at IS NULL",
        (line_id,),
    ).fetchone()
    return from_row(OrderChargeLine, row) if row else None


def require_charge_line(conn, line_id: int) -> OrderChargeLine:
    line = fetch_charge_line(conn, line_id)
    if line is None:
        raise NotFound(f"Charge line {line_id} not found")
    return line


def fetch_charge_lines(conn, order_id: int) -> list[OrderChargeLine]:
    rows = conn.execute(
        "SELECT * FROM order_charge_lines "
        "WHERE order_id = ? AND removed_at IS NULL ORDER BY id",
        (order_id,),
    ).fetchall()
    return [from_row(OrderChargeLine, r) for r in rows]


# ── Ledger ──────────────────────────────────────────────────────

def fetch_movements(conn, part_id: Optional[int] = None,
                    ref_type: Optional[str] = None,
                    ref_id: Optional[int] = None) -> list[InventoryMovement]:
    clauses, params = [], []
    if part_id is not None:
        clauses.append("m.part_id = ?")
        params.append(part_id)
    if ref_type is not None:
        clauses.append("m.ref_type = ?")
        params.append(ref_type)
    if ref_id is not None:
        clauses.append("m.ref_id = ?")
        params.append(ref_id)
    where = " WHERE " + " AND ".join(clauses) if clauses else ""
    rows = conn.execute(
        "SELECT m.*, p.part_number FROM inventory_movements m "
        "JOIN parts p ON m.part_id = p.id" + where + " ORDER BY m.id",
        tuple(params),
    ).fetchall()
    return [from_row(InventoryMovement, r) for r in rows]


# ── Purchasing ──────────────────────────────────────────────────

_PO_SELECT = """
    SELECT po.*,
           v.vendor_name,
           COALESCE(agg.line_count, 0) AS line_count,
           COALESCE(agg.total_cost, 0.0) AS total_cost
    FROM purchase_orders po
    JOIN vendors v ON po.vendor_id = v.id
    LEFT JOIN (
        SELECT purchase_order_id,
               COUNT(*) AS line_count,
               SUM(ordered_quantity * unit_cost) AS total_cost
        FROM purchase_order_lines
        GROUP BY purchase_order_id
    ) agg ON agg.purchase_order_id = po.id
"""


def next_po_number(conn) -> str:
    """Generate next sequential PO number like PO-2026-001."""
    from shop_ledger.config import Config
    prefix = Config.PO_NUMBER_PREFIX
    year = datetime.now().year
    row = conn.execute(
        "SELECT COUNT(*) AS cnt FROM purchase_orders WHERE po_number LIKE ?",
        (f"{prefix}-{year}-%",),
    ).fetchone()
    return f"{prefix}-{year}-{row['cnt'] + 1:03d}"


def fetch_purchase_order(conn, po_id: int) -> Optional[PurchaseOrder]:
    row = conn.execute(_PO_SELECT + " WHERE po.id = ?", (po_id,)).fetchone()
    return from_row(PurchaseOrder, row) if row else None


def fetch_purchase_orders(conn, status: Optional[str] = None,
                          vendor_id: Optional[int] = None
                          ) -> list[PurchaseOrder]:
    clauses, params = [], []
    if status:
        clauses.append("po.status = ?")
        params.append(status)
    if vendor_id is not None:
        clauses.append("po.vendor_id = ?")
        params.append(vendor_id)
    where = " WHERE " + " AND ".join(clauses) if clauses else ""
    rows = conn.execute(
        _PO_SELECT + where + " ORDER BY po.id", tuple(params)
    ).fetchall()
    return [from_row(PurchaseOrder, r) for r in rows]


def fetch_po_line(conn, po_line_id: int) -> Optional[PurchaseOrderLine]:
    row = conn.execute(
        "SELECT pol.*, p.part_number FROM purchase_order_lines pol "
        "JOIN parts p ON pol.part_id = p.id WHERE pol.id = ?",
        (po_line_id,),
    ).fetchone()
    return from_row(PurchaseOrderLine, row) if row else None


def fetch_po_lines(conn, po_id: int) -> list[PurchaseOrderLine]:
    rows = conn.execute(
        "SELECT pol.*, p.part_number FROM purchase_order_lines pol "
        "JOIN parts p ON pol.part_id = p.id "
        "WHERE pol.purchase_order_id = ? ORDER BY pol.id",
        (po_id,),
    ).fetchall()
    return [from_row(PurchaseOrderLine, r) for r in rows]


# ── Time clock ──────────────────────────────────────────────────

def fetch_open_time_entries(conn, order_id: Optional[int] = None,
                            technician_id: Optional[int] = None
                            ) -> list[TimeEntry]:
    sql = """
        SELECT te.*, t.name AS technician_name
        FROM time_entries te
        JOIN technicians t ON te.technician_id = t.id
        WHERE te.clock_out IS NULL
    """
    params = []
    if order_id is not None:
        sql += " AND te.order_id = ?"
        params.append(order_id)
    if technician_id is not None:
        sql += " AND te.technician_id = ?"
        params.append(technician_id)
    rows = conn.execute(sql + " ORDER BY te.id", tuple(params)).fetchall()
    return [from_row(TimeEntry, r) for r in rows]


def close_time_entry(conn, entry: TimeEntry) -> TimeEntry:
    """Stamp clock_out and total_minutes on an open entry."""
    now = datetime.now()
    start = datetime.fromisoformat(str(entry.clock_in))
    minutes = max(int((now - start).total_seconds() // 60), 0)
    conn.execute(
        "UPDATE time_entries SET clock_out = ?, total_minutes = ? "
        "WHERE id = ?",
        (now.isoformat(), minutes, entry.id),
    )
    entry.clock_out = now.isoformat()
    entry.total_minutes = minutes
    return entry
