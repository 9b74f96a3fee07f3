"""Repository layer — catalog, customer, purchasing and time-clock CRUD.

Order line mutations and invoicing live in ``shop_ledger.engine``; this
class covers the master data around them plus read access to orders and
the ledger.
"""

from datetime import datetime
from typing import Optional

from .connection import DatabaseConnection
from .models import (
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
    Technician,
    TimeEntry,
    Vendor,
    from_row,
)
from . import queries
from shop_ledger.engine import ledger
from shop_ledger.engine.errors import InvalidInput, LockedOrder, NotFound
from shop_ledger.utils.constants import (
    MOVEMENT_ADJUST,
    PO_STATUS_OPEN,
    PRICE_LEVELS,
    REF_PART,
)


def _check_price_level(customer: Customer):
    if customer.price_level not in PRICE_LEVELS:
        raise InvalidInput(f"Unknown price level: {customer.price_level}")


class Repository:
    """Provides the database operations around the order engine."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    # ── Customers ───────────────────────────────────────────────

    def create_customer(self, customer: Customer) -> int:
        _check_price_level(customer)
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                "INSERT INTO customers (company_name, contact_name, phone, "
                "email, price_level, is_tax_exempt, tax_rate_override, "
                "is_active) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (customer.company_name, customer.contact_name,
                 customer.phone, customer.email, customer.price_level,
                 customer.is_tax_exempt, customer.tax_rate_override,
                 customer.is_active),
            )
            return cursor.lastrowid

    def get_customer_by_id(self, customer_id: int) -> Optional[Customer]:
        with self.db.get_connection(write=False) as conn:
            return queries.fetch_customer(conn, customer_id)

    def get_all_customers(self, active_only: bool = True) -> list[Customer]:
        sql = "SELECT * FROM customers"
        if active_only:
            sql += " WHERE is_active = 1"
        rows = self.db.execute(sql + " ORDER BY company_name")
        return [from_row(Customer, r) for r in rows]

    def update_customer(self, customer: Customer):
        """Update contact and pricing fields (tax fields go through the service)."""
        _check_price_level(customer)
        with self.db.get_connection() as conn:
            conn.execute(
                "UPDATE customers SET company_name = ?, contact_name = ?, "
                "phone = ?, email = ?, price_level = ?, is_active = ?, "
                "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (customer.company_name, customer.contact_name,
                 customer.phone, customer.email, customer.price_level,
                 customer.is_active, customer.id),
            )

    # ── Vendors ─────────────────────────────────────────────────

    def create_vendor(self, vendor: Vendor) -> int:
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                "INSERT INTO vendors (vendor_name, phone, email, notes, "
                "is_active) VALUES (?, ?, ?, ?, ?)",
                (vendor.vendor_name, vendor.phone, vendor.email,
                 vendor.notes, vendor.is_active),
            )
            return cursor.lastrowid

    def get_vendor_by_id(self, vendor_id: int) -> Optional[Vendor]:
        rows = self.db.execute(
            "SELECT * FROM vendors WHERE id = ?", (vendor_id,)
        )
        return from_row(Vendor, rows[0]) if rows else None

    def get_all_vendors(self) -> list[Vendor]:
        rows = self.db.execute("SELECT * FROM vendors ORDER BY vendor_name")
        return [from_row(Vendor, r) for r in rows]

    # ── Technicians & time clock ────────────────────────────────

    def create_technician(self, technician: Technician) -> int:
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                "INSERT INTO technicians (name, hourly_cost_rate, is_active) "
                "VALUES (?, ?, ?)",
                (technician.name, technician.hourly_cost_rate,
                 technician.is_active),
            )
            return cursor.lastrowid

    def clock_in(self, technician_id: int, order_id: int) -> int:
        """Start a time entry for a technician on an order."""
        with self.db.get_connection() as conn:
            active = queries.fetch_open_time_entries(
                conn, technician_id=technician_id
            )
            if active:
                raise InvalidInput(
                    f"Technician {technician_id} is already clocked in "
                    f"since {active[0].clock_in}"
                )
            queries.require_order(conn, order_id)
            cursor = conn.execute(
                "INSERT INTO time_entries (technician_id, order_id, clock_in) "
                "VALUES (?, ?, ?)",
                (technician_id, order_id, datetime.now().isoformat()),
            )
            return cursor.lastrowid

    def clock_out(self, entry_id: int) -> TimeEntry:
        """Clock out from an open entry, computing minutes worked."""
        with self.db.get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM time_entries WHERE id = ?", (entry_id,)
            ).fetchone()
            if not row:
                raise NotFound(f"Time entry {entry_id} not found")
            entry = from_row(TimeEntry, row)
            if entry.clock_out:
                raise InvalidInput(f"Entry {entry_id} is already clocked out")
            return queries.close_time_entry(conn, entry)

    def get_open_time_entries(self, order_id: Optional[int] = None
                              ) -> list[TimeEntry]:
        with self.db.get_connection(write=False) as conn:
            return queries.fetch_open_time_entries(conn, order_id=order_id)

    def get_time_entries_for_order(self, order_id: int) -> list[TimeEntry]:
        rows = self.db.execute(
            "SELECT te.*, t.name AS technician_name FROM time_entries te "
            "JOIN technicians t ON te.technician_id = t.id "
            "WHERE te.order_id = ? ORDER BY te.id",
            (order_id,),
        )
        return [from_row(TimeEntry, r) for r in rows]

    # ── Parts ───────────────────────────────────────────────────

    def get_all_parts(self) -> list[Part]:
        rows = self.db.execute("SELECT * FROM parts ORDER BY part_number")
        return [from_row(Part, r) for r in rows]

    def get_part_by_id(self, part_id: int) -> Optional[Part]:
        with self.db.get_connection(write=False) as conn:
            return queries.fetch_part(conn, part_id)

    def get_part_by_number(self, part_number: str) -> Optional[Part]:
        rows = self.db.execute(
            "SELECT * FROM parts WHERE part_number = ?", (part_number,)
        )
        return from_row(Part, rows[0]) if rows else None

    def get_negative_stock_parts(self) -> list[Part]:
        rows = self.db.execute(
            "SELECT * FROM parts WHERE quantity_on_hand < 0 "
            "ORDER BY quantity_on_hand"
        )
        return [from_row(Part, r) for r in rows]

    def create_part(self, part: Part, performed_by: Optional[str] = None
                    ) -> int:
        """Create a part; a starting quantity is booked as an opening ADJUST."""
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                "INSERT INTO parts (part_number, description, vendor_id, "
                "cost, avg_cost, last_cost, selling_price, quantity_on_hand, "
                "core_required, core_charge, is_kit, max_qty, is_active) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?, ?, ?, ?, ?)",
                (part.part_number, part.description, part.vendor_id,
                 part.cost, part.avg_cost or part.cost,
                 part.last_cost or part.cost, part.selling_price,
                 part.core_required, part.core_charge, part.is_kit,
                 part.max_qty, part.is_active),
            )
            part_id = cursor.lastrowid
            ledger.apply_delta(
                conn, part_id, part.quantity_on_hand, MOVEMENT_ADJUST,
                "Opening balance", REF_PART, part_id, performed_by,
            )
            return part_id

    def update_part(self, part: Part):
        """Update catalog fields.  Quantity only changes through the ledger."""
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                "UPDATE parts SET part_number = ?, description = ?, "
                "vendor_id = ?, cost = ?, selling_price = ?, "
                "core_required = ?, core_charge = ?, is_kit = ?, "
                "max_qty = ?, is_active = ?, updated_at = CURRENT_TIMESTAMP "
                "WHERE id = ?",
                (part.part_number, part.description, part.vendor_id,
                 part.cost, part.selling_price, part.core_required,
                 part.core_charge, part.is_kit, part.max_qty,
                 part.is_active, part.id),
            )
            if cursor.rowcount != 1:
                raise NotFound(f"Part {part.id} not found")

    def deactivate_part(self, part_id: int):
        with self.db.get_connection() as conn:
            conn.execute(
                "UPDATE parts SET is_active = 0, "
                "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (part_id,),
            )

    # ── Kits ────────────────────────────────────────────────────

    def add_kit_component(self, component: KitComponent) -> int:
        if component.quantity <= 0:
            raise InvalidInput("Component quantity must be positive")
        if component.kit_part_id == component.component_part_id:
            raise InvalidInput("A kit cannot contain itself")
        with self.db.get_connection() as conn:
            kit = queries.require_part(conn, component.kit_part_id)
            if not kit.is_kit:
                raise InvalidInput(f"Part {kit.part_number} is not a kit")
            queries.require_part(conn, component.component_part_id)
            cursor = conn.execute(
                "INSERT INTO kit_components "
                "(kit_part_id, component_part_id, quantity, is_active) "
                "VALUES (?, ?, ?, ?)",
                (component.kit_part_id, component.component_part_id,
                 component.quantity, component.is_active),
            )
            return cursor.lastrowid

    def set_kit_component_active(self, component_id: int, active: bool):
        with self.db.get_connection() as conn:
            conn.execute(
                "UPDATE kit_components SET is_active = ? WHERE id = ?",
                (1 if active else 0, component_id),
            )

    def get_kit_components(self, kit_part_id: int,
                           active_only: bool = True) -> list[KitComponent]:
        with self.db.get_connection(write=False) as conn:
            return queries.fetch_kit_components(conn, kit_part_id, active_only)

    # ── Orders (read side) ──────────────────────────────────────

    def get_order_by_id(self, order_id: int) -> Optional[Order]:
        with self.db.get_connection(write=False) as conn:
            return queries.fetch_order(conn, order_id)

    def get_order_by_number(self, order_number: str) -> Optional[Order]:
        rows = self.db.execute(
            "SELECT * FROM orders WHERE order_number = ?", (order_number,)
        )
        return from_row(Order, rows[0]) if rows else None

    def get_all_orders(self, order_type: Optional[str] = None,
                       status: Optional[str] = None) -> list[Order]:
        query = "SELECT * FROM orders WHERE 1 = 1"
        params = []
        if order_type:
            query += " AND order_type = ?"
            params.append(order_type)
        if status:
            query += " AND status = ?"
            params.append(status)
        rows = self.db.execute(query + " ORDER BY id", tuple(params))
        return [from_row(Order, r) for r in rows]

    def get_part_lines(self, order_id: int) -> list[OrderPartLine]:
        with self.db.get_connection(write=False) as conn:
            return queries.fetch_part_lines(conn, order_id)

    def get_part_line(self, line_id: int) -> Optional[OrderPartLine]:
        with self.db.get_connection(write=False) as conn:
            return queries.fetch_part_line(conn, line_id)

    def get_labor_lines(self, order_id: int) -> list[OrderLaborLine]:
        with self.db.get_connection(write=False) as conn:
            return queries.fetch_labor_lines(conn, order_id)

    def get_charge_lines(self, order_id: int) -> list[OrderChargeLine]:
        with self.db.get_connection(write=False) as conn:
            return queries.fetch_charge_lines(conn, order_id)

    # ── Ledger (read side) ──────────────────────────────────────

    def get_movements(self, part_id: Optional[int] = None,
                      ref_type: Optional[str] = None,
                      ref_id: Optional[int] = None
                      ) -> list[InventoryMovement]:
        with self.db.get_connection(write=False) as conn:
            return queries.fetch_movements(conn, part_id, ref_type, ref_id)

    def get_ledger_balance(self, part_id: int) -> int:
        with self.db.get_connection(write=False) as conn:
            return ledger.ledger_balance(conn, part_id)

    def get_inventory_summary(self) -> dict:
        rows = self.db.execute("""
            SELECT COUNT(*) AS total_parts,
                   COALESCE(SUM(CASE WHEN quantity_on_hand > 0
                       THEN quantity_on_hand * avg_cost ELSE 0 END), 0)
                       AS total_value,
                   COALESCE(SUM(CASE WHEN quantity_on_hand < 0
                       THEN 1 ELSE 0 END), 0) AS negative_count
            FROM parts WHERE is_active = 1
        """)
        return dict(rows[0]) if rows else {}

    # ── Purchase Orders ─────────────────────────────────────────

    def create_purchase_order(self, vendor_id: int, notes: str = "") -> int:
        """Create an empty OPEN purchase order for a vendor."""
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                "INSERT INTO purchase_orders "
                "(po_number, vendor_id, status, notes) VALUES (?, ?, ?, ?)",
                (queries.next_po_number(conn), vendor_id, PO_STATUS_OPEN,
                 notes),
            )
            return cursor.lastrowid

    def add_purchase_order_line(self, line: PurchaseOrderLine) -> int:
        if line.ordered_quantity <= 0:
            raise InvalidInput("Ordered quantity must be positive")
        with self.db.get_connection() as conn:
            po = queries.fetch_purchase_order(conn, line.purchase_order_id)
            if po is None:
                raise NotFound(
                    f"Purchase order {line.purchase_order_id} not found"
                )
            if not po.is_open:
                raise LockedOrder(f"{po.po_number} is closed")
            cursor = conn.execute(
                "INSERT INTO purchase_order_lines "
                "(purchase_order_id, part_id, ordered_quantity, unit_cost) "
                "VALUES (?, ?, ?, ?)",
                (line.purchase_order_id, line.part_id,
                 line.ordered_quantity, line.unit_cost),
            )
            return cursor.lastrowid

    def get_purchase_order_by_id(self, po_id: int
                                 ) -> Optional[PurchaseOrder]:
        with self.db.get_connection(write=False) as conn:
            return queries.fetch_purchase_order(conn, po_id)

    def get_all_purchase_orders(self, status: Optional[str] = None,
                                vendor_id: Optional[int] = None
                                ) -> list[PurchaseOrder]:
        with self.db.get_connection(write=False) as conn:
            return queries.fetch_purchase_orders(conn, status, vendor_id)

    def get_open_purchase_order_for_vendor(self, vendor_id: int
                                           ) -> Optional[PurchaseOrder]:
        orders = self.get_all_purchase_orders(PO_STATUS_OPEN, vendor_id)
        return orders[0] if orders else None

    def get_purchase_order_lines(self, po_id: int) -> list[PurchaseOrderLine]:
        with self.db.get_connection(write=False) as conn:
            return queries.fetch_po_lines(conn, po_id)
