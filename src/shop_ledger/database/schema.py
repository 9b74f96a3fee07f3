"""Database schema definition and initialization."""

SCHEMA_VERSION = 1

# Each statement is a separate string to avoid executescript issues
_SCHEMA_STATEMENTS = [
    """CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",

    # Customers (tax and pricing attributes drive order totals)
    """CREATE TABLE IF NOT EXISTS customers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        company_name TEXT NOT NULL,
        contact_name TEXT,
        phone TEXT,
        email TEXT,
        price_level TEXT NOT NULL DEFAULT 'RETAIL',
        is_tax_exempt INTEGER NOT NULL DEFAULT 0,
        tax_rate_override REAL,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",

    """CREATE TABLE IF NOT EXISTS vendors (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        vendor_name TEXT NOT NULL UNIQUE,
        phone TEXT,
        email TEXT,
        notes TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",

    """CREATE TABLE IF NOT EXISTS technicians (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        hourly_cost_rate REAL NOT NULL DEFAULT 0,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",

    # Parts (quantity_on_hand may go negative)
    """CREATE TABLE IF NOT EXISTS parts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        part_number TEXT NOT NULL UNIQUE,
        description TEXT,
        vendor_id INTEGER,
        cost REAL NOT NULL DEFAULT 0 CHECK (cost >= 0),
        avg_cost REAL NOT NULL DEFAULT 0,
        last_cost REAL NOT NULL DEFAULT 0,
        selling_price REAL NOT NULL DEFAULT 0 CHECK (selling_price >= 0),
        quantity_on_hand INTEGER NOT NULL DEFAULT 0,
        core_required INTEGER NOT NULL DEFAULT 0,
        core_charge REAL NOT NULL DEFAULT 0 CHECK (core_charge >= 0),
        is_kit INTEGER NOT NULL DEFAULT 0,
        max_qty INTEGER NOT NULL DEFAULT 0,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (vendor_id) REFERENCES vendors(id) ON DELETE SET NULL
    )""",

    """CREATE TABLE IF NOT EXISTS kit_components (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        kit_part_id INTEGER NOT NULL,
        component_part_id INTEGER NOT NULL,
        quantity INTEGER NOT NULL DEFAULT 1 CHECK (quantity > 0),
        is_active INTEGER NOT NULL DEFAULT 1,
        FOREIGN KEY (kit_part_id) REFERENCES parts(id) ON DELETE CASCADE,
        FOREIGN KEY (component_part_id) REFERENCES parts(id) ON DELETE RESTRICT
    )""",

    # Sales and work orders share one table
    """CREATE TABLE IF NOT EXISTS orders (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        order_number TEXT NOT NULL UNIQUE,
        order_type TEXT NOT NULL CHECK (order_type IN ('SALES', 'WORK')),
        customer_id INTEGER NOT NULL,
        unit_id INTEGER,
        status TEXT NOT NULL DEFAULT 'OPEN'
            CHECK (status IN ('ESTIMATE', 'OPEN', 'PARTIAL', 'COMPLETED',
                              'IN_PROGRESS', 'INVOICED', 'CANCELLED')),
        notes TEXT,
        technician_id INTEGER,
        priority INTEGER,
        promised_at TEXT,
        tax_rate REAL NOT NULL DEFAULT 0,
        parts_subtotal REAL NOT NULL DEFAULT 0,
        labor_subtotal REAL NOT NULL DEFAULT 0,
        charge_subtotal REAL NOT NULL DEFAULT 0,
        core_charges_total REAL NOT NULL DEFAULT 0,
        subtotal REAL NOT NULL DEFAULT 0,
        tax_amount REAL NOT NULL DEFAULT 0,
        total REAL NOT NULL DEFAULT 0,
        invoiced_at TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (customer_id) REFERENCES customers(id) ON DELETE RESTRICT,
        FOREIGN KEY (technician_id) REFERENCES technicians(id) ON DELETE SET NULL
    )""",

    # Part lines; refund lines are rows in the same table
    """CREATE TABLE IF NOT EXISTS order_part_lines (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        order_id INTEGER NOT NULL,
        part_id INTEGER NOT NULL,
        job_line_id INTEGER,
        description TEXT,
        quantity INTEGER NOT NULL CHECK (quantity > 0),
        unit_price REAL NOT NULL,
        unit_cost REAL NOT NULL DEFAULT 0,
        line_total REAL NOT NULL DEFAULT 0,
        is_warranty INTEGER NOT NULL DEFAULT 0,
        core_charge REAL NOT NULL DEFAULT 0,
        core_status TEXT NOT NULL DEFAULT 'NOT_APPLICABLE'
            CHECK (core_status IN ('NOT_APPLICABLE', 'CORE_OWED',
                                   'CORE_CREDITED')),
        core_returned_at TEXT,
        core_refunded_at TEXT,
        is_core_refund_line INTEGER NOT NULL DEFAULT 0,
        core_refund_for_line_id INTEGER,
        removed_at TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (order_id) REFERENCES orders(id) ON DELETE CASCADE,
        FOREIGN KEY (part_id) REFERENCES parts(id) ON DELETE RESTRICT,
        FOREIGN KEY (core_refund_for_line_id)
            REFERENCES order_part_lines(id) ON DELETE RESTRICT
    )""",

    """CREATE TABLE IF NOT EXISTS order_labor_lines (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        order_id INTEGER NOT NULL,
        description TEXT NOT NULL,
        hours REAL NOT NULL CHECK (hours > 0),
        rate REAL NOT NULL,
        line_total REAL NOT NULL DEFAULT 0,
        is_warranty INTEGER NOT NULL DEFAULT 0,
        technician_id INTEGER,
        removed_at TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (order_id) REFERENCES orders(id) ON DELETE CASCADE,
        FOREIGN KEY (technician_id) REFERENCES technicians(id) ON DELETE SET NULL
    )""",

    """CREATE TABLE IF NOT EXISTS order_charge_lines (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        order_id INTEGER NOT NULL,
        description TEXT NOT NULL,
        qty REAL NOT NULL CHECK (qty > 0),
        unit_price REAL NOT NULL,
        total_price REAL NOT NULL DEFAULT 0,
        source_ref_type TEXT,
        source_ref_id TEXT,
        removed_at TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (order_id) REFERENCES orders(id) ON DELETE CASCADE
    )""",

    # Append-only stock ledger
    """CREATE TABLE IF NOT EXISTS inventory_movements (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        part_id INTEGER NOT NULL,
        movement_type TEXT NOT NULL
            CHECK (movement_type IN ('ISSUE', 'RETURN', 'RECEIVE',
                                     'ADJUST', 'COUNT')),
        qty_delta INTEGER NOT NULL,
        reason TEXT,
        ref_type TEXT,
        ref_id INTEGER,
        performed_by TEXT,
        performed_at TEXT NOT NULL,
        FOREIGN KEY (part_id) REFERENCES parts(id) ON DELETE RESTRICT
    )""",

    """CREATE TABLE IF NOT EXISTS purchase_orders (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        po_number TEXT NOT NULL UNIQUE,
        vendor_id INTEGER NOT NULL,
        status TEXT NOT NULL DEFAULT 'OPEN'
            CHECK (status IN ('OPEN', 'CLOSED')),
        notes TEXT,
        closed_at TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (vendor_id) REFERENCES vendors(id) ON DELETE RESTRICT
    )""",

    """CREATE TABLE IF NOT EXISTS purchase_order_lines (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        purchase_order_id INTEGER NOT NULL,
        part_id INTEGER NOT NULL,
        ordered_quantity INTEGER NOT NULL CHECK (ordered_quantity > 0),
        received_quantity INTEGER NOT NULL DEFAULT 0
            CHECK (received_quantity >= 0),
        unit_cost REAL NOT NULL DEFAULT 0,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (purchase_order_id)
            REFERENCES purchase_orders(id) ON DELETE CASCADE,
        FOREIGN KEY (part_id) REFERENCES parts(id) ON DELETE RESTRICT,
        UNIQUE(purchase_order_id, part_id)
    )""",

    """CREATE TABLE IF NOT EXISTS time_entries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        technician_id INTEGER NOT NULL,
        order_id INTEGER NOT NULL,
        clock_in TEXT NOT NULL,
        clock_out TEXT,
        total_minutes INTEGER NOT NULL DEFAULT 0,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (technician_id) REFERENCES technicians(id) ON DELETE CASCADE,
        FOREIGN KEY (order_id) REFERENCES orders(id) ON DELETE CASCADE
    )""",

    # Indexes
    "CREATE INDEX IF NOT EXISTS idx_parts_vendor ON parts(vendor_id)",
    "CREATE INDEX IF NOT EXISTS idx_kit_components_kit ON kit_components(kit_part_id)",
    "CREATE INDEX IF NOT EXISTS idx_orders_customer ON orders(customer_id)",
    "CREATE INDEX IF NOT EXISTS idx_orders_status ON orders(status)",
    "CREATE INDEX IF NOT EXISTS idx_part_lines_order ON order_part_lines(order_id)",
    "CREATE INDEX IF NOT EXISTS idx_labor_lines_order ON order_labor_lines(order_id)",
    "CREATE INDEX IF NOT EXISTS idx_charge_lines_order ON order_charge_lines(order_id)",
    "CREATE INDEX IF NOT EXISTS idx_movements_part ON inventory_movements(part_id)",
    "CREATE INDEX IF NOT EXISTS idx_movements_ref ON inventory_movements(ref_type, ref_id)",
    "CREATE INDEX IF NOT EXISTS idx_po_vendor_status ON purchase_orders(vendor_id, status)",
    "CREATE INDEX IF NOT EXISTS idx_time_entries_order ON time_entries(order_id)",

    # The ledger is append-only
    """CREATE TRIGGER IF NOT EXISTS inventory_movements_no_update
    BEFORE UPDATE ON inventory_movements BEGIN
        SELECT RAISE(ABORT, 'inventory movements are append-only');
    END""",

    """CREATE TRIGGER IF NOT EXISTS inventory_movements_no_delete
    BEFORE DELETE ON inventory_movements BEGIN
        SELECT RAISE(ABORT, 'inventory movements are append-only');
    END""",

    f"INSERT OR REPLACE INTO schema_version (version) VALUES ({SCHEMA_VERSION})",
]


def _get_schema_version(conn) -> int:
    """Get the current schema version, or 0 if no schema exists."""
    row = conn.execute(
        "SELECT name FROM sqlite_master "
        "WHERE type = 'table' AND name = 'schema_version'"
    ).fetchone()
    if not row:
        return 0
    row = conn.execute(
        "SELECT MAX(version) AS v FROM schema_version"
    ).fetchone()
    return row["v"] if row and row["v"] else 0


def initialize_database(db_connection):
    """Create all tables, indexes and triggers on a fresh database."""
    with db_connection.get_connection() as conn:
        version = _get_schema_version(conn)
        if version > SCHEMA_VERSION:
            raise RuntimeError(
                f"Database schema v{version} is newer than this "
                f"application (v{SCHEMA_VERSION})"
            )
        if version < SCHEMA_VERSION:
            for stmt in _SCHEMA_STATEMENTS:
                conn.execute(stmt)
