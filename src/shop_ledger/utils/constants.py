"""Application-wide constants."""

APP_NAME = "Shop Ledger"
APP_VERSION = "1.0.0"

# Order variants
ORDER_TYPE_SALES = "SALES"
ORDER_TYPE_WORK = "WORK"
ORDER_TYPES = [ORDER_TYPE_SALES, ORDER_TYPE_WORK]

# ── Order statuses ───────────────────────────────────────────────
STATUS_ESTIMATE = "ESTIMATE"
STATUS_OPEN = "OPEN"
STATUS_PARTIAL = "PARTIAL"
STATUS_COMPLETED = "COMPLETED"
STATUS_IN_PROGRESS = "IN_PROGRESS"
STATUS_INVOICED = "INVOICED"
STATUS_CANCELLED = "CANCELLED"

# Statuses reachable through set_status (INVOICED only via invoicing)
SALES_ORDER_SETTABLE = [
    STATUS_ESTIMATE,
    STATUS_OPEN,
    STATUS_PARTIAL,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
]

WORK_ORDER_TRANSITIONS = {
    STATUS_ESTIMATE: [STATUS_OPEN],
    STATUS_OPEN: [STATUS_IN_PROGRESS, STATUS_ESTIMATE],
    STATUS_IN_PROGRESS: [STATUS_OPEN],
}

# Invoicing preconditions
SALES_ORDER_INVOICEABLE = [STATUS_OPEN, STATUS_PARTIAL, STATUS_COMPLETED]
WORK_ORDER_INVOICEABLE = [STATUS_OPEN, STATUS_IN_PROGRESS]

LOCKED_STATUSES = {
    ORDER_TYPE_SALES: [STATUS_INVOICED, STATUS_CANCELLED],
    ORDER_TYPE_WORK: [STATUS_INVOICED],
}

# ── Core deposits ────────────────────────────────────────────────
CORE_NOT_APPLICABLE = "NOT_APPLICABLE"
CORE_OWED = "CORE_OWED"
CORE_CREDITED = "CORE_CREDITED"

LINE_KIND_NORMAL = "NORMAL"
LINE_KIND_CORE_REFUND = "CORE_REFUND"

# ── Inventory ledger ─────────────────────────────────────────────
MOVEMENT_ISSUE = "ISSUE"
MOVEMENT_RETURN = "RETURN"
MOVEMENT_RECEIVE = "RECEIVE"
MOVEMENT_ADJUST = "ADJUST"
MOVEMENT_COUNT = "COUNT"
MOVEMENT_TYPES = [
    MOVEMENT_ISSUE,
    MOVEMENT_RETURN,
    MOVEMENT_RECEIVE,
    MOVEMENT_ADJUST,
    MOVEMENT_COUNT,
]

REF_SALES_ORDER = "SALES_ORDER"
REF_WORK_ORDER = "WORK_ORDER"
REF_PURCHASE_ORDER = "PURCHASE_ORDER"
REF_PART = "PART"

NEGATIVE_INVENTORY_BLOCK = "BLOCK"
NEGATIVE_INVENTORY_WARN = "WARN"
NEGATIVE_INVENTORY_POLICIES = [NEGATIVE_INVENTORY_BLOCK, NEGATIVE_INVENTORY_WARN]

# ── Purchasing ───────────────────────────────────────────────────
PO_STATUS_OPEN = "OPEN"
PO_STATUS_CLOSED = "CLOSED"

# Customer price levels understood by the price calculator
PRICE_LEVEL_RETAIL = "RETAIL"
PRICE_LEVELS = [PRICE_LEVEL_RETAIL, "FLEET", "WHOLESALE"]
