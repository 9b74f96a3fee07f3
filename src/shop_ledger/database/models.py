"""Data models for the database layer."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from shop_ledger.utils.constants import (
    CORE_CREDITED,
    CORE_NOT_APPLICABLE,
    CORE_OWED,
    LINE_KIND_CORE_REFUND,
    LINE_KIND_NORMAL,
    ORDER_TYPE_SALES,
    ORDER_TYPE_WORK,
    PO_STATUS_OPEN,
    STATUS_OPEN,
)


def from_row(cls, row):
    """Build a dataclass from a sqlite row, ignoring unknown columns."""
    return cls(**{
        k: row[k] for k in row.keys()
        if k in cls.__dataclass_fields__
    })


@dataclass
class Customer:
    id: Optional[int] = None
    company_name: str = ""
    contact_name: str = ""
    phone: str = ""
    email: str = ""
    price_level: str = "RETAIL"
    is_tax_exempt: int = 0
    tax_rate_override: Optional[float] = None
    is_active: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Vendor:
    id: Optional[int] = None
    vendor_name: str = ""
    phone: str = ""
    email: str = ""
    notes: str = ""
    is_active: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Technician:
    id: Optional[int] = None
    name: str = ""
    hourly_cost_rate: float = 0.0
    is_active: int = 1
    created_at: Optional[datetime] = None


@dataclass
class Part:
    id: Optional[int] = None
    part_number: str = ""
    description: str = ""
    vendor_id: Optional[int] = None
    cost: float = 0.0
    avg_cost: float = 0.0
    last_cost: float = 0.0
    selling_price: float = 0.0
    quantity_on_hand: int = 0
    core_required: int = 0
    core_charge: float = 0.0
    is_kit: int = 0
    max_qty: int = 0
    is_active: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_core(self) -> bool:
        return bool(self.core_required) and self.core_charge > 0

    @property
    def is_negative(self) -> bool:
        return self.quantity_on_hand < 0

    @property
    def cost_basis(self) -> float:
        """Average cost when known, else the catalog cost."""
        return self.avg_cost if self.avg_cost > 0 else self.cost

    @property
    def reorder_quantity(self) -> int:
        """Units needed to bring stock back up to max_qty."""
        if self.max_qty <= 0:
            return 0
        return max(self.max_qty - self.quantity_on_hand, 0)


@dataclass
class KitComponent:
    id: Optional[int] = None
    kit_part_id: int = 0
    component_part_id: int = 0
    quantity: int = 1
    is_active: int = 1
    # Joined fields
    part_number: str = field(default="", repr=False)


@dataclass
class Order:
    id: Optional[int] = None
    order_number: str = ""
    order_type: str = ORDER_TYPE_SALES
    customer_id: int = 0
    unit_id: Optional[int] = None
    status: str = STATUS_OPEN
    notes: str = ""
    technician_id: Optional[int] = None
    priority: Optional[int] = None
    promised_at: Optional[str] = None
    tax_rate: float = 0.0
    parts_subtotal: float = 0.0
    labor_subtotal: float = 0.0
    charge_subtotal: float = 0.0
    core_charges_total: float = 0.0
    subtotal: float = 0.0
    tax_amount: float = 0.0
    total: float = 0.0
    invoiced_at: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_sales_order(self) -> bool:
        return self.order_type == ORDER_TYPE_SALES

    @property
    def is_work_order(self) -> bool:
        return self.order_type == ORDER_TYPE_WORK


@dataclass
class OrderPartLine:
    id: Optional[int] = None
    order_id: int = 0
    part_id: int = 0
    job_line_id: Optional[int] = None
    description: str = ""
    quantity: int = 1
    unit_price: float = 0.0
    unit_cost: float = 0.0
    line_total: float = 0.0
    is_warranty: int = 0
    core_charge: float = 0.0
    core_status: str = CORE_NOT_APPLICABLE
    core_returned_at: Optional[str] = None
    core_refunded_at: Optional[str] = None
    is_core_refund_line: int = 0
    core_refund_for_line_id: Optional[int] = None
    removed_at: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Joined fields
    part_number: str = field(default="", repr=False)

    @property
    def kind(self) -> str:
        """NORMAL or CORE_REFUND (refund lines point at their parent)."""
        if self.is_core_refund_line:
            return LINE_KIND_CORE_REFUND
        return LINE_KIND_NORMAL

    @property
    def core_owed(self) -> bool:
        return self.core_status == CORE_OWED

    @property
    def core_credited(self) -> bool:
        return self.core_status == CORE_CREDITED

    @property
    def total_cost(self) -> float:
        return self.quantity * self.unit_cost


@dataclass
class OrderLaborLine:
    id: Optional[int] = None
    order_id: int = 0
    description: str = ""
    hours: float = 0.0
    rate: float = 0.0
    line_total: float = 0.0
    is_warranty: int = 0
    technician_id: Optional[int] = None
    removed_at: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class OrderChargeLine:
    id: Optional[int] = None
    order_id: int = 0
    description: str = ""
    qty: float = 1.0
    unit_price: float = 0.0
    total_price: float = 0.0
    source_ref_type: Optional[str] = None
    source_ref_id: Optional[str] = None
    removed_at: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class InventoryMovement:
    id: Optional[int] = None
    part_id: int = 0
    movement_type: str = ""
    qty_delta: int = 0
    reason: str = ""
    ref_type: Optional[str] = None
    ref_id: Optional[int] = None
    performed_by: Optional[str] = None
    performed_at: Optional[str] = None
    # Joined fields
    part_number: str = field(default="", repr=False)


@dataclass
class PurchaseOrder:
    id: Optional[int] = None
    po_number: str = ""
    vendor_id: int = 0
    status: str = PO_STATUS_OPEN
    notes: str = ""
    closed_at: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Joined fields
    vendor_name: str = field(default="", repr=False)
    line_count: int = field(default=0, repr=False)
    total_cost: float = field(default=0.0, repr=False)

    @property
    def is_open(self) -> bool:
        return self.status == PO_STATUS_OPEN


@dataclass
class PurchaseOrderLine:
    id: Optional[int] = None
    purchase_order_id: int = 0
    part_id: int = 0
    ordered_quantity: int = 1
    received_quantity: int = 0
    unit_cost: float = 0.0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Joined fields
    part_number: str = field(default="", repr=False)

    @property
    def outstanding_quantity(self) -> int:
        return max(self.ordered_quantity - self.received_quantity, 0)


@dataclass
class TimeEntry:
    id: Optional[int] = None
    technician_id: int = 0
    order_id: int = 0
    clock_in: Optional[str] = None
    clock_out: Optional[str] = None
    total_minutes: int = 0
    created_at: Optional[datetime] = None
    # Joined fields
    technician_name: str = field(default="", repr=False)


@dataclass
class OrderTotals:
    """Result of one totals computation."""
    parts_subtotal: float = 0.0
    labor_subtotal: float = 0.0
    charge_subtotal: float = 0.0
    core_charges_total: float = 0.0
    subtotal: float = 0.0
    tax_rate: float = 0.0
    tax_amount: float = 0.0
    total: float = 0.0
