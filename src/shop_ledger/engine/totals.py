"""Order totals — a pure recomputation from the current lines."""

from typing import Optional

from shop_ledger.config import Config
from shop_ledger.database.models import (
    Customer,
    OrderChargeLine,
    OrderLaborLine,
    OrderPartLine,
    OrderTotals,
)
from shop_ledger.database.queries import (
    fetch_charge_lines,
    fetch_customer,
    fetch_labor_lines,
    fetch_part_lines,
    require_order,
)
from shop_ledger.utils.constants import CORE_CREDITED, LOCKED_STATUSES


def resolve_tax_rate(customer: Optional[Customer],
                     default_rate: Optional[float] = None) -> float:
    """Tax-exempt customers pay 0, then a non-negative override, then the shop rate."""
    if default_rate is None:
        default_rate = Config.DEFAULT_TAX_RATE
    if customer is not None:
        if customer.is_tax_exempt:
            return 0.0
        if (customer.tax_rate_override is not None
                and customer.tax_rate_override >= 0):
            return float(customer.tax_rate_override)
    return float(default_rate)


def compute_totals(part_lines: list[OrderPartLine],
                   labor_lines: list[OrderLaborLine],
                   charge_lines: list[OrderChargeLine],
                   tax_rate: float) -> OrderTotals:
    """Compute order totals from lines.

    Warranty lines contribute nothing to the customer subtotal.  Core
    refund lines contribute their (negative) totals to parts but are left
    out of the core-charge aggregate, as are credited cores.
    """
    parts_subtotal = sum(
        l.line_total for l in part_lines if not l.is_warranty
    )
    labor_subtotal = sum(
        l.line_total for l in labor_lines if not l.is_warranty
    )
    charge_subtotal = sum(c.total_price for c in charge_lines)
    core_charges_total = sum(
        l.core_charge * l.quantity
        for l in part_lines
        if l.core_charge > 0
        and l.core_status != CORE_CREDITED
        and not l.is_core_refund_line
    )
    subtotal = (parts_subtotal + labor_subtotal
                + charge_subtotal + core_charges_total)
    tax_amount = subtotal * tax_rate / 100
    return OrderTotals(
        parts_subtotal=round(parts_subtotal, 2),
        labor_subtotal=round(labor_subtotal, 2),
        charge_subtotal=round(charge_subtotal, 2),
        core_charges_total=round(core_charges_total, 2),
        subtotal=round(subtotal, 2),
        tax_rate=tax_rate,
        tax_amount=round(tax_amount, 2),
        total=round(subtotal + tax_amount, 2),
    )


def recalculate_order_totals(conn, order_id: int,
                             default_rate: Optional[float] = None
                             ) -> OrderTotals:
    """Recompute and store totals for an order.

    Locked orders keep the tax rate they were invoiced at; open orders
    pick up the current customer and shop tax settings.
    """
    order = require_order(conn, order_id)
    if order.status in LOCKED_STATUSES[order.order_type]:
        tax_rate = order.tax_rate
    else:
        tax_rate = resolve_tax_rate(
            fetch_customer(conn, order.customer_id), default_rate
        )

    totals = compute_totals(
        fetch_part_lines(conn, order_id),
        fetch_labor_lines(conn, order_id),
        fetch_charge_lines(conn, order_id),
        tax_rate,
    )
    conn.execute(
        "UPDATE orders SET tax_rate = ?, parts_subtotal = ?, "
        "labor_subtotal = ?, charge_subtotal = ?, core_charges_total = ?, "
        "subtotal = ?, tax_amount = ?, total = ?, "
        "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
        (totals.tax_rate, totals.parts_subtotal, totals.labor_subtotal,
         totals.charge_subtotal, totals.core_charges_total,
         totals.subtotal, totals.tax_amount, totals.total, order_id),
    )
    return totals


def recalculate_open_orders(conn, customer_id: Optional[int] = None,
                            default_rate: Optional[float] = None) -> int:
    """Recalculate every unlocked order, optionally for one customer."""
    sql = (
        "SELECT id FROM orders WHERE NOT ("
        "(order_type = 'SALES' AND status IN ('INVOICED', 'CANCELLED')) OR "
        "(order_type = 'WORK' AND status = 'INVOICED'))"
    )
    params = ()
    if customer_id is not None:
        sql += " AND customer_id = ?"
        params = (customer_id,)
    order_ids = [r["id"] for r in conn.execute(sql, params).fetchall()]
    for order_id in order_ids:
        recalculate_order_totals(conn, order_id, default_rate)
    return len(order_ids)
