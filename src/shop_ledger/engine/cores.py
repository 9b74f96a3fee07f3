"""Core deposit tracking for part lines.

A line for a part that requires a core starts CORE_OWED.  Returning the
core flips it to CORE_CREDITED once and adds a negative refund line to the
same order.
"""

from shop_ledger.database.models import OrderPartLine, Part
from shop_ledger.database.queries import (
    fetch_refund_line_for,
    now_iso,
    require_part_line,
)
from shop_ledger.engine.errors import CoreAlreadyProcessed, InvalidInput
from shop_ledger.engine.state import require_unlocked_order
from shop_ledger.utils.constants import (
    CORE_CREDITED,
    CORE_NOT_APPLICABLE,
    CORE_OWED,
)


def initial_core_state(part: Part) -> tuple[float, str]:
    """Core charge and status for a new line of ``part``."""
    if part.has_core:
        return part.core_charge, CORE_OWED
    return 0.0, CORE_NOT_APPLICABLE


def refund_description(line: OrderPartLine) -> str:
    return f"Core Refund ({line.part_number or line.description})"


def mark_core_returned(conn, line_id: int) -> OrderPartLine:
    """Credit the core on a line and create its refund line.

    Returns the new refund line.
    """
    line = require_part_line(conn, line_id)
    require_unlocked_order(conn, line.order_id)
    if line.is_core_refund_line:
        raise InvalidInput("A core refund line cannot itself be returned")
    if line.core_credited:
        raise CoreAlreadyProcessed(
            f"Core for line {line_id} has already been credited"
        )
    if not line.core_owed:
        raise InvalidInput(f"Line {line_id} has no core deposit")

    stamp = now_iso()
    cursor = conn.execute(
        "UPDATE order_part_lines SET core_status = ?, core_returned_at = ?, "
        "core_refunded_at = ?, updated_at = CURRENT_TIMESTAMP "
        "WHERE id = ? AND core_status = ?",
        (CORE_CREDITED, stamp, stamp, line_id, CORE_OWED),
    )
    if cursor.rowcount != 1:
        raise CoreAlreadyProcessed(
            f"Core for line {line_id} has already been credited"
        )

    unit_price = -line.core_charge
    cursor = conn.execute(
        "INSERT INTO order_part_lines "
        "(order_id, part_id, job_line_id, description, quantity, unit_price, "
        "unit_cost, line_total, is_warranty, core_charge, core_status, "
        "is_core_refund_line, core_refund_for_line_id) "
        "VALUES (?, ?, ?, ?, ?, ?, 0, ?, 0, 0, ?, 1, ?)",
        (line.order_id, line.part_id, line.job_line_id,
         refund_description(line), line.quantity, unit_price,
         line.quantity * unit_price, CORE_NOT_APPLICABLE, line.id),
    )
    return require_part_line(conn, cursor.lastrowid)


def sync_refund_quantity(conn, parent: OrderPartLine, quantity: int):
    """Keep a credited parent's refund line at the parent's quantity."""
    refund = fetch_refund_line_for(conn, parent.id)
    if refund is None:
        return
    conn.execute(
        "UPDATE order_part_lines SET quantity = ?, line_total = ?, "
        "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
        (quantity, quantity * refund.unit_price, refund.id),
    )


def remove_refund_line(conn, parent: OrderPartLine, removed_at: str):
    """Logically remove the refund line that belongs to ``parent``."""
    conn.execute(
        "UPDATE order_part_lines SET removed_at = ?, "
        "updated_at = CURRENT_TIMESTAMP "
        "WHERE core_refund_for_line_id = ? AND removed_at IS NULL",
        (removed_at, parent.id),
    )
