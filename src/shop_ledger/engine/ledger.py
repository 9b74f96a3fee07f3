"""Inventory ledger — quantity changes paired with append-only movements.

Every change to ``parts.quantity_on_hand`` goes through this module and
writes exactly one ``inventory_movements`` row per affected part, on the
caller's connection.  The caller's transaction makes the pair atomic.
"""

import logging
from typing import Optional

from shop_ledger.config import Config
from shop_ledger.database.models import InventoryMovement, Part
from shop_ledger.database.queries import now_iso, require_part
from shop_ledger.engine.errors import InvalidInput, ValidationBlocked
from shop_ledger.utils.constants import (
    MOVEMENT_ADJUST,
    MOVEMENT_COUNT,
    MOVEMENT_ISSUE,
    MOVEMENT_RECEIVE,
    MOVEMENT_RETURN,
    MOVEMENT_TYPES,
    NEGATIVE_INVENTORY_BLOCK,
    REF_PART,
)

logger = logging.getLogger(__name__)


def apply_delta(conn, part_id: int, delta: int, movement_type: str,
                reason: str = "", ref_type: Optional[str] = None,
                ref_id: Optional[int] = None,
                performed_by: Optional[str] = None
                ) -> Optional[InventoryMovement]:
    """Move ``delta`` units for one part and record the movement.

    Negative deltas issue stock, positive deltas return or receive it.
    A zero delta is a no-op and records nothing.  No floor is enforced
    here; callers that need one check before calling.
    """
    if movement_type not in MOVEMENT_TYPES:
        raise InvalidInput(f"Unknown movement type: {movement_type}")
    if delta == 0:
        return None

    performed_at = now_iso()
    cursor = conn.execute(
        "UPDATE parts SET quantity_on_hand = quantity_on_hand + ?, "
        "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
        (delta, part_id),
    )
    if cursor.rowcount != 1:
        require_part(conn, part_id)
    cursor = conn.execute(
        "INSERT INTO inventory_movements "
        "(part_id, movement_type, qty_delta, reason, ref_type, ref_id, "
        "performed_by, performed_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
        (part_id, movement_type, delta, reason, ref_type, ref_id,
         performed_by, performed_at),
    )
    return InventoryMovement(
        id=cursor.lastrowid, part_id=part_id, movement_type=movement_type,
        qty_delta=delta, reason=reason, ref_type=ref_type, ref_id=ref_id,
        performed_by=performed_by, performed_at=performed_at,
    )


def apply_consumption(conn, consumption: dict[int, int], reason: str,
                      ref_type: str, ref_id: int,
                      performed_by: Optional[str] = None
                      ) -> list[InventoryMovement]:
    """Apply net per-part consumption from an order.

    Positive consumption is issued (ISSUE, negative delta); negative
    consumption is put back (RETURN, positive delta).  All parts are
    validated before any quantity moves, and zero nets are skipped.
    Order-driven issuance is never blocked by the negative-stock policy.
    """
    staged = [(pid, qty) for pid, qty in sorted(consumption.items()) if qty]
    for part_id, _ in staged:
        require_part(conn, part_id)

    movements = []
    for part_id, qty in staged:
        movement_type = MOVEMENT_ISSUE if qty > 0 else MOVEMENT_RETURN
        movements.append(apply_delta(
            conn, part_id, -qty, movement_type, reason,
            ref_type, ref_id, performed_by,
        ))
    return movements


def _check_negative_policy(part: Part, new_qty: int, policy: str):
    if new_qty >= 0:
        return
    if policy == NEGATIVE_INVENTORY_BLOCK:
        raise ValidationBlocked(
            f"Adjustment would leave {part.part_number} at {new_qty}; "
            f"negative inventory is blocked"
        )
    logger.warning(
        f"Part {part.part_number} adjusted to negative stock ({new_qty})"
    )


def adjust_quantity(conn, part_id: int, delta: int, reason: str = "",
                    performed_by: Optional[str] = None,
                    policy: Optional[str] = None
                    ) -> Optional[InventoryMovement]:
    """Direct catalog adjustment (ADJUST), subject to the negative policy."""
    if not isinstance(delta, int) or isinstance(delta, bool):
        raise InvalidInput("Adjustment quantity must be a whole number")
    part = require_part(conn, part_id)
    _check_negative_policy(
        part, part.quantity_on_hand + delta,
        policy or Config.NEGATIVE_INVENTORY_POLICY,
    )
    return apply_delta(
        conn, part_id, delta, MOVEMENT_ADJUST,
        reason or "Manual adjustment", REF_PART, part_id, performed_by,
    )


def count_quantity(conn, part_id: int, counted_qty: int, reason: str = "",
                   performed_by: Optional[str] = None,
                   policy: Optional[str] = None
                   ) -> Optional[InventoryMovement]:
    """Record a physical count (COUNT) as the difference from the book."""
    if not isinstance(counted_qty, int) or isinstance(counted_qty, bool):
        raise InvalidInput("Counted quantity must be a whole number")
    part = require_part(conn, part_id)
    _check_negative_policy(
        part, counted_qty, policy or Config.NEGATIVE_INVENTORY_POLICY,
    )
    return apply_delta(
        conn, part_id, counted_qty - part.quantity_on_hand, MOVEMENT_COUNT,
        reason or "Cycle count", REF_PART, part_id, performed_by,
    )


def receive_quantity(conn, part_id: int, qty: int, unit_cost: float,
                     reason: str, ref_type: str, ref_id: int,
                     performed_by: Optional[str] = None
                     ) -> Optional[InventoryMovement]:
    """Receive purchased stock (RECEIVE) and roll the cost bases forward."""
    if qty <= 0:
        raise InvalidInput("Received quantity must be positive")
    part = require_part(conn, part_id)

    on_hand = max(part.quantity_on_hand, 0)
    basis = part.cost_basis
    avg_cost = (on_hand * basis + qty * unit_cost) / (on_hand + qty)
    conn.execute(
        "UPDATE parts SET last_cost = ?, avg_cost = ? WHERE id = ?",
        (unit_cost, round(avg_cost, 4), part_id),
    )
    return apply_delta(
        conn, part_id, qty, MOVEMENT_RECEIVE, reason,
        ref_type, ref_id, performed_by,
    )


def ledger_balance(conn, part_id: int) -> int:
    """Sum of every recorded movement for a part."""
    row = conn.execute(
        "SELECT COALESCE(SUM(qty_delta), 0) AS total "
        "FROM inventory_movements WHERE part_id = ?",
        (part_id,),
    ).fetchone()
    return row["total"]
