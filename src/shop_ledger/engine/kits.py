"""Kit expansion — turn a kit part quantity into component quantities.

Expansion is one level deep.  A component that is itself a kit is
treated as an ordinary part: its own stock moves and its components are
not consulted.
"""

from collections import defaultdict

from shop_ledger.database.models import Part
from shop_ledger.database.queries import fetch_kit_components


def expand(conn, kit_part_id: int, qty: int) -> dict[int, int]:
    """Map each active component of a kit to ``qty * component.quantity``."""
    deltas: dict[int, int] = defaultdict(int)
    for component in fetch_kit_components(conn, kit_part_id):
        deltas[component.component_part_id] += qty * component.quantity
    return dict(deltas)


def stock_deltas(conn, part: Part, qty: int) -> dict[int, int]:
    """Per-part stock quantities for ``qty`` units of ``part``.

    Kits fan out to their components; everything else maps to itself.
    The sign of ``qty`` is preserved.
    """
    if part.is_kit:
        return expand(conn, part.id, qty)
    return {part.id: qty}


def merge_deltas(target: dict[int, int], deltas: dict[int, int]):
    """Accumulate ``deltas`` into ``target`` in place."""
    for part_id, qty in deltas.items():
        target[part_id] = target.get(part_id, 0) + qty
