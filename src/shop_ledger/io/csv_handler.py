"""CSV import and export for parts and the inventory ledger."""

import csv
from pathlib import Path

from shop_ledger.database.models import Part
from shop_ledger.database.repository import Repository
from shop_ledger.io.validators import validate_part_row

PART_CSV_COLUMNS = [
    "part_number", "description", "vendor", "quantity_on_hand", "max_qty",
    "cost", "avg_cost", "selling_price", "core_required", "core_charge",
]

MOVEMENT_CSV_COLUMNS = [
    "performed_at", "part_number", "movement_type", "qty_delta",
    "reason", "ref_type", "ref_id", "performed_by",
]


def _truthy(value: str) -> int:
    return 1 if value.strip().lower() in ("1", "yes", "true") else 0


def export_parts_csv(repo: Repository, filepath: str | Path) -> int:
    """Export all parts to CSV. Returns the number of rows written."""
    parts = repo.get_all_parts()
    vendors = {v.id: v.vendor_name for v in repo.get_all_vendors()}
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=PART_CSV_COLUMNS)
        writer.writeheader()
        for part in parts:
            writer.writerow({
                "part_number": part.part_number,
                "description": part.description,
                "vendor": vendors.get(part.vendor_id, ""),
                "quantity_on_hand": part.quantity_on_hand,
                "max_qty": part.max_qty,
                "cost": part.cost,
                "avg_cost": part.avg_cost,
                "selling_price": part.selling_price,
                "core_required": "yes" if part.core_required else "no",
                "core_charge": part.core_charge,
            })
    return len(parts)


def export_movements_csv(repo: Repository, filepath: str | Path,
                         part_id: int | None = None) -> int:
    """Export the inventory ledger (optionally one part) to CSV."""
    movements = repo.get_movements(part_id=part_id)
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=MOVEMENT_CSV_COLUMNS)
        writer.writeheader()
        for m in movements:
            writer.writerow({
                "performed_at": m.performed_at,
                "part_number": m.part_number,
                "movement_type": m.movement_type,
                "qty_delta": m.qty_delta,
                "reason": m.reason,
                "ref_type": m.ref_type or "",
                "ref_id": m.ref_id if m.ref_id is not None else "",
                "performed_by": m.performed_by or "",
            })
    return len(movements)


def import_parts_csv(
    repo: Repository,
    filepath: str | Path,
    update_existing: bool = False,
) -> dict:
    """Import parts from CSV. Returns results dict with counts and errors.

    New parts get their starting quantity as an opening-balance movement.
    Existing parts keep their quantity; only catalog fields are updated.
    """
    filepath = Path(filepath)
    results = {"imported": 0, "updated": 0, "skipped": 0, "errors": []}

    vendors = {v.vendor_name: v.id for v in repo.get_all_vendors()}

    try:
        with open(filepath, "r", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            for row_num, row in enumerate(reader, start=2):
                row = {k: (v or "") for k, v in row.items() if k}
                errors = validate_part_row(row, row_num)
                if errors:
                    results["errors"].extend(errors)
                    results["skipped"] += 1
                    continue

                pn = row["part_number"].strip()
                existing = repo.get_part_by_number(pn)
                cost = float(row.get("cost") or 0)

                part = Part(
                    id=existing.id if existing else None,
                    part_number=pn,
                    description=row.get("description", "").strip(),
                    vendor_id=vendors.get(row.get("vendor", "").strip()),
                    cost=cost,
                    avg_cost=existing.avg_cost if existing else cost,
                    selling_price=float(row.get("selling_price") or 0),
                    quantity_on_hand=int(
                        float(row.get("quantity_on_hand") or 0)
                    ),
                    core_required=_truthy(row.get("core_required", "")),
                    core_charge=float(row.get("core_charge") or 0),
                    max_qty=int(float(row.get("max_qty") or 0)),
                )

                if existing and update_existing:
                    part.is_kit = existing.is_kit
                    repo.update_part(part)
                    results["updated"] += 1
                elif existing:
                    results["skipped"] += 1
                else:
                    repo.create_part(part, performed_by="csv-import")
                    results["imported"] += 1

    except (OSError, UnicodeDecodeError, csv.Error) as e:
        results["errors"].append(f"File error: {e}")

    return results
