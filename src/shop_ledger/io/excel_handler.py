"""Excel (XLSX) export for parts, the inventory ledger and open POs."""

from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font

from shop_ledger.database.repository import Repository
from shop_ledger.utils.constants import PO_STATUS_OPEN


def _autofit(ws):
    # Approximate widths
    for col in ws.columns:
        max_len = max(len(str(cell.value or "")) for cell in col)
        ws.column_dimensions[col[0].column_letter].width = min(max_len + 2, 40)


def _header(ws, headers: list[str]):
    ws.append(headers)
    for cell in ws[1]:
        cell.font = Font(bold=True)


def export_parts_excel(repo: Repository, filepath: str | Path) -> int:
    """Export all parts to an Excel workbook. Returns row count."""
    parts = repo.get_all_parts()
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    ws = wb.active
    ws.title = "Parts"
    _header(ws, [
        "Part #", "Description", "On Hand", "Max Qty", "Cost",
        "Avg Cost", "Last Cost", "Price", "Core Charge", "Kit",
    ])

    for part in parts:
        ws.append([
            part.part_number,
            part.description,
            part.quantity_on_hand,
            part.max_qty,
            part.cost,
            part.avg_cost,
            part.last_cost,
            part.selling_price,
            part.core_charge if part.has_core else 0,
            "Yes" if part.is_kit else "",
        ])

    _autofit(ws)
    wb.save(filepath)
    return len(parts)


def export_movements_excel(repo: Repository, filepath: str | Path) -> int:
    """Export the full inventory ledger. Returns row count."""
    movements = repo.get_movements()
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    ws = wb.active
    ws.title = "Ledger"
    _header(ws, [
        "When", "Part #", "Type", "Delta", "Reason", "Ref Type", "Ref ID",
        "By",
    ])

    for m in movements:
        ws.append([
            m.performed_at, m.part_number, m.movement_type, m.qty_delta,
            m.reason, m.ref_type, m.ref_id, m.performed_by,
        ])

    _autofit(ws)
    wb.save(filepath)
    return len(movements)


def export_open_purchase_orders_excel(repo: Repository,
                                      filepath: str | Path) -> int:
    """One sheet per open purchase order. Returns the number of POs."""
    orders = repo.get_all_purchase_orders(status=PO_STATUS_OPEN)
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    summary = wb.active
    summary.title = "Open POs"
    _header(summary, ["PO #", "Vendor", "Lines", "Total Cost", "Notes"])

    for po in orders:
        summary.append([
            po.po_number, po.vendor_name, po.line_count,
            round(po.total_cost, 2), po.notes,
        ])
        ws = wb.create_sheet(po.po_number[:31])
        _header(ws, ["Part #", "Ordered", "Received", "Outstanding",
                     "Unit Cost"])
        for line in repo.get_purchase_order_lines(po.id):
            ws.append([
                line.part_number, line.ordered_quantity,
                line.received_quantity, line.outstanding_quantity,
                line.unit_cost,
            ])
        _autofit(ws)

    _autofit(summary)
    wb.save(filepath)
    return len(orders)
