"""Standalone export script — parts, ledger or open POs from the command line."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shop_ledger.config import Config
from shop_ledger.database.connection import DatabaseConnection
from shop_ledger.database.repository import Repository
from shop_ledger.database.schema import initialize_database
from shop_ledger.io.csv_handler import export_movements_csv, export_parts_csv
from shop_ledger.io.excel_handler import (
    export_movements_excel,
    export_open_purchase_orders_excel,
    export_parts_excel,
)

EXPORTERS = {
    ("parts", ".csv"): export_parts_csv,
    ("parts", ".xlsx"): export_parts_excel,
    ("ledger", ".csv"): export_movements_csv,
    ("ledger", ".xlsx"): export_movements_excel,
    ("pos", ".xlsx"): export_open_purchase_orders_excel,
}


def main():
    if len(sys.argv) < 2:
        print("Usage: python export_data.py <parts|ledger|pos> "
              "[output.csv|output.xlsx]")
        print(f"Without an output path, writes {{type}}.xlsx under "
              f"{Config.EXPORT_PATH}")
        sys.exit(1)

    data_type = sys.argv[1].lower()
    if len(sys.argv) > 2:
        filepath = Path(sys.argv[2])
    else:
        filepath = Config.EXPORT_PATH / f"{data_type}.xlsx"
    exporter = EXPORTERS.get((data_type, filepath.suffix.lower()))
    if exporter is None:
        print(f"Cannot export {data_type} as {filepath.suffix or 'that'}. "
              f"Parts and ledger support .csv/.xlsx, pos supports .xlsx.")
        sys.exit(1)

    db = DatabaseConnection(Config.DATABASE_PATH)
    initialize_database(db)
    repo = Repository(db)

    count = exporter(repo, filepath)
    print(f"Exported {count} {data_type} rows to {filepath}")


if __name__ == "__main__":
    main()
