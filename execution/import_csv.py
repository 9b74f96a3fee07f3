"""Standalone CSV import script — load the parts catalog from a file.

New parts get their starting stock as an opening-balance ADJUST movement;
existing parts keep their stock and, with --update, take the new catalog
fields.

Usage:
    python execution/import_csv.py <filepath.csv> [--update]
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shop_ledger.app import open_database, setup_logging
from shop_ledger.database.repository import Repository
from shop_ledger.io.csv_handler import import_parts_csv
from shop_ledger.utils.formatters import format_currency


def main():
    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    if not args:
        print("Usage: python import_csv.py <filepath.csv> [--update]")
        sys.exit(1)

    setup_logging()
    repo = Repository(open_database())
    update = "--update" in sys.argv
    before = len(repo.get_movements())

    print(f"Importing parts from: {args[0]}")
    if update:
        print("Existing parts: catalog fields updated, stock untouched")

    results = import_parts_csv(repo, args[0], update_existing=update)
    summary = repo.get_inventory_summary()

    print("\nResults:")
    print(f"  Imported:          {results['imported']}")
    print(f"  Updated:           {results['updated']}")
    print(f"  Skipped:           {results['skipped']}")
    print(f"  Opening movements: {len(repo.get_movements()) - before}")
    print(f"  Catalog value:     {format_currency(summary['total_value'])}")

    if results["errors"]:
        print(f"\nErrors ({len(results['errors'])}):")
        for err in results["errors"]:
            print(f"  - {err}")
        sys.exit(2)


if __name__ == "__main__":
    main()
