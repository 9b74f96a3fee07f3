"""Tests for CSV import/export."""

import csv

from shop_ledger.database.models import Part
from shop_ledger.io.csv_handler import (
    export_movements_csv,
    export_parts_csv,
    import_parts_csv,
)


class TestCSVExport:
    def test_export_parts(self, repo, vendor_id, tmp_path):
        repo.create_part(Part(
            part_number="EXP-001",
            description="Export test part",
            vendor_id=vendor_id,
            quantity_on_hand=5,
            cost=9.99,
            core_required=1,
            core_charge=12.0,
        ))

        outfile = tmp_path / "out" / "export.csv"
        count = export_parts_csv(repo, outfile)
        assert count == 1

        with open(outfile, encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 1
        assert rows[0]["part_number"] == "EXP-001"
        assert rows[0]["vendor"] == "Acme Supply"
        assert rows[0]["quantity_on_hand"] == "5"
        assert rows[0]["core_required"] == "yes"

    def test_export_movements(self, service, repo, make_part, tmp_path):
        part = make_part(part_number="MOV-1", quantity_on_hand=3)
        service.adjust_part_quantity(part.id, -1, "Shrinkage")

        outfile = tmp_path / "ledger.csv"
        assert export_movements_csv(repo, outfile) == 2
        with open(outfile, encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert [r["qty_delta"] for r in rows] == ["3", "-1"]
        assert rows[1]["reason"] == "Shrinkage"
        assert rows[1]["part_number"] == "MOV-1"


class TestCSVImport:
    def test_import_new_parts(self, repo, vendor_id, tmp_path):
        csv_file = tmp_path / "import.csv"
        csv_file.write_text(
            "part_number,description,vendor,quantity_on_hand,cost,"
            "selling_price,max_qty\n"
            "IMP-001,Imported Part,Acme Supply,10,5.99,12.00,20\n"
            "IMP-002,Another Part,,0,12.50,25.00,\n",
            encoding="utf-8",
        )
        results = import_parts_csv(repo, csv_file)
        assert results["imported"] == 2
        assert results["errors"] == []

        part = repo.get_part_by_number("IMP-001")
        assert part.quantity_on_hand == 10
        assert part.vendor_id == vendor_id
        assert part.max_qty == 20
        assert repo.get_ledger_balance(part.id) == 10
        assert repo.get_movements(part_id=part.id)[0].performed_by == (
            "csv-import"
        )
        assert repo.get_part_by_number("IMP-002").vendor_id is None

    def test_import_skips_invalid_rows(self, repo, tmp_path):
        csv_file = tmp_path / "bad.csv"
        csv_file.write_text(
            "part_number,description,quantity_on_hand,cost\n"
            ",No number,1,1.00\n"
            "BAD-2,Negative,-4,1.00\n"
            "GOOD-1,Fine,2,1.00\n",
            encoding="utf-8",
        )
        results = import_parts_csv(repo, csv_file)
        assert results["imported"] == 1
        assert results["skipped"] == 2
        assert len(results["errors"]) == 2

    def test_existing_parts_skipped_or_updated(self, repo, make_part,
                                               tmp_path):
        make_part(part_number="UPD-1", description="Old", quantity_on_hand=4)
        csv_file = tmp_path / "update.csv"
        csv_file.write_text(
            "part_number,description,quantity_on_hand,selling_price\n"
            "UPD-1,New description,99,30.00\n",
            encoding="utf-8",
        )
        assert import_parts_csv(repo, csv_file)["skipped"] == 1

        results = import_parts_csv(repo, csv_file, update_existing=True)
        assert results["updated"] == 1
        part = repo.get_part_by_number("UPD-1")
        assert part.description == "New description"
        assert part.selling_price == 30.0
        assert part.quantity_on_hand == 4

    def test_missing_file(self, repo, tmp_path):
        results = import_parts_csv(repo, tmp_path / "nope.csv")
        assert results["imported"] == 0
        assert results["errors"][0].startswith("File error")
