"""Tests for import row validation."""

from shop_ledger.io.validators import validate_part_row


class TestValidatePartRow:
    def test_valid_row(self):
        row = {"part_number": "A-1", "description": "Pads",
               "quantity_on_hand": "4", "cost": "2.50", "core_required": "yes"}
        assert validate_part_row(row, 2) == []

    def test_required_fields(self):
        errors = validate_part_row({"part_number": "", "description": ""}, 3)
        assert errors == [
            "Row 3: part_number is required",
            "Row 3: description is required",
        ]

    def test_long_part_number(self):
        errors = validate_part_row(
            {"part_number": "X" * 51, "description": "d"}, 2)
        assert errors == ["Row 2: part_number exceeds 50 chars"]

    def test_bad_numbers(self):
        row = {"part_number": "A", "description": "d",
               "quantity_on_hand": "many", "max_qty": "-1",
               "cost": "abc", "core_charge": "-5"}
        errors = validate_part_row(row, 7)
        assert "Row 7: quantity_on_hand must be an integer" in errors
        assert "Row 7: max_qty cannot be negative" in errors
        assert "Row 7: cost must be a number" in errors
        assert "Row 7: core_charge cannot be negative" in errors

    def test_core_flag(self):
        row = {"part_number": "A", "description": "d",
               "core_required": "maybe"}
        assert validate_part_row(row, 2) == [
            "Row 2: core_required must be yes or no"
        ]
