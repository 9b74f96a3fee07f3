"""Validation rules for import data."""


def _check_int(row: dict, key: str, row_num: int, errors: list[str]):
    value = row.get(key, "")
    if value == "":
        return
    try:
        if int(float(value)) < 0:
            errors.append(f"Row {row_num}: {key} cannot be negative")
    except (ValueError, TypeError):
        errors.append(f"Row {row_num}: {key} must be an integer")


def _check_money(row: dict, key: str, row_num: int, errors: list[str]):
    value = row.get(key, "")
    if value == "":
        return
    try:
        if float(value) < 0:
            errors.append(f"Row {row_num}: {key} cannot be negative")
    except (ValueError, TypeError):
        errors.append(f"Row {row_num}: {key} must be a number")


def validate_part_row(row: dict, row_num: int) -> list[str]:
    """Validate a single row of part import data. Returns list of error strings."""
    errors = []

    pn = row.get("part_number", "").strip()
    if not pn:
        errors.append(f"Row {row_num}: part_number is required")
    elif len(pn) > 50:
        errors.append(f"Row {row_num}: part_number exceeds 50 chars")

    if not row.get("description", "").strip():
        errors.append(f"Row {row_num}: description is required")

    _check_int(row, "quantity_on_hand", row_num, errors)
    _check_int(row, "max_qty", row_num, errors)
    for key in ("cost", "selling_price", "core_charge"):
        _check_money(row, key, row_num, errors)

    flag = row.get("core_required", "").strip().lower()
    if flag not in ("", "0", "1", "yes", "no", "true", "false"):
        errors.append(f"Row {row_num}: core_required must be yes or no")

    return errors
