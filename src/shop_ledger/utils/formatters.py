"""Formatting utilities for display values."""


def format_currency(value: float) -> str:
    """Format a float as USD currency."""
    if value < 0:
        return f"-${abs(value):,.2f}"
    return f"${value:,.2f}"


def format_quantity(value: int) -> str:
    """Format quantity on hand, flagging negative stock."""
    if value < 0:
        return f"{value} (NEG)"
    return str(value)


def format_order_number(prefix: str, sequence: int) -> str:
    """Build an order number like SO-000042."""
    return f"{prefix}-{sequence:06d}"
