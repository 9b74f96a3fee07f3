"""Application configuration — loads .env, then overrides from settings.json."""

import json
import os
from pathlib import Path

from dotenv import load_dotenv

# Find the project root (where .env lives)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# Runtime settings file for in-app configuration
_SETTINGS_FILE = _PROJECT_ROOT / "data" / "settings.json"


def _load_settings() -> dict:
    """Load saved runtime settings from JSON file."""
    if _SETTINGS_FILE.exists():
        try:
            return json.loads(_SETTINGS_FILE.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            pass
    return {}


def _save_settings(settings: dict):
    """Persist runtime settings to JSON file."""
    _SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
    _SETTINGS_FILE.write_text(
        json.dumps(settings, indent=2), encoding="utf-8"
    )


def _update_settings(**values):
    settings = _load_settings()
    settings.update(values)
    _save_settings(settings)


# Load saved settings once at import time
_runtime = _load_settings()


class Config:
    """Central configuration: .env defaults, settings.json overrides."""

    # Paths
    PROJECT_ROOT: Path = _PROJECT_ROOT
    DATABASE_PATH: Path = Path(
        os.getenv("DATABASE_PATH", str(_PROJECT_ROOT / "data" / "shop_ledger.db"))
    )
    EXPORT_PATH: Path = Path(
        os.getenv("EXPORT_PATH", str(_PROJECT_ROOT / "data" / "exports"))
    )

    SHOP_NAME: str = _runtime.get(
        "shop_name",
        os.getenv("SHOP_NAME", "Shop"),
    )

    # Billing (percent, e.g. 7.25)
    DEFAULT_TAX_RATE: float = float(_runtime.get(
        "default_tax_rate",
        os.getenv("DEFAULT_TAX_RATE", "0.0"),
    ))
    DEFAULT_LABOR_RATE: float = float(_runtime.get(
        "default_labor_rate",
        os.getenv("DEFAULT_LABOR_RATE", "100.0"),
    ))

    # Inventory: 'BLOCK' or 'WARN' for direct catalog adjustments
    NEGATIVE_INVENTORY_POLICY: str = str(_runtime.get(
        "negative_inventory_policy",
        os.getenv("NEGATIVE_INVENTORY_POLICY", "WARN"),
    )).upper()

    # Orders & purchasing
    SALES_ORDER_PREFIX: str = _runtime.get(
        "sales_order_prefix",
        os.getenv("SALES_ORDER_PREFIX", "SO"),
    )
    WORK_ORDER_PREFIX: str = _runtime.get(
        "work_order_prefix",
        os.getenv("WORK_ORDER_PREFIX", "WO"),
    )
    PO_NUMBER_PREFIX: str = _runtime.get(
        "po_number_prefix",
        os.getenv("PO_NUMBER_PREFIX", "PO"),
    )
    AUTO_CLOSE_RECEIVED_ORDERS: bool = _runtime.get(
        "auto_close_received_orders", True
    )

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def update_tax_rate(cls, rate: float):
        """Update the shop default tax rate and persist to disk."""
        cls.DEFAULT_TAX_RATE = float(rate)
        _update_settings(default_tax_rate=cls.DEFAULT_TAX_RATE)

    @classmethod
    def update_labor_rate(cls, rate: float):
        """Update the default labor rate used for new labor lines."""
        cls.DEFAULT_LABOR_RATE = float(rate)
        _update_settings(default_labor_rate=cls.DEFAULT_LABOR_RATE)

    @classmethod
    def update_negative_inventory_policy(cls, policy: str):
        """Switch between BLOCK and WARN for direct stock adjustments."""
        from shop_ledger.utils.constants import NEGATIVE_INVENTORY_POLICIES
        policy = policy.upper()
        if policy not in NEGATIVE_INVENTORY_POLICIES:
            raise ValueError(f"Unknown negative inventory policy: {policy}")
        cls.NEGATIVE_INVENTORY_POLICY = policy
        _update_settings(negative_inventory_policy=policy)

    @classmethod
    def update_order_prefixes(cls, sales: str, work: str, purchase: str):
        """Update order number prefixes and persist."""
        cls.SALES_ORDER_PREFIX = sales
        cls.WORK_ORDER_PREFIX = work
        cls.PO_NUMBER_PREFIX = purchase
        _update_settings(
            sales_order_prefix=sales,
            work_order_prefix=work,
            po_number_prefix=purchase,
        )

    @classmethod
    def pricing_settings(cls) -> dict:
        """Snapshot of the settings handed to the price calculator."""
        return {
            "shop_name": cls.SHOP_NAME,
            "default_tax_rate": cls.DEFAULT_TAX_RATE,
            "default_labor_rate": cls.DEFAULT_LABOR_RATE,
        }
