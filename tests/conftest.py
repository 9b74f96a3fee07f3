"""Shared test fixtures."""

import pytest

from shop_ledger.config import Config
from shop_ledger.database.connection import DatabaseConnection
from shop_ledger.database.models import Customer, Part, Vendor
from shop_ledger.database.repository import Repository
from shop_ledger.database.schema import initialize_database
from shop_ledger.engine.service import OrderService

_CONFIG_DEFAULTS = {
    "DEFAULT_TAX_RATE": 0.0,
    "DEFAULT_LABOR_RATE": 100.0,
    "NEGATIVE_INVENTORY_POLICY": "WARN",
    "SALES_ORDER_PREFIX": "SO",
    "WORK_ORDER_PREFIX": "WO",
    "PO_NUMBER_PREFIX": "PO",
    "AUTO_CLOSE_RECEIVED_ORDERS": True,
}


@pytest.fixture(autouse=True)
def isolate_config(tmp_path, monkeypatch):
    """Known Config values; settings writes go to a temp file."""
    import shop_ledger.config as config_mod
    monkeypatch.setattr(
        config_mod, "_SETTINGS_FILE", tmp_path / "settings.json"
    )
    for name, value in _CONFIG_DEFAULTS.items():
        monkeypatch.setattr(Config, name, value)


@pytest.fixture
def db_path(tmp_path):
    """Provide a temporary database path."""
    return tmp_path / "test.db"


@pytest.fixture
def db(db_path):
    """Provide an initialized database connection."""
    conn = DatabaseConnection(db_path)
    initialize_database(conn)
    return conn


@pytest.fixture
def repo(db):
    """Provide a repository with an initialized database."""
    return Repository(db)


@pytest.fixture
def service(db):
    """Provide the order service on the same database."""
    return OrderService(db, performed_by="tester")


@pytest.fixture
def vendor_id(repo):
    return repo.create_vendor(Vendor(vendor_name="Acme Supply"))


@pytest.fixture
def customer_id(repo):
    return repo.create_customer(Customer(company_name="Test Customer"))


@pytest.fixture
def make_part(repo):
    """Factory: create a part and return it freshly loaded."""
    counter = {"n": 0}

    def _make(**fields):
        counter["n"] += 1
        fields.setdefault("part_number", f"P-{counter['n']:03d}")
        fields.setdefault("description", f"Test part {counter['n']}")
        fields.setdefault("selling_price", 10.0)
        fields.setdefault("cost", 4.0)
        part_id = repo.create_part(Part(**fields))
        return repo.get_part_by_id(part_id)

    return _make


@pytest.fixture
def sales_order(service, customer_id):
    return service.create_sales_order(customer_id)["order"]


@pytest.fixture
def work_order(service, customer_id):
    return service.create_work_order(customer_id)["order"]
