"""Application entry point — configures logging and opens the shop database."""

import logging
import sys

from shop_ledger.config import Config
from shop_ledger.database.connection import DatabaseConnection
from shop_ledger.database.repository import Repository
from shop_ledger.database.schema import initialize_database
from shop_ledger.engine.service import OrderService
from shop_ledger.utils.constants import APP_NAME, APP_VERSION, PO_STATUS_OPEN

logger = logging.getLogger(__name__)


def setup_logging(level: str | None = None):
    """Configure the root logger from ``Config.LOG_LEVEL``."""
    level = (level or Config.LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def open_database(db_path=None) -> DatabaseConnection:
    """Open (and if needed create) the shop database."""
    db = DatabaseConnection(db_path or Config.DATABASE_PATH)
    initialize_database(db)
    return db


def create_service(db_path=None, performed_by: str = "system") -> OrderService:
    return OrderService(open_database(db_path), performed_by=performed_by)


def main():
    """Initialize the database and report its state."""
    setup_logging()

    db = open_database()
    repo = Repository(db)
    summary = repo.get_inventory_summary()
    logger.info(f"{APP_NAME} {APP_VERSION}: database at {db.db_path}")
    logger.info(
        f"{summary.get('total_parts', 0)} active parts, "
        f"{summary.get('negative_count', 0)} below zero, "
        f"{len(repo.get_all_purchase_orders(status=PO_STATUS_OPEN))} open POs"
    )


if __name__ == "__main__":
    main()
