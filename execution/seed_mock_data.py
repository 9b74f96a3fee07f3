"""Seed the database with realistic mock data for development and demos.

Creates:
  - 4 vendors, 3 technicians, 4 customers (one tax exempt, one fleet)
  - 14 parts including a brake kit and core-charged alternators
  - 2 sales orders and 2 work orders with lines, one of each invoiced
  - whatever replenishment purchase orders invoicing produces

Run:
    python -m execution.seed_mock_data          (from project root)
    python execution/seed_mock_data.py          (direct)

WARNING: This script INSERTS data — run against a fresh DB to avoid
duplicates. Delete data/shop_ledger.db first for a clean start.
"""

import os
import sys

# Ensure project src is on the path
_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(_ROOT, "src"))

from shop_ledger.database.connection import DatabaseConnection
from shop_ledger.database.models import (
    Customer,
    KitComponent,
    Part,
    Technician,
    Vendor,
)
from shop_ledger.database.repository import Repository
from shop_ledger.database.schema import initialize_database
from shop_ledger.engine.service import OrderService


def _check(result: dict, what: str) -> dict:
    if not result["success"]:
        raise SystemExit(f"{what} failed: {result['error']}")
    return result


def seed(repo: Repository, service: OrderService):
    """Populate the database with mock data."""

    # ── 1. Vendors ────────────────────────────────────────────────
    print("Creating vendors...")
    vendor_ids = {}
    for name, phone in [
        ("NAPA Distribution", "555-0101"),
        ("WorldPac", "555-0102"),
        ("Fleet Parts Direct", "555-0103"),
        ("Midwest Filters", "555-0104"),
    ]:
        vendor_ids[name] = repo.create_vendor(
            Vendor(vendor_name=name, phone=phone)
        )

    # ── 2. Technicians ────────────────────────────────────────────
    print("Creating technicians...")
    tech_ids = [
        repo.create_technician(Technician(name=name, hourly_cost_rate=rate))
        for name, rate in [
            ("Luis Ortega", 32.0), ("Dana Fields", 28.5), ("Sam Okafor", 30.0),
        ]
    ]

    # ── 3. Customers ──────────────────────────────────────────────
    print("Creating customers...")
    customers = [
        Customer(company_name="Walk-in Retail", price_level="RETAIL"),
        Customer(company_name="County Public Works", is_tax_exempt=1,
                 price_level="FLEET"),
        Customer(company_name="Ridgeline Logistics", price_level="FLEET",
                 tax_rate_override=6.0),
        Customer(company_name="Jo Park", contact_name="Jo Park",
                 phone="555-0190"),
    ]
    customer_ids = [repo.create_customer(c) for c in customers]

    # ── 4. Parts ──────────────────────────────────────────────────
    print("Creating parts...")
    napa = vendor_ids["NAPA Distribution"]
    worldpac = vendor_ids["WorldPac"]
    filters = vendor_ids["Midwest Filters"]
    parts_data = [
        # (part_number, description, vendor, cost, price, qty, max, core)
        ("BP-F-100", "Front brake pads", napa, 22.00, 54.99, 12, 20, 0),
        ("BR-F-200", "Front brake rotor", napa, 38.00, 89.99, 6, 10, 0),
        ("BH-HW-10", "Brake hardware kit", napa, 4.50, 12.99, 15, 20, 0),
        ("BF-DOT3", "DOT 3 brake fluid (qt)", napa, 6.25, 14.99, 24, 30, 0),
        ("OF-5W30", "5W-30 synthetic oil (qt)", filters, 4.10, 9.49, 60, 96, 0),
        ("FL-OIL-1", "Oil filter", filters, 3.20, 11.99, 30, 40, 0),
        ("FL-AIR-1", "Engine air filter", filters, 7.80, 24.99, 8, 15, 0),
        ("AL-120A", "Alternator 120A (reman)", worldpac, 145.00, 289.00,
         3, 5, 1),
        ("SM-200", "Starter motor (reman)", worldpac, 110.00, 239.00, 2, 4, 1),
        ("BA-H6", "Battery group H6", worldpac, 98.00, 179.00, 4, 6, 1),
        ("WB-22", "Wiper blade 22in", napa, 5.40, 16.99, 10, 20, 0),
        ("SP-IR-4", "Iridium spark plug", napa, 6.90, 15.99, 2, 16, 0),
        ("CL-COOL", "Coolant 50/50 (gal)", filters, 9.10, 21.99, 0, 12, 0),
    ]
    part_ids = {}
    for pn, desc, vendor_id, cost, price, qty, max_qty, core in parts_data:
        part_ids[pn] = repo.create_part(Part(
            part_number=pn, description=desc, vendor_id=vendor_id,
            cost=cost, selling_price=price, quantity_on_hand=qty,
            max_qty=max_qty, core_required=core,
            core_charge=round(cost * 0.25, 2) if core else 0.0,
        ), performed_by="seed")

    kit_id = repo.create_part(Part(
        part_number="KIT-BRK-F", description="Front brake job kit",
        selling_price=149.99, is_kit=1,
    ), performed_by="seed")
    for pn, qty in [("BP-F-100", 1), ("BR-F-200", 2), ("BH-HW-10", 1)]:
        repo.add_kit_component(KitComponent(
            kit_part_id=kit_id, component_part_id=part_ids[pn], quantity=qty,
        ))

    # ── 5. Orders ─────────────────────────────────────────────────
    print("Creating orders...")
    so1 = _check(service.create_sales_order(customer_ids[0]), "SO")["order"]
    _check(service.add_part_line(so1.id, part_ids["WB-22"], 2), "line")
    _check(service.add_part_line(so1.id, part_ids["SP-IR-4"], 6), "line")

    so2 = _check(service.create_sales_order(customer_ids[2]), "SO")["order"]
    _check(service.add_part_line(so2.id, part_ids["OF-5W30"], 12), "line")
    _check(service.add_part_line(so2.id, part_ids["FL-OIL-1"], 2), "line")

    wo1 = _check(service.create_work_order(
        customer_ids[3], technician_id=tech_ids[0], priority=2,
    ), "WO")["order"]
    _check(service.add_part_line(wo1.id, kit_id, 1), "line")
    _check(service.add_part_line(wo1.id, part_ids["BF-DOT3"], 1), "line")
    _check(service.add_labor_line(wo1.id, "Front brake service", 1.8,
                                  tech_ids[0]), "labor")
    _check(service.upsert_charge_line(wo1.id, "Shop supplies", 1, 8.50,
                                      "SHOP_SUPPLIES", wo1.id), "charge")

    wo2 = _check(service.create_work_order(
        customer_ids[1], technician_id=tech_ids[1],
    ), "WO")["order"]
    alt = _check(service.add_part_line(wo2.id, part_ids["AL-120A"], 1),
                 "line")["line"]
    _check(service.add_part_line(wo2.id, part_ids["CL-COOL"], 2), "line")
    _check(service.add_labor_line(wo2.id, "Replace alternator", 1.2,
                                  tech_ids[1]), "labor")
    _check(service.mark_core_returned(alt.id), "core return")

    # ── 6. Invoicing ──────────────────────────────────────────────
    print("Invoicing...")
    invoiced = [_check(service.invoice(o.id), "invoice") for o in (so1, wo2)]
    po_count = len({po.id for r in invoiced for po in r["purchase_orders"]})

    # ── Done ──────────────────────────────────────────────────────
    print("\n✓ Mock data seeded successfully!")
    print(f"  Vendors: {len(vendor_ids)}")
    print(f"  Technicians: {len(tech_ids)}")
    print(f"  Customers: {len(customer_ids)}")
    print(f"  Parts: {len(part_ids) + 1} (1 kit)")
    print(f"  Orders: 4 (2 invoiced)")
    print(f"  Replenishment POs: {po_count}")


def main():
    from shop_ledger.config import Config
    db_path = Config.DATABASE_PATH
    print(f"Database: {db_path}")

    # Confirm if DB exists
    if os.path.exists(db_path):
        resp = input("Database already exists. Seed anyway? (y/N): ").strip().lower()
        if resp != "y":
            print("Aborted.")
            return

    db = DatabaseConnection(db_path)
    initialize_database(db)
    seed(Repository(db), OrderService(db, performed_by="seed"))


if __name__ == "__main__":
    main()
