#!/usr/bin/env python3
"""
Seed jetski models, units and customers for one tenant from a JSON file.

Expected shape:
    {
      "models": [
        {"name": "Sea-Doo Spark", "hourly_price": "150.00", "tolerance_minutes": 5,
         "units": ["SPK-001", "SPK-002"]}
      ],
      "customers": ["Maria Souza", "Joao Lima"]
    }

Usage:
    python scripts/seed_fleet.py --tenant marina-1 --file fleet.json
    python scripts/seed_fleet.py --tenant marina-1          # built-in demo fleet
"""
import argparse
import json
import os
import sys
from decimal import Decimal

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from jetski.db import SessionLocal, init_db
from jetski.repositories.fleet_repo import FleetRepository
from jetski.services.policy_service import BookingPolicyService

DEMO_FLEET = {
    "models": [
        {"name": "Sea-Doo Spark", "hourly_price": "150.00", "tolerance_minutes": 5,
         "units": ["SPK-001", "SPK-002", "SPK-003"]},
        {"name": "Yamaha VX", "hourly_price": "220.00", "tolerance_minutes": 10,
         "units": ["VX-001", "VX-002"]},
    ],
    "customers": ["Maria Souza", "Joao Lima"],
}


def load_fleet(path):
    if path is None:
        return DEMO_FLEET
    if not os.path.exists(path):
        raise FileNotFoundError(path)
    with open(path, "r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except ValueError as e:
            raise RuntimeError(f"Failed to parse JSON from {path}: {e}")


def seed(tenant_id: str, data: dict):
    init_db()
    db = SessionLocal()
    fleet = FleetRepository(db, tenant_id)
    try:
        units = 0
        for entry in data.get("models", []):
            model = fleet.add_model(
                name=entry["name"],
                hourly_price=Decimal(str(entry.get("hourly_price", "0.00"))),
                tolerance_minutes=int(entry.get("tolerance_minutes", 5)),
            )
            for serial in entry.get("units", []):
                fleet.add_jetski(model.id, serial)
                units += 1
        for name in data.get("customers", []):
            fleet.add_customer(name)
        db.commit()

        # persist the tenant's default policy so it shows up in the admin UI
        BookingPolicyService(db).get_or_create(tenant_id)
        print(
            f"Seeded tenant {tenant_id}: {len(data.get('models', []))} models, "
            f"{units} units, {len(data.get('customers', []))} customers"
        )
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed a tenant's fleet.")
    parser.add_argument("--tenant", "-t", required=True, help="Tenant id (X-Tenant-Id)")
    parser.add_argument("--file", "-f", default=None, help="Path to fleet JSON; demo fleet if omitted")
    args = parser.parse_args()
    try:
        fleet_data = load_fleet(args.file)
    except FileNotFoundError:
        print("File not found:", args.file)
        sys.exit(1)
    seed(args.tenant, fleet_data)
