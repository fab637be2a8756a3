"""Seed master data

Creates the default ledger settings and, unless told otherwise, a couple of
sample farmers, mills and vehicles. Existing data is left alone.
Run with: python -m app.scripts.seed_master_data [--no-samples] [--create-tables]
"""

from __future__ import annotations

import argparse
import json
import logging
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from app import models
from app.database import Base, SessionLocal, engine
from app.services.record_store import RecordStore
from app.services.settings_service import get_settings
from app.services.settlement_engine import CommissionPolicy

logger = logging.getLogger("rice_ledger.seed")

SEED_ACTOR = "seed"

SAMPLE_FARMERS: list[dict[str, Any]] = [
    {
        "name": "Ravi Kumar",
        "village": "Kharkhoda",
        "phone": "9876543210",
        "bank_account": "1234567890",
        "bank_ifsc": "SBIN0001234",
        "default_rate": Decimal("2100"),
        "tags": "regular",
        "notes": "Sample farmer",
    },
    {
        "name": "Suresh Singh",
        "village": "Panipat",
        "phone": "9876543211",
        "bank_account": "0987654321",
        "bank_ifsc": "HDFC0001234",
        "default_rate": Decimal("2050"),
        "tags": "new",
        "notes": "Sample farmer 2",
    },
]

SAMPLE_MILLS: list[dict[str, Any]] = [
    {
        "name": "Shree Rice Mill",
        "village": "Panipat",
        "contact_person": "Rajesh Sharma",
        "phone": "9876543220",
        "address": "Industrial Area, Panipat",
        "gstin": "06ABCDE1234F1Z5",
        "default_rate": Decimal("2200"),
        "payment_terms": "15 days",
        "commission_policy": CommissionPolicy.FARMER,
        "commission_split_percent": Decimal("50"),
        "tags": "trusted",
        "notes": "Main mill partner",
    },
    {
        "name": "Modern Rice Mill",
        "village": "Karnal",
        "contact_person": "Amit Verma",
        "phone": "9876543221",
        "address": "GT Road, Karnal",
        "gstin": "06FGHIJ5678K1Z5",
        "default_rate": Decimal("2150"),
        "payment_terms": "7 days",
        "commission_policy": CommissionPolicy.MILL,
        "commission_split_percent": Decimal("50"),
        "tags": "premium",
        "notes": "Quick payment mill",
    },
]

SAMPLE_VEHICLES: list[dict[str, Any]] = [
    {
        "number": "HR38AB1234",
        "vehicle_type": "TRUCK",
        "driver_name": "Ramesh Kumar",
        "driver_phone": "9876543230",
    },
    {
        "number": "PB12CD5678",
        "vehicle_type": "TRACTOR",
        "driver_name": "Vikram Singh",
        "driver_phone": "9876543231",
    },
]


def _seed_table(store: RecordStore, record_type: str, rows: list[dict[str, Any]]) -> int:
    # Only seed empty tables, counting soft-deleted rows too.
    if store.get_all(record_type, include_inactive=True):
        return 0
    for row in rows:
        store.add(record_type, dict(row))
    return len(rows)


def seed_master_data(db: Session, *, samples: bool = True) -> dict[str, int]:
    created = {"settings": 0, "farmers": 0, "mills": 0, "vehicles": 0}

    if db.get(models.LedgerSettings, 1) is None:
        get_settings(db)
        created["settings"] = 1

    if samples:
        store = RecordStore(db, actor=SEED_ACTOR)
        created["farmers"] = _seed_table(store, "farmers", SAMPLE_FARMERS)
        created["mills"] = _seed_table(store, "mills", SAMPLE_MILLS)
        created["vehicles"] = _seed_table(store, "vehicles", SAMPLE_VEHICLES)

    logger.info("master_data_seeded", extra=created)
    return created


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed default settings and sample master data.")
    parser.add_argument("--no-samples", action="store_true", help="Only create default settings.")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create tables from the ORM metadata first (local dev without alembic).",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    if args.create_tables:
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        created = seed_master_data(db, samples=not args.no_samples)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    print(json.dumps({"created": created}, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
