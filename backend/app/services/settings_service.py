from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from app import models
from app.core.errors import ConfigurationError
from app.services.audit import record_change, row_snapshot
from app.services.settlement_engine import (
    CommissionPolicy,
    EngineSettings,
    to_decimal,
    validate_settings,
)

logger = logging.getLogger("rice_ledger.settings")

SETTINGS_ID = 1

DEFAULT_SETTINGS: dict[str, Any] = {
    "organization_name": "Rice Trade Organization",
    "load_number_prefix": "ORG",
    "bag_weight_kg": Decimal("75"),
    "case1_deduct_per_bag_kg": Decimal("2"),
    "case2_deduct_per_ton_kg": Decimal("5"),
    "commission_per_bag": Decimal("10"),
    "companion_per_bag_default": Decimal("2"),
    "credit_cut_percent": Decimal("1"),
    "credit_cut_days": 7,
    "default_commission_policy": CommissionPolicy.FARMER,
    "default_commission_split_percent": Decimal("50"),
    "payout_rounding": 1,
}

_ENGINE_FIELDS = (
    "bag_weight_kg",
    "case1_deduct_per_bag_kg",
    "case2_deduct_per_ton_kg",
    "commission_per_bag",
    "companion_per_bag_default",
    "credit_cut_percent",
    "credit_cut_days",
    "default_commission_policy",
    "default_commission_split_percent",
    "payout_rounding",
)

_DECIMAL_FIELDS = {
    "bag_weight_kg",
    "case1_deduct_per_bag_kg",
    "case2_deduct_per_ton_kg",
    "commission_per_bag",
    "companion_per_bag_default",
    "credit_cut_percent",
    "default_commission_split_percent",
}


def get_settings(db: Session) -> models.LedgerSettings:
    """Return the settings row, creating it with defaults on first run."""

    row = db.get(models.LedgerSettings, SETTINGS_ID)
    if row is None:
        row = models.LedgerSettings(id=SETTINGS_ID, version=1, **DEFAULT_SETTINGS)
        db.add(row)
        db.flush()
        logger.info("settings_initialized")
    return row


def to_engine_settings(row: models.LedgerSettings) -> EngineSettings:
    """Immutable snapshot handed to the settlement engine."""

    return EngineSettings(
        bag_weight_kg=to_decimal(row.bag_weight_kg),
        case1_deduct_per_bag_kg=to_decimal(row.case1_deduct_per_bag_kg),
        case2_deduct_per_ton_kg=to_decimal(row.case2_deduct_per_ton_kg),
        commission_per_bag=to_decimal(row.commission_per_bag),
        companion_per_bag_default=to_decimal(row.companion_per_bag_default),
        credit_cut_percent=to_decimal(row.credit_cut_percent),
        credit_cut_days=int(row.credit_cut_days),
        default_commission_policy=CommissionPolicy(row.default_commission_policy),
        default_commission_split_percent=to_decimal(row.default_commission_split_percent),
        payout_rounding=int(row.payout_rounding),
    )


def load_engine_settings(db: Session) -> EngineSettings:
    return to_engine_settings(get_settings(db))


def update_settings(db: Session, changes: dict[str, Any], *, actor: str = "system") -> models.LedgerSettings:
    """Validate and apply a settings change.

    Raises ConfigurationError before anything is written. Stored loads keep
    the snapshot they were saved with.
    """

    row = get_settings(db)
    normalized: dict[str, Any] = {}
    for key, value in changes.items():
        if value is None:
            raise ConfigurationError(key, "is required")
        if key in _DECIMAL_FIELDS:
            value = to_decimal(value)
        elif key == "default_commission_policy":
            try:
                value = CommissionPolicy(value)
            except ValueError:
                raise ConfigurationError(key, "commission policy must be FARMER, MILL, SPLIT or NONE") from None
        normalized[key] = value

    candidate = replace(
        to_engine_settings(row),
        **{k: v for k, v in normalized.items() if k in _ENGINE_FIELDS},
    )
    validate_settings(candidate)

    before = row_snapshot(row)
    for key, value in normalized.items():
        setattr(row, key, value)
    row.version = int(row.version or 1) + 1
    db.flush()

    record_change(
        db,
        entity_type="settings",
        entity_id=row.id,
        action=models.ChangeAction.UPDATE,
        before=before,
        after=row_snapshot(row),
        actor=actor,
    )
    logger.info("settings_updated", extra={"fields": sorted(normalized), "version": row.version})
    return row
