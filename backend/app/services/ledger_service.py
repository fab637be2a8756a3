from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app import models
from app.schemas.ledgers import FarmerLedgerRead, MillLedgerRead, PendingLoadRead, ProfitReportRead
from app.services.load_service import UNKNOWN_PARTY, list_loads, settlement_from_load
from app.services.payment_service import farmer_outstanding, mill_outstanding
from app.services.record_store import RecordStore
from app.services.settlement_engine import ProfitBreakdown, calculate_profit, to_decimal

logger = logging.getLogger("rice_ledger.ledgers")

_ZERO = Decimal("0")


def _d(value) -> Decimal:
    return to_decimal(value) or _ZERO


def farmer_ledger(db: Session, farmer_id: int) -> FarmerLedgerRead:
    farmer = RecordStore(db).get("farmers", farmer_id, include_inactive=True)
    loads = list_loads(db, farmer_id=farmer_id, limit=100_000)

    pending = [
        PendingLoadRead(
            load_id=ld.id,
            load_number=ld.load_number,
            load_date=ld.load_date,
            due=_d(ld.farmer_payable),
            paid=_d(ld.farmer_paid_amount) + _d(ld.credit_cut_amount),
            outstanding=farmer_outstanding(ld),
            status=ld.farmer_payment_status.value,
        )
        for ld in sorted(loads, key=lambda x: (x.load_date, x.id))
        if ld.farmer_payment_status != models.PaymentStatus.FULL
    ]

    total_payable = sum((_d(ld.farmer_payable) for ld in loads), _ZERO)
    total_paid = sum((_d(ld.farmer_paid_amount) for ld in loads), _ZERO)
    total_cut = sum((_d(ld.credit_cut_amount) for ld in loads), _ZERO)
    return FarmerLedgerRead(
        farmer_id=int(farmer_id),
        farmer_name=farmer.name if farmer else UNKNOWN_PARTY,
        total_loads=len(loads),
        total_bags=sum(int(ld.net_bags) for ld in loads),
        total_payable=total_payable,
        total_paid=total_paid,
        total_credit_cut=total_cut,
        outstanding=total_payable - total_paid - total_cut,
        pending_loads=pending,
    )


def mill_ledger(db: Session, mill_id: int) -> MillLedgerRead:
    mill = RecordStore(db).get("mills", mill_id, include_inactive=True)
    loads = list_loads(db, mill_id=mill_id, limit=100_000)

    pending = [
        PendingLoadRead(
            load_id=ld.id,
            load_number=ld.load_number,
            load_date=ld.load_date,
            due=_d(ld.mill_receivable),
            paid=_d(ld.mill_paid_amount),
            outstanding=mill_outstanding(ld),
            status=ld.mill_payment_status.value,
        )
        for ld in sorted(loads, key=lambda x: (x.load_date, x.id))
        if ld.mill_payment_status != models.PaymentStatus.FULL
    ]

    total_receivable = sum((_d(ld.mill_receivable) for ld in loads), _ZERO)
    total_received = sum((_d(ld.mill_paid_amount) for ld in loads), _ZERO)
    return MillLedgerRead(
        mill_id=int(mill_id),
        mill_name=mill.name if mill else UNKNOWN_PARTY,
        total_loads=len(loads),
        total_bags=sum(int(ld.net_bags) for ld in loads),
        total_receivable=total_receivable,
        total_received=total_received,
        outstanding=total_receivable - total_received,
        pending_loads=pending,
    )


def load_profit(load: models.Load) -> ProfitBreakdown:
    return calculate_profit(
        settlement_from_load(load),
        buy_rate_per_bag=_d(load.buy_rate_per_bag),
        sell_rate_per_bag=_d(load.sell_rate_per_bag),
        credit_cut_amount=_d(load.credit_cut_amount),
    )


def profit_report(
    db: Session, *, start_date: Optional[date] = None, end_date: Optional[date] = None
) -> ProfitReportRead:
    """Sum of per-load profit over loads dated within [start_date, end_date]."""

    loads = list_loads(db, start_date=start_date, end_date=end_date, limit=100_000)
    totals = {
        "rate_margin": _ZERO,
        "commission_income": _ZERO,
        "credit_cut_income": _ZERO,
        "total_income": _ZERO,
        "total_expenses": _ZERO,
        "net_profit": _ZERO,
    }
    for ld in loads:
        p = load_profit(ld)
        for key in totals:
            totals[key] += getattr(p, key)

    logger.info(
        "profit_report_built",
        extra={"start_date": str(start_date), "end_date": str(end_date), "loads": len(loads)},
    )
    return ProfitReportRead(
        start_date=start_date,
        end_date=end_date,
        load_count=len(loads),
        total_bags=sum(int(ld.net_bags) for ld in loads),
        **totals,
    )
