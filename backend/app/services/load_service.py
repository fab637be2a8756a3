from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from app import models
from app.core.errors import PaymentError
from app.schemas.loads import LoadCreate, LoadPreviewRequest, LoadRead, LoadRecalculate, SettlementRead
from app.services.document_numbering import next_load_number
from app.services.payment_service import derive_status
from app.services.record_store import RecordStore
from app.services.settings_service import get_settings, load_engine_settings, to_engine_settings
from app.services.settlement_engine import (
    CommissionPolicy,
    EngineSettings,
    ExpenseAllocation,
    ExpenseEntry,
    ExpenseLine,
    IntakeCase,
    LoadInput,
    Payer,
    SettlementResult,
    compute_settlement,
    to_decimal,
    validate_load_input,
)

logger = logging.getLogger("rice_ledger.loads")

UNKNOWN_PARTY = "Unknown"

_RAW_FIELDS = (
    "case",
    "gross_kg",
    "tare_kg",
    "declared_bags",
    "buy_rate_per_bag",
    "sell_rate_per_bag",
    "commission_policy",
    "split_percent",
    "use_declared_for_commission",
)


# -----------------------------
# Input assembly
# -----------------------------


def resolve_commission_terms(
    settings: EngineSettings,
    *,
    mill: Optional[models.Mill],
    policy: Optional[CommissionPolicy],
    split_percent: Optional[Decimal],
) -> tuple[CommissionPolicy, Decimal]:
    """Load value first, then the mill's default, then the organisation default."""

    if policy is None and mill is not None and mill.commission_policy is not None:
        policy = mill.commission_policy
    if policy is None:
        policy = settings.default_commission_policy

    if split_percent is None and mill is not None and mill.commission_split_percent is not None:
        split_percent = to_decimal(mill.commission_split_percent)
    if split_percent is None:
        split_percent = settings.default_commission_split_percent

    return CommissionPolicy(policy), split_percent


def _entry_from(value: Any) -> ExpenseEntry:
    if isinstance(value, ExpenseEntry):
        return value
    if isinstance(value, Mapping):
        amount, payer = value.get("amount"), value.get("payer")
    else:
        amount, payer = getattr(value, "amount", None), getattr(value, "payer", None)
    return ExpenseEntry(amount=to_decimal(amount), payer=Payer(payer) if payer else None)


def build_expenses(raw: Optional[Mapping[Any, Any]]) -> dict[ExpenseLine, ExpenseEntry]:
    return {ExpenseLine(line): _entry_from(value) for line, value in (raw or {}).items()}


def build_load_input(
    settings: EngineSettings,
    *,
    mill: Optional[models.Mill] = None,
    case: IntakeCase,
    gross_kg: Any,
    tare_kg: Any,
    declared_bags: Optional[int],
    buy_rate_per_bag: Any,
    sell_rate_per_bag: Any,
    commission_policy: Optional[CommissionPolicy] = None,
    split_percent: Any = None,
    use_declared_for_commission: bool = False,
    expenses: Optional[Mapping[Any, Any]] = None,
    load_date: Optional[date] = None,
) -> LoadInput:
    policy, split = resolve_commission_terms(
        settings,
        mill=mill,
        policy=commission_policy,
        split_percent=to_decimal(split_percent),
    )
    return LoadInput(
        case=IntakeCase(case) if case is not None else None,
        gross_kg=to_decimal(gross_kg),
        tare_kg=to_decimal(tare_kg),
        declared_bags=declared_bags,
        buy_rate_per_bag=to_decimal(buy_rate_per_bag),
        sell_rate_per_bag=to_decimal(sell_rate_per_bag),
        commission_policy=policy,
        split_percent=split,
        use_declared_for_commission=bool(use_declared_for_commission),
        expenses=build_expenses(expenses),
        load_date=load_date,
    )


def _input_kwargs(payload: Any) -> dict[str, Any]:
    return {
        "case": payload.case,
        "gross_kg": payload.gross_kg,
        "tare_kg": payload.tare_kg,
        "declared_bags": payload.declared_bags,
        "buy_rate_per_bag": payload.buy_rate_per_bag,
        "sell_rate_per_bag": payload.sell_rate_per_bag,
        "commission_policy": payload.commission_policy,
        "split_percent": payload.split_percent,
        "use_declared_for_commission": payload.use_declared_for_commission,
        "expenses": payload.expenses,
        "load_date": payload.load_date,
    }


# -----------------------------
# Snapshot <-> columns
# -----------------------------


def snapshot_columns(result: SettlementResult) -> dict[str, Any]:
    return {
        "deduction_kg": result.deduction_kg,
        "net_kg": result.net_kg,
        "net_bags": result.net_bags,
        "commission_bags": result.commission_bags,
        "commission_amount": result.commission_amount,
        "farmer_commission_share": result.farmer_commission_share,
        "mill_commission_share": result.mill_commission_share,
        "farmer_expenses_total": result.farmer_expenses_total,
        "mill_expenses_total": result.mill_expenses_total,
        "company_expenses_total": result.company_expenses_total,
        "farmer_gross_amount": result.farmer_gross_amount,
        "farmer_total_deductions": result.farmer_total_deductions,
        "farmer_payable_exact": result.farmer_payable,
        "farmer_payable": result.farmer_payable_rounded,
        "mill_gross_amount": result.mill_gross_amount,
        "mill_total_deductions": result.mill_total_deductions,
        "mill_receivable_exact": result.mill_receivable,
        "mill_receivable": result.mill_receivable_rounded,
        "settled_at": datetime.now(timezone.utc),
    }


def _write_expense_rows(
    load: models.Load, result: SettlementResult, entered: Mapping[ExpenseLine, ExpenseEntry]
) -> None:
    existing = {ExpenseLine(row.line): row for row in load.expenses}
    for alloc in result.expense_lines:
        entry = entered.get(alloc.line)
        was_entered = entry is not None and entry.amount is not None
        row = existing.get(alloc.line)
        if row is None:
            load.expenses.append(
                models.LoadExpense(
                    line=alloc.line, amount=alloc.amount, payer=alloc.payer, entered=was_entered
                )
            )
        else:
            row.amount = alloc.amount
            row.payer = alloc.payer
            row.entered = was_entered


def settlement_from_load(load: models.Load) -> SettlementResult:
    """Rebuild the stored settlement. Never recomputes."""

    rows = {ExpenseLine(row.line): row for row in load.expenses}
    lines = tuple(
        ExpenseAllocation(line=line, amount=to_decimal(rows[line].amount), payer=Payer(rows[line].payer))
        for line in ExpenseLine
        if line in rows
    )
    return SettlementResult(
        deduction_kg=to_decimal(load.deduction_kg),
        net_kg=to_decimal(load.net_kg),
        net_bags=int(load.net_bags),
        commission_bags=int(load.commission_bags),
        commission_amount=to_decimal(load.commission_amount),
        farmer_commission_share=to_decimal(load.farmer_commission_share),
        mill_commission_share=to_decimal(load.mill_commission_share),
        expense_lines=lines,
        farmer_expenses_total=to_decimal(load.farmer_expenses_total),
        mill_expenses_total=to_decimal(load.mill_expenses_total),
        company_expenses_total=to_decimal(load.company_expenses_total),
        farmer_gross_amount=to_decimal(load.farmer_gross_amount),
        farmer_total_deductions=to_decimal(load.farmer_total_deductions),
        farmer_payable=to_decimal(load.farmer_payable_exact),
        farmer_payable_rounded=to_decimal(load.farmer_payable),
        mill_gross_amount=to_decimal(load.mill_gross_amount),
        mill_total_deductions=to_decimal(load.mill_total_deductions),
        mill_receivable=to_decimal(load.mill_receivable_exact),
        mill_receivable_rounded=to_decimal(load.mill_receivable),
    )


def stored_expense_entries(load: models.Load) -> dict[ExpenseLine, ExpenseEntry]:
    """Expense lines as originally entered; derived amounts come back as None."""

    return {
        ExpenseLine(row.line): ExpenseEntry(
            amount=to_decimal(row.amount) if row.entered else None,
            payer=Payer(row.payer),
        )
        for row in load.expenses
    }


# -----------------------------
# Operations
# -----------------------------


def preview_settlement(db: Session, payload: LoadPreviewRequest) -> SettlementResult:
    """Live preview: same engine call as save, no writes."""

    settings = load_engine_settings(db)
    mill = RecordStore(db).get("mills", payload.mill_id) if payload.mill_id else None
    return compute_settlement(settings, build_load_input(settings, mill=mill, **_input_kwargs(payload)))


def create_load(
    db: Session,
    payload: LoadCreate,
    *,
    today: Optional[date] = None,
    actor: str = "system",
) -> models.Load:
    store = RecordStore(db, actor=actor)
    settings_row = get_settings(db)
    settings = to_engine_settings(settings_row)
    mill = store.get("mills", payload.mill_id, include_inactive=True) if payload.mill_id else None

    load_input = build_load_input(settings, mill=mill, **_input_kwargs(payload))
    validate_load_input(load_input, today=today or date.today())
    result = compute_settlement(settings, load_input)

    load_number = next_load_number(
        db, prefix=settings_row.load_number_prefix, load_date=payload.load_date
    )
    record: dict[str, Any] = {
        "load_number": load_number,
        "load_date": payload.load_date,
        "farmer_id": payload.farmer_id,
        "mill_id": payload.mill_id,
        "vehicle_id": payload.vehicle_id,
        "notes": payload.notes,
        "case": load_input.case,
        "gross_kg": load_input.gross_kg,
        "tare_kg": load_input.tare_kg,
        "declared_bags": load_input.declared_bags,
        "buy_rate_per_bag": load_input.buy_rate_per_bag,
        "sell_rate_per_bag": load_input.sell_rate_per_bag,
        "commission_policy": load_input.commission_policy,
        "split_percent": load_input.split_percent,
        "use_declared_for_commission": load_input.use_declared_for_commission,
        "mill_payment_status": derive_status(result.mill_receivable_rounded, Decimal("0")),
        "mill_paid_amount": Decimal("0"),
        "farmer_payment_status": derive_status(result.farmer_payable_rounded, Decimal("0")),
        "farmer_paid_amount": Decimal("0"),
        "credit_cut_amount": Decimal("0"),
        **snapshot_columns(result),
    }
    load_id = store.add("loads", record)
    load = store.require("loads", load_id)
    _write_expense_rows(load, result, load_input.expenses)
    db.flush()

    logger.info(
        "load_created",
        extra={
            "load_id": load_id,
            "load_number": load_number,
            "net_bags": result.net_bags,
            "farmer_payable": str(result.farmer_payable_rounded),
            "mill_receivable": str(result.mill_receivable_rounded),
        },
    )
    return load


def has_payments(load: models.Load) -> bool:
    return (
        (load.mill_paid_amount or 0) > 0
        or (load.farmer_paid_amount or 0) > 0
        or (load.credit_cut_amount or 0) > 0
    )


def recalculate_load(
    db: Session,
    load_id: int,
    changes: LoadRecalculate,
    *,
    today: Optional[date] = None,
    actor: str = "system",
) -> models.Load:
    """Apply an edit and recompute the settlement with the current settings.

    This is the only path that rewrites a stored snapshot.
    """

    store = RecordStore(db, actor=actor)
    load = store.require("loads", load_id)
    if has_payments(load):
        raise PaymentError(
            f"load {load.load_number} has recorded payments; its settlement can no longer be changed"
        )

    data = changes.model_dump(exclude_unset=True)
    expected_version = data.pop("expected_version", None)
    new_expenses = data.pop("expenses", None)

    raw = {field: getattr(load, field) for field in _RAW_FIELDS}
    raw.update({k: v for k, v in data.items() if k in _RAW_FIELDS})

    expenses = stored_expense_entries(load)
    for line, patch in (new_expenses or {}).items():
        line = ExpenseLine(line)
        prior = expenses.get(line)
        if prior is not None:
            # omitted keys keep the stored value; an explicit null amount resets to the default
            patch = {"amount": prior.amount, "payer": prior.payer, **patch}
        expenses[line] = _entry_from(patch)

    mill_id = data.get("mill_id", load.mill_id)
    settings = load_engine_settings(db)
    mill = store.get("mills", mill_id, include_inactive=True) if mill_id else None

    load_input = build_load_input(
        settings,
        mill=mill,
        expenses=expenses,
        load_date=data.get("load_date", load.load_date),
        **raw,
    )
    validate_load_input(load_input, today=today or date.today())
    result = compute_settlement(settings, load_input)

    partial: dict[str, Any] = {
        k: v for k, v in data.items() if k in {"load_date", "farmer_id", "mill_id", "vehicle_id", "notes"}
    }
    partial.update(
        {
            "case": load_input.case,
            "gross_kg": load_input.gross_kg,
            "tare_kg": load_input.tare_kg,
            "declared_bags": load_input.declared_bags,
            "buy_rate_per_bag": load_input.buy_rate_per_bag,
            "sell_rate_per_bag": load_input.sell_rate_per_bag,
            "commission_policy": load_input.commission_policy,
            "split_percent": load_input.split_percent,
            "use_declared_for_commission": load_input.use_declared_for_commission,
        }
    )
    partial.update(snapshot_columns(result))
    partial["mill_payment_status"] = derive_status(result.mill_receivable_rounded, Decimal("0"))
    partial["farmer_payment_status"] = derive_status(result.farmer_payable_rounded, Decimal("0"))
    load = store.update("loads", load_id, partial, expected_version=expected_version)
    _write_expense_rows(load, result, load_input.expenses)
    db.flush()

    logger.info(
        "load_recalculated",
        extra={"load_id": load.id, "load_number": load.load_number, "version": load.version},
    )
    return load


def delete_load(db: Session, load_id: int, *, actor: str = "system") -> int:
    return RecordStore(db, actor=actor).delete("loads", load_id)


def list_loads(
    db: Session,
    *,
    farmer_id: Optional[int] = None,
    mill_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    mill_status: Optional[models.PaymentStatus] = None,
    farmer_status: Optional[models.PaymentStatus] = None,
    include_inactive: bool = False,
    limit: int = 500,
) -> list[models.Load]:
    q = db.query(models.Load)
    if not include_inactive:
        q = q.filter(models.Load.active.is_(True))
    if farmer_id is not None:
        q = q.filter(models.Load.farmer_id == int(farmer_id))
    if mill_id is not None:
        q = q.filter(models.Load.mill_id == int(mill_id))
    if start_date is not None:
        q = q.filter(models.Load.load_date >= start_date)
    if end_date is not None:
        q = q.filter(models.Load.load_date <= end_date)
    if mill_status is not None:
        q = q.filter(models.Load.mill_payment_status == mill_status)
    if farmer_status is not None:
        q = q.filter(models.Load.farmer_payment_status == farmer_status)
    return q.order_by(models.Load.load_date.desc(), models.Load.id.desc()).limit(limit).all()


# -----------------------------
# Presentation helpers
# -----------------------------


def party_names(db: Session, load: models.Load) -> tuple[str, str, str]:
    """(farmer name, mill name, vehicle number); dangling ids render as Unknown."""

    store = RecordStore(db)
    farmer = store.get("farmers", load.farmer_id, include_inactive=True) if load.farmer_id else None
    mill = store.get("mills", load.mill_id, include_inactive=True) if load.mill_id else None
    vehicle = store.get("vehicles", load.vehicle_id, include_inactive=True) if load.vehicle_id else None
    return (
        farmer.name if farmer else UNKNOWN_PARTY,
        mill.name if mill else UNKNOWN_PARTY,
        vehicle.number if vehicle else UNKNOWN_PARTY,
    )


def describe_load(db: Session, load: models.Load) -> LoadRead:
    farmer_name, mill_name, vehicle_number = party_names(db, load)
    return LoadRead(
        id=load.id,
        load_number=load.load_number,
        load_date=load.load_date,
        farmer_id=load.farmer_id,
        farmer_name=farmer_name,
        mill_id=load.mill_id,
        mill_name=mill_name,
        vehicle_id=load.vehicle_id,
        vehicle_number=vehicle_number,
        case=load.case,
        gross_kg=load.gross_kg,
        tare_kg=load.tare_kg,
        declared_bags=load.declared_bags,
        buy_rate_per_bag=load.buy_rate_per_bag,
        sell_rate_per_bag=load.sell_rate_per_bag,
        commission_policy=load.commission_policy,
        split_percent=load.split_percent,
        use_declared_for_commission=load.use_declared_for_commission,
        settlement=SettlementRead.model_validate(settlement_from_load(load)),
        mill_payment_status=load.mill_payment_status,
        mill_paid_amount=load.mill_paid_amount,
        mill_paid_date=load.mill_paid_date,
        farmer_payment_status=load.farmer_payment_status,
        farmer_paid_amount=load.farmer_paid_amount,
        farmer_paid_date=load.farmer_paid_date,
        credit_cut_amount=load.credit_cut_amount,
        notes=load.notes,
        version=load.version,
        active=load.active,
        settled_at=load.settled_at,
    )
