from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app import models
from app.core.errors import FieldError, PaymentError, ValidationError
from app.schemas.payments import FarmerPayoutRequest, MillPaymentCreate
from app.services.document_numbering import next_invoice_number
from app.services.record_store import RecordStore
from app.services.settings_service import load_engine_settings
from app.services.settlement_engine import CreditCutResult, calculate_credit_cut, to_decimal

logger = logging.getLogger("rice_ledger.payments")

_ZERO = Decimal("0")


def derive_status(due: Decimal, paid: Decimal) -> models.PaymentStatus:
    """Nothing due (a zero or negative balance) counts as settled."""

    if due <= 0:
        return models.PaymentStatus.FULL
    if paid <= 0:
        return models.PaymentStatus.PENDING
    if paid >= due:
        return models.PaymentStatus.FULL
    return models.PaymentStatus.PARTIAL


def mill_outstanding(load: models.Load) -> Decimal:
    return to_decimal(load.mill_receivable) - (to_decimal(load.mill_paid_amount) or _ZERO)


def farmer_outstanding(load: models.Load) -> Decimal:
    settled = (to_decimal(load.farmer_paid_amount) or _ZERO) + (to_decimal(load.credit_cut_amount) or _ZERO)
    return to_decimal(load.farmer_payable) - settled


# -----------------------------
# Mill payments (FIFO allocation)
# -----------------------------


@dataclass
class MillAllocation:
    payments: list[models.MillPayment] = field(default_factory=list)
    loads: list[models.Load] = field(default_factory=list)
    unallocated: Decimal = _ZERO


def pending_mill_loads(db: Session, mill_id: int) -> list[models.Load]:
    """Active loads of a mill that are not fully paid, oldest first."""

    return (
        db.query(models.Load)
        .filter(
            models.Load.active.is_(True),
            models.Load.mill_id == int(mill_id),
            models.Load.mill_payment_status != models.PaymentStatus.FULL,
        )
        .order_by(models.Load.load_date.asc(), models.Load.id.asc())
        .all()
    )


def record_mill_payment(db: Session, payload: MillPaymentCreate, *, actor: str = "system") -> MillAllocation:
    """Allocate a mill payment across its pending loads, oldest load first.

    One MillPayment row is written per load that receives money. Amounts above
    the total outstanding are refused.
    """

    store = RecordStore(db, actor=actor)
    amount = to_decimal(payload.amount)
    if amount is None or amount <= 0:
        raise ValidationError(FieldError("amount", "Payment amount must be greater than 0"))

    if payload.load_id is not None:
        load = store.require("loads", payload.load_id)
        if load.mill_id != payload.mill_id:
            raise ValidationError(FieldError("load_id", "Load does not belong to this mill"))
        candidates = [load] if mill_outstanding(load) > 0 else []
        method = "MANUAL"
    else:
        candidates = pending_mill_loads(db, payload.mill_id)
        method = "FIFO"

    if not candidates:
        raise PaymentError("No pending loads found for this mill")

    total_outstanding = sum((max(_ZERO, mill_outstanding(ld)) for ld in candidates), _ZERO)
    if amount > total_outstanding:
        raise PaymentError(
            f"Payment of {amount} exceeds the outstanding amount of {total_outstanding}"
        )

    result = MillAllocation()
    remaining = amount
    for load in candidates:
        if remaining <= 0:
            break
        pending = mill_outstanding(load)
        if pending <= 0:
            continue
        allocated = min(remaining, pending)

        payment_id = store.add(
            "mill_payments",
            {
                "mill_id": payload.mill_id,
                "load_id": load.id,
                "payment_date": payload.payment_date,
                "amount": allocated,
                "payment_method": payload.payment_method,
                "reference_number": payload.reference_number,
                "allocation_method": method,
                "notes": payload.notes,
            },
        )
        paid = (to_decimal(load.mill_paid_amount) or _ZERO) + allocated
        store.update(
            "loads",
            load.id,
            {
                "mill_paid_amount": paid,
                "mill_payment_status": derive_status(to_decimal(load.mill_receivable), paid),
                "mill_paid_date": payload.payment_date,
            },
        )
        result.payments.append(store.require("mill_payments", payment_id))
        result.loads.append(load)
        remaining -= allocated

    result.unallocated = remaining
    logger.info(
        "mill_payment_recorded",
        extra={
            "mill_id": payload.mill_id,
            "amount": str(amount),
            "allocations": len(result.payments),
            "allocation_method": method,
        },
    )
    return result


def delete_mill_payment(db: Session, payment_id: int, *, actor: str = "system") -> models.MillPayment:
    """Soft-delete a mill payment and take its amount back off the load."""

    store = RecordStore(db, actor=actor)
    payment = store.require("mill_payments", payment_id)

    if payment.load_id is not None:
        load = store.get("loads", payment.load_id, include_inactive=True)
        if load is not None:
            paid = max(_ZERO, (to_decimal(load.mill_paid_amount) or _ZERO) - to_decimal(payment.amount))
            store.update(
                "loads",
                load.id,
                {
                    "mill_paid_amount": paid,
                    "mill_payment_status": derive_status(to_decimal(load.mill_receivable), paid),
                    "mill_paid_date": load.mill_paid_date if paid > 0 else None,
                },
            )

    store.delete("mill_payments", payment_id)
    logger.info(
        "mill_payment_deleted",
        extra={"payment_id": payment_id, "load_id": payment.load_id, "amount": str(payment.amount)},
    )
    return payment


def list_mill_payments(
    db: Session, *, mill_id: Optional[int] = None, load_id: Optional[int] = None
) -> list[models.MillPayment]:
    q = db.query(models.MillPayment).filter(models.MillPayment.active.is_(True))
    if mill_id is not None:
        q = q.filter(models.MillPayment.mill_id == int(mill_id))
    if load_id is not None:
        q = q.filter(models.MillPayment.load_id == int(load_id))
    return q.order_by(models.MillPayment.payment_date.desc(), models.MillPayment.id.desc()).all()


# -----------------------------
# Farmer payouts
# -----------------------------


@dataclass(frozen=True)
class PayoutQuote:
    load: models.Load
    outstanding: Decimal
    credit_cut: CreditCutResult


def preview_farmer_payout(db: Session, load_id: int, payment_date: date) -> PayoutQuote:
    """Credit cut for paying out a load's outstanding amount on `payment_date`. No writes."""

    load = RecordStore(db).require("loads", load_id)
    if load.farmer_payment_status == models.PaymentStatus.FULL:
        raise PaymentError(f"load {load.load_number} has already been paid out")

    outstanding = farmer_outstanding(load)
    if outstanding <= 0:
        raise PaymentError(f"load {load.load_number} has nothing left to pay out")

    cut = calculate_credit_cut(load.load_date, payment_date, outstanding, load_engine_settings(db))
    return PayoutQuote(load=load, outstanding=outstanding, credit_cut=cut)


def record_farmer_payout(
    db: Session, payload: FarmerPayoutRequest, *, actor: str = "system"
) -> models.FarmerPayment:
    """Pay a farmer the outstanding amount of one load, net of any credit cut.

    The load's settlement snapshot is left as saved; the cut is tracked in
    `credit_cut_amount` next to the payment fields.
    """

    store = RecordStore(db, actor=actor)
    quote = preview_farmer_payout(db, payload.load_id, payload.payment_date)
    load = quote.load
    cut = quote.credit_cut

    invoice_number = (payload.invoice_number or "").strip() or next_invoice_number(
        db, payment_date=payload.payment_date
    )

    payout_id = store.add(
        "farmer_payments",
        {
            "farmer_id": load.farmer_id,
            "load_id": load.id,
            "payment_date": payload.payment_date,
            "gross_amount": quote.outstanding,
            "credit_cut_amount": cut.credit_cut,
            "net_amount": cut.net_payment,
            "payment_method": payload.payment_method,
            "reference_number": payload.reference_number,
            "invoice_number": invoice_number,
            "notes": payload.notes,
        },
    )
    store.update(
        "loads",
        load.id,
        {
            "farmer_paid_amount": (to_decimal(load.farmer_paid_amount) or _ZERO) + cut.net_payment,
            "credit_cut_amount": (to_decimal(load.credit_cut_amount) or _ZERO) + cut.credit_cut,
            "farmer_payment_status": models.PaymentStatus.FULL,
            "farmer_paid_date": payload.payment_date,
        },
    )

    logger.info(
        "farmer_payout_recorded",
        extra={
            "load_id": load.id,
            "invoice_number": invoice_number,
            "gross_amount": str(quote.outstanding),
            "credit_cut": str(cut.credit_cut),
            "days_diff": cut.days_diff,
        },
    )
    return store.require("farmer_payments", payout_id)


def delete_farmer_payout(db: Session, payout_id: int, *, actor: str = "system") -> models.FarmerPayment:
    """Soft-delete a payout and reopen the load for payment."""

    store = RecordStore(db, actor=actor)
    payout = store.require("farmer_payments", payout_id)

    load = store.get("loads", payout.load_id, include_inactive=True)
    if load is not None:
        paid = max(_ZERO, (to_decimal(load.farmer_paid_amount) or _ZERO) - to_decimal(payout.net_amount))
        cut = max(_ZERO, (to_decimal(load.credit_cut_amount) or _ZERO) - to_decimal(payout.credit_cut_amount))
        store.update(
            "loads",
            load.id,
            {
                "farmer_paid_amount": paid,
                "credit_cut_amount": cut,
                "farmer_payment_status": derive_status(to_decimal(load.farmer_payable), paid + cut),
                "farmer_paid_date": load.farmer_paid_date if paid > 0 else None,
            },
        )

    store.delete("farmer_payments", payout_id)
    logger.info("farmer_payout_deleted", extra={"payout_id": payout_id, "load_id": payout.load_id})
    return payout


def list_farmer_payouts(
    db: Session, *, farmer_id: Optional[int] = None, load_id: Optional[int] = None
) -> list[models.FarmerPayment]:
    q = db.query(models.FarmerPayment).filter(models.FarmerPayment.active.is_(True))
    if farmer_id is not None:
        q = q.filter(models.FarmerPayment.farmer_id == int(farmer_id))
    if load_id is not None:
        q = q.filter(models.FarmerPayment.load_id == int(load_id))
    return q.order_by(models.FarmerPayment.payment_date.desc(), models.FarmerPayment.id.desc()).all()
