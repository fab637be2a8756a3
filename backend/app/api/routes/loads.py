from dataclasses import asdict
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app import models
from app.api.deps import get_actor, get_db
from app.schemas import (
    CreditCutRead,
    InvoiceRead,
    LoadCreate,
    LoadPreviewRequest,
    LoadRead,
    LoadRecalculate,
    ProfitRead,
    SettlementRead,
)
from app.services import ledger_service, load_service
from app.services.payment_service import farmer_outstanding
from app.services.record_store import RecordStore
from app.services.settings_service import load_engine_settings
from app.services.settlement_engine import calculate_credit_cut, generate_invoice_breakdown

router = APIRouter(prefix="/loads", tags=["loads"])


def _get_load(db: Session, load_id: int) -> models.Load:
    return RecordStore(db).require("loads", load_id)


@router.get("", response_model=List[LoadRead])
def list_loads(
    farmer_id: Optional[int] = Query(None),
    mill_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    mill_status: Optional[models.PaymentStatus] = Query(None),
    farmer_status: Optional[models.PaymentStatus] = Query(None),
    limit: int = Query(200, ge=1, le=2000),
    db: Session = Depends(get_db),
):
    loads = load_service.list_loads(
        db,
        farmer_id=farmer_id,
        mill_id=mill_id,
        start_date=start_date,
        end_date=end_date,
        mill_status=mill_status,
        farmer_status=farmer_status,
        limit=limit,
    )
    return [load_service.describe_load(db, ld) for ld in loads]


@router.post("/preview", response_model=SettlementRead)
def preview_load(payload: LoadPreviewRequest, db: Session = Depends(get_db)):
    """Live settlement for the load form. Nothing is stored."""

    result = load_service.preview_settlement(db, payload)
    db.rollback()
    return SettlementRead.model_validate(result)


@router.post("", response_model=LoadRead, status_code=status.HTTP_201_CREATED)
def create_load(payload: LoadCreate, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    load = load_service.create_load(db, payload, actor=actor)
    db.commit()
    db.refresh(load)
    return load_service.describe_load(db, load)


@router.get("/{load_id}", response_model=LoadRead)
def get_load(load_id: int, db: Session = Depends(get_db)):
    return load_service.describe_load(db, _get_load(db, load_id))


@router.put("/{load_id}", response_model=LoadRead)
def recalculate_load(
    load_id: int,
    payload: LoadRecalculate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """Edit a load and recompute its settlement with the current settings."""

    load = load_service.recalculate_load(db, load_id, payload, actor=actor)
    db.commit()
    db.refresh(load)
    return load_service.describe_load(db, load)


@router.delete("/{load_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_load(load_id: int, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    load_service.delete_load(db, load_id, actor=actor)
    db.commit()


@router.get("/{load_id}/invoice", response_model=InvoiceRead)
def load_invoice(load_id: int, db: Session = Depends(get_db)):
    load = _get_load(db, load_id)
    breakdown = generate_invoice_breakdown(
        load_service.settlement_from_load(load), sell_rate_per_bag=load.sell_rate_per_bag
    )
    return InvoiceRead.model_validate({"load_number": load.load_number, **asdict(breakdown)})


@router.get("/{load_id}/profit", response_model=ProfitRead)
def load_profit(load_id: int, db: Session = Depends(get_db)):
    return ProfitRead.model_validate(ledger_service.load_profit(_get_load(db, load_id)))


@router.get("/{load_id}/credit-cut", response_model=CreditCutRead)
def load_credit_cut(
    load_id: int,
    payment_date: date = Query(..., description="Planned payout date"),
    db: Session = Depends(get_db),
):
    load = _get_load(db, load_id)
    outstanding = farmer_outstanding(load)
    payable = outstanding if outstanding > 0 else load.farmer_payable
    result = calculate_credit_cut(load.load_date, payment_date, payable, load_engine_settings(db))
    db.rollback()
    return CreditCutRead.model_validate(result)
