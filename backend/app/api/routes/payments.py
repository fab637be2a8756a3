from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_actor, get_db
from app.schemas import (
    FarmerPaymentRead,
    FarmerPayoutPreview,
    FarmerPayoutRequest,
    LoadPaymentStateRead,
    MillPaymentCreate,
    MillPaymentRead,
    MillPaymentResult,
)
from app.services import payment_service

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/mill", response_model=List[MillPaymentRead])
def list_mill_payments(
    mill_id: Optional[int] = Query(None),
    load_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    return payment_service.list_mill_payments(db, mill_id=mill_id, load_id=load_id)


@router.post("/mill", response_model=MillPaymentResult, status_code=status.HTTP_201_CREATED)
def record_mill_payment(
    payload: MillPaymentCreate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    outcome = payment_service.record_mill_payment(db, payload, actor=actor)
    db.commit()
    return MillPaymentResult(
        payments=[MillPaymentRead.model_validate(p) for p in outcome.payments],
        loads=[
            LoadPaymentStateRead(
                load_id=ld.id,
                load_number=ld.load_number,
                status=ld.mill_payment_status,
                paid_amount=ld.mill_paid_amount,
                outstanding=payment_service.mill_outstanding(ld),
            )
            for ld in outcome.loads
        ],
        unallocated=outcome.unallocated,
    )


@router.delete("/mill/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_mill_payment(payment_id: int, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    payment_service.delete_mill_payment(db, payment_id, actor=actor)
    db.commit()


@router.get("/farmer", response_model=List[FarmerPaymentRead])
def list_farmer_payouts(
    farmer_id: Optional[int] = Query(None),
    load_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    return payment_service.list_farmer_payouts(db, farmer_id=farmer_id, load_id=load_id)


@router.get("/farmer/preview", response_model=FarmerPayoutPreview)
def preview_farmer_payout(
    load_id: int = Query(...),
    payment_date: date = Query(...),
    db: Session = Depends(get_db),
):
    quote = payment_service.preview_farmer_payout(db, load_id, payment_date)
    db.rollback()
    return FarmerPayoutPreview(
        load_id=quote.load.id,
        load_number=quote.load.load_number,
        outstanding=quote.outstanding,
        days_diff=quote.credit_cut.days_diff,
        eligible=quote.credit_cut.eligible,
        credit_cut=quote.credit_cut.credit_cut,
        net_payment=quote.credit_cut.net_payment,
    )


@router.post("/farmer", response_model=FarmerPaymentRead, status_code=status.HTTP_201_CREATED)
def record_farmer_payout(
    payload: FarmerPayoutRequest,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    payout = payment_service.record_farmer_payout(db, payload, actor=actor)
    db.commit()
    db.refresh(payout)
    return payout


@router.delete("/farmer/{payout_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_farmer_payout(payout_id: int, db: Session = Depends(get_db), actor: str = Depends(get_actor)):
    payment_service.delete_farmer_payout(db, payout_id, actor=actor)
    db.commit()

