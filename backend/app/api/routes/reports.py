from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas import FarmerLedgerRead, MillLedgerRead, ProfitReportRead
from app.services import ledger_service

router = APIRouter(tags=["reports"])


@router.get("/reports/profit", response_model=ProfitReportRead)
def profit_report(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
):
    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="start_date must be on or before end_date"
        )
    return ledger_service.profit_report(db, start_date=start_date, end_date=end_date)


@router.get("/ledgers/farmers/{farmer_id}", response_model=FarmerLedgerRead)
def farmer_ledger(farmer_id: int, db: Session = Depends(get_db)):
    return ledger_service.farmer_ledger(db, farmer_id)


@router.get("/ledgers/mills/{mill_id}", response_model=MillLedgerRead)
def mill_ledger(mill_id: int, db: Session = Depends(get_db)):
    return ledger_service.mill_ledger(db, mill_id)
