from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_actor, get_db
from app.schemas import LedgerSettingsRead, LedgerSettingsUpdate
from app.services import settings_service

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=LedgerSettingsRead)
def read_settings(db: Session = Depends(get_db)):
    row = settings_service.get_settings(db)
    db.commit()
    db.refresh(row)
    return row


@router.put("", response_model=LedgerSettingsRead)
def update_settings(
    payload: LedgerSettingsUpdate,
    db: Session = Depends(get_db),
    actor: str = Depends(get_actor),
):
    """Change organisation settings. Stored loads keep the values they were saved with."""

    row = settings_service.update_settings(db, payload.model_dump(exclude_unset=True), actor=actor)
    db.commit()
    db.refresh(row)
    return row
