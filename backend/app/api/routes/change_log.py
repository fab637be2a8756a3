from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas import ChangeLogRead
from app.services.audit import list_changes

router = APIRouter(prefix="/change-log", tags=["change-log"])


@router.get("", response_model=List[ChangeLogRead])
def list_change_log(
    entity_type: Optional[str] = Query(None, description="farmers, mills, vehicles, loads, ..."),
    entity_id: Optional[int] = Query(None),
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    return list_changes(db, entity_type=entity_type, entity_id=entity_id, limit=limit)
