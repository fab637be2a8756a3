from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app import models
from app.api.deps import get_db, get_store
from app.schemas import MillCreate, MillRead, MillUpdate
from app.services.record_store import RecordStore

router = APIRouter(prefix="/mills", tags=["mills"])


@router.get("", response_model=List[MillRead])
def list_mills(
    q: str | None = Query(None, description="Quick search (name, village, contact)."),
    include_inactive: bool = Query(False),
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    query = db.query(models.Mill)
    if not include_inactive:
        query = query.filter(models.Mill.active.is_(True))

    if q:
        term = q.strip()
        if term:
            like_any = f"%{term}%"
            query = query.filter(
                or_(
                    models.Mill.name.ilike(like_any),
                    models.Mill.village.ilike(like_any),
                    models.Mill.contact_person.ilike(like_any),
                    models.Mill.gstin.ilike(f"{term}%"),
                )
            )

    return query.order_by(models.Mill.name.asc()).limit(limit).all()


@router.post("", response_model=MillRead, status_code=status.HTTP_201_CREATED)
def create_mill(payload: MillCreate, store: RecordStore = Depends(get_store)):
    mill_id = store.add("mills", payload.model_dump(exclude_unset=True))
    store.db.commit()
    return store.require("mills", mill_id)


@router.get("/{mill_id}", response_model=MillRead)
def get_mill(mill_id: int, store: RecordStore = Depends(get_store)):
    return store.require("mills", mill_id, include_inactive=True)


@router.put("/{mill_id}", response_model=MillRead)
def update_mill(mill_id: int, payload: MillUpdate, store: RecordStore = Depends(get_store)):
    """Edit a mill. New commission defaults only affect loads saved afterwards."""

    data = payload.model_dump(exclude_unset=True)
    expected_version = data.pop("expected_version", None)
    mill = store.update("mills", mill_id, data, expected_version=expected_version)
    store.db.commit()
    store.db.refresh(mill)
    return mill


@router.delete("/{mill_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_mill(
    mill_id: int,
    expected_version: int | None = Query(None),
    store: RecordStore = Depends(get_store),
):
    store.delete("mills", mill_id, expected_version=expected_version)
    store.db.commit()

