from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app import models
from app.api.deps import get_db, get_store
from app.schemas import FarmerCreate, FarmerRead, FarmerUpdate
from app.services.record_store import RecordStore

router = APIRouter(prefix="/farmers", tags=["farmers"])


@router.get("", response_model=List[FarmerRead])
def list_farmers(
    q: str | None = Query(None, description="Quick search (name, village, phone)."),
    include_inactive: bool = Query(False),
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    query = db.query(models.Farmer)
    if not include_inactive:
        query = query.filter(models.Farmer.active.is_(True))

    if q:
        term = q.strip()
        if term:
            like_any = f"%{term}%"
            query = query.filter(
                or_(
                    models.Farmer.name.ilike(like_any),
                    models.Farmer.village.ilike(like_any),
                    models.Farmer.phone.ilike(f"{term}%"),
                )
            )

    return query.order_by(models.Farmer.name.asc()).limit(limit).all()


@router.post("", response_model=FarmerRead, status_code=status.HTTP_201_CREATED)
def create_farmer(payload: FarmerCreate, store: RecordStore = Depends(get_store)):
    farmer_id = store.add("farmers", payload.model_dump(exclude_unset=True))
    store.db.commit()
    return store.require("farmers", farmer_id)


@router.get("/{farmer_id}", response_model=FarmerRead)
def get_farmer(farmer_id: int, store: RecordStore = Depends(get_store)):
    return store.require("farmers", farmer_id, include_inactive=True)


@router.put("/{farmer_id}", response_model=FarmerRead)
def update_farmer(farmer_id: int, payload: FarmerUpdate, store: RecordStore = Depends(get_store)):
    data = payload.model_dump(exclude_unset=True)
    expected_version = data.pop("expected_version", None)
    farmer = store.update("farmers", farmer_id, data, expected_version=expected_version)
    store.db.commit()
    store.db.refresh(farmer)
    return farmer


@router.delete("/{farmer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_farmer(
    farmer_id: int,
    expected_version: int | None = Query(None),
    store: RecordStore = Depends(get_store),
):
    store.delete("farmers", farmer_id, expected_version=expected_version)
    store.db.commit()

