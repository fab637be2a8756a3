from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app import models
from app.api.deps import get_db, get_store
from app.schemas import VehicleCreate, VehicleRead, VehicleUpdate
from app.services.record_store import RecordStore

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


def _normalize_number(number: str) -> str:
    return "".join(number.split()).upper()


def _ensure_unique_number(db: Session, number: str, *, exclude_id: int | None = None) -> None:
    q = db.query(models.Vehicle).filter(models.Vehicle.number == number)
    if exclude_id is not None:
        q = q.filter(models.Vehicle.id != exclude_id)
    if q.first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Vehicle already exists")


@router.get("", response_model=List[VehicleRead])
def list_vehicles(
    q: str | None = Query(None, description="Search by number or driver."),
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
):
    query = db.query(models.Vehicle)
    if not include_inactive:
        query = query.filter(models.Vehicle.active.is_(True))
    if q and q.strip():
        like_any = f"%{q.strip()}%"
        query = query.filter(
            models.Vehicle.number.ilike(like_any) | models.Vehicle.driver_name.ilike(like_any)
        )
    return query.order_by(models.Vehicle.number.asc()).all()


@router.post("", response_model=VehicleRead, status_code=status.HTTP_201_CREATED)
def create_vehicle(payload: VehicleCreate, store: RecordStore = Depends(get_store)):
    data = payload.model_dump(exclude_unset=True)
    data["number"] = _normalize_number(payload.number)
    _ensure_unique_number(store.db, data["number"])
    vehicle_id = store.add("vehicles", data)
    store.db.commit()
    return store.require("vehicles", vehicle_id)


@router.get("/{vehicle_id}", response_model=VehicleRead)
def get_vehicle(vehicle_id: int, store: RecordStore = Depends(get_store)):
    return store.require("vehicles", vehicle_id, include_inactive=True)


@router.put("/{vehicle_id}", response_model=VehicleRead)
def update_vehicle(vehicle_id: int, payload: VehicleUpdate, store: RecordStore = Depends(get_store)):
    data = payload.model_dump(exclude_unset=True)
    expected_version = data.pop("expected_version", None)
    if data.get("number"):
        data["number"] = _normalize_number(data["number"])
        _ensure_unique_number(store.db, data["number"], exclude_id=vehicle_id)
    vehicle = store.update("vehicles", vehicle_id, data, expected_version=expected_version)
    store.db.commit()
    store.db.refresh(vehicle)
    return vehicle


@router.delete("/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_vehicle(
    vehicle_id: int,
    expected_version: int | None = Query(None),
    store: RecordStore = Depends(get_store),
):
    store.delete("vehicles", vehicle_id, expected_version=expected_version)
    store.db.commit()
