from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.services.settlement_engine import CommissionPolicy


class RecordMeta(BaseModel):
    id: int
    version: int
    active: bool
    created_at: Optional[datetime] = None


class FarmerBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    village: Optional[str] = Field(None, max_length=128)
    phone: Optional[str] = Field(None, max_length=32)
    bank_account: Optional[str] = Field(None, max_length=64)
    bank_ifsc: Optional[str] = Field(None, max_length=32)
    default_rate: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    tags: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class FarmerCreate(FarmerBase):
    pass


class FarmerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    village: Optional[str] = None
    phone: Optional[str] = None
    bank_account: Optional[str] = None
    bank_ifsc: Optional[str] = None
    default_rate: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    tags: Optional[str] = None
    notes: Optional[str] = None
    expected_version: Optional[int] = None


class FarmerRead(FarmerBase, RecordMeta):
    model_config = ConfigDict(from_attributes=True)


class MillBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    village: Optional[str] = Field(None, max_length=128)
    contact_person: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=32)
    address: Optional[str] = Field(None, max_length=255)
    gstin: Optional[str] = Field(None, max_length=32)
    default_rate: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    payment_terms: Optional[str] = Field(None, max_length=128)
    commission_policy: Optional[CommissionPolicy] = None
    commission_split_percent: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)
    tags: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class MillCreate(MillBase):
    pass


class MillUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    village: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    gstin: Optional[str] = None
    default_rate: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    payment_terms: Optional[str] = None
    commission_policy: Optional[CommissionPolicy] = None
    commission_split_percent: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)
    tags: Optional[str] = None
    notes: Optional[str] = None
    expected_version: Optional[int] = None


class MillRead(MillBase, RecordMeta):
    model_config = ConfigDict(from_attributes=True)


class VehicleBase(BaseModel):
    number: str = Field(..., min_length=1, max_length=32)
    vehicle_type: Optional[str] = Field(None, max_length=64)
    owner_name: Optional[str] = Field(None, max_length=255)
    driver_name: Optional[str] = Field(None, max_length=255)
    driver_phone: Optional[str] = Field(None, max_length=32)
    notes: Optional[str] = None


class VehicleCreate(VehicleBase):
    pass


class VehicleUpdate(BaseModel):
    number: Optional[str] = Field(None, min_length=1, max_length=32)
    vehicle_type: Optional[str] = None
    owner_name: Optional[str] = None
    driver_name: Optional[str] = None
    driver_phone: Optional[str] = None
    notes: Optional[str] = None
    expected_version: Optional[int] = None


class VehicleRead(VehicleBase, RecordMeta):
    model_config = ConfigDict(from_attributes=True)
