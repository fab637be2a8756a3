from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.domain import PaymentStatus


class MillPaymentCreate(BaseModel):
    mill_id: int
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    payment_date: date
    payment_method: str = Field("CASH", max_length=32)
    reference_number: Optional[str] = Field(None, max_length=64)
    notes: Optional[str] = None
    # Restrict the allocation to one load; default is FIFO across pending loads.
    load_id: Optional[int] = None


class MillPaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    mill_id: int
    load_id: Optional[int] = None
    payment_date: date
    amount: Decimal
    payment_method: str
    reference_number: Optional[str] = None
    allocation_method: str
    notes: Optional[str] = None
    active: bool
    created_at: Optional[datetime] = None


class FarmerPayoutRequest(BaseModel):
    load_id: int
    payment_date: date
    payment_method: str = Field("CASH", max_length=32)
    reference_number: Optional[str] = Field(None, max_length=64)
    invoice_number: Optional[str] = Field(None, max_length=32)
    notes: Optional[str] = None


class FarmerPayoutPreview(BaseModel):
    load_id: int
    load_number: str
    outstanding: Decimal
    days_diff: int
    eligible: bool
    credit_cut: Decimal
    net_payment: Decimal


class FarmerPaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    farmer_id: Optional[int] = None
    load_id: int
    payment_date: date
    gross_amount: Decimal
    credit_cut_amount: Decimal
    net_amount: Decimal
    payment_method: str
    reference_number: Optional[str] = None
    invoice_number: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class LoadPaymentStateRead(BaseModel):
    load_id: int
    load_number: str
    status: PaymentStatus
    paid_amount: Decimal
    outstanding: Decimal


class MillPaymentResult(BaseModel):
    payments: List[MillPaymentRead]
    loads: List[LoadPaymentStateRead]
    unallocated: Decimal
