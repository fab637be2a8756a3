from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.services.settlement_engine import CommissionPolicy


class LedgerSettingsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    organization_name: str
    load_number_prefix: str
    bag_weight_kg: Decimal
    case1_deduct_per_bag_kg: Decimal
    case2_deduct_per_ton_kg: Decimal
    commission_per_bag: Decimal
    companion_per_bag_default: Decimal
    credit_cut_percent: Decimal
    credit_cut_days: int
    default_commission_policy: CommissionPolicy
    default_commission_split_percent: Decimal
    payout_rounding: int
    version: int
    updated_at: Optional[datetime] = None


class LedgerSettingsUpdate(BaseModel):
    """Partial update; range checks happen in the settings service."""

    organization_name: Optional[str] = Field(None, min_length=1, max_length=255)
    load_number_prefix: Optional[str] = Field(None, min_length=1, max_length=16, pattern=r"^[A-Z0-9]+$")
    bag_weight_kg: Optional[Decimal] = Field(None, decimal_places=3)
    case1_deduct_per_bag_kg: Optional[Decimal] = Field(None, decimal_places=3)
    case2_deduct_per_ton_kg: Optional[Decimal] = Field(None, decimal_places=3)
    commission_per_bag: Optional[Decimal] = Field(None, decimal_places=2)
    companion_per_bag_default: Optional[Decimal] = Field(None, decimal_places=2)
    credit_cut_percent: Optional[Decimal] = Field(None, decimal_places=3)
    credit_cut_days: Optional[int] = None
    default_commission_policy: Optional[CommissionPolicy] = None
    default_commission_split_percent: Optional[Decimal] = Field(None, decimal_places=2)
    payout_rounding: Optional[int] = None
