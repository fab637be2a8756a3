from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class PendingLoadRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    load_id: int
    load_number: str
    load_date: date
    due: Decimal
    paid: Decimal
    outstanding: Decimal
    status: str


class FarmerLedgerRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    farmer_id: int
    farmer_name: str
    total_loads: int
    total_bags: int
    total_payable: Decimal
    total_paid: Decimal
    total_credit_cut: Decimal
    outstanding: Decimal
    pending_loads: List[PendingLoadRead]


class MillLedgerRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    mill_id: int
    mill_name: str
    total_loads: int
    total_bags: int
    total_receivable: Decimal
    total_received: Decimal
    outstanding: Decimal
    pending_loads: List[PendingLoadRead]


class ProfitReportRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    load_count: int
    total_bags: int
    rate_margin: Decimal
    commission_income: Decimal
    credit_cut_income: Decimal
    total_income: Decimal
    total_expenses: Decimal
    net_profit: Decimal
