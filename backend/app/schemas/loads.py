from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.domain import PaymentStatus
from app.services.settlement_engine import CommissionPolicy, ExpenseLine, IntakeCase, Payer


class ExpenseEntryIn(BaseModel):
    amount: Optional[Decimal] = Field(None, decimal_places=2)
    payer: Optional[Payer] = None


class LoadInputBase(BaseModel):
    """Raw form fields. Missing numbers are reported by the engine per field."""

    case: IntakeCase
    gross_kg: Optional[Decimal] = Field(None, decimal_places=2)
    tare_kg: Optional[Decimal] = Field(None, decimal_places=2)
    declared_bags: Optional[int] = None
    buy_rate_per_bag: Optional[Decimal] = Field(None, decimal_places=2)
    sell_rate_per_bag: Optional[Decimal] = Field(None, decimal_places=2)
    commission_policy: Optional[CommissionPolicy] = None
    split_percent: Optional[Decimal] = Field(None, decimal_places=2)
    use_declared_for_commission: bool = False
    expenses: Dict[ExpenseLine, ExpenseEntryIn] = Field(default_factory=dict)


class LoadPreviewRequest(LoadInputBase):
    load_date: Optional[date] = None
    mill_id: Optional[int] = None


class LoadCreate(LoadInputBase):
    load_date: date
    farmer_id: Optional[int] = None
    mill_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    notes: Optional[str] = None


class LoadRecalculate(BaseModel):
    """Fields to change on an existing load; the settlement is recomputed."""

    load_date: Optional[date] = None
    farmer_id: Optional[int] = None
    mill_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    case: Optional[IntakeCase] = None
    gross_kg: Optional[Decimal] = Field(None, decimal_places=2)
    tare_kg: Optional[Decimal] = Field(None, decimal_places=2)
    declared_bags: Optional[int] = None
    buy_rate_per_bag: Optional[Decimal] = Field(None, decimal_places=2)
    sell_rate_per_bag: Optional[Decimal] = Field(None, decimal_places=2)
    commission_policy: Optional[CommissionPolicy] = None
    split_percent: Optional[Decimal] = Field(None, decimal_places=2)
    use_declared_for_commission: Optional[bool] = None
    expenses: Optional[Dict[ExpenseLine, ExpenseEntryIn]] = None
    notes: Optional[str] = None
    expected_version: Optional[int] = None


class ExpenseAllocationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    line: ExpenseLine
    amount: Decimal
    payer: Payer


class SettlementRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    deduction_kg: Decimal
    net_kg: Decimal
    net_bags: int
    commission_bags: int
    commission_amount: Decimal
    farmer_commission_share: Decimal
    mill_commission_share: Decimal
    expense_lines: List[ExpenseAllocationRead]
    farmer_expenses_total: Decimal
    mill_expenses_total: Decimal
    company_expenses_total: Decimal
    farmer_gross_amount: Decimal
    farmer_total_deductions: Decimal
    farmer_payable: Decimal
    farmer_payable_rounded: Decimal
    mill_gross_amount: Decimal
    mill_total_deductions: Decimal
    mill_receivable: Decimal
    mill_receivable_rounded: Decimal


class LoadRead(BaseModel):
    id: int
    load_number: str
    load_date: date
    farmer_id: Optional[int] = None
    farmer_name: str
    mill_id: Optional[int] = None
    mill_name: str
    vehicle_id: Optional[int] = None
    vehicle_number: str
    case: IntakeCase
    gross_kg: Decimal
    tare_kg: Optional[Decimal] = None
    declared_bags: int
    buy_rate_per_bag: Decimal
    sell_rate_per_bag: Decimal
    commission_policy: CommissionPolicy
    split_percent: Decimal
    use_declared_for_commission: bool
    settlement: SettlementRead
    mill_payment_status: PaymentStatus
    mill_paid_amount: Decimal
    mill_paid_date: Optional[date] = None
    farmer_payment_status: PaymentStatus
    farmer_paid_amount: Decimal
    farmer_paid_date: Optional[date] = None
    credit_cut_amount: Decimal
    notes: Optional[str] = None
    version: int
    active: bool
    settled_at: Optional[datetime] = None


class CreditCutRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    days_diff: int
    eligible: bool
    payable_amount: Decimal
    credit_cut: Decimal
    net_payment: Decimal


class InvoiceLineRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    label: str
    amount: Decimal


class InvoiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    load_number: str
    add_items: List[InvoiceLineRead]
    total_add: Decimal
    less_items: List[InvoiceLineRead]
    total_less: Decimal
    base_amount: Decimal
    amount_after_add: Decimal
    final_amount: Decimal


class ProfitRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rate_margin: Decimal
    commission_income: Decimal
    credit_cut_income: Decimal
    total_income: Decimal
    total_expenses: Decimal
    net_profit: Decimal
