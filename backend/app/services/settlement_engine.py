"""
Pure settlement engine for rice-trade loads.

Turns a load's raw measurements, rates and expense allocations into the farmer
payable, mill receivable, commission split and broker profit. Everything here is
deterministic and side-effect free: callers pass an explicit settings snapshot,
so the same input always yields the same output (live preview and final save run
the exact same code).

Canonical rules
- Net bags: half-up rounding of net kg / bag weight (no ceil variant).
- Commission bags: net bags unless the load opts into declared bags.
- SPLIT commission: farmer share is rounded, the mill gets the remainder, so the
  two shares always add up to the commission amount.
- Payout rounding is applied to the final payable/receivable only.
- Credit cut is a separate function evaluated at payout time.

All arithmetic is done on `decimal.Decimal`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from app.core.errors import ConfigurationError, FieldError, ValidationError

# -----------------------------
# Enums / Data Models
# -----------------------------


class IntakeCase(str, Enum):
    CASE1 = "CASE1"  # farmer loading: deduction per declared bag
    CASE2 = "CASE2"  # direct delivery: deduction per ton of gross weight


class CommissionPolicy(str, Enum):
    FARMER = "FARMER"
    MILL = "MILL"
    SPLIT = "SPLIT"
    NONE = "NONE"


class Payer(str, Enum):
    FARMER = "FARMER"
    MILL = "MILL"
    COMPANY = "COMPANY"


class ExpenseLine(str, Enum):
    LABOUR = "labour"
    COMPANION = "companion"
    WEIGHT_FEE = "weight_fee"
    VEHICLE_RENT = "vehicle_rent"
    FREIGHT_ADVANCE = "freight_advance"
    GUMASTHA_RUSUL = "gumastha_rusul"
    CASH_DRIVER = "cash_driver"
    HAMALI = "hamali"
    OTHER = "other"


DEFAULT_EXPENSE_PAYERS: dict[ExpenseLine, Payer] = {
    ExpenseLine.LABOUR: Payer.MILL,
    ExpenseLine.COMPANION: Payer.FARMER,
    ExpenseLine.WEIGHT_FEE: Payer.MILL,
    ExpenseLine.VEHICLE_RENT: Payer.MILL,
    ExpenseLine.FREIGHT_ADVANCE: Payer.MILL,
    ExpenseLine.GUMASTHA_RUSUL: Payer.FARMER,
    ExpenseLine.CASH_DRIVER: Payer.FARMER,
    ExpenseLine.HAMALI: Payer.FARMER,
    ExpenseLine.OTHER: Payer.COMPANY,
}

ALLOWED_PAYOUT_ROUNDING: tuple[int, ...] = (1, 10, 100)

_ZERO = Decimal("0")
_ONE = Decimal("1")
_CENT = Decimal("0.01")
_HUNDRED = Decimal("100")
_KG_PER_TON = Decimal("1000")


@dataclass(frozen=True)
class EngineSettings:
    bag_weight_kg: Decimal
    case1_deduct_per_bag_kg: Decimal
    case2_deduct_per_ton_kg: Decimal
    commission_per_bag: Decimal
    companion_per_bag_default: Decimal
    credit_cut_percent: Decimal
    credit_cut_days: int
    default_commission_policy: CommissionPolicy = CommissionPolicy.FARMER
    default_commission_split_percent: Decimal = Decimal("50")
    payout_rounding: int = 1


@dataclass(frozen=True)
class ExpenseEntry:
    """One expense line as entered. `None` fields fall back to defaults."""

    amount: Optional[Decimal] = None
    payer: Optional[Payer] = None


@dataclass(frozen=True)
class LoadInput:
    case: IntakeCase
    gross_kg: Decimal
    declared_bags: int
    buy_rate_per_bag: Decimal
    sell_rate_per_bag: Decimal
    tare_kg: Optional[Decimal] = None
    commission_policy: CommissionPolicy = CommissionPolicy.FARMER
    split_percent: Decimal = Decimal("50")
    use_declared_for_commission: bool = False
    expenses: Mapping[ExpenseLine, ExpenseEntry] = field(default_factory=dict)
    load_date: Optional[date] = None


@dataclass(frozen=True)
class ExpenseAllocation:
    line: ExpenseLine
    amount: Decimal
    payer: Payer


@dataclass(frozen=True)
class SettlementResult:
    deduction_kg: Decimal
    net_kg: Decimal
    net_bags: int
    commission_bags: int
    commission_amount: Decimal
    farmer_commission_share: Decimal
    mill_commission_share: Decimal
    expense_lines: tuple[ExpenseAllocation, ...]
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

    def expense(self, line: ExpenseLine) -> ExpenseAllocation:
        for alloc in self.expense_lines:
            if alloc.line == line:
                return alloc
        return ExpenseAllocation(line=line, amount=_ZERO, payer=DEFAULT_EXPENSE_PAYERS[line])


@dataclass(frozen=True)
class CreditCutResult:
    days_diff: int
    eligible: bool
    payable_amount: Decimal
    credit_cut: Decimal
    net_payment: Decimal


@dataclass(frozen=True)
class InvoiceLine:
    label: str
    amount: Decimal


@dataclass(frozen=True)
class InvoiceBreakdown:
    add_items: tuple[InvoiceLine, ...]
    total_add: Decimal
    less_items: tuple[InvoiceLine, ...]
    total_less: Decimal
    base_amount: Decimal
    amount_after_add: Decimal
    final_amount: Decimal


@dataclass(frozen=True)
class ProfitBreakdown:
    rate_margin: Decimal
    commission_income: Decimal
    credit_cut_income: Decimal
    total_income: Decimal
    total_expenses: Decimal
    net_profit: Decimal


# -----------------------------
# Numeric helpers
# -----------------------------


def to_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("boolean is not a numeric amount")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    s = str(value).strip()
    if not s:
        return None
    try:
        return Decimal(s)
    except InvalidOperation as exc:
        raise ValueError(f"not a number: {value!r}") from exc


def round_half_up(value: Decimal, exponent: Decimal = _ONE) -> Decimal:
    return value.quantize(exponent, rounding=ROUND_HALF_UP)


def round_to_unit(value: Decimal, unit: int) -> Decimal:
    """Round to the nearest multiple of `unit` (1, 10, 100), half-up."""

    if unit <= 0:
        raise ConfigurationError("payout_rounding", "rounding unit must be a positive integer")
    step = Decimal(unit)
    return round_half_up(value / step) * step


def _to_date(v: Any) -> Optional[date]:
    if v is None:
        return None
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    if isinstance(v, str):
        s = v.strip()
        if not s:
            return None
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    raise TypeError(f"cannot interpret {v!r} as a date")


# -----------------------------
# Validation
# -----------------------------


def validate_settings(settings: EngineSettings) -> None:
    """Raise ConfigurationError on the first invalid organisation setting."""

    bag = to_decimal(settings.bag_weight_kg)
    if bag is None or bag <= 0:
        raise ConfigurationError("bag_weight_kg", "bag weight must be greater than 0")

    if settings.payout_rounding not in ALLOWED_PAYOUT_ROUNDING:
        raise ConfigurationError(
            "payout_rounding",
            f"payout rounding must be one of {', '.join(str(u) for u in ALLOWED_PAYOUT_ROUNDING)}",
        )

    try:
        CommissionPolicy(settings.default_commission_policy)
    except ValueError:
        raise ConfigurationError(
            "default_commission_policy", "commission policy must be FARMER, MILL, SPLIT or NONE"
        ) from None

    split = to_decimal(settings.default_commission_split_percent)
    if split is None or split < 0 or split > _HUNDRED:
        raise ConfigurationError(
            "default_commission_split_percent", "split percent must be between 0 and 100"
        )

    for name in (
        "case1_deduct_per_bag_kg",
        "case2_deduct_per_ton_kg",
        "commission_per_bag",
        "companion_per_bag_default",
        "credit_cut_percent",
    ):
        v = to_decimal(getattr(settings, name))
        if v is None or v < 0:
            raise ConfigurationError(name, "must be zero or greater")

    if settings.credit_cut_percent > _HUNDRED:
        raise ConfigurationError("credit_cut_percent", "credit cut cannot exceed 100%")
    if settings.credit_cut_days is None or int(settings.credit_cut_days) < 0:
        raise ConfigurationError("credit_cut_days", "must be zero or greater")


def _check_positive(errors: list[FieldError], name: str, value: Any, label: str) -> None:
    if value is None:
        errors.append(FieldError(name, f"{label} is required"))
    elif value <= 0:
        errors.append(FieldError(name, f"{label} must be greater than 0"))


def validate_load_input(load: LoadInput, *, today: Optional[date] = None) -> None:
    """Collect every precondition violation on a load into one ValidationError."""

    errors: list[FieldError] = []

    if load.case not in (IntakeCase.CASE1, IntakeCase.CASE2):
        errors.append(FieldError("case", "intake case must be CASE1 or CASE2"))

    _check_positive(errors, "gross_kg", load.gross_kg, "Gross weight")
    _check_positive(errors, "declared_bags", load.declared_bags, "Declared bags")
    _check_positive(errors, "buy_rate_per_bag", load.buy_rate_per_bag, "Buy rate")
    _check_positive(errors, "sell_rate_per_bag", load.sell_rate_per_bag, "Sell rate")

    if load.case == IntakeCase.CASE2 and load.tare_kg is None:
        errors.append(FieldError("tare_kg", "Tare weight is required for direct delivery"))
    if load.tare_kg is not None:
        if load.tare_kg < 0:
            errors.append(FieldError("tare_kg", "Tare weight cannot be negative"))
        elif load.gross_kg is not None and load.gross_kg > 0 and load.tare_kg >= load.gross_kg:
            errors.append(FieldError("tare_kg", "Gross weight must be greater than tare weight"))

    if load.commission_policy == CommissionPolicy.SPLIT:
        if load.split_percent is None or not (_ZERO <= load.split_percent <= _HUNDRED):
            errors.append(FieldError("split_percent", "Split percent must be between 0 and 100"))

    for line, entry in (load.expenses or {}).items():
        if entry.amount is not None and entry.amount < 0:
            errors.append(FieldError(f"expenses.{ExpenseLine(line).value}", "Amount cannot be negative"))

    if today is not None:
        if load.load_date is None:
            errors.append(FieldError("date", "Date is required"))
        elif load.load_date > today:
            errors.append(FieldError("date", "Cannot create load for future date"))

    if errors:
        raise ValidationError(errors)


# -----------------------------
# Settlement
# -----------------------------


def deduction_kg(settings: EngineSettings, load: LoadInput) -> Decimal:
    if load.case == IntakeCase.CASE1:
        return Decimal(load.declared_bags) * settings.case1_deduct_per_bag_kg
    return load.gross_kg * (settings.case2_deduct_per_ton_kg / _KG_PER_TON)


def split_commission(
    commission_amount: Decimal, policy: CommissionPolicy, split_percent: Decimal
) -> tuple[Decimal, Decimal]:
    """Return (farmer_share, mill_share); the two always sum to the amount."""

    if policy == CommissionPolicy.FARMER:
        return commission_amount, _ZERO
    if policy == CommissionPolicy.MILL:
        return _ZERO, commission_amount
    if policy == CommissionPolicy.SPLIT:
        farmer_share = round_half_up(commission_amount * split_percent / _HUNDRED)
        return farmer_share, commission_amount - farmer_share
    return _ZERO, _ZERO


def allocate_expenses(
    expenses: Mapping[ExpenseLine, ExpenseEntry],
    *,
    companion_default: Decimal,
) -> tuple[ExpenseAllocation, ...]:
    out: list[ExpenseAllocation] = []
    for line in ExpenseLine:
        entry = expenses.get(line) or ExpenseEntry()
        if entry.amount is None:
            amount = companion_default if line == ExpenseLine.COMPANION else _ZERO
        else:
            amount = entry.amount
        payer = Payer(entry.payer) if entry.payer else DEFAULT_EXPENSE_PAYERS[line]
        out.append(ExpenseAllocation(line=line, amount=amount, payer=payer))
    return tuple(out)


def _total_for(allocations: Iterable[ExpenseAllocation], payer: Payer) -> Decimal:
    return sum((a.amount for a in allocations if a.payer == payer), _ZERO)


def compute_settlement(settings: EngineSettings, load: LoadInput) -> SettlementResult:
    """Compute the full settlement for one load.

    Raises ConfigurationError for unusable settings and ValidationError for
    load preconditions; never returns a partially filled result.
    """

    validate_settings(settings)
    validate_load_input(load)

    tare = load.tare_kg if load.tare_kg is not None else _ZERO
    deduction = deduction_kg(settings, load)
    net_kg = max(_ZERO, load.gross_kg - tare - deduction)
    net_bags = int(round_half_up(net_kg / settings.bag_weight_kg))

    commission_bags = int(load.declared_bags) if load.use_declared_for_commission else net_bags
    commission_amount = Decimal(commission_bags) * settings.commission_per_bag
    farmer_share, mill_share = split_commission(
        commission_amount, CommissionPolicy(load.commission_policy), load.split_percent
    )

    allocations = allocate_expenses(
        load.expenses or {},
        companion_default=Decimal(commission_bags) * settings.companion_per_bag_default,
    )
    farmer_expenses = _total_for(allocations, Payer.FARMER)
    mill_expenses = _total_for(allocations, Payer.MILL)
    company_expenses = _total_for(allocations, Payer.COMPANY)

    farmer_gross = Decimal(net_bags) * load.buy_rate_per_bag
    farmer_deductions = farmer_expenses + farmer_share
    farmer_payable = farmer_gross - farmer_deductions

    mill_gross = Decimal(net_bags) * load.sell_rate_per_bag
    mill_deductions = mill_expenses + mill_share
    mill_receivable = mill_gross - mill_deductions

    return SettlementResult(
        deduction_kg=round_half_up(deduction, _CENT),
        net_kg=round_half_up(net_kg, _CENT),
        net_bags=net_bags,
        commission_bags=commission_bags,
        commission_amount=commission_amount,
        farmer_commission_share=farmer_share,
        mill_commission_share=mill_share,
        expense_lines=allocations,
        farmer_expenses_total=farmer_expenses,
        mill_expenses_total=mill_expenses,
        company_expenses_total=company_expenses,
        farmer_gross_amount=farmer_gross,
        farmer_total_deductions=farmer_deductions,
        farmer_payable=farmer_payable,
        farmer_payable_rounded=round_to_unit(farmer_payable, settings.payout_rounding),
        mill_gross_amount=mill_gross,
        mill_total_deductions=mill_deductions,
        mill_receivable=mill_receivable,
        mill_receivable_rounded=round_to_unit(mill_receivable, settings.payout_rounding),
    )


# -----------------------------
# Credit cut (payout time)
# -----------------------------


def calculate_credit_cut(
    load_date: date | datetime | str,
    payment_date: date | datetime | str,
    payable_amount: Decimal,
    settings: EngineSettings,
) -> CreditCutResult:
    """Early-payment discount for a farmer payout.

    Eligible when the payment falls 0..credit_cut_days days (inclusive) after
    the load date. Does not touch any stored settlement.
    """

    ld = _to_date(load_date)
    pd = _to_date(payment_date)
    if ld is None or pd is None:
        raise ValidationError(FieldError("payment_date", "load date and payment date are required"))

    payable = to_decimal(payable_amount) or _ZERO
    days_diff = (pd - ld).days
    eligible = 0 <= days_diff <= int(settings.credit_cut_days)
    if not eligible:
        return CreditCutResult(
            days_diff=days_diff,
            eligible=False,
            payable_amount=payable,
            credit_cut=_ZERO,
            net_payment=payable,
        )

    cut = round_half_up(payable * settings.credit_cut_percent / _HUNDRED)
    return CreditCutResult(
        days_diff=days_diff,
        eligible=True,
        payable_amount=payable,
        credit_cut=cut,
        net_payment=payable - cut,
    )


# -----------------------------
# Profit / invoice
# -----------------------------


def calculate_profit(
    result: SettlementResult,
    *,
    buy_rate_per_bag: Decimal,
    sell_rate_per_bag: Decimal,
    credit_cut_amount: Decimal = _ZERO,
) -> ProfitBreakdown:
    rate_margin = (sell_rate_per_bag - buy_rate_per_bag) * Decimal(result.net_bags)
    credit_cut_income = credit_cut_amount or _ZERO
    total_income = result.commission_amount + credit_cut_income + rate_margin
    total_expenses = result.company_expenses_total
    return ProfitBreakdown(
        rate_margin=rate_margin,
        commission_income=result.commission_amount,
        credit_cut_income=credit_cut_income,
        total_income=total_income,
        total_expenses=total_expenses,
        net_profit=total_income - total_expenses,
    )


_INVOICE_ADD_LINES: tuple[tuple[ExpenseLine, str], ...] = (
    (ExpenseLine.FREIGHT_ADVANCE, "Freight Advance"),
    (ExpenseLine.VEHICLE_RENT, "Freight/Vehicle Rent"),
)

_INVOICE_LESS_LINES: tuple[tuple[ExpenseLine, str], ...] = (
    (ExpenseLine.GUMASTHA_RUSUL, "Gumastha Rusul"),
    (ExpenseLine.WEIGHT_FEE, "Weightment"),
    (ExpenseLine.CASH_DRIVER, "Cash Driver"),
    (ExpenseLine.HAMALI, "HAMALI"),
    (ExpenseLine.LABOUR, "Labour"),
    (ExpenseLine.COMPANION, "Companion"),
    (ExpenseLine.OTHER, "Other Expenses"),
)


def generate_invoice_breakdown(
    result: SettlementResult, *, sell_rate_per_bag: Decimal
) -> InvoiceBreakdown:
    """Mill invoice in ADD/LESS form. Zero lines are left out."""

    add_items: list[InvoiceLine] = []
    if result.commission_amount > 0:
        add_items.append(InvoiceLine("Brokerage", result.commission_amount))
    for line, label in _INVOICE_ADD_LINES:
        amount = result.expense(line).amount
        if amount > 0:
            add_items.append(InvoiceLine(label, amount))

    less_items = [
        InvoiceLine(label, result.expense(line).amount)
        for line, label in _INVOICE_LESS_LINES
        if result.expense(line).amount > 0
    ]

    total_add = sum((i.amount for i in add_items), _ZERO)
    total_less = sum((i.amount for i in less_items), _ZERO)
    base = result.mill_gross_amount or Decimal(result.net_bags) * sell_rate_per_bag
    after_add = base + total_add
    return InvoiceBreakdown(
        add_items=tuple(add_items),
        total_add=total_add,
        less_items=tuple(less_items),
        total_less=total_less,
        base_amount=base,
        amount_after_add=after_add,
        final_amount=after_add - total_less,
    )
