# ruff: noqa: E501
from datetime import date, datetime
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.services.settlement_engine import CommissionPolicy, ExpenseLine, IntakeCase, Payer

# Money is stored with 2 decimals; every engine output is already at that scale.
Money = Numeric(14, 2)
Weight = Numeric(12, 2)


class PaymentStatus(PyEnum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    FULL = "FULL"


class ChangeAction(PyEnum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class RecordMixin:
    """Bookkeeping columns shared by every store-managed entity."""

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)


class LedgerSettings(Base):
    """Organisation-wide settings. Singleton row (id=1)."""

    __tablename__ = "ledger_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    organization_name: Mapped[str] = mapped_column(String(255), nullable=False, default="Rice Trade Organization")
    load_number_prefix: Mapped[str] = mapped_column(String(16), nullable=False, default="ORG")
    bag_weight_kg: Mapped[Decimal] = mapped_column(Numeric(10, 3), nullable=False)
    case1_deduct_per_bag_kg: Mapped[Decimal] = mapped_column(Numeric(10, 3), nullable=False)
    case2_deduct_per_ton_kg: Mapped[Decimal] = mapped_column(Numeric(10, 3), nullable=False)
    commission_per_bag: Mapped[Decimal] = mapped_column(Money, nullable=False)
    companion_per_bag_default: Mapped[Decimal] = mapped_column(Money, nullable=False)
    credit_cut_percent: Mapped[Decimal] = mapped_column(Numeric(6, 3), nullable=False)
    credit_cut_days: Mapped[int] = mapped_column(Integer, nullable=False)
    default_commission_policy: Mapped[CommissionPolicy] = mapped_column(
        Enum(CommissionPolicy, native_enum=False), nullable=False, default=CommissionPolicy.FARMER
    )
    default_commission_split_percent: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    payout_rounding: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class Farmer(RecordMixin, Base):
    __tablename__ = "farmers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    village: Mapped[str | None] = mapped_column(String(128), index=True)
    phone: Mapped[str | None] = mapped_column(String(32), index=True)
    bank_account: Mapped[str | None] = mapped_column(String(64))
    bank_ifsc: Mapped[str | None] = mapped_column(String(32))
    default_rate: Mapped[Decimal | None] = mapped_column(Money)
    tags: Mapped[str | None] = mapped_column(String(255))
    notes: Mapped[str | None] = mapped_column(Text)


class Mill(RecordMixin, Base):
    __tablename__ = "mills"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    village: Mapped[str | None] = mapped_column(String(128), index=True)
    contact_person: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(32))
    address: Mapped[str | None] = mapped_column(String(255))
    gstin: Mapped[str | None] = mapped_column(String(32))
    default_rate: Mapped[Decimal | None] = mapped_column(Money)
    payment_terms: Mapped[str | None] = mapped_column(String(128))
    # Fallback commission terms for loads delivered to this mill.
    commission_policy: Mapped[CommissionPolicy | None] = mapped_column(
        Enum(CommissionPolicy, native_enum=False), nullable=True
    )
    commission_split_percent: Mapped[Decimal | None] = mapped_column(Numeric(6, 2))
    tags: Mapped[str | None] = mapped_column(String(255))
    notes: Mapped[str | None] = mapped_column(Text)


class Vehicle(RecordMixin, Base):
    __tablename__ = "vehicles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    vehicle_type: Mapped[str | None] = mapped_column(String(64))
    owner_name: Mapped[str | None] = mapped_column(String(255))
    driver_name: Mapped[str | None] = mapped_column(String(255))
    driver_phone: Mapped[str | None] = mapped_column(String(32))
    notes: Mapped[str | None] = mapped_column(Text)


class Load(RecordMixin, Base):
    """A shipment between one farmer and one mill with its settlement snapshot.

    Party ids are plain columns: a dangling reference is tolerated.
    """

    __tablename__ = "loads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    load_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
    load_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    farmer_id: Mapped[int | None] = mapped_column(Integer, index=True)
    mill_id: Mapped[int | None] = mapped_column(Integer, index=True)
    vehicle_id: Mapped[int | None] = mapped_column(Integer, index=True)

    # Raw input
    case: Mapped[IntakeCase] = mapped_column(Enum(IntakeCase, native_enum=False), nullable=False)
    gross_kg: Mapped[Decimal] = mapped_column(Weight, nullable=False)
    tare_kg: Mapped[Decimal | None] = mapped_column(Weight)
    declared_bags: Mapped[int] = mapped_column(Integer, nullable=False)
    buy_rate_per_bag: Mapped[Decimal] = mapped_column(Money, nullable=False)
    sell_rate_per_bag: Mapped[Decimal] = mapped_column(Money, nullable=False)
    commission_policy: Mapped[CommissionPolicy] = mapped_column(
        Enum(CommissionPolicy, native_enum=False), nullable=False
    )
    split_percent: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("50"))
    use_declared_for_commission: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Settlement snapshot, written once by the engine and stored verbatim
    deduction_kg: Mapped[Decimal] = mapped_column(Weight, nullable=False)
    net_kg: Mapped[Decimal] = mapped_column(Weight, nullable=False)
    net_bags: Mapped[int] = mapped_column(Integer, nullable=False)
    commission_bags: Mapped[int] = mapped_column(Integer, nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    farmer_commission_share: Mapped[Decimal] = mapped_column(Money, nullable=False)
    mill_commission_share: Mapped[Decimal] = mapped_column(Money, nullable=False)
    farmer_expenses_total: Mapped[Decimal] = mapped_column(Money, nullable=False)
    mill_expenses_total: Mapped[Decimal] = mapped_column(Money, nullable=False)
    company_expenses_total: Mapped[Decimal] = mapped_column(Money, nullable=False)
    farmer_gross_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    farmer_total_deductions: Mapped[Decimal] = mapped_column(Money, nullable=False)
    farmer_payable_exact: Mapped[Decimal] = mapped_column(Money, nullable=False)
    farmer_payable: Mapped[Decimal] = mapped_column(Money, nullable=False)
    mill_gross_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    mill_total_deductions: Mapped[Decimal] = mapped_column(Money, nullable=False)
    mill_receivable_exact: Mapped[Decimal] = mapped_column(Money, nullable=False)
    mill_receivable: Mapped[Decimal] = mapped_column(Money, nullable=False)
    settled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Payment tracking
    mill_payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, native_enum=False), nullable=False, default=PaymentStatus.PENDING, index=True
    )
    mill_paid_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    mill_paid_date: Mapped[date | None] = mapped_column(Date)
    farmer_payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, native_enum=False), nullable=False, default=PaymentStatus.PENDING, index=True
    )
    farmer_paid_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    farmer_paid_date: Mapped[date | None] = mapped_column(Date)
    credit_cut_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))

    notes: Mapped[str | None] = mapped_column(Text)

    expenses = relationship(
        "LoadExpense",
        back_populates="load",
        cascade="all, delete-orphan",
        order_by="LoadExpense.id",
        lazy="selectin",
    )


class LoadExpense(Base):
    __tablename__ = "load_expenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    load_id: Mapped[int] = mapped_column(ForeignKey("loads.id", ondelete="CASCADE"), nullable=False, index=True)
    line: Mapped[ExpenseLine] = mapped_column(Enum(ExpenseLine, native_enum=False), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    payer: Mapped[Payer] = mapped_column(Enum(Payer, native_enum=False), nullable=False)
    # False when the amount was derived (companion default) rather than entered.
    entered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    load = relationship("Load", back_populates="expenses")

    __table_args__ = (UniqueConstraint("load_id", "line", name="uq_load_expenses_load_line"),)


class MillPayment(RecordMixin, Base):
    __tablename__ = "mill_payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    mill_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    load_id: Mapped[int | None] = mapped_column(Integer, index=True)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(32), nullable=False, default="CASH")
    reference_number: Mapped[str | None] = mapped_column(String(64))
    allocation_method: Mapped[str] = mapped_column(String(16), nullable=False, default="FIFO")
    notes: Mapped[str | None] = mapped_column(Text)


class FarmerPayment(RecordMixin, Base):
    __tablename__ = "farmer_payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    farmer_id: Mapped[int | None] = mapped_column(Integer, index=True)
    load_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    gross_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    credit_cut_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    net_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(32), nullable=False, default="CASH")
    reference_number: Mapped[str | None] = mapped_column(String(64))
    invoice_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    notes: Mapped[str | None] = mapped_column(Text)


class ChangeLog(Base):
    """Append-only audit trail of store writes."""

    __tablename__ = "change_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_type: Mapped[str] = mapped_column(String(32), nullable=False)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[ChangeAction] = mapped_column(Enum(ChangeAction, native_enum=False), nullable=False)
    actor: Mapped[str] = mapped_column(String(64), nullable=False, default="system")
    before: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    after: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_change_log_entity", "entity_type", "entity_id", "created_at"),
    )


class DocumentDailySequence(Base):
    __tablename__ = "document_daily_sequences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    doc_type: Mapped[str] = mapped_column(String(16), nullable=False)
    day: Mapped[str] = mapped_column(String(8), nullable=False)  # YYYYMMDD
    last_seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("doc_type", "day", name="uq_doc_seq_doc_type_day"),
    )
