from app.models.domain import (
    ChangeAction,
    ChangeLog,
    DocumentDailySequence,
    Farmer,
    FarmerPayment,
    LedgerSettings,
    Load,
    LoadExpense,
    Mill,
    MillPayment,
    PaymentStatus,
    RecordMixin,
    Vehicle,
)

__all__ = [
    "ChangeAction",
    "ChangeLog",
    "DocumentDailySequence",
    "Farmer",
    "FarmerPayment",
    "LedgerSettings",
    "Load",
    "LoadExpense",
    "Mill",
    "MillPayment",
    "PaymentStatus",
    "RecordMixin",
    "Vehicle",
]
