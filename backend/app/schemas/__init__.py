from app.schemas.change_log import ChangeLogRead
from app.schemas.ledgers import (
    FarmerLedgerRead,
    MillLedgerRead,
    PendingLoadRead,
    ProfitReportRead,
)
from app.schemas.loads import (
    CreditCutRead,
    ExpenseAllocationRead,
    ExpenseEntryIn,
    InvoiceLineRead,
    InvoiceRead,
    LoadCreate,
    LoadPreviewRequest,
    LoadRead,
    LoadRecalculate,
    ProfitRead,
    SettlementRead,
)
from app.schemas.parties import (
    FarmerCreate,
    FarmerRead,
    FarmerUpdate,
    MillCreate,
    MillRead,
    MillUpdate,
    VehicleCreate,
    VehicleRead,
    VehicleUpdate,
)
from app.schemas.payments import (
    FarmerPaymentRead,
    FarmerPayoutPreview,
    FarmerPayoutRequest,
    LoadPaymentStateRead,
    MillPaymentCreate,
    MillPaymentRead,
    MillPaymentResult,
)
from app.schemas.settings import LedgerSettingsRead, LedgerSettingsUpdate

__all__ = [
    "ChangeLogRead",
    "CreditCutRead",
    "ExpenseAllocationRead",
    "ExpenseEntryIn",
    "FarmerCreate",
    "FarmerLedgerRead",
    "FarmerPaymentRead",
    "FarmerPayoutPreview",
    "FarmerPayoutRequest",
    "FarmerRead",
    "FarmerUpdate",
    "InvoiceLineRead",
    "InvoiceRead",
    "LedgerSettingsRead",
    "LedgerSettingsUpdate",
    "LoadCreate",
    "LoadPaymentStateRead",
    "LoadPreviewRequest",
    "LoadRead",
    "LoadRecalculate",
    "MillCreate",
    "MillLedgerRead",
    "MillPaymentCreate",
    "MillPaymentRead",
    "MillPaymentResult",
    "MillRead",
    "MillUpdate",
    "PendingLoadRead",
    "ProfitRead",
    "ProfitReportRead",
    "SettlementRead",
    "VehicleCreate",
    "VehicleRead",
    "VehicleUpdate",
]
