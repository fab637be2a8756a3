from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class LedgerError(Exception):
    """Base class for domain errors raised by the ledger services."""


class ValidationError(LedgerError):
    """Caller-fixable precondition failure on a load (surfaced per field)."""

    def __init__(self, errors: list[FieldError] | FieldError):
        if isinstance(errors, FieldError):
            errors = [errors]
        self.errors: list[FieldError] = list(errors)
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in self.errors))


class ConfigurationError(LedgerError):
    """Administrator-fixable settings problem. Blocks a settings save."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class RecordNotFound(LedgerError):
    def __init__(self, record_type: str, record_id: int | str):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(f"{record_type} {record_id} not found")


class UnknownRecordType(LedgerError):
    def __init__(self, record_type: str):
        self.record_type = record_type
        super().__init__(f"unknown record type: {record_type}")


class StaleRecordError(LedgerError):
    """Optimistic version check failed on update."""

    def __init__(self, record_type: str, record_id: int, expected: int, actual: int):
        self.record_type = record_type
        self.record_id = record_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{record_type} {record_id} is at version {actual}, expected {expected}"
        )


class PaymentError(LedgerError):
    """A payment cannot be applied in the current state of the ledger."""
