from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from app import models
from app.core.errors import FieldError, RecordNotFound, StaleRecordError, UnknownRecordType, ValidationError
from app.services.audit import record_change, row_snapshot

logger = logging.getLogger("rice_ledger.store")

RECORD_TYPES: dict[str, type] = {
    "farmers": models.Farmer,
    "mills": models.Mill,
    "vehicles": models.Vehicle,
    "loads": models.Load,
    "mill_payments": models.MillPayment,
    "farmer_payments": models.FarmerPayment,
}

_PROTECTED_FIELDS = {"id", "version", "created_at", "updated_at"}


class RecordStore:
    """Keyed record store over the SQLAlchemy session.

    Writes flush but never commit; callers control the transaction. Every write
    appends a change-log entry. Deletes are soft (active=False).
    """

    def __init__(self, db: Session, *, actor: str = "system"):
        self.db = db
        self.actor = actor

    def model_for(self, record_type: str) -> type:
        model = RECORD_TYPES.get(record_type)
        if model is None:
            raise UnknownRecordType(record_type)
        return model

    def get(self, record_type: str, record_id: int, *, include_inactive: bool = False) -> Optional[Any]:
        obj = self.db.get(self.model_for(record_type), int(record_id))
        if obj is None:
            return None
        if not include_inactive and not obj.active:
            return None
        return obj

    def require(self, record_type: str, record_id: int, *, include_inactive: bool = False) -> Any:
        obj = self.get(record_type, record_id, include_inactive=include_inactive)
        if obj is None:
            raise RecordNotFound(record_type, record_id)
        return obj

    def get_all(self, record_type: str, *, include_inactive: bool = False) -> list[Any]:
        model = self.model_for(record_type)
        q = self.db.query(model)
        if not include_inactive:
            q = q.filter(model.active.is_(True))
        return q.order_by(model.id.asc()).all()

    def _check_fields(self, model: type, data: dict[str, Any]) -> None:
        columns = {c.key for c in inspect(model).column_attrs}
        unknown = sorted(k for k in data if k not in columns or k in _PROTECTED_FIELDS)
        if unknown:
            raise ValidationError([FieldError(k, "field cannot be written") for k in unknown])

        required = {c.key for c in inspect(model).column_attrs if not c.columns[0].nullable}
        cleared = sorted(k for k, v in data.items() if v is None and k in required)
        if cleared:
            raise ValidationError([FieldError(k, "is required") for k in cleared])

    def add(self, record_type: str, record: dict[str, Any]) -> int:
        model = self.model_for(record_type)
        data = dict(record)
        self._check_fields(model, data)
        data.setdefault("active", True)

        obj = model(**data)
        obj.version = 1
        self.db.add(obj)
        self.db.flush()

        record_change(
            self.db,
            entity_type=record_type,
            entity_id=obj.id,
            action=models.ChangeAction.INSERT,
            after=row_snapshot(obj),
            actor=self.actor,
        )
        logger.info("record_added", extra={"record_type": record_type, "record_id": obj.id})
        return int(obj.id)

    def update(
        self,
        record_type: str,
        record_id: int,
        partial: dict[str, Any],
        *,
        expected_version: Optional[int] = None,
        action: models.ChangeAction = models.ChangeAction.UPDATE,
    ) -> Any:
        model = self.model_for(record_type)
        self._check_fields(model, partial)
        obj = self.require(record_type, record_id, include_inactive=True)

        current_version = int(obj.version or 1)
        if expected_version is not None and int(expected_version) != current_version:
            raise StaleRecordError(record_type, int(record_id), int(expected_version), current_version)

        before = row_snapshot(obj)
        for key, value in partial.items():
            setattr(obj, key, value)
        obj.version = current_version + 1
        self.db.flush()

        record_change(
            self.db,
            entity_type=record_type,
            entity_id=obj.id,
            action=action,
            before=before,
            after=row_snapshot(obj),
            actor=self.actor,
        )
        return obj

    def delete(self, record_type: str, record_id: int, *, expected_version: Optional[int] = None) -> int:
        self.update(
            record_type,
            record_id,
            {"active": False},
            expected_version=expected_version,
            action=models.ChangeAction.DELETE,
        )
        logger.info("record_deleted", extra={"record_type": record_type, "record_id": record_id})
        return int(record_id)
