from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from app import models

logger = logging.getLogger("rice_ledger.audit")

# Bookkeeping columns are recorded on the row itself; keep them out of payloads.
_SKIP_COLUMNS = {"created_at", "updated_at"}


def _json_safe(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def row_snapshot(obj: Any) -> dict[str, Any]:
    """Column values of an ORM object as a JSON-serialisable dict."""

    mapper = inspect(obj).mapper
    return {
        col.key: _json_safe(getattr(obj, col.key))
        for col in mapper.column_attrs
        if col.key not in _SKIP_COLUMNS
    }


def record_change(
    db: Session,
    *,
    entity_type: str,
    entity_id: int,
    action: models.ChangeAction,
    before: Optional[dict[str, Any]] = None,
    after: Optional[dict[str, Any]] = None,
    actor: str = "system",
) -> models.ChangeLog:
    """Append a change-log entry. Callers control commit/rollback."""

    if before is not None and after is not None:
        # Only keep keys that changed, plus the version pair.
        changed = {k for k in after if before.get(k) != after.get(k)}
        changed.add("version")
        before = {k: v for k, v in before.items() if k in changed}
        after = {k: v for k, v in after.items() if k in changed}

    entry = models.ChangeLog(
        entity_type=str(entity_type),
        entity_id=int(entity_id),
        action=action,
        actor=actor or "system",
        before=before,
        after=after,
    )
    db.add(entry)
    logger.debug(
        "change_recorded",
        extra={"entity_type": entity_type, "entity_id": entity_id, "action": action.value},
    )
    return entry


def list_changes(
    db: Session,
    *,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    limit: int = 200,
) -> list[models.ChangeLog]:
    q = db.query(models.ChangeLog)
    if entity_type:
        q = q.filter(models.ChangeLog.entity_type == entity_type)
    if entity_id is not None:
        q = q.filter(models.ChangeLog.entity_id == int(entity_id))
    return q.order_by(models.ChangeLog.id.desc()).limit(limit).all()
