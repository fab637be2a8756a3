from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import models

LOAD_DOC_TYPE = "LOAD"
INVOICE_DOC_TYPE = "INV"


@dataclass(frozen=True)
class DailyNumber:
    doc_type: str
    day: str  # YYYYMMDD
    seq: int
    formatted: str


def format_daily_number(*, prefix: str, seq: int, day: date) -> str:
    """Format: PREFIX-YYYYMMDD-001 (sequence resets each day).

    - `seq` is 1-based.
    """

    return f"{prefix}-{day.strftime('%Y%m%d')}-{seq:03d}"


def next_daily_number(
    db: Session,
    *,
    doc_type: str,
    prefix: str,
    day: date,
    max_retries: int = 5,
) -> DailyNumber:
    day_key = day.strftime("%Y%m%d")

    dialect_name = getattr(getattr(db, "bind", None), "dialect", None)
    dialect_name = getattr(dialect_name, "name", None)

    for _ in range(max_retries):
        q = db.query(models.DocumentDailySequence).filter(
            models.DocumentDailySequence.doc_type == str(doc_type),
            models.DocumentDailySequence.day == day_key,
        )

        # SQLite doesn't support FOR UPDATE; other DBs benefit from row locking.
        if dialect_name and str(dialect_name).lower() not in {"sqlite"}:
            q = q.with_for_update()

        row = q.first()

        if row is None:
            row = models.DocumentDailySequence(doc_type=str(doc_type), day=day_key, last_seq=0)
            db.add(row)
            try:
                db.flush()
            except IntegrityError:
                # Another writer created the day row first; retry and lock it.
                db.rollback()
                continue

        row.last_seq = int(row.last_seq or 0) + 1
        db.add(row)
        db.flush()

        seq = int(row.last_seq)
        return DailyNumber(
            doc_type=str(doc_type),
            day=day_key,
            seq=seq,
            formatted=format_daily_number(prefix=str(prefix), seq=seq, day=day),
        )

    raise RuntimeError(f"Could not allocate daily number for doc_type={doc_type} day={day_key}")


def next_load_number(db: Session, *, prefix: str, load_date: date) -> str:
    return next_daily_number(db, doc_type=LOAD_DOC_TYPE, prefix=prefix, day=load_date).formatted


def next_invoice_number(db: Session, *, payment_date: date) -> str:
    return next_daily_number(db, doc_type=INVOICE_DOC_TYPE, prefix="INV", day=payment_date).formatted
