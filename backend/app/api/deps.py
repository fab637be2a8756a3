from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from app.database import get_db
from app.services.record_store import RecordStore

_DB_DEP = Depends(get_db)

DEFAULT_ACTOR = "system"


def get_actor(
    x_actor: Optional[str] = Header(default=None, description="Name recorded in the change log"),
) -> str:
    """Who is making the change. There is no login; the client names itself."""

    s = (x_actor or "").strip()
    return s[:64] if s else DEFAULT_ACTOR


_ACTOR_DEP = Depends(get_actor)


def get_store(db: Session = _DB_DEP, actor: str = _ACTOR_DEP) -> RecordStore:
    return RecordStore(db, actor=actor)


__all__ = ["get_db", "get_actor", "get_store"]
