from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.observability import uptime_seconds, utc_now_iso
from app.database import get_db

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", summary="Healthcheck")
def healthcheck(db: Session = Depends(get_db)):
    """Liveness plus a one-query database probe.

    Keep payload stable for monitoring systems.
    """
    try:
        db.execute(text("select 1"))
        database = "ok"
    except SQLAlchemyError:
        database = "unavailable"

    return {
        "status": "ok" if database == "ok" else "degraded",
        "service": settings.app_name,
        "environment": settings.environment,
        "database": database,
        "time": utc_now_iso(),
        "uptime_seconds": round(uptime_seconds(), 2),
        "version": settings.build_version,
    }
