import logging
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.router import api_router
from app.config import settings
from app.core.errors import (
    ConfigurationError,
    PaymentError,
    RecordNotFound,
    StaleRecordError,
    UnknownRecordType,
    ValidationError,
)
from app.core.observability import (
    global_exception_handler,
    request_id_for,
    request_logging_middleware,
    uptime_seconds,
    utc_now_iso,
)

api_prefix = (
    settings.api_prefix
    if settings.api_prefix.startswith("/")
    else f"/{settings.api_prefix}"
    if settings.api_prefix
    else ""
)

logger = logging.getLogger("rice_ledger")
logging.basicConfig(
    level=getattr(logging, str(settings.log_level).upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = FastAPI(
    title=settings.app_name,
    docs_url="/docs" if settings.enable_docs else None,
    redoc_url="/redoc" if settings.enable_docs else None,
    openapi_url=(f"{api_prefix}/openapi.json" if api_prefix else "/openapi.json")
    if settings.enable_docs
    else None,
)

# Expose logger for middleware without creating circular imports.
app.state.logger = logger


def _error_body(request: Request, code: str, detail: str, **extra) -> dict:
    return {"detail": detail, "code": code, "request_id": request_id_for(request), **extra}


async def _validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    logger.info(
        "load_validation_failed",
        extra={"path": request.url.path, "fields": [e.field for e in exc.errors]},
    )
    return JSONResponse(
        status_code=422,
        content=_error_body(
            request, "VALIDATION_ERROR", str(exc), errors=[e.as_dict() for e in exc.errors]
        ),
    )


async def _configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.warning("configuration_error", extra={"field": exc.field, "path": request.url.path})
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=_error_body(request, "CONFIGURATION_ERROR", exc.message, field=exc.field),
    )


async def _not_found_handler(request: Request, exc: RecordNotFound) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=_error_body(request, "NOT_FOUND", str(exc)),
    )


async def _unknown_type_handler(request: Request, exc: UnknownRecordType) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(request, "UNKNOWN_RECORD_TYPE", str(exc)),
    )


async def _stale_record_handler(request: Request, exc: StaleRecordError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=_error_body(
            request, "STALE_RECORD", str(exc), expected_version=exc.expected, current_version=exc.actual
        ),
    )


async def _payment_error_handler(request: Request, exc: PaymentError) -> JSONResponse:
    logger.info("payment_refused", extra={"path": request.url.path, "reason": str(exc)})
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=_error_body(request, "PAYMENT_REFUSED", str(exc)),
    )


app.add_exception_handler(ValidationError, _validation_error_handler)
app.add_exception_handler(ConfigurationError, _configuration_error_handler)
app.add_exception_handler(RecordNotFound, _not_found_handler)
app.add_exception_handler(UnknownRecordType, _unknown_type_handler)
app.add_exception_handler(StaleRecordError, _stale_record_handler)
app.add_exception_handler(PaymentError, _payment_error_handler)

# Global exception handler - catches all unhandled exceptions and returns structured error
app.add_exception_handler(Exception, global_exception_handler)

# Request-level logging + request correlation id.
app.middleware("http")(request_logging_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=api_prefix)


def _run_migrations_if_configured() -> None:
    if not settings.run_migrations_on_start:
        return

    # Avoid running migrations during tests.
    if (settings.environment or "").lower() == "test":
        return

    # Import lazily to keep import graph light for non-migration startups.
    from alembic import command
    from alembic.config import Config

    backend_root = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(backend_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(backend_root / "alembic"))

    try:
        command.upgrade(alembic_cfg, "head")
        logger.info("migrations_applied")
    except Exception as e:
        # Don't crash the API if migrations fail; surface the issue via logs.
        logger.error("migrations_failed error=%s", str(e))


@app.on_event("startup")
def _startup():
    logger.info(
        "runtime_config",
        extra={
            "environment": settings.environment,
            "api_prefix": api_prefix,
            "database": settings.database_url.split(":", 1)[0],
        },
    )
    _run_migrations_if_configured()


@app.get("/", tags=["meta"])
def root():
    docs_path = (
        (f"{api_prefix}/openapi.json" if api_prefix else "/openapi.json")
        if settings.enable_docs
        else None
    )
    return {"message": settings.app_name, "docs": docs_path}


@app.get("/healthz", tags=["meta"])
def healthcheck():
    """Liveness only; `/api/health` also probes the database."""

    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.environment,
        "time": utc_now_iso(),
        "uptime_seconds": round(uptime_seconds(), 2),
        "version": settings.build_version,
    }
