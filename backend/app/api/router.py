from fastapi import APIRouter

from app.api.routes import (
    change_log,
    farmers,
    health,
    loads,
    mills,
    payments,
    reports,
    settings,
    vehicles,
)

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(settings.router)
api_router.include_router(farmers.router)
api_router.include_router(mills.router)
api_router.include_router(vehicles.router)
api_router.include_router(loads.router)
api_router.include_router(payments.router)
api_router.include_router(reports.router)
api_router.include_router(change_log.router)
