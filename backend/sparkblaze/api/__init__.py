"""HTTP routers."""

from fastapi import APIRouter

from . import employees, health, kudos, notifications

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(employees.router)
api_router.include_router(kudos.router)
api_router.include_router(notifications.router)
