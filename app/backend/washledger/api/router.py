"""Top-level API router."""

from fastapi import APIRouter

from washledger.api.routes.exports import router as exports_router
from washledger.api.routes.health import router as health_router
from washledger.api.routes.reports import router as reports_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(reports_router)
api_router.include_router(exports_router)
