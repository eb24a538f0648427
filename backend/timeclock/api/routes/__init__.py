"""API routes."""

from fastapi import APIRouter

from timeclock.api.routes import kiosk

api_router = APIRouter()

api_router.include_router(kiosk.router, prefix="/kiosk", tags=["kiosk"])
