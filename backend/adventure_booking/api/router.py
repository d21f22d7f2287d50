"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter

from adventure_booking.api.routes import adventures, bookings

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(adventures.router)
api_router.include_router(bookings.router)
