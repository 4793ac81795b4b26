"""API Routers package."""

from app.routers import calendar as calendar_router
from app.routers import health as health_router
from app.routers import review as review_router

__all__ = ["calendar_router", "health_router", "review_router"]
