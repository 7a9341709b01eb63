"""API routers."""

from firreports.routers.health import router as health_router
from firreports.routers.reports import router as reports_router

__all__ = ["health_router", "reports_router"]
