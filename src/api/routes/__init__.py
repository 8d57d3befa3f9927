"""API route modules."""

from .alt_requests import router as alt_requests_router
from .analytics import router as analytics_router
from .compensation import router as compensation_router
from .health import router as health_router
from .livestreams import router as livestreams_router
from .periods import router as periods_router
from .reconciliation import router as reconciliation_router

__all__ = [
    "alt_requests_router",
    "analytics_router",
    "compensation_router",
    "health_router",
    "livestreams_router",
    "periods_router",
    "reconciliation_router",
]
