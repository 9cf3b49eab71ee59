"""API route modules."""

from .achievements_routes import router as achievements_router
from .catalog_routes import router as catalog_router
from .certificates_routes import router as certificates_router
from .certifications_routes import router as certifications_router
from .events_routes import router as events_router
from .health_routes import router as health_router

__all__ = [
    "achievements_router",
    "catalog_router",
    "certificates_router",
    "certifications_router",
    "events_router",
    "health_router",
]
