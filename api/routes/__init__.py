"""API route modules."""

from routes.health_routes import router as health_router
from routes.properties_routes import router as properties_router

__all__ = [
    "health_router",
    "properties_router",
]
