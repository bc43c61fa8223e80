"""
app/api/routers package marker.
"""

from app.api.routers.migration_validation import router as migration_validation_router
from app.api.routers.templates import router as templates_router

__all__ = [
    "migration_validation_router",
    "templates_router",
]
