"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.organisation import Organisation, OrganisationType
from db.models.usage_event import UsageEvent, UsageEventType

__all__ = [
    "Organisation",
    "OrganisationType",
    "UsageEvent",
    "UsageEventType",
]
