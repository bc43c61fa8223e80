"""
Repository layer exports.
"""

from db.repositories.organisation_repository import OrganisationRepository
from db.repositories.usage_event_repository import UsageEventRepository

__all__ = [
    "OrganisationRepository",
    "UsageEventRepository",
]
