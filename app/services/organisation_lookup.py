"""
Organisation resolution backed by the organisations table.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from sqlalchemy.orm import Session

from app.domain.organisation import OrganisationRecord
from db.repositories.organisation_repository import OrganisationRepository


class OrganisationLookup(Protocol):
    def get_organisation(self, org_id: str) -> OrganisationRecord | None:
        ...


class DatabaseOrganisationLookup:
    """
    Resolves organisations with a fresh session per call so lookups can
    run concurrently on worker threads.
    """

    def __init__(self, *, session_factory: Callable[[], Session] | None = None) -> None:
        if session_factory is None:
            from db.session import SessionLocal

            self._session_factory = SessionLocal
        else:
            self._session_factory = session_factory

    def get_organisation(self, org_id: str) -> OrganisationRecord | None:
        with self._session_factory() as db:
            organisation = OrganisationRepository(db).get_by_id(org_id)
            if organisation is None:
                return None
            return OrganisationRecord(
                id=organisation.id,
                name=organisation.name,
                instance_url=organisation.instance_url,
                access_token=organisation.access_token,
                org_type=organisation.org_type,
            )
