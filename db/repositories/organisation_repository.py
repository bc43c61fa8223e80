"""
Read-only repository for connected organisations.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from db.models.organisation import Organisation


class OrganisationRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_id(self, org_id: str) -> Organisation | None:
        return self._session.get(Organisation, org_id)
