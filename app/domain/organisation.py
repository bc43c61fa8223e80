"""
app/domain/organisation.py

Detached organisation view shared between request threads.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class OrganisationRecord:
    """
    Read-only snapshot of a connected organisation.
    """

    id: str
    name: str
    instance_url: str | None
    access_token: str | None = None
    org_type: str | None = None

    @property
    def is_connected(self) -> bool:
        return bool(self.access_token) and bool(self.instance_url)
