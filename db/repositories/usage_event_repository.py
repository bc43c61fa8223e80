"""
Repository for usage analytics event persistence.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from db.models.usage_event import UsageEvent


class UsageEventRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_event(
        self,
        *,
        event_type: str,
        user_id: str | None,
        metadata: dict[str, Any] | None = None,
    ) -> UsageEvent:
        event = UsageEvent(
            event_type=event_type,
            user_id=user_id,
            metadata_json=metadata,
        )
        self._session.add(event)
        self._session.flush()
        return event
