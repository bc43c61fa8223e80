"""
Best-effort persistence of product usage events.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import lru_cache
from typing import Any

from sqlalchemy.orm import Session

from db.repositories.usage_event_repository import UsageEventRepository

logger = logging.getLogger(__name__)


class UsageTracker:
    """
    Writes usage events with a dedicated session.

    ``track_event`` never raises: failures are logged and rolled back so
    that callers running it as a background task are unaffected.
    """

    def __init__(self, *, session_factory: Callable[[], Session] | None = None) -> None:
        if session_factory is None:
            from db.session import SessionLocal

            self._session_factory = SessionLocal
        else:
            self._session_factory = session_factory

    def track_event(self, event_type: str, user_id: str, metadata: dict[str, Any] | None = None) -> None:
        try:
            with self._session_factory() as db:
                try:
                    event = UsageEventRepository(db).create_event(
                        event_type=event_type,
                        user_id=user_id,
                        metadata=metadata,
                    )
                    db.commit()
                except Exception:
                    db.rollback()
                    raise
            logger.info("Usage event recorded type=%s user_id=%s id=%s", event_type, user_id, event.id)
        except Exception:
            logger.exception("Failed to record usage event type=%s user_id=%s", event_type, user_id)


@lru_cache(maxsize=1)
def get_usage_tracker() -> UsageTracker:
    return UsageTracker()
