"""
db/models/usage_event.py

Append-only usage analytics events.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Index, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class UsageEventType:
    MIGRATION_VALIDATED = "migration_validated"


class UsageEvent(Base, TimestampMixin):
    __tablename__ = "usage_events"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    event_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    user_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="Event-specific payload",
    )

    __table_args__ = (
        Index("ix_usage_events_event_type", "event_type"),
        Index("ix_usage_events_user_id", "user_id"),
        Index("ix_usage_events_created_at", "created_at"),
    )
