"""
db/models/organisation.py

Organisation model: one connected source or target org instance.
"""

from __future__ import annotations

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class OrganisationType:
    PRODUCTION = "production"
    SANDBOX = "sandbox"
    SCRATCH = "scratch"


class Organisation(Base, TimestampMixin):
    """
    A connected org that migrations read from or write to.

    instance_url is the base for REST calls and for record deep links.
    An organisation without an access_token is treated as not connected.
    Token issuance and refresh are owned by the connection flow, not by
    this service; the validator only reads these columns.
    """

    __tablename__ = "organisations"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    org_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=OrganisationType.PRODUCTION,
        comment="production, sandbox, scratch",
    )

    instance_url: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
        comment="Base URL of the org, e.g. https://acme.my.salesforce.com",
    )

    salesforce_org_id: Mapped[str | None] = mapped_column(
        String(18),
        nullable=True,
    )

    access_token: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    user_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Owning user of the connection",
    )

    __table_args__ = (
        Index("ix_organisations_user_id", "user_id"),
        Index("ix_organisations_salesforce_org_id", "salesforce_org_id"),
    )

    def __repr__(self) -> str:
        return f"<Organisation id={self.id!r} name={self.name!r} org_type={self.org_type!r}>"
