"""create organisations table

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "organisations",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("org_type", sa.String(length=32), nullable=False, comment="production, sandbox, scratch"),
        sa.Column(
            "instance_url",
            sa.String(length=500),
            nullable=True,
            comment="Base URL of the org, e.g. https://acme.my.salesforce.com",
        ),
        sa.Column("salesforce_org_id", sa.String(length=18), nullable=True),
        sa.Column("access_token", sa.Text(), nullable=True),
        sa.Column("user_id", sa.String(length=64), nullable=True, comment="Owning user of the connection"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_organisations_user_id", "organisations", ["user_id"], unique=False)
    op.create_index("ix_organisations_salesforce_org_id", "organisations", ["salesforce_org_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_organisations_salesforce_org_id", table_name="organisations")
    op.drop_index("ix_organisations_user_id", table_name="organisations")
    op.drop_table("organisations")
