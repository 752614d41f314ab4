"""widen fact_indicator_values.value to unbounded numeric

Revision ID: 20261018_0004
Revises: 20261018_0003
Create Date: 2026-10-18 14:05:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261018_0004"
down_revision = "20261018_0003"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.alter_column(
        "fact_indicator_values",
        "value",
        existing_type=sa.Numeric(precision=19, scale=6),
        type_=sa.Numeric(),
        existing_nullable=False,
    )


def downgrade() -> None:
    # Fails when stored values exceed NUMERIC(19, 6).
    op.alter_column(
        "fact_indicator_values",
        "value",
        existing_type=sa.Numeric(),
        type_=sa.Numeric(precision=19, scale=6),
        existing_nullable=False,
    )
