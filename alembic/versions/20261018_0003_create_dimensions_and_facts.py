"""create dimension dictionaries and fact_indicator_values

Revision ID: 20261018_0003
Revises: 20261018_0002
Create Date: 2026-10-18 09:20:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_0003"
down_revision = "20261018_0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "dim_time",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("value", sa.String(length=100), nullable=False),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("month", sa.Integer(), nullable=True),
        sa.Column("quarter", sa.Integer(), nullable=True),
        sa.Column("day", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("value", name="uq_dim_time_value"),
    )
    op.create_index("ix_dim_time_year", "dim_time", ["year"], unique=False)

    op.create_table(
        "dim_location",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("value", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("value", name="uq_dim_location_value"),
    )

    op.create_table(
        "dim_generic",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column(
            "dimension_name",
            sa.String(length=255),
            nullable=False,
            comment="Column header or supplied label, e.g. Sector",
        ),
        sa.Column("value", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("dimension_name", "value", name="uq_dim_generic_name_value"),
    )

    op.create_table(
        "indicators",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_indicators_name"),
    )

    op.create_table(
        "fact_indicator_values",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("indicator_id", sa.BigInteger(), nullable=False),
        sa.Column("value", sa.Numeric(precision=19, scale=6), nullable=False),
        sa.Column("time_id", sa.BigInteger(), nullable=True),
        sa.Column("location_id", sa.BigInteger(), nullable=True),
        sa.Column("upload_job_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("processing_job_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("source_file", sa.String(length=255), nullable=False),
        sa.Column("source_row_number", sa.Integer(), nullable=True),
        sa.Column("source_row_hash", sa.String(length=64), nullable=False),
        sa.Column("confidence_score", sa.Float(), nullable=False),
        sa.Column("direction", sa.String(length=16), nullable=True, comment="Optional input/output tag"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["indicator_id"], ["indicators.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["time_id"], ["dim_time.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["location_id"], ["dim_location.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["processing_job_id"], ["processing_jobs.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("upload_job_id", "source_row_hash", name="uq_fact_indicator_values_job_hash"),
    )
    op.create_index(
        "ix_fact_indicator_values_indicator_time",
        "fact_indicator_values",
        ["indicator_id", "time_id"],
        unique=False,
    )
    op.create_index("ix_fact_indicator_values_location", "fact_indicator_values", ["location_id"], unique=False)
    op.create_index("ix_fact_indicator_values_upload_job", "fact_indicator_values", ["upload_job_id"], unique=False)

    op.create_table(
        "fact_indicator_value_generics",
        sa.Column("fact_id", sa.BigInteger(), nullable=False),
        sa.Column("generic_id", sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(["fact_id"], ["fact_indicator_values.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["generic_id"], ["dim_generic.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("fact_id", "generic_id"),
    )


def downgrade() -> None:
    op.drop_table("fact_indicator_value_generics")
    op.drop_index("ix_fact_indicator_values_upload_job", table_name="fact_indicator_values")
    op.drop_index("ix_fact_indicator_values_location", table_name="fact_indicator_values")
    op.drop_index("ix_fact_indicator_values_indicator_time", table_name="fact_indicator_values")
    op.drop_table("fact_indicator_values")
    op.drop_table("indicators")
    op.drop_table("dim_generic")
    op.drop_table("dim_location")
    op.drop_index("ix_dim_time_year", table_name="dim_time")
    op.drop_table("dim_time")
