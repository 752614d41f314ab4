"""create csv_analyses, csv_columns and column_mappings tables

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "csv_analyses",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("job_id", postgresql.UUID(as_uuid=True), nullable=False, comment="Owning upload job"),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("file_path", sa.String(length=1024), nullable=False),
        sa.Column(
            "file_checksum",
            sa.String(length=64),
            nullable=True,
            comment="sha256 of the analyzed file content",
        ),
        sa.Column("delimiter", sa.String(length=1), nullable=False),
        sa.Column("encoding", sa.String(length=40), nullable=False),
        sa.Column("has_header", sa.Boolean(), nullable=False),
        sa.Column("headers", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("row_count", sa.Integer(), nullable=False),
        sa.Column("column_count", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("job_id", "filename", name="uq_csv_analyses_job_filename"),
    )
    op.create_index("ix_csv_analyses_job_id", "csv_analyses", ["job_id"], unique=False)

    op.create_table(
        "csv_columns",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("analysis_id", sa.BigInteger(), nullable=False),
        sa.Column("column_index", sa.Integer(), nullable=False),
        sa.Column("header", sa.String(length=255), nullable=False),
        sa.Column("data_type", sa.String(length=16), nullable=False, comment="numeric, text, date"),
        sa.Column("sample_values", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("null_count", sa.Integer(), nullable=False),
        sa.Column("empty_count", sa.Integer(), nullable=False),
        sa.Column("unique_count", sa.Integer(), nullable=False),
        sa.Column(
            "value_count",
            sa.Integer(),
            nullable=False,
            comment="Non-empty, non-null cells in the preview window",
        ),
        sa.ForeignKeyConstraint(["analysis_id"], ["csv_analyses.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("analysis_id", "column_index", name="uq_csv_columns_analysis_column"),
    )

    op.create_table(
        "column_mappings",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("analysis_id", sa.BigInteger(), nullable=False),
        sa.Column("column_index", sa.Integer(), nullable=False),
        sa.Column("column_header", sa.String(length=255), nullable=False),
        sa.Column(
            "dimension_type",
            sa.String(length=32),
            nullable=False,
            comment="INDICATOR_NAME, INDICATOR_VALUE, TIME, LOCATION, UNIT, ADDITIONAL",
        ),
        sa.Column("is_auto_detected", sa.Boolean(), nullable=False),
        sa.Column("confidence_score", sa.Float(), nullable=False),
        sa.Column("mapping_rules", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["analysis_id"], ["csv_analyses.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("analysis_id", "column_index", name="uq_column_mappings_analysis_column"),
    )
    op.create_index(
        "ix_column_mappings_dimension_type",
        "column_mappings",
        ["dimension_type"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_column_mappings_dimension_type", table_name="column_mappings")
    op.drop_table("column_mappings")
    op.drop_table("csv_columns")
    op.drop_index("ix_csv_analyses_job_id", table_name="csv_analyses")
    op.drop_table("csv_analyses")
