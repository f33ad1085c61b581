"""create reports, periods, categories and metric_values tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "reports",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("file_hash", sa.String(length=64), nullable=False,
                  comment="Hex SHA-256 of the uploaded file content"),
        sa.Column("filename", sa.Text(), nullable=False,
                  comment="Original filename as supplied by the uploader"),
        sa.Column(
            "uploaded_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("file_hash", name="uq_reports_file_hash"),
    )
    op.create_index("ix_reports_uploaded_at", "reports", ["uploaded_at"], unique=False)

    op.create_table(
        "periods",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("report_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False, comment="Calendar month 1..12"),
        sa.Column("period_key", sa.String(length=16), nullable=False,
                  comment="Label as written in the workbook, e.g. M10.2025"),
        sa.ForeignKeyConstraint(["report_id"], ["reports.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("report_id", "year", "month", name="uq_periods_report_year_month"),
    )
    op.create_index("ix_periods_year_month", "periods", ["year", "month"], unique=False)

    op.create_table(
        "categories",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("code", sa.Integer(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code", "name", name="uq_categories_code_name"),
    )
    op.create_index("ix_categories_code", "categories", ["code"], unique=False)

    op.create_table(
        "metric_values",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("period_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("scope_type", sa.String(length=16), nullable=False,
                  comment="overall | category"),
        sa.Column("category_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("metric_key", sa.String(length=32), nullable=False,
                  comment="return_rate | repeat_visit_rate | churn_rate"),
        sa.Column("numerator", sa.Float(), nullable=False),
        sa.Column("denominator", sa.Float(), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.CheckConstraint(
            "(scope_type = 'overall' AND category_id IS NULL) "
            "OR (scope_type = 'category' AND category_id IS NOT NULL)",
            name="ck_metric_values_scope_category",
        ),
        sa.ForeignKeyConstraint(["period_id"], ["periods.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_metric_values_overall",
        "metric_values",
        ["period_id", "metric_key"],
        unique=True,
        postgresql_where=sa.text("scope_type = 'overall'"),
    )
    op.create_index(
        "uq_metric_values_category",
        "metric_values",
        ["period_id", "category_id", "metric_key"],
        unique=True,
        postgresql_where=sa.text("scope_type = 'category'"),
    )
    op.create_index("ix_metric_values_metric_key", "metric_values", ["metric_key"], unique=False)
    op.create_index("ix_metric_values_category_id", "metric_values", ["category_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_metric_values_category_id", table_name="metric_values")
    op.drop_index("ix_metric_values_metric_key", table_name="metric_values")
    op.drop_index("uq_metric_values_category", table_name="metric_values")
    op.drop_index("uq_metric_values_overall", table_name="metric_values")
    op.drop_table("metric_values")
    op.drop_index("ix_categories_code", table_name="categories")
    op.drop_table("categories")
    op.drop_index("ix_periods_year_month", table_name="periods")
    op.drop_table("periods")
    op.drop_index("ix_reports_uploaded_at", table_name="reports")
    op.drop_table("reports")
