"""
db/models/metric_value.py

MetricValue model — one computed data point per period, scope and metric kind.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    String,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base

if TYPE_CHECKING:
    from db.models.category import Category
    from db.models.period import Period


class ScopeType:
    """Valid values for ``metric_values.scope_type``."""

    OVERALL = "overall"
    CATEGORY = "category"


class MetricKey:
    """Metric kinds stored in ``metric_values.metric_key``."""

    RETURN_RATE = "return_rate"
    REPEAT_VISIT_RATE = "repeat_visit_rate"
    CHURN_RATE = "churn_rate"


class MetricValue(Base):
    """
    Stores ``numerator``, ``denominator`` and ``value`` for one
    ``(period, scope, metric_key)``.

    Uniqueness is enforced by two partial indexes because ``category_id`` is
    NULL for overall rows:

    - ``(period_id, metric_key)`` where ``scope_type = 'overall'``
    - ``(period_id, category_id, metric_key)`` where ``scope_type = 'category'``

    Rows are append-only; later uploads of the same file only add missing
    metric kinds.
    """

    __tablename__ = "metric_values"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    period_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("periods.id", ondelete="CASCADE"),
        nullable=False,
    )
    scope_type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="overall | category",
    )
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=True,
    )
    metric_key: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="return_rate | repeat_visit_rate | churn_rate",
    )
    numerator: Mapped[float] = mapped_column(Float, nullable=False)
    denominator: Mapped[float] = mapped_column(Float, nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    period: Mapped[Period] = relationship("Period", back_populates="metric_values")
    category: Mapped[Category | None] = relationship("Category")

    # ── Constraints / Indexes ──────────────────────────────────────────────────

    __table_args__ = (
        CheckConstraint(
            "(scope_type = 'overall' AND category_id IS NULL) "
            "OR (scope_type = 'category' AND category_id IS NOT NULL)",
            name="ck_metric_values_scope_category",
        ),
        Index(
            "uq_metric_values_overall",
            "period_id",
            "metric_key",
            unique=True,
            postgresql_where=text("scope_type = 'overall'"),
        ),
        Index(
            "uq_metric_values_category",
            "period_id",
            "category_id",
            "metric_key",
            unique=True,
            postgresql_where=text("scope_type = 'category'"),
        ),
        Index("ix_metric_values_metric_key", "metric_key"),
        Index("ix_metric_values_category_id", "category_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<MetricValue id={self.id} period_id={self.period_id} "
            f"scope={self.scope_type} metric={self.metric_key} value={self.value}>"
        )
