"""
db/models/period.py

Period model — one month of data as recorded in one report.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base

if TYPE_CHECKING:
    from db.models.metric_value import MetricValue
    from db.models.report import Report


class Period(Base):
    """
    A ``(report, year, month)`` slice.

    Several reports may each hold a period for the same month; the one from
    the most recently uploaded report is the default view.
    """

    __tablename__ = "periods"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    report_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("reports.id", ondelete="CASCADE"),
        nullable=False,
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)

    month: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Calendar month 1..12",
    )

    period_key: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="Label as written in the workbook, e.g. M10.2025",
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    report: Mapped["Report"] = relationship("Report", back_populates="periods")

    metric_values: Mapped[list["MetricValue"]] = relationship(
        "MetricValue",
        back_populates="period",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # ── Indexes ────────────────────────────────────────────────────────────────

    __table_args__ = (
        UniqueConstraint("report_id", "year", "month", name="uq_periods_report_year_month"),
        Index("ix_periods_year_month", "year", "month"),
    )

    def __repr__(self) -> str:
        return f"<Period id={self.id} report_id={self.report_id} {self.year}-{self.month:02d}>"
