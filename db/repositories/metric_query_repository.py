"""
db/repositories/metric_query_repository.py

Read-only queries over stored reports and metric values.

This repository never writes. Callers decide which report is the "current"
view of a month; helpers here only order by ``uploaded_at`` so the newest
report comes first.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from db.models.category import Category
from db.models.metric_value import MetricValue, ScopeType
from db.models.period import Period
from db.models.report import Report


@dataclass(frozen=True)
class SeriesPoint:
    """One stored metric value with the month and report it belongs to."""

    year: int
    month: int
    report_id: uuid.UUID
    uploaded_at: datetime
    numerator: float
    denominator: float
    value: float
    category_code: int | None = None
    category_name: str | None = None


class MetricQueryRepository:
    """
    Query helpers for the reporting API.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Reports and periods
    # ------------------------------------------------------------------

    def list_reports(self) -> list[Report]:
        """
        Return all reports newest first, with their periods eagerly loaded.
        """
        stmt = (
            select(Report)
            .options(joinedload(Report.periods))
            .order_by(Report.uploaded_at.desc())
        )
        return list(self._session.scalars(stmt).unique().all())

    def available_periods(self) -> list[tuple[int, int]]:
        stmt = (
            select(Period.year, Period.month)
            .distinct()
            .order_by(Period.year.desc(), Period.month.asc())
        )
        return [(int(year), int(month)) for year, month in self._session.execute(stmt).all()]

    def snapshots_for_period(self, *, year: int, month: int) -> list[Report]:
        """
        Return every report that holds ``(year, month)``, newest first.
        """
        stmt = (
            select(Report)
            .join(Period, Period.report_id == Report.id)
            .where(Period.year == year, Period.month == month)
            .order_by(Report.uploaded_at.desc())
        )
        return list(self._session.scalars(stmt).all())

    def find_period(
        self,
        *,
        year: int,
        month: int,
        report_id: uuid.UUID | None = None,
    ) -> Period | None:
        """
        Return the period for ``(year, month)`` in *report_id*, or in the
        most recently uploaded report when *report_id* is ``None``.
        """
        stmt = (
            select(Period)
            .join(Report, Report.id == Period.report_id)
            .options(joinedload(Period.report))
            .where(Period.year == year, Period.month == month)
        )
        if report_id is not None:
            stmt = stmt.where(Period.report_id == report_id)
        stmt = stmt.order_by(Report.uploaded_at.desc()).limit(1)
        return self._session.scalars(stmt).first()

    # ------------------------------------------------------------------
    # Metric values
    # ------------------------------------------------------------------

    def overall_metric(self, *, period_id: uuid.UUID, metric_key: str) -> MetricValue | None:
        stmt = select(MetricValue).where(
            MetricValue.period_id == period_id,
            MetricValue.metric_key == metric_key,
            MetricValue.scope_type == ScopeType.OVERALL,
        )
        return self._session.scalars(stmt).first()

    def category_metrics(self, *, period_id: uuid.UUID, metric_key: str) -> list[MetricValue]:
        """
        Return category-scope values for one period, highest value first.
        """
        stmt = (
            select(MetricValue)
            .options(joinedload(MetricValue.category))
            .where(
                MetricValue.period_id == period_id,
                MetricValue.metric_key == metric_key,
                MetricValue.scope_type == ScopeType.CATEGORY,
            )
            .order_by(MetricValue.value.desc())
        )
        return list(self._session.scalars(stmt).all())

    def overall_series(self, *, metric_key: str) -> list[SeriesPoint]:
        """
        Return every overall value for *metric_key*, ordered by month and
        then newest report first.
        """
        stmt = (
            select(
                Period.year,
                Period.month,
                Report.id,
                Report.uploaded_at,
                MetricValue.numerator,
                MetricValue.denominator,
                MetricValue.value,
            )
            .join(Period, Period.id == MetricValue.period_id)
            .join(Report, Report.id == Period.report_id)
            .where(
                MetricValue.metric_key == metric_key,
                MetricValue.scope_type == ScopeType.OVERALL,
            )
            .order_by(Period.year, Period.month, Report.uploaded_at.desc())
        )
        return [
            SeriesPoint(
                year=year,
                month=month,
                report_id=report_id,
                uploaded_at=uploaded_at,
                numerator=numerator,
                denominator=denominator,
                value=value,
            )
            for year, month, report_id, uploaded_at, numerator, denominator, value
            in self._session.execute(stmt).all()
        ]

    def category_series(self, *, code: int, metric_key: str) -> list[SeriesPoint]:
        """
        Return every value for categories with *code*, ordered by month,
        category name, and then newest report first.
        """
        stmt = (
            select(
                Period.year,
                Period.month,
                Report.id,
                Report.uploaded_at,
                MetricValue.numerator,
                MetricValue.denominator,
                MetricValue.value,
                Category.code,
                Category.name,
            )
            .join(Period, Period.id == MetricValue.period_id)
            .join(Report, Report.id == Period.report_id)
            .join(Category, Category.id == MetricValue.category_id)
            .where(
                MetricValue.metric_key == metric_key,
                MetricValue.scope_type == ScopeType.CATEGORY,
                Category.code == code,
            )
            .order_by(Period.year, Period.month, Category.name, Report.uploaded_at.desc())
        )
        return [
            SeriesPoint(
                year=year,
                month=month,
                report_id=report_id,
                uploaded_at=uploaded_at,
                numerator=numerator,
                denominator=denominator,
                value=value,
                category_code=category_code,
                category_name=category_name,
            )
            for (
                year,
                month,
                report_id,
                uploaded_at,
                numerator,
                denominator,
                value,
                category_code,
                category_name,
            ) in self._session.execute(stmt).all()
        ]
