"""
app/services/metrics_query_service.py

Read-side service for the reporting API.

Shapes stored metric values into API responses. The "current" view of a
month is the most recently uploaded report that holds it; an explicit
``report_id`` selects an older snapshot instead. No writes happen here.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Hashable, Sequence
from typing import Any, TypeVar

from app.schemas.metrics import (
    CategoryMetricResponse,
    MetricTripleResponse,
    PeriodComparisonResponse,
    PeriodInfoResponse,
    PeriodMetricsResponse,
    ReportSummaryResponse,
    ScopeDeltaResponse,
    SeriesPointResponse,
    SeriesResponse,
    SnapshotResponse,
    YearPeriodsResponse,
)
from db.repositories.metric_query_repository import MetricQueryRepository, SeriesPoint

T = TypeVar("T")

_OVERALL_KEY = "overall"
_UNNAMED_CATEGORY = "—"


def latest_per_key(items: Sequence[T], key: Callable[[T], Hashable]) -> list[T]:
    """
    Keep the first item seen for each key, preserving order.

    Inputs are ordered newest report first within a key, so the first item
    is the latest snapshot's value.
    """
    seen: dict[Hashable, T] = {}
    for item in items:
        seen.setdefault(key(item), item)
    return list(seen.values())


def group_periods_by_year(periods: Sequence[tuple[int, int]]) -> list[YearPeriodsResponse]:
    """Group ``(year, month)`` pairs; newest year first, months ascending."""
    by_year: dict[int, set[int]] = {}
    for year, month in periods:
        by_year.setdefault(year, set()).add(month)
    return [
        YearPeriodsResponse(year=year, months=sorted(months))
        for year, months in sorted(by_year.items(), key=lambda item: item[0], reverse=True)
    ]


def category_key(code: int | None, name: str) -> str:
    return f"{code}|{name}"


def _triple(row: Any) -> MetricTripleResponse:
    return MetricTripleResponse(
        numerator=row.numerator,
        denominator=row.denominator,
        value=row.value,
    )


def _delta(a: MetricTripleResponse | None, b: MetricTripleResponse | None) -> float | None:
    if a is None or b is None:
        return None
    return a.value - b.value


class MetricsQueryService:
    """
    Builds reporting responses from :class:`MetricQueryRepository` queries.
    """

    def __init__(self, repository: MetricQueryRepository) -> None:
        self._repository = repository

    def list_reports(self) -> list[ReportSummaryResponse]:
        return [
            ReportSummaryResponse(
                id=report.id,
                filename=report.filename,
                uploaded_at=report.uploaded_at,
                periods=sorted(
                    {(period.year, period.month) for period in report.periods},
                    reverse=True,
                ),
            )
            for report in self._repository.list_reports()
        ]

    def available_periods(self) -> list[YearPeriodsResponse]:
        return group_periods_by_year(self._repository.available_periods())

    def snapshots(self, *, year: int, month: int) -> list[SnapshotResponse]:
        return [
            SnapshotResponse(
                report_id=report.id,
                filename=report.filename,
                uploaded_at=report.uploaded_at,
            )
            for report in self._repository.snapshots_for_period(year=year, month=month)
        ]

    def period_metrics(
        self,
        *,
        year: int,
        month: int,
        metric_key: str,
        report_id: uuid.UUID | None = None,
    ) -> PeriodMetricsResponse | None:
        """
        Return one metric for one period, or ``None`` when the period is unknown.
        """
        period = self._repository.find_period(year=year, month=month, report_id=report_id)
        if period is None:
            return None

        overall = self._repository.overall_metric(period_id=period.id, metric_key=metric_key)
        categories = self._repository.category_metrics(period_id=period.id, metric_key=metric_key)

        return PeriodMetricsResponse(
            period=PeriodInfoResponse(
                id=period.id,
                year=period.year,
                month=period.month,
                period_key=period.period_key,
                report=SnapshotResponse(
                    report_id=period.report.id,
                    filename=period.report.filename,
                    uploaded_at=period.report.uploaded_at,
                ),
            ),
            metric_key=metric_key,
            overall=_triple(overall) if overall is not None else None,
            categories=[
                CategoryMetricResponse(
                    code=row.category.code if row.category is not None else None,
                    name=row.category.name if row.category is not None else _UNNAMED_CATEGORY,
                    numerator=row.numerator,
                    denominator=row.denominator,
                    value=row.value,
                )
                for row in categories
            ],
        )

    def compare_periods(
        self,
        *,
        year: int,
        month: int,
        compare_year: int,
        compare_month: int,
        metric_key: str,
        report_id: uuid.UUID | None = None,
    ) -> PeriodComparisonResponse | None:
        """
        Compare period A (optionally pinned to a report) against period B.

        Returns ``None`` when period A is unknown. A missing period B yields
        ``None`` deltas. Category rows are ordered by absolute delta, largest
        first; rows without a delta sort last.
        """
        a = self.period_metrics(year=year, month=month, metric_key=metric_key, report_id=report_id)
        if a is None:
            return None
        b = self.period_metrics(year=compare_year, month=compare_month, metric_key=metric_key)

        a_categories = {category_key(row.code, row.name): row for row in a.categories}
        b_categories = {category_key(row.code, row.name): row for row in b.categories} if b else {}

        deltas: list[ScopeDeltaResponse] = []
        for key in list(dict.fromkeys([*a_categories, *b_categories])):
            a_row = a_categories.get(key)
            b_row = b_categories.get(key)
            name = a_row.name if a_row is not None else b_row.name  # type: ignore[union-attr]
            a_triple = _triple(a_row) if a_row is not None else None
            b_triple = _triple(b_row) if b_row is not None else None
            deltas.append(
                ScopeDeltaResponse(
                    key=key,
                    name=name,
                    a=a_triple,
                    b=b_triple,
                    delta=_delta(a_triple, b_triple),
                )
            )
        deltas.sort(key=lambda row: (row.delta is None, -abs(row.delta or 0.0)))

        b_overall = b.overall if b is not None else None
        return PeriodComparisonResponse(
            metric_key=metric_key,
            a=a,
            b=b,
            overall=ScopeDeltaResponse(
                key=_OVERALL_KEY,
                name=_OVERALL_KEY,
                a=a.overall,
                b=b_overall,
                delta=_delta(a.overall, b_overall),
            ),
            categories=deltas,
        )

    def overall_series(self, *, metric_key: str) -> SeriesResponse:
        points = latest_per_key(
            self._repository.overall_series(metric_key=metric_key),
            key=lambda point: (point.year, point.month),
        )
        return SeriesResponse(metric_key=metric_key, points=[_series_point(p) for p in points])

    def category_series(self, *, code: int, metric_key: str) -> SeriesResponse:
        points = latest_per_key(
            self._repository.category_series(code=code, metric_key=metric_key),
            key=lambda point: (point.year, point.month, point.category_name),
        )
        return SeriesResponse(metric_key=metric_key, points=[_series_point(p) for p in points])


def _series_point(point: SeriesPoint) -> SeriesPointResponse:
    return SeriesPointResponse(
        year=point.year,
        month=point.month,
        report_id=point.report_id,
        numerator=point.numerator,
        denominator=point.denominator,
        value=point.value,
        category_code=point.category_code,
        category_name=point.category_name,
    )
