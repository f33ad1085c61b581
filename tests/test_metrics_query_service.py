"""
tests/test_metrics_query_service.py

Unit tests for MetricsQueryService with a stub query repository.
"""

from __future__ import annotations

import unittest
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

from app.services.metrics_query_service import (
    MetricsQueryService,
    group_periods_by_year,
    latest_per_key,
)
from db.repositories.metric_query_repository import SeriesPoint

OLD_REPORT = SimpleNamespace(
    id=uuid.uuid4(),
    filename="september.xlsx",
    uploaded_at=datetime(2025, 10, 1, tzinfo=timezone.utc),
)
NEW_REPORT = SimpleNamespace(
    id=uuid.uuid4(),
    filename="october.xlsx",
    uploaded_at=datetime(2025, 11, 1, tzinfo=timezone.utc),
)


def _period(report: SimpleNamespace, year: int, month: int) -> SimpleNamespace:
    return SimpleNamespace(
        id=uuid.uuid4(),
        report=report,
        year=year,
        month=month,
        period_key=f"M{month}.{year}",
    )


def _value(value: float, *, category: tuple[int, str] | None = None) -> SimpleNamespace:
    return SimpleNamespace(
        numerator=value,
        denominator=100.0,
        value=value,
        category=(
            SimpleNamespace(code=category[0], name=category[1]) if category is not None else None
        ),
    )


class StubQueryRepository:
    def __init__(self) -> None:
        self.periods: list[SimpleNamespace] = []
        self.overall: dict[uuid.UUID, SimpleNamespace] = {}
        self.categories: dict[uuid.UUID, list[SimpleNamespace]] = {}
        self.series: list[SeriesPoint] = []

    def list_reports(self):
        return [
            SimpleNamespace(
                **vars(NEW_REPORT),
                periods=[SimpleNamespace(year=2025, month=9), SimpleNamespace(year=2025, month=10)],
            )
        ]

    def available_periods(self):
        return [(2024, 12), (2025, 9), (2025, 10), (2025, 9)]

    def snapshots_for_period(self, *, year: int, month: int):
        return [NEW_REPORT, OLD_REPORT]

    def find_period(self, *, year: int, month: int, report_id=None):
        candidates = [
            period
            for period in self.periods
            if (period.year, period.month) == (year, month)
            and (report_id is None or period.report.id == report_id)
        ]
        candidates.sort(key=lambda period: period.report.uploaded_at, reverse=True)
        return candidates[0] if candidates else None

    def overall_metric(self, *, period_id, metric_key):
        return self.overall.get(period_id)

    def category_metrics(self, *, period_id, metric_key):
        return sorted(self.categories.get(period_id, []), key=lambda row: row.value, reverse=True)

    def overall_series(self, *, metric_key):
        return self.series

    def category_series(self, *, code, metric_key):
        return [point for point in self.series if point.category_code == code]


class TestHelpers(unittest.TestCase):
    def test_latest_per_key_keeps_first_occurrence(self) -> None:
        items = [("a", 1), ("a", 2), ("b", 3)]

        self.assertEqual(latest_per_key(items, key=lambda item: item[0]), [("a", 1), ("b", 3)])

    def test_group_periods_by_year(self) -> None:
        grouped = group_periods_by_year([(2024, 12), (2025, 10), (2025, 9), (2025, 10)])

        self.assertEqual([(group.year, group.months) for group in grouped], [(2025, [9, 10]), (2024, [12])])


class TestMetricsQueryService(unittest.TestCase):
    def setUp(self) -> None:
        self.repository = StubQueryRepository()
        self.service = MetricsQueryService(self.repository)  # type: ignore[arg-type]

        self.old_october = _period(OLD_REPORT, 2025, 10)
        self.new_october = _period(NEW_REPORT, 2025, 10)
        self.new_september = _period(NEW_REPORT, 2025, 9)
        self.repository.periods = [self.old_october, self.new_october, self.new_september]

        self.repository.overall[self.old_october.id] = _value(30.0)
        self.repository.overall[self.new_october.id] = _value(40.0)
        self.repository.overall[self.new_september.id] = _value(25.0)
        self.repository.categories[self.new_october.id] = [
            _value(20.0, category=(7, "Стоматология")),
            _value(0.0, category=(3, "Терапия")),
        ]
        self.repository.categories[self.new_september.id] = [
            _value(25.0, category=(7, "Стоматология")),
            _value(10.0, category=(5, "Хирургия")),
        ]

    def test_list_reports_sorts_periods_newest_first(self) -> None:
        [report] = self.service.list_reports()

        self.assertEqual(report.filename, "october.xlsx")
        self.assertEqual(report.periods, [(2025, 10), (2025, 9)])

    def test_snapshots_preserve_repository_order(self) -> None:
        snapshots = self.service.snapshots(year=2025, month=10)

        self.assertEqual([s.report_id for s in snapshots], [NEW_REPORT.id, OLD_REPORT.id])

    def test_period_metrics_defaults_to_latest_report(self) -> None:
        result = self.service.period_metrics(year=2025, month=10, metric_key="return_rate")

        assert result is not None
        self.assertEqual(result.period.report.report_id, NEW_REPORT.id)
        self.assertEqual(result.overall.value, 40.0)
        self.assertEqual([row.name for row in result.categories], ["Стоматология", "Терапия"])

    def test_period_metrics_can_pin_older_snapshot(self) -> None:
        result = self.service.period_metrics(
            year=2025, month=10, metric_key="return_rate", report_id=OLD_REPORT.id
        )

        assert result is not None
        self.assertEqual(result.overall.value, 30.0)
        self.assertEqual(result.categories, [])

    def test_unknown_period_returns_none(self) -> None:
        self.assertIsNone(self.service.period_metrics(year=2020, month=1, metric_key="return_rate"))

    def test_compare_orders_categories_by_absolute_delta(self) -> None:
        result = self.service.compare_periods(
            year=2025,
            month=10,
            compare_year=2025,
            compare_month=9,
            metric_key="return_rate",
        )

        assert result is not None
        self.assertAlmostEqual(result.overall.delta, 15.0)
        self.assertEqual(
            [(row.name, row.delta) for row in result.categories],
            [("Стоматология", -5.0), ("Терапия", None), ("Хирургия", None)],
        )

    def test_compare_with_missing_second_period(self) -> None:
        result = self.service.compare_periods(
            year=2025,
            month=10,
            compare_year=2019,
            compare_month=1,
            metric_key="return_rate",
        )

        assert result is not None
        self.assertIsNone(result.b)
        self.assertIsNone(result.overall.delta)

    def test_overall_series_keeps_latest_report_per_month(self) -> None:
        self.repository.series = [
            SeriesPoint(2025, 9, NEW_REPORT.id, NEW_REPORT.uploaded_at, 25, 100, 25.0),
            SeriesPoint(2025, 10, NEW_REPORT.id, NEW_REPORT.uploaded_at, 40, 100, 40.0),
            SeriesPoint(2025, 10, OLD_REPORT.id, OLD_REPORT.uploaded_at, 30, 100, 30.0),
        ]

        series = self.service.overall_series(metric_key="return_rate")

        self.assertEqual(
            [(point.month, point.value) for point in series.points],
            [(9, 25.0), (10, 40.0)],
        )
