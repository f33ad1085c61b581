"""
tests/fakes.py

In-memory test doubles for the report ingestion flow.

``InMemoryReportStore`` follows the same insert-if-absent contract as
``ReportRepository`` and rolls back every write made inside a failed
``transaction()`` block.
"""

from __future__ import annotations

import io
import uuid
import zipfile
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

import openpyxl
from sqlalchemy.exc import SQLAlchemyError

from db.repositories.errors import ReportAlreadyExistsError
from db.repositories.types import (
    CategoryRecord,
    CategoryUpsert,
    MetricValueInsert,
    PeriodRecord,
    PeriodUpsert,
    ReportRecord,
)

HEADER = [
    "Группа / Название",
    "Клиенты / КЛ.Все Записанные",
    "Клиенты / КЛ. Повторные",
    "Клиенты / КЛ. Новые Записанные",
    "Клиенты / КЛ. Продолжение Записанные",
]


def build_workbook(sheets: dict[str, Sequence[Sequence[Any]]]) -> bytes:
    """
    Build ``.xlsx`` bytes with one worksheet per entry, in insertion order.
    """
    workbook = openpyxl.Workbook()
    workbook.remove(workbook.active)
    for title, rows in sheets.items():
        worksheet = workbook.create_sheet(title=title)
        for row in rows:
            worksheet.append(list(row))
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def sample_rows() -> list[list[Any]]:
    """
    Two months of data with one specialization present in both and one
    present only in the second month.
    """
    return [
        HEADER,
        ["M9.2025", 200, 50, 40, 60],
        ["7, Стоматология", 80, 20, 10, 30],
        ["M10.2025", 100, 40, 20, 20],
        ["7, Стоматология", 50, 10, 5, 5],
        ["3, Терапия", 20, 0, 0, 0],
    ]


def sample_workbook() -> bytes:
    return build_workbook({"2025": sample_rows()})


def truncate_sheet_xml(content: bytes, member: str = "xl/worksheets/sheet1.xml") -> bytes:
    """
    Rewrite an ``.xlsx`` archive with one sheet part cut in half.

    The archive and workbook part stay valid, so the damage is only seen
    when the sheet itself is read.
    """
    source = zipfile.ZipFile(io.BytesIO(content))
    buffer = io.BytesIO()
    with source, zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as target:
        for item in source.infolist():
            data = source.read(item.filename)
            if item.filename == member:
                data = data[: len(data) // 2]
            target.writestr(item, data)
    return buffer.getvalue()


class InMemoryReportStore:
    """
    Dict-backed report store.

    Test hooks
    ----------
    stale_reads:
        ``{file_hash: n}`` hides an existing report from the next *n*
        ``find_report_by_hash`` calls, as if another transaction had not
        committed yet when it was read.
    fail_on:
        Name of a store method that raises ``SQLAlchemyError`` when called.
    """

    def __init__(self) -> None:
        self.reports: dict[uuid.UUID, ReportRecord] = {}
        self.periods: dict[uuid.UUID, PeriodRecord] = {}
        self.categories: dict[uuid.UUID, CategoryRecord] = {}
        self.metric_values: dict[tuple[uuid.UUID, uuid.UUID | None, str], MetricValueInsert] = {}
        self.stale_reads: dict[str, int] = {}
        self.fail_on: str | None = None
        self.commits = 0
        self.rollbacks = 0

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[None]:
        snapshot = (
            dict(self.reports),
            dict(self.periods),
            dict(self.categories),
            dict(self.metric_values),
        )
        try:
            yield
        except BaseException:
            self.reports, self.periods, self.categories, self.metric_values = snapshot
            self.rollbacks += 1
            raise
        self.commits += 1

    def _maybe_fail(self, operation: str) -> None:
        if self.fail_on == operation:
            raise SQLAlchemyError(f"simulated failure in {operation}")

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def find_report_by_hash(self, file_hash: str) -> ReportRecord | None:
        self._maybe_fail("find_report_by_hash")
        if self.stale_reads.get(file_hash, 0) > 0:
            self.stale_reads[file_hash] -= 1
            return None
        for report in self.reports.values():
            if report.file_hash == file_hash:
                return report
        return None

    def create_report(self, *, filename: str, file_hash: str) -> ReportRecord:
        self._maybe_fail("create_report")
        if any(report.file_hash == file_hash for report in self.reports.values()):
            raise ReportAlreadyExistsError(file_hash)
        report = ReportRecord(id=uuid.uuid4(), file_hash=file_hash, filename=filename)
        self.reports[report.id] = report
        return report

    def delete_report(self, report_id: uuid.UUID) -> None:
        self._maybe_fail("delete_report")
        self.reports.pop(report_id, None)
        period_ids = {pid for pid, period in self.periods.items() if period.report_id == report_id}
        for period_id in period_ids:
            del self.periods[period_id]
        self.metric_values = {
            key: value
            for key, value in self.metric_values.items()
            if value.period_id not in period_ids
        }

    # ------------------------------------------------------------------
    # Periods and categories
    # ------------------------------------------------------------------

    def find_periods_by_report(self, report_id: uuid.UUID) -> list[PeriodRecord]:
        return sorted(
            (period for period in self.periods.values() if period.report_id == report_id),
            key=lambda period: (period.year, period.month),
        )

    def upsert_periods(
        self,
        report_id: uuid.UUID,
        periods: Sequence[PeriodUpsert],
    ) -> list[PeriodRecord]:
        self._maybe_fail("upsert_periods")
        existing = {(p.year, p.month): p for p in self.find_periods_by_report(report_id)}
        result: list[PeriodRecord] = []
        for payload in periods:
            record = existing.get((payload.year, payload.month))
            if record is None:
                record = PeriodRecord(
                    id=uuid.uuid4(),
                    report_id=report_id,
                    year=payload.year,
                    month=payload.month,
                    period_key=payload.period_key,
                )
                self.periods[record.id] = record
                existing[(record.year, record.month)] = record
            result.append(record)
        return result

    def upsert_categories(self, categories: Sequence[CategoryUpsert]) -> list[CategoryRecord]:
        self._maybe_fail("upsert_categories")
        existing = {(c.code, c.name): c for c in self.categories.values()}
        result: list[CategoryRecord] = []
        for payload in categories:
            record = existing.get((payload.code, payload.name))
            if record is None:
                record = CategoryRecord(id=uuid.uuid4(), code=payload.code, name=payload.name)
                self.categories[record.id] = record
                existing[(record.code, record.name)] = record
            result.append(record)
        return result

    # ------------------------------------------------------------------
    # Metric values
    # ------------------------------------------------------------------

    def metric_kinds_present(self, report_id: uuid.UUID) -> set[str]:
        period_ids = {p.id for p in self.find_periods_by_report(report_id)}
        return {
            value.metric_key
            for value in self.metric_values.values()
            if value.period_id in period_ids
        }

    def insert_metric_values(
        self,
        values: Sequence[MetricValueInsert],
        *,
        batch_size: int = 1000,
    ) -> int:
        self._maybe_fail("insert_metric_values")
        inserted = 0
        for value in values:
            if value.identity in self.metric_values:
                continue
            self.metric_values[value.identity] = value
            inserted += 1
        return inserted

    # ------------------------------------------------------------------
    # Inspection helpers
    # ------------------------------------------------------------------

    def drop_metric_kind(self, metric_key: str) -> None:
        """Remove every stored value of one kind, as if it never existed."""
        self.metric_values = {
            key: value
            for key, value in self.metric_values.items()
            if value.metric_key != metric_key
        }

    def values_for(
        self,
        *,
        year: int,
        month: int,
        metric_key: str,
        category: tuple[int, str] | None = None,
    ) -> list[MetricValueInsert]:
        period_ids = {
            p.id for p in self.periods.values() if (p.year, p.month) == (year, month)
        }
        category_id = None
        if category is not None:
            category_id = next(
                (c.id for c in self.categories.values() if (c.code, c.name) == category),
                None,
            )
            if category_id is None:
                return []
        return [
            value
            for value in self.metric_values.values()
            if value.period_id in period_ids
            and value.metric_key == metric_key
            and value.category_id == category_id
        ]


class RecordingChangeNotifier:
    def __init__(self, *, fail: bool = False) -> None:
        self.calls: list[tuple[uuid.UUID, list[tuple[int, int]]]] = []
        self._fail = fail

    def on_periods_changed(
        self,
        *,
        report_id: uuid.UUID,
        periods: Sequence[tuple[int, int]],
    ) -> None:
        self.calls.append((report_id, list(periods)))
        if self._fail:
            raise RuntimeError("notifier unavailable")
