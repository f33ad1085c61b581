"""
db/repositories/report_repository.py

Persistence layer for reports, periods, categories, and metric values.

Every write is insert-if-absent (``INSERT ... ON CONFLICT DO NOTHING``)
followed by a re-select, so concurrent ingestion of the same content never
duplicates or overwrites rows. The caller controls commit/rollback through
:meth:`ReportRepository.transaction`; no other method commits on its own.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import delete, select, tuple_
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.models.category import Category
from db.models.metric_value import MetricValue
from db.models.period import Period
from db.models.report import Report
from db.repositories.errors import ReportAlreadyExistsError
from db.repositories.types import (
    CategoryRecord,
    CategoryUpsert,
    MetricValueInsert,
    PeriodRecord,
    PeriodUpsert,
    ReportRecord,
)

_PERIOD_CONSTRAINT = "uq_periods_report_year_month"
_CATEGORY_CONSTRAINT = "uq_categories_code_name"
_DEFAULT_BATCH_SIZE = 1000


class ReportRepository:
    """
    SQLAlchemy implementation of the report store used by ingestion.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    def transaction(self) -> Any:
        """
        Open an atomic unit of work.

        Wraps in a savepoint when already inside a transaction so an outer
        transaction is never implicitly committed.
        """
        if self._session.in_transaction():
            return self._session.begin_nested()
        return self._session.begin()

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def find_report_by_hash(self, file_hash: str) -> ReportRecord | None:
        report = self._session.scalars(
            select(Report).where(Report.file_hash == file_hash)
        ).one_or_none()
        if report is None:
            return None
        return _report_record(report)

    def create_report(self, *, filename: str, file_hash: str) -> ReportRecord:
        """
        Insert a new report row.

        Runs inside a savepoint so a unique violation on ``file_hash`` does
        not abort the enclosing transaction.

        Raises
        ------
        ReportAlreadyExistsError
            Another transaction committed a report with the same hash.
        """
        report = Report(file_hash=file_hash, filename=filename)
        try:
            with self._session.begin_nested():
                self._session.add(report)
                self._session.flush()
        except IntegrityError as exc:
            raise ReportAlreadyExistsError(file_hash) from exc

        self._session.refresh(report)
        return _report_record(report)

    def delete_report(self, report_id: uuid.UUID) -> None:
        """
        Delete one report; periods and metric values cascade at the DB level.
        """
        self._session.execute(delete(Report).where(Report.id == report_id))

    # ------------------------------------------------------------------
    # Periods
    # ------------------------------------------------------------------

    def find_periods_by_report(self, report_id: uuid.UUID) -> list[PeriodRecord]:
        stmt = (
            select(Period)
            .where(Period.report_id == report_id)
            .order_by(Period.year, Period.month)
        )
        return [_period_record(period) for period in self._session.scalars(stmt).all()]

    def upsert_periods(
        self,
        report_id: uuid.UUID,
        periods: Sequence[PeriodUpsert],
    ) -> list[PeriodRecord]:
        """
        Insert missing ``(report, year, month)`` rows and return all requested periods.
        """
        if not periods:
            return []

        payloads = [
            {
                "id": uuid.uuid4(),
                "report_id": report_id,
                "year": period.year,
                "month": period.month,
                "period_key": period.period_key,
            }
            for period in periods
        ]
        stmt = insert(Period).values(payloads).on_conflict_do_nothing(
            constraint=_PERIOD_CONSTRAINT,
        )
        self._session.execute(stmt)

        wanted = {(period.year, period.month) for period in periods}
        return [
            record
            for record in self.find_periods_by_report(report_id)
            if (record.year, record.month) in wanted
        ]

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def upsert_categories(self, categories: Sequence[CategoryUpsert]) -> list[CategoryRecord]:
        """
        Insert missing ``(code, name)`` categories and return all requested ones.
        """
        if not categories:
            return []

        pairs = list(dict.fromkeys((category.code, category.name) for category in categories))
        payloads = [{"id": uuid.uuid4(), "code": code, "name": name} for code, name in pairs]
        stmt = insert(Category).values(payloads).on_conflict_do_nothing(
            constraint=_CATEGORY_CONSTRAINT,
        )
        self._session.execute(stmt)

        rows = self._session.scalars(
            select(Category).where(tuple_(Category.code, Category.name).in_(pairs))
        ).all()
        return [CategoryRecord(id=row.id, code=row.code, name=row.name) for row in rows]

    # ------------------------------------------------------------------
    # Metric values
    # ------------------------------------------------------------------

    def metric_kinds_present(self, report_id: uuid.UUID) -> set[str]:
        stmt = (
            select(MetricValue.metric_key)
            .join(Period, Period.id == MetricValue.period_id)
            .where(Period.report_id == report_id)
            .distinct()
        )
        return set(self._session.scalars(stmt).all())

    def insert_metric_values(
        self,
        values: Sequence[MetricValueInsert],
        *,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> int:
        """
        Insert metric rows, skipping any whose key tuple already exists.

        Returns
        -------
        int
            Number of rows actually inserted.
        """
        if not values:
            return 0

        size = max(1, batch_size)
        inserted = 0
        for start in range(0, len(values), size):
            chunk = values[start : start + size]
            payloads = [
                {
                    "id": uuid.uuid4(),
                    "period_id": value.period_id,
                    "scope_type": value.scope_type,
                    "category_id": value.category_id,
                    "metric_key": value.metric_key,
                    "numerator": value.numerator,
                    "denominator": value.denominator,
                    "value": value.value,
                }
                for value in chunk
            ]
            stmt = (
                insert(MetricValue)
                .values(payloads)
                .on_conflict_do_nothing()
                .returning(MetricValue.id)
            )
            inserted += len(self._session.scalars(stmt).all())

        return inserted


# ---------------------------------------------------------------------------
# Module-level helpers (no business logic)
# ---------------------------------------------------------------------------


def _report_record(report: Report) -> ReportRecord:
    return ReportRecord(
        id=report.id,
        file_hash=report.file_hash,
        filename=report.filename,
        uploaded_at=report.uploaded_at,
    )


def _period_record(period: Period) -> PeriodRecord:
    return PeriodRecord(
        id=period.id,
        report_id=period.report_id,
        year=period.year,
        month=period.month,
        period_key=period.period_key,
    )
