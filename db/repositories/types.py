"""
Typed DTOs and the store protocol used by the report ingestion flow.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from db.models.metric_value import ScopeType


@dataclass(frozen=True)
class ReportRecord:
    id: uuid.UUID
    file_hash: str
    filename: str
    uploaded_at: datetime | None = None


@dataclass(frozen=True)
class PeriodRecord:
    id: uuid.UUID
    report_id: uuid.UUID
    year: int
    month: int
    period_key: str


@dataclass(frozen=True)
class CategoryRecord:
    id: uuid.UUID
    code: int
    name: str


@dataclass(frozen=True)
class PeriodUpsert:
    year: int
    month: int
    period_key: str


@dataclass(frozen=True)
class CategoryUpsert:
    code: int
    name: str


@dataclass(frozen=True)
class MetricValueInsert:
    """
    One metric row ready for insert-if-absent.

    ``category_id is None`` means the clinic-wide (overall) scope.
    """

    period_id: uuid.UUID
    category_id: uuid.UUID | None
    metric_key: str
    numerator: float
    denominator: float
    value: float

    @property
    def scope_type(self) -> str:
        if self.category_id is None:
            return ScopeType.OVERALL
        return ScopeType.CATEGORY

    @property
    def identity(self) -> tuple[uuid.UUID, uuid.UUID | None, str]:
        return (self.period_id, self.category_id, self.metric_key)


class ReportStore(Protocol):
    """
    Persistence operations required by report ingestion.

    All writes are insert-if-absent. ``transaction()`` wraps one atomic unit
    of work; leaving it with an exception discards every write made inside.
    """

    def transaction(self) -> AbstractContextManager[object]:
        ...

    def find_report_by_hash(self, file_hash: str) -> ReportRecord | None:
        ...

    def create_report(self, *, filename: str, file_hash: str) -> ReportRecord:
        ...

    def delete_report(self, report_id: uuid.UUID) -> None:
        ...

    def find_periods_by_report(self, report_id: uuid.UUID) -> list[PeriodRecord]:
        ...

    def upsert_periods(
        self,
        report_id: uuid.UUID,
        periods: Sequence[PeriodUpsert],
    ) -> list[PeriodRecord]:
        ...

    def upsert_categories(self, categories: Sequence[CategoryUpsert]) -> list[CategoryRecord]:
        ...

    def metric_kinds_present(self, report_id: uuid.UUID) -> set[str]:
        ...

    def insert_metric_values(
        self,
        values: Sequence[MetricValueInsert],
        *,
        batch_size: int = 1000,
    ) -> int:
        ...
