"""
app/domain/clinic_metrics.py

Domain models shared by the workbook parser, metric formulas, and the
report ingestion flow.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Union

from db.models.metric_value import MetricKey


ALL_METRIC_KEYS: tuple[str, ...] = (
    MetricKey.RETURN_RATE,
    MetricKey.REPEAT_VISIT_RATE,
    MetricKey.CHURN_RATE,
)


def metric_key_from_param(value: str | None) -> str:
    """
    Map a user-supplied metric name to a known metric key.

    Unknown or missing names fall back to ``return_rate``.
    """

    if value in ALL_METRIC_KEYS:
        return value
    return MetricKey.RETURN_RATE


@dataclass(frozen=True)
class OverallScope:
    """Clinic-wide totals for a month."""


@dataclass(frozen=True)
class CategoryScope:
    """One specialization, identified by its ``(code, name)`` pair."""

    code: int
    name: str


Scope = Union[OverallScope, CategoryScope]

OVERALL = OverallScope()


def scope_key(scope: Scope) -> str:
    """
    Stable lookup key for a scope: ``overall`` or ``cat:<code>|<name>``.
    """

    if isinstance(scope, CategoryScope):
        return f"cat:{scope.code}|{scope.name}"
    return "overall"


@dataclass(frozen=True)
class RawMetricRow:
    """
    One typed row extracted from a workbook sheet.

    Counts are non-negative; a blank or malformed source cell yields ``0``.
    """

    year: int
    month: int
    period_key: str
    scope: Scope
    all_clients: float = 0.0
    repeat_clients: float = 0.0
    new_clients: float = 0.0
    continue_clients: float = 0.0

    @property
    def year_month(self) -> tuple[int, int]:
        return (self.year, self.month)


@dataclass(frozen=True)
class MetricComputation:
    """
    Result of one metric formula: ``value`` is derived from
    ``numerator`` and ``denominator`` and is never NaN or infinite.
    """

    metric_key: str
    numerator: float
    denominator: float
    value: float


@dataclass(frozen=True)
class IngestionResult:
    """
    Outcome of one report upload.
    """

    report_id: uuid.UUID
    deduped: bool
    updated: bool = False
    touched_periods: list[tuple[int, int]] = field(default_factory=list)
    metrics_written: int = 0
