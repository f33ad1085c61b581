"""
app/schemas/metrics.py

Response schemas for the reporting read API.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class ReportSummaryResponse(BaseModel):
    """
    One uploaded report and the months it covers.
    """

    id: uuid.UUID
    filename: str
    uploaded_at: datetime | None = None
    periods: list[tuple[int, int]] = Field(default_factory=list)


class YearPeriodsResponse(BaseModel):
    year: int
    months: list[int] = Field(default_factory=list)


class SnapshotResponse(BaseModel):
    """
    A report that holds data for a given month.
    """

    report_id: uuid.UUID
    filename: str
    uploaded_at: datetime | None = None


class MetricTripleResponse(BaseModel):
    numerator: float
    denominator: float
    value: float


class CategoryMetricResponse(MetricTripleResponse):
    code: int | None = None
    name: str


class PeriodInfoResponse(BaseModel):
    id: uuid.UUID
    year: int
    month: int
    period_key: str
    report: SnapshotResponse


class PeriodMetricsResponse(BaseModel):
    """
    Overall and per-category values of one metric for one period.
    """

    period: PeriodInfoResponse
    metric_key: str
    overall: MetricTripleResponse | None = None
    categories: list[CategoryMetricResponse] = Field(default_factory=list)


class ScopeDeltaResponse(BaseModel):
    """
    One scope compared across two periods; ``delta`` is ``a - b`` or
    ``None`` when either side has no value.
    """

    key: str
    name: str
    a: MetricTripleResponse | None = None
    b: MetricTripleResponse | None = None
    delta: float | None = None


class PeriodComparisonResponse(BaseModel):
    metric_key: str
    a: PeriodMetricsResponse
    b: PeriodMetricsResponse | None = None
    overall: ScopeDeltaResponse
    categories: list[ScopeDeltaResponse] = Field(default_factory=list)


class SeriesPointResponse(MetricTripleResponse):
    year: int
    month: int
    report_id: uuid.UUID
    category_code: int | None = None
    category_name: str | None = None


class SeriesResponse(BaseModel):
    metric_key: str
    points: list[SeriesPointResponse] = Field(default_factory=list)
