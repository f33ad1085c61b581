"""
app/api/routers/metrics_router.py

Metric read endpoints: one period, period comparison, and time series.

Unknown ``metric`` values fall back to ``return_rate``.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from app.api.dependencies import get_metrics_query_service
from app.domain.clinic_metrics import metric_key_from_param
from app.schemas.metrics import PeriodComparisonResponse, PeriodMetricsResponse, SeriesResponse
from app.services.metrics_query_service import MetricsQueryService

router = APIRouter(prefix="/api", tags=["metrics"])


@router.get("/metrics", response_model=PeriodMetricsResponse)
def get_period_metrics(
    year: int = Query(..., ge=1900, le=9999),
    month: int = Query(..., ge=1, le=12),
    report_id: uuid.UUID | None = Query(default=None, description="Snapshot to read; latest when omitted"),
    metric: str | None = Query(default=None),
    service: MetricsQueryService = Depends(get_metrics_query_service),
) -> PeriodMetricsResponse:
    """
    Overall and per-category values for one month.
    """

    result = service.period_metrics(
        year=year,
        month=month,
        metric_key=metric_key_from_param(metric),
        report_id=report_id,
    )
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No data for this period.",
        )
    return result


@router.get("/metrics/compare", response_model=PeriodComparisonResponse)
def compare_period_metrics(
    year: int = Query(..., ge=1900, le=9999),
    month: int = Query(..., ge=1, le=12),
    compare_year: int = Query(..., ge=1900, le=9999),
    compare_month: int = Query(..., ge=1, le=12),
    report_id: uuid.UUID | None = Query(default=None),
    metric: str | None = Query(default=None),
    service: MetricsQueryService = Depends(get_metrics_query_service),
) -> PeriodComparisonResponse:
    result = service.compare_periods(
        year=year,
        month=month,
        compare_year=compare_year,
        compare_month=compare_month,
        metric_key=metric_key_from_param(metric),
        report_id=report_id,
    )
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No data for this period.",
        )
    return result


@router.get("/series/overall", response_model=SeriesResponse)
def get_overall_series(
    metric: str | None = Query(default=None),
    service: MetricsQueryService = Depends(get_metrics_query_service),
) -> SeriesResponse:
    """
    Clinic-wide values per month, taken from the latest report for each month.
    """

    return service.overall_series(metric_key=metric_key_from_param(metric))


@router.get("/series/categories/{code}", response_model=SeriesResponse)
def get_category_series(
    code: int = Path(..., ge=0),
    metric: str | None = Query(default=None),
    service: MetricsQueryService = Depends(get_metrics_query_service),
) -> SeriesResponse:
    return service.category_series(code=code, metric_key=metric_key_from_param(metric))
