"""
app/api/routers/reports_router.py

Upload history and period navigation endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path

from app.api.dependencies import get_metrics_query_service
from app.schemas.metrics import ReportSummaryResponse, SnapshotResponse, YearPeriodsResponse
from app.services.metrics_query_service import MetricsQueryService

router = APIRouter(prefix="/api", tags=["reports"])


@router.get("/reports", response_model=list[ReportSummaryResponse])
def list_reports(
    service: MetricsQueryService = Depends(get_metrics_query_service),
) -> list[ReportSummaryResponse]:
    """
    Upload history, newest first, with the months each report covers.
    """

    return service.list_reports()


@router.get("/periods", response_model=list[YearPeriodsResponse])
def list_periods(
    service: MetricsQueryService = Depends(get_metrics_query_service),
) -> list[YearPeriodsResponse]:
    return service.available_periods()


@router.get("/periods/{year}/{month}/snapshots", response_model=list[SnapshotResponse])
def list_snapshots(
    year: int = Path(..., ge=1900, le=9999),
    month: int = Path(..., ge=1, le=12),
    service: MetricsQueryService = Depends(get_metrics_query_service),
) -> list[SnapshotResponse]:
    """
    Reports holding data for one month, newest first.
    """

    return service.snapshots(year=year, month=month)
