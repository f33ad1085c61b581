"""
app/schemas package marker.
"""

from app.schemas.metrics import (
    PeriodComparisonResponse,
    PeriodMetricsResponse,
    ReportSummaryResponse,
    SeriesResponse,
    SnapshotResponse,
    YearPeriodsResponse,
)
from app.schemas.report_upload import (
    ReportUploadResponse,
    SchemaMismatchResponse,
    TouchedPeriodResponse,
)

__all__ = [
    "PeriodComparisonResponse",
    "PeriodMetricsResponse",
    "ReportSummaryResponse",
    "ReportUploadResponse",
    "SchemaMismatchResponse",
    "SeriesResponse",
    "SnapshotResponse",
    "TouchedPeriodResponse",
    "YearPeriodsResponse",
]
