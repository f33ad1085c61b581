"""
Repository layer exports.
"""

from db.repositories.errors import ReportAlreadyExistsError, ReportRepositoryError
from db.repositories.metric_query_repository import MetricQueryRepository, SeriesPoint
from db.repositories.report_repository import ReportRepository
from db.repositories.types import (
    CategoryRecord,
    CategoryUpsert,
    MetricValueInsert,
    PeriodRecord,
    PeriodUpsert,
    ReportRecord,
    ReportStore,
)

__all__ = [
    "ReportRepository",
    "MetricQueryRepository",
    "SeriesPoint",
    "ReportStore",
    "ReportRecord",
    "PeriodRecord",
    "CategoryRecord",
    "PeriodUpsert",
    "CategoryUpsert",
    "MetricValueInsert",
    "ReportRepositoryError",
    "ReportAlreadyExistsError",
]
