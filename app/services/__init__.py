"""
app/services package marker.
"""

from app.services.change_notifier import (
    ChangeNotifier,
    LoggingChangeNotifier,
    NoOpChangeNotifier,
)
from app.services.metrics_query_service import MetricsQueryService
from app.services.report_ingestion_service import (
    EmptyExtractionError,
    IngestionPersistenceError,
    ReportIngestionService,
    get_report_ingestion_service,
)

__all__ = [
    "ChangeNotifier",
    "LoggingChangeNotifier",
    "NoOpChangeNotifier",
    "MetricsQueryService",
    "EmptyExtractionError",
    "IngestionPersistenceError",
    "ReportIngestionService",
    "get_report_ingestion_service",
]
