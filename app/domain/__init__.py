"""
app/domain package marker.
"""

from app.domain.clinic_metrics import (
    ALL_METRIC_KEYS,
    OVERALL,
    CategoryScope,
    IngestionResult,
    MetricComputation,
    OverallScope,
    RawMetricRow,
    Scope,
)

__all__ = [
    "ALL_METRIC_KEYS",
    "OVERALL",
    "CategoryScope",
    "IngestionResult",
    "MetricComputation",
    "OverallScope",
    "RawMetricRow",
    "Scope",
]
