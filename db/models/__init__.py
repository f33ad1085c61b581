"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.category import Category
from db.models.metric_value import MetricKey, MetricValue, ScopeType
from db.models.period import Period
from db.models.report import Report

__all__ = [
    "Report",
    "Period",
    "Category",
    "MetricValue",
    "MetricKey",
    "ScopeType",
]
