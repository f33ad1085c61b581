"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from db.config import env_int, env_str

_DEFAULT_MAX_UPLOAD_BYTES = 20 * 1024 * 1024


@dataclass(frozen=True)
class AppSettings:
    """
    Top-level application settings.
    """

    title: str = "Vet Clinic Metrics API"
    log_level: str = "INFO"


@dataclass(frozen=True)
class ReportIngestionSettings:
    """
    Runtime settings for Excel report ingestion.
    """

    max_upload_bytes: int = _DEFAULT_MAX_UPLOAD_BYTES
    max_attempts: int = 3
    metric_batch_size: int = 1000


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """
    Return cached application settings.
    """

    return AppSettings(
        title=env_str("APP_TITLE", "Vet Clinic Metrics API"),
        log_level=env_str("LOG_LEVEL", "INFO").upper(),
    )


@lru_cache(maxsize=1)
def get_report_ingestion_settings() -> ReportIngestionSettings:
    """
    Return cached report ingestion settings from environment variables.
    """

    return ReportIngestionSettings(
        max_upload_bytes=max(1, env_int("REPORT_UPLOAD_MAX_BYTES", _DEFAULT_MAX_UPLOAD_BYTES)),
        max_attempts=max(1, env_int("REPORT_INGEST_MAX_ATTEMPTS", 3)),
        metric_batch_size=max(1, env_int("REPORT_INGEST_METRIC_BATCH_SIZE", 1000)),
    )
