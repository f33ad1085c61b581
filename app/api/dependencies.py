"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation and per-request services.
"""

from __future__ import annotations

from fastapi import Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from app.services.metrics_query_service import MetricsQueryService
from db.repositories.metric_query_repository import MetricQueryRepository
from db.repositories.report_repository import ReportRepository
from db.repositories.types import ReportStore
from db.session import get_db

EXCEL_EXTENSIONS = (".xlsx", ".xlsm")
EXCEL_CONTENT_TYPES = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel.sheet.macroenabled.12",
}


def get_excel_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is an Excel workbook by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    is_excel_filename = filename.endswith(EXCEL_EXTENSIONS)
    is_excel_content_type = content_type in EXCEL_CONTENT_TYPES

    if not is_excel_filename and not is_excel_content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only Excel (.xlsx) files are allowed.",
        )

    return file


def get_report_store(db: Session = Depends(get_db)) -> ReportStore:
    """
    Report store bound to the request's database session.
    """

    return ReportRepository(db)


def get_metrics_query_service(db: Session = Depends(get_db)) -> MetricsQueryService:
    return MetricsQueryService(MetricQueryRepository(db))
