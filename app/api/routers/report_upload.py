"""
app/api/routers/report_upload.py

Excel report upload endpoint.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, UploadFile, status

from app.api.dependencies import get_excel_upload, get_report_store
from app.config import get_report_ingestion_settings
from app.parsers.workbook_parser import SchemaMismatchError, WorkbookFormatError
from app.schemas.report_upload import (
    ReportUploadResponse,
    SchemaMismatchResponse,
    TouchedPeriodResponse,
)
from app.services.report_ingestion_service import (
    EmptyExtractionError,
    IngestionPersistenceError,
    ReportIngestionService,
    get_report_ingestion_service,
)
from db.repositories.types import ReportStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.post(
    "/upload",
    response_model=ReportUploadResponse,
    responses={400: {"model": SchemaMismatchResponse}},
)
def upload_report(
    file: UploadFile = Depends(get_excel_upload),
    store: ReportStore = Depends(get_report_store),
    ingestion_service: ReportIngestionService = Depends(get_report_ingestion_service),
) -> ReportUploadResponse:
    """
    Ingest one Excel export as a report snapshot.

    Re-uploading identical bytes returns the existing report with
    ``deduped=true``, or extends it with metric kinds it does not have yet.
    """

    max_bytes = get_report_ingestion_settings().max_upload_bytes
    try:
        content = file.file.read(max_bytes + 1)
    finally:
        file.file.close()

    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty.",
        )
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Uploaded file exceeds configured size limit.",
        )

    filename = (file.filename or "report.xlsx").strip()
    try:
        result = ingestion_service.ingest_report(
            content=content,
            filename=filename,
            store=store,
        )
    except SchemaMismatchError as exc:
        logger.warning("Rejected upload filename=%r: %s", filename, exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc
    except (EmptyExtractionError, WorkbookFormatError) as exc:
        logger.warning("Rejected upload filename=%r: %s", filename, exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except IngestionPersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to store report data.",
        ) from exc

    return ReportUploadResponse(
        report_id=result.report_id,
        deduped=result.deduped,
        updated=result.updated,
        metrics_written=result.metrics_written,
        touched_periods=[
            TouchedPeriodResponse(year=year, month=month)
            for year, month in result.touched_periods
        ],
    )
