"""
app/schemas/report_upload.py

Response schemas for report upload endpoints.
"""

from __future__ import annotations

import uuid

from pydantic import BaseModel, Field


class TouchedPeriodResponse(BaseModel):
    """
    One ``(year, month)`` whose metrics changed during an upload.
    """

    year: int
    month: int = Field(..., ge=1, le=12)


class ReportUploadResponse(BaseModel):
    """
    API response model for one workbook upload.
    """

    report_id: uuid.UUID
    deduped: bool
    updated: bool = False
    metrics_written: int = Field(default=0, ge=0)
    touched_periods: list[TouchedPeriodResponse] = Field(default_factory=list)


class SchemaMismatchResponse(BaseModel):
    """
    Error detail returned when a year sheet lacks required columns.
    """

    message: str
    sheet: str
    missing_columns: list[str] = Field(default_factory=list)
