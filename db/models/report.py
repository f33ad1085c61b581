"""
db/models/report.py

Report model — one ingested workbook, identified by the SHA-256 of its bytes.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Index, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base

if TYPE_CHECKING:
    from db.models.period import Period


class Report(Base):
    """
    One uploaded snapshot of clinic data.

    ``file_hash`` is unique: re-uploading identical bytes resolves to the same
    report. Each report owns one period row per month found in the file.
    """

    __tablename__ = "reports"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    file_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Hex SHA-256 of the uploaded file content",
    )

    filename: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Original filename as supplied by the uploader",
    )

    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    periods: Mapped[list["Period"]] = relationship(
        "Period",
        back_populates="report",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # ── Indexes ────────────────────────────────────────────────────────────────

    __table_args__ = (
        UniqueConstraint("file_hash", name="uq_reports_file_hash"),
        Index("ix_reports_uploaded_at", "uploaded_at"),
    )

    def __repr__(self) -> str:
        return f"<Report id={self.id} filename={self.filename!r} file_hash={self.file_hash[:12]!r}>"
