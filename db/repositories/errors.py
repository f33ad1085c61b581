"""
Repository-layer exceptions for report persistence flows.
"""

from __future__ import annotations


class ReportRepositoryError(Exception):
    """Base exception for report repository failures."""


class ReportAlreadyExistsError(ReportRepositoryError):
    """Raised when a report with the same file hash was committed concurrently."""

    def __init__(self, file_hash: str) -> None:
        super().__init__(f"Report with file_hash={file_hash[:12]}... already exists.")
        self.file_hash = file_hash
