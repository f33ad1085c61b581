"""
app/parsers package marker.
"""

from app.parsers.workbook_parser import (
    SchemaMismatchError,
    WorkbookFormatError,
    WorkbookParseError,
    WorkbookParser,
    parse_workbook,
)

__all__ = [
    "SchemaMismatchError",
    "WorkbookFormatError",
    "WorkbookParseError",
    "WorkbookParser",
    "parse_workbook",
]
