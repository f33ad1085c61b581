"""
app/parsers/workbook_parser.py

Extraction of typed per-period, per-scope client counts from the clinic's
Excel export.

Workbook contract
-----------------
- Only sheets named with exactly four digits (a year, e.g. ``2025``) are read.
- Row 1 is the header; columns are located by exact (trimmed) label.
- A label ``M<month>.<year>`` (e.g. ``M10.2025``) opens a new period and is
  itself the clinic-wide totals row for that month.
- A label ``<code>, <name>`` (e.g. ``7, Стоматология``) is one specialization
  row attributed to the most recently opened period.
- Every other row is ignored.

No storage or metric logic lives here.
"""

from __future__ import annotations

import io
import logging
import math
import re
import zipfile
import zlib
from dataclasses import dataclass
from typing import Any, Sequence
from xml.etree.ElementTree import ParseError

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from app.domain.clinic_metrics import OVERALL, CategoryScope, RawMetricRow, Scope

logger = logging.getLogger(__name__)

COL_GROUP_NAME = "Группа / Название"
COL_ALL_CLIENTS = "Клиенты / КЛ.Все Записанные"
COL_REPEAT_CLIENTS = "Клиенты / КЛ. Повторные"
COL_NEW_CLIENTS = "Клиенты / КЛ. Новые Записанные"
COL_CONTINUE_CLIENTS = "Клиенты / КЛ. Продолжение Записанные"

REQUIRED_COLUMNS: tuple[str, ...] = (
    COL_GROUP_NAME,
    COL_ALL_CLIENTS,
    COL_REPEAT_CLIENTS,
)
OPTIONAL_COLUMNS: tuple[str, ...] = (
    COL_NEW_CLIENTS,
    COL_CONTINUE_CLIENTS,
)

_YEAR_SHEET_RE = re.compile(r"[0-9]{4}")
_PERIOD_RE = re.compile(r"M([0-9]{1,2})\.([0-9]{4})")
_CATEGORY_RE = re.compile(r"([0-9]+)\s*,\s*(.+)")
_WHITESPACE_RE = re.compile(r"\s+")
_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

_CORRUPT_WORKBOOK_ERRORS = (
    InvalidFileException,
    zipfile.BadZipFile,
    zlib.error,
    ParseError,
    KeyError,
    OSError,
    ValueError,
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class WorkbookParseError(ValueError):
    """
    Raised when an uploaded workbook cannot be turned into metric rows.
    """


class WorkbookFormatError(WorkbookParseError):
    """
    Raised when the uploaded bytes are not a readable Excel workbook.
    """


class SchemaMismatchError(WorkbookParseError):
    """
    Raised when a year sheet lacks one or more required header columns.
    """

    def __init__(self, *, sheet_name: str, missing_columns: Sequence[str]) -> None:
        self.sheet_name = sheet_name
        self.missing_columns = tuple(missing_columns)
        labels = ", ".join(f'"{column}"' for column in self.missing_columns)
        super().__init__(f"Sheet {sheet_name} is missing required columns: {labels}.")

    def to_dict(self) -> dict[str, object]:
        return {
            "message": str(self),
            "sheet": self.sheet_name,
            "missing_columns": list(self.missing_columns),
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def to_number(value: Any) -> float:
    """
    Coerce a cell value to a non-negative float, degrading to ``0.0``.

    Numbers pass through; strings have whitespace removed and a decimal
    comma normalized, then must be a plain decimal literal (optionally with
    an exponent). Blank, malformed, non-finite or negative values become
    ``0.0``.
    """

    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = _WHITESPACE_RE.sub("", value).replace(",", ".", 1)
        if not _DECIMAL_RE.fullmatch(cleaned):
            return 0.0
        number = float(cleaned)
    else:
        return 0.0

    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def is_year_sheet(sheet_name: str) -> bool:
    return bool(_YEAR_SHEET_RE.fullmatch(sheet_name))


@dataclass(frozen=True)
class _ColumnLayout:
    name: int
    all_clients: int
    repeat_clients: int
    new_clients: int | None
    continue_clients: int | None


@dataclass(frozen=True)
class _PeriodMarker:
    year: int
    month: int
    period_key: str


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class WorkbookParser:
    """
    Parses an in-memory workbook into :class:`RawMetricRow` items.

    Rows are returned in document order, sheet by sheet in the workbook's
    declared order. Repeated labels are kept as separate rows.
    """

    def parse(self, content: bytes) -> list[RawMetricRow]:
        workbook = self._load(content)
        rows: list[RawMetricRow] = []
        try:
            for worksheet in workbook.worksheets:
                sheet_name = str(worksheet.title)
                if not is_year_sheet(sheet_name):
                    logger.debug("Skipping non-year sheet %r", sheet_name)
                    continue
                sheet_rows = self._parse_sheet(
                    sheet_name=sheet_name,
                    values=worksheet.iter_rows(values_only=True),
                )
                logger.debug("Sheet %r produced %d rows", sheet_name, len(sheet_rows))
                rows.extend(sheet_rows)
        except WorkbookParseError:
            raise
        except _CORRUPT_WORKBOOK_ERRORS as exc:
            # Sheet XML is read lazily, so damage inside a sheet surfaces here.
            raise WorkbookFormatError("Uploaded workbook has an unreadable sheet.") from exc
        finally:
            workbook.close()
        return rows

    def _load(self, content: bytes) -> Any:
        try:
            return openpyxl.load_workbook(
                io.BytesIO(content),
                read_only=True,
                data_only=True,
            )
        except _CORRUPT_WORKBOOK_ERRORS as exc:
            raise WorkbookFormatError("Uploaded file is not a readable Excel workbook.") from exc

    def _parse_sheet(self, *, sheet_name: str, values: Any) -> list[RawMetricRow]:
        iterator = iter(values)
        header = next(iterator, None)
        if header is None or all(cell is None or str(cell).strip() == "" for cell in header):
            return []

        layout = self._resolve_layout(sheet_name=sheet_name, header=header)
        rows: list[RawMetricRow] = []
        current: _PeriodMarker | None = None

        for cells in iterator:
            label = self._label(cells, layout.name)
            if not label:
                continue

            period_match = _PERIOD_RE.fullmatch(label)
            if period_match:
                month = int(period_match.group(1))
                year = int(period_match.group(2))
                if not 1 <= month <= 12:
                    current = None
                    continue
                current = _PeriodMarker(year=year, month=month, period_key=label)
                rows.append(self._build_row(cells, layout, current, OVERALL))
                continue

            if current is None:
                continue

            category_match = _CATEGORY_RE.fullmatch(label)
            if not category_match:
                continue

            name = category_match.group(2).strip()
            if not name:
                continue
            scope = CategoryScope(code=int(category_match.group(1)), name=name)
            rows.append(self._build_row(cells, layout, current, scope))

        return rows

    def _resolve_layout(self, *, sheet_name: str, header: Sequence[Any]) -> _ColumnLayout:
        labels = [str(cell).strip() if cell is not None else "" for cell in header]

        def index_of(column: str) -> int | None:
            try:
                return labels.index(column)
            except ValueError:
                return None

        missing = [column for column in REQUIRED_COLUMNS if index_of(column) is None]
        if missing:
            raise SchemaMismatchError(sheet_name=sheet_name, missing_columns=missing)

        return _ColumnLayout(
            name=labels.index(COL_GROUP_NAME),
            all_clients=labels.index(COL_ALL_CLIENTS),
            repeat_clients=labels.index(COL_REPEAT_CLIENTS),
            new_clients=index_of(COL_NEW_CLIENTS),
            continue_clients=index_of(COL_CONTINUE_CLIENTS),
        )

    @staticmethod
    def _label(cells: Sequence[Any], index: int) -> str:
        value = cells[index] if index < len(cells) else None
        if not isinstance(value, str):
            return ""
        return value.strip()

    @staticmethod
    def _cell_number(cells: Sequence[Any], index: int | None) -> float:
        if index is None or index >= len(cells):
            return 0.0
        return to_number(cells[index])

    def _build_row(
        self,
        cells: Sequence[Any],
        layout: _ColumnLayout,
        period: _PeriodMarker,
        scope: Scope,
    ) -> RawMetricRow:
        return RawMetricRow(
            year=period.year,
            month=period.month,
            period_key=period.period_key,
            scope=scope,
            all_clients=self._cell_number(cells, layout.all_clients),
            repeat_clients=self._cell_number(cells, layout.repeat_clients),
            new_clients=self._cell_number(cells, layout.new_clients),
            continue_clients=self._cell_number(cells, layout.continue_clients),
        )


def parse_workbook(content: bytes) -> list[RawMetricRow]:
    """
    Parse raw workbook bytes into metric rows.

    Raises
    ------
    WorkbookFormatError
        The bytes are not an Excel workbook.
    SchemaMismatchError
        A year sheet lacks a required column.
    """

    return WorkbookParser().parse(content)
