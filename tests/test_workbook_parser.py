"""
tests/test_workbook_parser.py

Pytest unit tests for WorkbookParser.

Workbooks are built in memory with openpyxl; nothing touches the disk.

Coverage
--------
- Cell coercion (numbers, decimal commas, blanks, garbage, negatives)
- Year-sheet selection and sheet order
- Period and category label recognition
- Header contract (required vs optional columns, column order)
- Duplicate labels kept in document order
- Unreadable bytes
"""

from __future__ import annotations

import math

import pytest

from app.domain.clinic_metrics import OVERALL, CategoryScope
from app.parsers.workbook_parser import (
    COL_REPEAT_CLIENTS,
    SchemaMismatchError,
    WorkbookFormatError,
    WorkbookParser,
    is_year_sheet,
    parse_workbook,
    to_number,
)
from tests.fakes import HEADER, build_workbook, sample_workbook, truncate_sheet_xml


@pytest.fixture()
def parser() -> WorkbookParser:
    return WorkbookParser()


# ---------------------------------------------------------------------------
# Cell coercion
# ---------------------------------------------------------------------------


class TestToNumber:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (12, 12.0),
            (3.5, 3.5),
            ("42", 42.0),
            (" 1 234,5 ", 1234.5),
            ("0,25", 0.25),
            (" 7 ", 7.0),
        ],
    )
    def test_parses_numbers_and_numeric_strings(self, raw: object, expected: float) -> None:
        assert to_number(raw) == pytest.approx(expected)

    @pytest.mark.parametrize(
        "raw",
        [None, "", "n/a", "—", True, math.nan, math.inf, -5, "-3", "1_000", "0x10", "inf", "nan", "12,5,0"],
    )
    def test_degrades_to_zero(self, raw: object) -> None:
        assert to_number(raw) == 0.0


class TestIsYearSheet:
    def test_accepts_four_ascii_digits(self) -> None:
        assert is_year_sheet("2025")

    @pytest.mark.parametrize("name", ["Итоги", "2025 ", "202", "20255", "FY2025", "٢٠٢٥"])
    def test_rejects_other_names(self, name: str) -> None:
        assert not is_year_sheet(name)


# ---------------------------------------------------------------------------
# Row extraction
# ---------------------------------------------------------------------------


class TestRowExtraction:
    def test_sample_workbook_rows_in_document_order(self, parser: WorkbookParser) -> None:
        rows = parser.parse(sample_workbook())

        assert [(row.year, row.month, row.scope) for row in rows] == [
            (2025, 9, OVERALL),
            (2025, 9, CategoryScope(code=7, name="Стоматология")),
            (2025, 10, OVERALL),
            (2025, 10, CategoryScope(code=7, name="Стоматология")),
            (2025, 10, CategoryScope(code=3, name="Терапия")),
        ]

    def test_period_row_carries_totals(self, parser: WorkbookParser) -> None:
        first = parser.parse(sample_workbook())[0]

        assert first.period_key == "M9.2025"
        assert first.all_clients == 200.0
        assert first.repeat_clients == 50.0
        assert first.new_clients == 40.0
        assert first.continue_clients == 60.0

    def test_rows_before_first_period_are_ignored(self, parser: WorkbookParser) -> None:
        content = build_workbook(
            {
                "2025": [
                    HEADER,
                    ["1, Хирургия", 5, 5, 5, 5],
                    ["Итого", 1, 1, 1, 1],
                    ["M1.2025", 10, 2, 1, 1],
                ]
            }
        )

        rows = parser.parse(content)

        assert len(rows) == 1
        assert rows[0].scope == OVERALL

    def test_unrecognized_and_blank_labels_are_skipped(self, parser: WorkbookParser) -> None:
        content = build_workbook(
            {
                "2025": [
                    HEADER,
                    ["M3.2025", 10, 2, 1, 1],
                    [None, 99, 99, 99, 99],
                    ["Прочее", 99, 99, 99, 99],
                    [",Без кода", 99, 99, 99, 99],
                    ["12,   ", 99, 99, 99, 99],
                    [15, 99, 99, 99, 99],
                    ["  4 ,  Вакцинация  ", 6, 3, 2, 1],
                ]
            }
        )

        rows = parser.parse(content)

        assert [row.scope for row in rows] == [OVERALL, CategoryScope(code=4, name="Вакцинация")]

    def test_invalid_month_marker_does_not_capture_categories(self, parser: WorkbookParser) -> None:
        content = build_workbook(
            {
                "2025": [
                    HEADER,
                    ["M1.2025", 10, 2, 1, 1],
                    ["M13.2025", 10, 2, 1, 1],
                    ["7, Стоматология", 4, 1, 1, 1],
                ]
            }
        )

        rows = parser.parse(content)

        assert [(row.month, row.scope) for row in rows] == [(1, OVERALL)]

    def test_blank_and_text_cells_become_zero(self, parser: WorkbookParser) -> None:
        content = build_workbook(
            {"2025": [HEADER, ["M2.2025", "1 000", None, "abc", "2,5"]]}
        )

        row = parser.parse(content)[0]

        assert row.all_clients == 1000.0
        assert row.repeat_clients == 0.0
        assert row.new_clients == 0.0
        assert row.continue_clients == 2.5

    def test_duplicate_labels_are_kept(self, parser: WorkbookParser) -> None:
        content = build_workbook(
            {
                "2025": [
                    HEADER,
                    ["M5.2025", 10, 2, 1, 1],
                    ["7, Стоматология", 4, 1, 1, 1],
                    ["7, Стоматология", 8, 2, 1, 1],
                ]
            }
        )

        rows = parser.parse(content)

        assert [row.all_clients for row in rows[1:]] == [4.0, 8.0]

    def test_same_code_with_different_names_are_distinct(self, parser: WorkbookParser) -> None:
        content = build_workbook(
            {
                "2025": [
                    HEADER,
                    ["M5.2025", 10, 2, 1, 1],
                    ["7, Стоматология", 4, 1, 1, 1],
                    ["7, Ортодонтия", 8, 2, 1, 1],
                ]
            }
        )

        scopes = [row.scope for row in parser.parse(content)[1:]]

        assert scopes == [
            CategoryScope(code=7, name="Стоматология"),
            CategoryScope(code=7, name="Ортодонтия"),
        ]


# ---------------------------------------------------------------------------
# Sheets and header contract
# ---------------------------------------------------------------------------


class TestSheetsAndHeader:
    def test_non_year_sheets_are_ignored_even_without_header(self, parser: WorkbookParser) -> None:
        content = build_workbook(
            {
                "Итоги": [["что-то другое"], ["M1.2025", 1]],
                "2025": [HEADER, ["M1.2025", 10, 2, 1, 1]],
            }
        )

        rows = parser.parse(content)

        assert len(rows) == 1

    def test_sheets_are_read_in_workbook_order(self, parser: WorkbookParser) -> None:
        content = build_workbook(
            {
                "2025": [HEADER, ["M1.2025", 10, 2, 1, 1]],
                "2024": [HEADER, ["M12.2024", 10, 2, 1, 1]],
            }
        )

        rows = parser.parse(content)

        assert [(row.year, row.month) for row in rows] == [(2025, 1), (2024, 12)]

    def test_missing_required_column_raises(self, parser: WorkbookParser) -> None:
        header = [label for label in HEADER if label != COL_REPEAT_CLIENTS]
        content = build_workbook({"2025": [header, ["M1.2025", 10, 1, 1]]})

        with pytest.raises(SchemaMismatchError) as exc_info:
            parser.parse(content)

        assert exc_info.value.sheet_name == "2025"
        assert exc_info.value.missing_columns == (COL_REPEAT_CLIENTS,)
        assert exc_info.value.to_dict()["missing_columns"] == [COL_REPEAT_CLIENTS]

    def test_optional_columns_default_to_zero(self, parser: WorkbookParser) -> None:
        content = build_workbook({"2025": [HEADER[:3], ["M1.2025", 10, 4]]})

        row = parser.parse(content)[0]

        assert row.repeat_clients == 4.0
        assert row.new_clients == 0.0
        assert row.continue_clients == 0.0

    def test_columns_are_located_by_label_not_position(self, parser: WorkbookParser) -> None:
        header = [" " + HEADER[2] + " ", "Лишняя", HEADER[1], HEADER[0]]
        content = build_workbook({"2025": [header, [7, "x", 30, "M4.2025"]]})

        row = parser.parse(content)[0]

        assert row.month == 4
        assert row.all_clients == 30.0
        assert row.repeat_clients == 7.0

    def test_empty_year_sheet_produces_no_rows(self, parser: WorkbookParser) -> None:
        content = build_workbook({"2025": []})

        assert parser.parse(content) == []

    def test_garbage_bytes_raise_format_error(self) -> None:
        with pytest.raises(WorkbookFormatError):
            parse_workbook(b"this is not an excel file")

    def test_damaged_sheet_xml_raises_format_error(self, parser: WorkbookParser) -> None:
        content = truncate_sheet_xml(sample_workbook())

        with pytest.raises(WorkbookFormatError):
            parser.parse(content)

    def test_damaged_non_year_sheet_is_never_read(self, parser: WorkbookParser) -> None:
        content = build_workbook(
            {
                "2025": [HEADER, ["M1.2025", 10, 2, 1, 1]],
                "Итоги": [["x"] * 5 for _ in range(20)],
            }
        )

        rows = parser.parse(truncate_sheet_xml(content, member="xl/worksheets/sheet2.xml"))

        assert len(rows) == 1
