"""
Unit tests for delimited and XLSX export.
"""

import io

import pandas as pd
import pytest

from extract_builder.extracts.export import quote_field, safe_sheet_name, to_delimited_text, to_xlsx_bytes

COLUMNS = ["Member Name", "Plan Code"]


class TestQuoteField:
    def test_plain_value_is_untouched(self):
        assert quote_field("Smith", ",") == "Smith"

    def test_value_containing_delimiter_is_quoted(self):
        assert quote_field("Smith, John", ",") == '"Smith, John"'

    def test_quotes_are_doubled_for_comma(self):
        assert quote_field('The "Rock"', ",") == '"The ""Rock"""'

    def test_quotes_are_not_doubled_for_other_delimiters(self):
        assert quote_field('The "Rock"', "|") == '"The "Rock""'

    def test_newline_forces_quoting(self):
        assert quote_field("line one\nline two", "|") == '"line one\nline two"'

    def test_none_is_empty(self):
        assert quote_field(None, ",") == ""


class TestDelimitedText:
    def test_header_then_rows(self):
        rows = [
            {"Member Name": "Member 01", "Plan Code": "PLN1"},
            {"Member Name": "Member 02", "Plan Code": None},
        ]

        text = to_delimited_text(COLUMNS, rows, ",")

        assert text.split("\n") == ["Member Name,Plan Code", "Member 01,PLN1", "Member 02,"]

    def test_pipe_delimiter(self):
        text = to_delimited_text(COLUMNS, [{"Member Name": "A, B", "Plan Code": "X|Y"}], "|")

        assert text.split("\n")[1] == 'A, B|"X|Y"'

    def test_no_rows_gives_header_only(self):
        assert to_delimited_text(COLUMNS, [], "\t") == "Member Name\tPlan Code"


class TestXlsx:
    def test_workbook_holds_header_and_rows(self):
        rows = [{"Member Name": "Member 01", "Plan Code": "PLN1"}, {"Member Name": "Member 02", "Plan Code": None}]

        content = to_xlsx_bytes(COLUMNS, rows, sheet_name="Active Commercial Members")

        assert content[:2] == b"PK"
        df = pd.read_excel(io.BytesIO(content), engine="openpyxl")
        assert list(df.columns) == COLUMNS
        assert df["Member Name"].tolist() == ["Member 01", "Member 02"]

    def test_long_sheet_names_are_truncated(self):
        content = to_xlsx_bytes(COLUMNS, [], sheet_name="x" * 40)

        sheets = pd.read_excel(io.BytesIO(content), sheet_name=None, engine="openpyxl")
        assert list(sheets) == ["x" * 31]

    def test_extract_names_with_forbidden_characters_still_export(self):
        content = to_xlsx_bytes(["A"], [{"A": "1"}], sheet_name="Q1/Q2 Members")

        sheets = pd.read_excel(io.BytesIO(content), sheet_name=None, engine="openpyxl")
        assert list(sheets) == ["Q1Q2 Members"]
        assert sheets["Q1Q2 Members"]["A"].tolist() == ["1"]


class TestSafeSheetName:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Active Members", "Active Members"),
            ("Q1/Q2 Members", "Q1Q2 Members"),
            ("a\\b?c*d[e]f:g", "abcdefg"),
            ("'quoted'", "quoted"),
            ("/?*", "Extract"),
            ("", "Extract"),
            (None, "Extract"),
        ],
    )
    def test_titles_are_made_legal(self, name, expected):
        assert safe_sheet_name(name) == expected

    def test_title_is_capped_at_31_characters(self):
        assert len(safe_sheet_name("Members " * 10)) <= 31
