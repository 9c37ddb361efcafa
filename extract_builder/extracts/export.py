# extract_builder/extracts/export.py
"""Serialize executed extract rows to delimited text or XLSX."""

import io
import re
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
DEFAULT_SHEET_NAME = "Extract"

# Characters Excel refuses in worksheet titles
_INVALID_SHEET_CHARS = re.compile(r"[\\/?*\[\]:]")


def quote_field(value: Any, delimiter: str) -> str:
    """Quote a field containing the delimiter, a quote or a newline.

    Embedded quotes are doubled only for comma-delimited output.
    """
    text = "" if value is None else str(value)
    if delimiter in text or '"' in text or "\n" in text:
        if delimiter == ",":
            text = text.replace('"', '""')
        return f'"{text}"'
    return text


def to_delimited_text(columns: Sequence[str], rows: Sequence[Dict[str, Optional[str]]], delimiter: str = ",") -> str:
    lines = [delimiter.join(quote_field(column, delimiter) for column in columns)]
    for row in rows:
        lines.append(delimiter.join(quote_field(row.get(column), delimiter) for column in columns))
    return "\n".join(lines)


def safe_sheet_name(name: Optional[str]) -> str:
    """Turn free text into a legal worksheet title, falling back to ``Extract``."""
    cleaned = _INVALID_SHEET_CHARS.sub("", name or "")
    cleaned = cleaned.strip().strip("'")[:31].strip().strip("'")  # Excel sheet name limit is 31 chars
    return cleaned or DEFAULT_SHEET_NAME


def to_xlsx_bytes(
    columns: List[str], rows: List[Dict[str, Optional[str]]], sheet_name: str = DEFAULT_SHEET_NAME
) -> bytes:
    """Write rows to a single-sheet workbook with auto-sized columns."""
    df = pd.DataFrame(rows, columns=columns)

    excel_buffer = io.BytesIO()
    with pd.ExcelWriter(excel_buffer, engine="openpyxl") as writer:
        sheet_name = safe_sheet_name(sheet_name)
        df.to_excel(writer, sheet_name=sheet_name, index=False)
        _auto_adjust_columns(writer.sheets[sheet_name])

    excel_buffer.seek(0)
    return excel_buffer.getvalue()


def _auto_adjust_columns(worksheet) -> None:
    from openpyxl.styles import Font
    from openpyxl.utils import get_column_letter

    for cell in worksheet[1]:
        cell.font = Font(bold=True)

    for col_num, column_cells in enumerate(worksheet.columns, start=1):
        max_length = max((len(str(cell.value)) for cell in column_cells if cell.value is not None), default=0)
        worksheet.column_dimensions[get_column_letter(col_num)].width = min(max_length + 2, 50)
