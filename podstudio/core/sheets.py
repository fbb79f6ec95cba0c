"""Source helpers: Google Sheets export URLs and uploaded workbooks."""
from __future__ import annotations

import re
from io import BytesIO

from openpyxl import load_workbook

from podstudio.core.errors import SourceFormatError

SHEETS_MARKER = "docs.google.com/spreadsheets"
_SHEET_ID = re.compile(r"/d/([a-zA-Z0-9-_]+)")
_GID = re.compile(r"gid=([0-9]+)")


def build_export_url(sheet_url: str) -> str:
    """Translate a shared Google Sheets link into its CSV export URL."""

    sheet_url = (sheet_url or "").strip()
    if SHEETS_MARKER not in sheet_url:
        raise SourceFormatError("a Google Sheets URL is required")
    sheet_match = _SHEET_ID.search(sheet_url)
    if sheet_match is None:
        raise SourceFormatError("sheet id not found in URL")
    gid_match = _GID.search(sheet_url)
    gid = gid_match.group(1) if gid_match else "0"
    return f"https://docs.google.com/spreadsheets/d/{sheet_match.group(1)}/export?format=csv&gid={gid}"


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def read_workbook_rows(data: bytes) -> list[list[str]]:
    """Read the active worksheet of an ``.xlsx`` upload as rows of strings."""

    try:
        workbook = load_workbook(BytesIO(data), read_only=True, data_only=True)
    except Exception as exc:  # openpyxl raises a variety of zip/xml errors
        raise SourceFormatError(f"workbook could not be read: {exc}") from exc

    try:
        sheet = workbook.active
        rows: list[list[str]] = []
        for values in sheet.iter_rows(values_only=True):
            row = [_cell_text(value) for value in values]
            if not any(row):
                continue
            rows.append(row)
        return rows
    finally:
        workbook.close()
