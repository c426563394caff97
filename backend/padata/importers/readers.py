"""Raw row readers for source spreadsheets (XLSX and CSV)."""

import csv
import logging
import re
from pathlib import Path
from typing import Any

import openpyxl

logger = logging.getLogger(__name__)

_YEAR_RE = re.compile(r"20\d{2}")


def read_csv_rows(path: Path) -> list[list[Any]]:
    """Read a CSV file and return all rows as lists, trying common encodings."""
    encodings = ["utf-8-sig", "utf-8", "cp1252", "latin-1"]
    for enc in encodings:
        try:
            with open(path, "r", encoding=enc, newline="") as f:
                return list(csv.reader(f))
        except (UnicodeDecodeError, UnicodeError):
            logger.debug(f"{path.name}: not decodable as {enc}")
            continue
    raise ValueError(f"Could not decode {path.name} with any known encoding")


def read_xlsx_rows(path: Path) -> list[list[Any]]:
    """Read the first worksheet of an XLSX file and return all rows as lists."""
    wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        return [list(row) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


def read_rows(path: str | Path) -> list[list[Any]]:
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".xlsx":
        return read_xlsx_rows(path)
    if suffix == ".csv":
        return read_csv_rows(path)
    raise ValueError(f"Unsupported source file type: {path.name}")


def normalize_header(value: Any) -> str:
    """Collapse whitespace (including embedded newlines) in a header cell."""
    if value is None:
        return ""
    return " ".join(str(value).split())


def build_header_index(header_row: list[Any]) -> dict[str, int]:
    """Map header text to column index. First occurrence of a header wins."""
    index: dict[str, int] = {}
    for i, cell in enumerate(header_row):
        name = normalize_header(cell)
        if name and name not in index:
            index[name] = i
    return index


def year_from_filename(file_name: str) -> int | None:
    match = _YEAR_RE.search(file_name)
    return int(match.group(0)) if match else None
