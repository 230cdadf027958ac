"""
Workbook access for spec documents.

A workbook is read once with openpyxl in read-only mode into an in-memory
snapshot and released before any parsing happens, so every later stage works
on plain tuples of cell values.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import openpyxl
from openpyxl.utils import column_index_from_string

from .errors import InputFileError, MissingColumnsError, MissingSectionError
from .schema import (
    DATA_START_ROW,
    HEADER_ROW,
    HIERARCHICAL_COLUMNS,
    ColumnSchema,
    build_column_map,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_ALLOWED_EXTENSIONS: Tuple[str, ...] = (".xlsx", ".xlsm")

Row = Tuple[object, ...]


def cell_text(value: object) -> Optional[str]:
    """Cell value as stripped text; None for blanks. Integral floats lose their '.0'."""

    if value is None:
        return None
    if isinstance(value, bool):
        text = str(value)
    elif isinstance(value, float) and value.is_integer():
        text = str(int(value))
    else:
        text = str(value)
    text = text.strip()
    return text or None


def validate_input_file(path: Path, allowed_extensions: Sequence[str] = DEFAULT_ALLOWED_EXTENSIONS) -> Path:
    """Check that ``path`` names a readable spreadsheet with an accepted extension."""

    path = Path(path)
    if not path.exists():
        raise InputFileError(f"Input file not found: {path}")
    if not path.is_file():
        raise InputFileError(f"Input path is not a file: {path}")
    if not os.access(path, os.R_OK):
        raise InputFileError(f"Input file is not readable: {path}")
    allowed = {ext.lower() for ext in allowed_extensions}
    if path.suffix.lower() not in allowed:
        raise InputFileError(
            f"Unsupported file extension '{path.suffix}' for {path.name}; "
            f"expected one of: {', '.join(sorted(allowed))}"
        )
    return path


@dataclass(frozen=True)
class WorkbookSnapshot:
    """All sheets of a workbook as row tuples, in workbook order."""

    path: Path
    sheets: Dict[str, List[Row]]

    @property
    def sheet_names(self) -> List[str]:
        return list(self.sheets)

    def rows(self, sheet_name: str) -> List[Row]:
        return self.sheets[sheet_name]

    def row(self, sheet_name: str, row_number: int) -> Row:
        """1-based row; rows past the end of the sheet come back empty."""
        rows = self.sheets[sheet_name]
        if 1 <= row_number <= len(rows):
            return rows[row_number - 1]
        return ()

    def cell(self, sheet_name: str, row_number: int, column: str) -> object:
        values = self.row(sheet_name, row_number)
        idx = column_index_from_string(column) - 1
        if idx < len(values):
            return values[idx]
        return None

    def find_sheet(self, name: str) -> Optional[str]:
        """Exact sheet name first, then a case-insensitive match."""

        if name in self.sheets:
            return name
        wanted = name.strip().lower()
        for sheet_name in self.sheets:
            if sheet_name.strip().lower() == wanted:
                return sheet_name
        return None


def load_snapshot(path: Path) -> WorkbookSnapshot:
    """Read every sheet into memory; the workbook handle is closed on all paths."""

    try:
        wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    except Exception as exc:
        raise InputFileError(f"Cannot open workbook {path}: {exc}") from exc

    try:
        sheets: Dict[str, List[Row]] = {}
        for ws in wb.worksheets:
            sheets[ws.title] = [tuple(row) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()

    LOGGER.debug("Loaded %s with sheets %s", path, list(sheets))
    return WorkbookSnapshot(path=Path(path), sheets=sheets)


class SheetLocator:
    """Finds named sections in a snapshot and maps their header row to column indices."""

    def __init__(self, snapshot: WorkbookSnapshot) -> None:
        self.snapshot = snapshot

    def locate(self, section: str, required: bool = False) -> Optional[str]:
        sheet_name = self.snapshot.find_sheet(section)
        if sheet_name is None:
            if required:
                raise MissingSectionError(
                    f"Required sheet '{section}' not found in {self.snapshot.path.name}; "
                    f"available sheets: {', '.join(self.snapshot.sheet_names)}",
                    section=section,
                )
            LOGGER.debug("Optional sheet '%s' not present in %s", section, self.snapshot.path.name)
            return None
        LOGGER.debug("Section '%s' -> sheet '%s'", section, sheet_name)
        return sheet_name

    def has_header_row(self, sheet_name: str, header_row: int = HEADER_ROW) -> bool:
        return any(cell_text(v) for v in self.snapshot.row(sheet_name, header_row))

    def column_map(
        self,
        sheet_name: str,
        header_row: int = HEADER_ROW,
        schema: ColumnSchema = HIERARCHICAL_COLUMNS,
    ) -> Dict[str, int]:
        header = self.snapshot.row(sheet_name, header_row)
        column_map, missing = build_column_map(header, schema)
        if missing:
            raise MissingColumnsError(missing, section=sheet_name, row=header_row)
        return column_map

    def data_rows(self, sheet_name: str, start_row: int = DATA_START_ROW) -> Iterator[Tuple[int, Row]]:
        """(1-based row number, values) for every row from ``start_row`` on."""

        rows = self.snapshot.rows(sheet_name)
        for idx in range(start_row - 1, len(rows)):
            yield idx + 1, rows[idx]
