"""
Flat, byte-offset-addressed layout ("ISM v2.0 FIX") and layout detection.

Fixed-format sheets have no metadata rows and no nesting column: a header row
near the top names the field, start position, length, type and status columns
and every following row is a field. Parsed rows become depth-1 plain drafts so
the rest of the pipeline treats both layouts alike.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from .errors import FixedFormatError, LayoutDetectionError
from .hierarchy import NodeArena, NodeDraft, SpecRow
from .model import FieldRole
from .schema import (
    FIXED_FIELD_NAME,
    FIXED_LABELS,
    FIXED_LENGTH,
    FIXED_REQUIRED,
    FIXED_START_POS,
    FIXED_STATUS,
    FIXED_TYPE,
    HIERARCHICAL_COLUMNS,
    METADATA_LABEL_CELL,
    SEG_LVL,
    clean_header_name,
    header_key,
)
from .sheets import Row, WorkbookSnapshot, cell_text

LOGGER = logging.getLogger(__name__)

LAYOUT_STANDARD = "standard"
LAYOUT_FIXED = "fixed"

FIXED_HEADER_SEARCH_ROWS = 3
LAYOUT_SEARCH_ROWS = 9

_SEG_LVL_KEYS = frozenset(header_key(s) for s in (SEG_LVL, *HIERARCHICAL_COLUMNS.required[SEG_LVL]))


def _header_text(value: object) -> str:
    text = cell_text(value)
    if not text:
        return ""
    return clean_header_name(text).lower()


def _match_fixed_header(value: object) -> Optional[str]:
    text = _header_text(value)
    if not text:
        return None
    if "element" in text or text == "field name":
        return FIXED_FIELD_NAME
    if ("start" in text and "pos" in text) or "byte offset" in text:
        return FIXED_START_POS
    if text in ("length", "len"):
        return FIXED_LENGTH
    if text == "type" or "data type" in text:
        return FIXED_TYPE
    if text in ("status", "opt", "m/o"):
        return FIXED_STATUS
    return None


def fixed_column_map(header: Row) -> Dict[str, int]:
    column_map: Dict[str, int] = {}
    for idx, value in enumerate(header):
        canonical = _match_fixed_header(value)
        if canonical is not None and canonical not in column_map:
            column_map[canonical] = idx
    return column_map


def find_fixed_header(rows: List[Row], search_rows: int = FIXED_HEADER_SEARCH_ROWS) -> Tuple[int, Dict[str, int]]:
    """
    Locate the header row among the first ``search_rows`` rows.

    Returns (1-based row number, column map). The row matching the most columns
    is reported when none of them carries all five.
    """

    best: Tuple[int, Dict[str, int]] = (0, {})
    for idx, row in enumerate(rows[:search_rows]):
        column_map = fixed_column_map(row)
        if all(col in column_map for col in FIXED_REQUIRED):
            return idx + 1, column_map
        if len(column_map) > len(best[1]):
            best = (idx + 1, column_map)

    missing = [FIXED_LABELS[col] for col in FIXED_REQUIRED if col not in best[1]]
    raise FixedFormatError(
        f"Fixed-format header not found in the first {search_rows} rows; "
        f"missing column(s): {', '.join(missing)}",
        row=best[0] or None,
    )


def map_data_type(code: Optional[str]) -> Optional[str]:
    """Fixed-format type vocabulary -> messaging data type codes; unknown codes pass through."""

    if code is None:
        return None
    lowered = code.strip().lower()
    if "character" in lowered and "string" in lowered:
        return "A/N"
    if lowered in ("numeric", "n"):
        return "N"
    if "alphanumeric" in lowered:
        return "A/N"
    return code


def map_status(code: Optional[str]) -> str:
    """Status column -> M/O optionality; blanks are optional, unknown codes pass through."""

    if code is None or not code.strip():
        return "O"
    upper = code.strip().upper()
    if upper in ("M", "MANDATORY"):
        return "M"
    if upper in ("O", "OPTIONAL"):
        return "O"
    return code


def _as_int(text: Optional[str]) -> Optional[int]:
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


class FixedFormatAdapter:
    def __init__(self, section: Optional[str] = None) -> None:
        self.section = section

    def build(self, snapshot: WorkbookSnapshot, sheet_name: str) -> NodeArena:
        rows = snapshot.rows(sheet_name)
        try:
            header_row, column_map = find_fixed_header(rows)
        except FixedFormatError as exc:
            raise FixedFormatError(exc.reason, section=sheet_name, row=exc.row) from None

        def value(values: Row, column: str) -> Optional[str]:
            idx = column_map[column]
            return cell_text(values[idx]) if idx < len(values) else None

        arena = NodeArena()
        for idx in range(header_row, len(rows)):
            values = rows[idx]
            name = value(values, FIXED_FIELD_NAME)
            if not name:
                continue
            row = SpecRow(
                row_number=idx + 1,
                name=name,
                depth="1",
                length=value(values, FIXED_LENGTH),
                data_type=map_data_type(value(values, FIXED_TYPE)),
                optionality=map_status(value(values, FIXED_STATUS)),
            )
            draft = NodeDraft(
                row=row,
                depth=1,
                section=self.section or sheet_name,
                role=FieldRole.PLAIN,
                byte_offset=_as_int(value(values, FIXED_START_POS)),
            )
            arena.add(draft, None)

        if not len(arena):
            raise FixedFormatError("No data rows found after the fixed-format header", section=sheet_name, row=header_row)
        LOGGER.debug("Fixed-format sheet '%s': %s field(s)", sheet_name, len(arena))
        return arena


def _is_fixed_tag(sheet_name: str) -> bool:
    lowered = sheet_name.lower()
    return "ism" in lowered and "v2" in lowered and "fix" in lowered


def detect_layout(snapshot: WorkbookSnapshot, sheet_name: str) -> str:
    """
    Decide whether a sheet uses the hierarchical or the fixed-format layout.

    Checked in order: a fixed-format tag in the sheet name, the "Operation Name"
    label of the metadata block, then the header cells of the first rows.
    """

    if _is_fixed_tag(sheet_name):
        LOGGER.debug("Sheet '%s' tagged as fixed format by name", sheet_name)
        return LAYOUT_FIXED

    label = _header_text(snapshot.cell(sheet_name, METADATA_LABEL_CELL.row, METADATA_LABEL_CELL.column))
    if "operation name" in label:
        return LAYOUT_STANDARD

    for row in snapshot.rows(sheet_name)[:LAYOUT_SEARCH_ROWS]:
        texts = [_header_text(value) for value in row]
        has_offset = any(t in ("start position", "start pos", "byte offset") for t in texts)
        has_status = any(t in ("status", "opt", "m/o") for t in texts)
        if has_offset and has_status:
            return LAYOUT_FIXED
        if any(header_key(value) in _SEG_LVL_KEYS for value in row):
            return LAYOUT_STANDARD

    raise LayoutDetectionError(
        "Unable to detect layout: expected either a 'Seg lvl' column (hierarchical layout) "
        "or start position and status columns (fixed-format layout)",
        section=sheet_name,
    )
