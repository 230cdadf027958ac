from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

_WS_RE = re.compile(r"\s+")


def clean_header_name(name: str):
    """
    Clean noisy Excel headers: fold newlines, collapse whitespace and repeated words.

    Spec sheets often wrap header text ("Seg\\nlvl") or repeat a label when a
    merged cell is exported ("Length Length"); both collapse to the plain label.
    """
    if not name:
        return name

    tokens = _WS_RE.sub(" ", str(name)).strip().split()
    n_tokens = len(tokens)
    if n_tokens == 0:
        return ""

    # Detect repeated phrases (e.g., "Field Name Field Name" -> "Field Name").
    for chunk_size in range(1, n_tokens // 2 + 1):
        if n_tokens % chunk_size != 0:
            continue
        chunks = [tokens[i : i + chunk_size] for i in range(0, n_tokens, chunk_size)]
        first_norm = [x.lower() for x in chunks[0]]
        if all([x.lower() for x in c] == first_norm for c in chunks[1:]):
            return clean_header_name(" ".join(chunks[0]))

    cleaned: List[str] = []
    for token in tokens:
        if not cleaned or cleaned[-1].lower() != token.lower():
            cleaned.append(token)
    return " ".join(cleaned)


def header_key(name: str | None) -> str:
    """Whitespace-, newline- and case-insensitive lookup key for a header cell."""

    if name is None:
        return ""
    cleaned = clean_header_name(str(name)) or ""
    return _WS_RE.sub("", cleaned).lower()


@dataclass(frozen=True)
class ColumnSchema:
    """Canonical column definition for one spreadsheet layout."""

    name: str
    required: Mapping[str, Sequence[str]]  # canonical -> accepted header spellings
    optional: Mapping[str, Sequence[str]] = field(default_factory=dict)

    def all_columns(self) -> Dict[str, Sequence[str]]:
        merged: Dict[str, Sequence[str]] = dict(self.required)
        merged.update(self.optional)
        return merged


# Canonical column names for the hierarchical ("segment level") layout.
SEG_LVL = "Seg lvl"
FIELD_NAME = "Field Name"
DESCRIPTION = "Description"
LENGTH = "Length"
MESSAGING_DATATYPE = "Messaging Datatype"
OPTIONALITY = "Opt(O/M)"
NULL_YN = "Null (Y/N)"
NLS_YN = "NLS (Y/N)"
SAMPLE_VALUES = "Sample Value(s)"
REMARKS = "Remarks"
GMR_PHYSICAL_NAME = "GMR Physical Name"
TEST_VALUE = "Test Value"
DEFAULT_VALUE = "Default Value"
HARD_CODE_VALUE = "Hard code Value for MNL"

HIERARCHICAL_COLUMNS = ColumnSchema(
    name="hierarchical",
    required={
        SEG_LVL: ("Seg lvl", "Seglvl", "Segment Level"),
        FIELD_NAME: ("Field Name", "FieldName"),
        DESCRIPTION: ("Description",),
        LENGTH: ("Length",),
        MESSAGING_DATATYPE: ("Messaging Datatype", "Messaging Data Type"),
    },
    optional={
        OPTIONALITY: ("Opt(O/M)", "Opt (O/M)", "Optionality"),
        NULL_YN: ("Null (Y/N)",),
        NLS_YN: ("NLS (Y/N)",),
        SAMPLE_VALUES: ("Sample Value(s)",),
        REMARKS: ("Remarks",),
        GMR_PHYSICAL_NAME: ("GMR Physical Name",),
        TEST_VALUE: ("Test Value",),
        DEFAULT_VALUE: ("Default Value",),
        HARD_CODE_VALUE: ("Hard code Value for MNL", "Hard Code Value"),
    },
)

# Fixed-format layout: canonical name -> substrings/equalities checked by
# fixed_format._match_fixed_header.
FIXED_FIELD_NAME = "field_name"
FIXED_START_POS = "start_pos"
FIXED_LENGTH = "length"
FIXED_TYPE = "type"
FIXED_STATUS = "status"
FIXED_REQUIRED: Tuple[str, ...] = (
    FIXED_FIELD_NAME,
    FIXED_START_POS,
    FIXED_LENGTH,
    FIXED_TYPE,
    FIXED_STATUS,
)
FIXED_LABELS: Mapping[str, str] = {
    FIXED_FIELD_NAME: "Field name",
    FIXED_START_POS: "Start Position",
    FIXED_LENGTH: "Length",
    FIXED_TYPE: "Type",
    FIXED_STATUS: "Status",
}

# Section (sheet) names.
REQUEST_SECTION = "Request"
RESPONSE_SECTION = "Response"
SHARED_HEADER_SECTION = "Shared Header"

# 1-based row numbers of the hierarchical layout.
HEADER_ROW = 8
DATA_START_ROW = 9

# Structural marker names, compared case-insensitively.
GROUP_ID_MARKER = "groupid"
REPEAT_COUNT_MARKER = "occurrenceCount"
LEGACY_REPEAT_COUNT_ALIASES: Tuple[str, ...] = ("occurenceCount",)
CONTAINER_SEPARATOR = ":"


@dataclass(frozen=True)
class MetadataCell:
    """A metadata attribute read from a fixed (1-based row, column letter) cell."""

    attribute: str
    row: int
    column: str


METADATA_CELLS: Tuple[MetadataCell, ...] = (
    MetadataCell("operation_name", 2, "C"),
    MetadataCell("operation_id", 3, "C"),
    MetadataCell("version", 3, "E"),
    MetadataCell("service_category", 4, "E"),
    MetadataCell("service_interface", 4, "E"),
    MetadataCell("service_component", 5, "E"),
    MetadataCell("service_id", 5, "E"),
    MetadataCell("description", 6, "E"),
)
# Row 2, column B carries the "Operation Name" label in the hierarchical layout.
METADATA_LABEL_CELL = MetadataCell("operation_name_label", 2, "B")


def build_column_map(
    header_cells: Iterable[object],
    schema: ColumnSchema = HIERARCHICAL_COLUMNS,
) -> Tuple[Dict[str, int], List[str]]:
    """
    Map canonical column names to 0-based indices for a header row.

    Returns (column_map, missing_required). Later duplicates overwrite earlier
    ones, matching what a reader sees when scanning left to right.
    """

    lookup: Dict[str, str] = {}
    for canonical, spellings in schema.all_columns().items():
        for spelling in (canonical, *spellings):
            lookup[header_key(spelling)] = canonical

    column_map: Dict[str, int] = {}
    for idx, value in enumerate(header_cells):
        if value is None:
            continue
        key = header_key(str(value))
        if not key:
            continue
        canonical = lookup.get(key)
        if canonical is not None:
            column_map[canonical] = idx

    missing = [col for col in schema.required if col not in column_map]
    return column_map, missing


def canonical_marker_names(extra_aliases: Optional[Iterable[str]] = None) -> Tuple[str, ...]:
    """Lower-cased repeat-count marker spellings (canonical, legacy, configured)."""

    names = [REPEAT_COUNT_MARKER, *LEGACY_REPEAT_COUNT_ALIASES, *(extra_aliases or ())]
    seen: List[str] = []
    for name in names:
        lowered = str(name).strip().lower()
        if lowered and lowered not in seen:
            seen.append(lowered)
    return tuple(seen)
