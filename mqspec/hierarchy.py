"""
Rebuild the field tree from flat rows that declare their nesting depth.

Rows are attached in a single pass with an explicit stack of open container
candidates. Nodes live in an arena (a list of drafts linked by index) so the
classification and naming passes can annotate them in place before the tree is
frozen into immutable FieldNode values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import DepthJumpError, DepthValueError
from .model import FieldNode, FieldRole, SourceRef
from .schema import (
    CONTAINER_SEPARATOR,
    DEFAULT_VALUE,
    DESCRIPTION,
    FIELD_NAME,
    HARD_CODE_VALUE,
    LENGTH,
    MESSAGING_DATATYPE,
    OPTIONALITY,
    SEG_LVL,
)
from .sheets import Row, cell_text

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_NESTING_DEPTH = 50


@dataclass(frozen=True)
class SpecRow:
    """One data row of a section, reduced to the columns the parser uses."""

    row_number: int
    name: str
    depth: Optional[str] = None
    description: Optional[str] = None
    length: Optional[str] = None
    data_type: Optional[str] = None
    optionality: Optional[str] = None
    default_value: Optional[str] = None
    hard_code_value: Optional[str] = None


def _value(values: Row, column_map: Mapping[str, int], column: str) -> Optional[str]:
    idx = column_map.get(column)
    if idx is None or idx >= len(values):
        return None
    return cell_text(values[idx])


def rows_from_sheet(data_rows: Iterable[Tuple[int, Row]], column_map: Mapping[str, int]) -> List[SpecRow]:
    """Convert raw sheet rows to SpecRow records, skipping rows without a field name."""

    rows: List[SpecRow] = []
    for row_number, values in data_rows:
        name = _value(values, column_map, FIELD_NAME)
        if not name:
            continue
        rows.append(
            SpecRow(
                row_number=row_number,
                name=name,
                depth=_value(values, column_map, SEG_LVL),
                description=_value(values, column_map, DESCRIPTION),
                length=_value(values, column_map, LENGTH),
                data_type=_value(values, column_map, MESSAGING_DATATYPE),
                optionality=_value(values, column_map, OPTIONALITY),
                default_value=_value(values, column_map, DEFAULT_VALUE),
                hard_code_value=_value(values, column_map, HARD_CODE_VALUE),
            )
        )
    return rows


def parse_length(text: Optional[str]) -> Optional[int]:
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


@dataclass
class NodeDraft:
    """Mutable node used while the pipeline is running."""

    row: SpecRow
    depth: int
    section: Optional[str]
    parent: Optional[int] = None
    children: List[int] = field(default_factory=list)
    role: FieldRole = FieldRole.PLAIN
    field_name: Optional[str] = None
    class_name: Optional[str] = None
    identifier: Optional[str] = None
    group_id: Optional[str] = None
    repeat_count: Optional[str] = None
    byte_offset: Optional[int] = None

    @property
    def is_container_candidate(self) -> bool:
        return CONTAINER_SEPARATOR in self.row.name


@dataclass
class NodeArena:
    drafts: List[NodeDraft] = field(default_factory=list)
    roots: List[int] = field(default_factory=list)

    def add(self, draft: NodeDraft, parent: Optional[int]) -> int:
        index = len(self.drafts)
        draft.parent = parent
        self.drafts.append(draft)
        if parent is None:
            self.roots.append(index)
        else:
            self.drafts[parent].children.append(index)
        return index

    def __len__(self) -> int:
        return len(self.drafts)

    def __getitem__(self, index: int) -> NodeDraft:
        return self.drafts[index]

    def freeze(self) -> Tuple[FieldNode, ...]:
        """
        Build immutable nodes bottom-up.

        Children are always created after their parent, so walking the arena in
        reverse creation order sees every child before its parent.
        """

        frozen: Dict[int, FieldNode] = {}
        for index in range(len(self.drafts) - 1, -1, -1):
            draft = self.drafts[index]
            row = draft.row
            frozen[index] = FieldNode(
                raw_name=row.name,
                identifier=draft.identifier,
                depth=draft.depth,
                source=SourceRef(draft.section, row.row_number, draft.byte_offset),
                role=draft.role,
                class_name=draft.class_name,
                length=parse_length(row.length),
                data_type=row.data_type,
                optionality=row.optionality,
                default_value=row.default_value,
                hard_code_value=row.hard_code_value,
                group_id=draft.group_id,
                repeat_count=draft.repeat_count,
                children=tuple(frozen.pop(child) for child in draft.children),
            )
        return tuple(frozen[index] for index in self.roots)


def parse_depth(row: SpecRow, section: Optional[str] = None) -> int:
    context = dict(section=section, row=row.row_number, field_name=row.name)
    if not row.depth:
        raise DepthValueError("Seg lvl is empty", **context)
    try:
        depth = int(row.depth)
    except ValueError:
        raise DepthValueError(f"Invalid Seg lvl format: '{row.depth}'", **context) from None
    if depth <= 0:
        raise DepthValueError(f"Seg lvl must be a positive integer, got {depth}", **context)
    return depth


class HierarchyBuilder:
    def __init__(self, max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH, section: Optional[str] = None) -> None:
        self.max_nesting_depth = max_nesting_depth if max_nesting_depth > 0 else DEFAULT_MAX_NESTING_DEPTH
        self.section = section

    def build(self, rows: Iterable[SpecRow]) -> NodeArena:
        arena = NodeArena()
        stack: List[int] = []
        previous_depth = 0

        for row in rows:
            depth = parse_depth(row, self.section)
            if depth > previous_depth + 1:
                raise DepthJumpError(
                    previous_depth,
                    depth,
                    section=self.section,
                    row=row.row_number,
                    field_name=row.name,
                )
            if depth > self.max_nesting_depth:
                LOGGER.warning(
                    "Row %s in '%s' is nested %s levels deep (limit %s)",
                    row.row_number,
                    self.section,
                    depth,
                    self.max_nesting_depth,
                )

            while stack and arena[stack[-1]].depth >= depth:
                stack.pop()

            parent = stack[-1] if stack else None
            expected_parent_depth = depth - 1
            if (parent is None and depth > 1) or (parent is not None and arena[parent].depth != expected_parent_depth):
                LOGGER.warning(
                    "Row %s ('%s') at depth %s has no open container at depth %s; attached to %s",
                    row.row_number,
                    row.name,
                    depth,
                    expected_parent_depth,
                    f"row {arena[parent].row.row_number}" if parent is not None else "the root",
                )

            draft = NodeDraft(row=row, depth=depth, section=self.section)
            index = arena.add(draft, parent)
            if draft.is_container_candidate:
                stack.append(index)
            previous_depth = depth

        return arena
