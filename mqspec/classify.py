from __future__ import annotations

import logging
from typing import Iterable, Optional

from .errors import ContainerNameError
from .hierarchy import NodeArena, NodeDraft
from .model import FieldRole
from .occurrence import parse_occurrence
from .schema import CONTAINER_SEPARATOR, GROUP_ID_MARKER, canonical_marker_names

LOGGER = logging.getLogger(__name__)


def split_container_name(name: str, section: Optional[str] = None, row: Optional[int] = None):
    """Split ``fieldName:ClassName`` into its two non-empty parts."""

    parts = [part.strip() for part in name.split(CONTAINER_SEPARATOR)]
    if len(parts) != 2 or not all(parts):
        raise ContainerNameError(
            f"Invalid container field name '{name}'. Expected format: 'fieldName:ClassName'",
            section=section,
            row=row,
            field_name=name,
        )
    return parts[0], parts[1]


class StructureClassifier:
    """
    Assign roles to the drafts of an arena.

    The first pass looks at each row on its own (markers, containers, plain
    fields). The second pass runs once every child is attached and promotes
    objects to arrays from their repeat-count marker.
    """

    def __init__(self, repeat_count_aliases: Optional[Iterable[str]] = None) -> None:
        self.repeat_count_names = canonical_marker_names(repeat_count_aliases)

    def classify(self, arena: NodeArena) -> NodeArena:
        for draft in arena.drafts:
            self._classify_row(draft)
        for index in range(len(arena) - 1, -1, -1):
            self._resolve_container(arena, arena[index])
        return arena

    def _classify_row(self, draft: NodeDraft) -> None:
        row = draft.row
        lowered = row.name.strip().lower()

        if lowered == GROUP_ID_MARKER:
            draft.role = FieldRole.MARKER
            draft.group_id = row.description
            return

        if lowered in self.repeat_count_names:
            draft.role = FieldRole.MARKER
            draft.repeat_count = row.description
            return

        if CONTAINER_SEPARATOR in row.name and not row.length and not row.data_type:
            draft.field_name, draft.class_name = split_container_name(row.name, draft.section, row.row_number)
            draft.role = FieldRole.OBJECT
            return

        draft.role = FieldRole.PLAIN

    def _resolve_container(self, arena: NodeArena, draft: NodeDraft) -> None:
        row = draft.row
        if draft.role is FieldRole.PLAIN:
            if draft.children:
                LOGGER.warning(
                    "Row %s ('%s') in '%s' is not a container but has %s nested row(s)",
                    row.row_number,
                    row.name,
                    draft.section,
                    len(draft.children),
                )
            return
        if draft.role is not FieldRole.OBJECT:
            return

        if not any(arena[child].role is not FieldRole.MARKER for child in draft.children):
            LOGGER.warning(
                "Container '%s' at row %s in '%s' has no non-marker children; treating it as a plain field",
                row.name,
                row.row_number,
                draft.section,
            )
            draft.role = FieldRole.PLAIN
            draft.field_name = None
            draft.class_name = None
            return

        marker = next(
            (arena[child] for child in draft.children if arena[child].role is FieldRole.MARKER and arena[child].repeat_count),
            None,
        )
        if marker is None:
            return

        try:
            info = parse_occurrence(marker.repeat_count)
        except ValueError as exc:
            LOGGER.warning("%s at row %s in '%s'; '%s' stays an object", exc, marker.row.row_number, draft.section, row.name)
            return

        draft.repeat_count = marker.repeat_count
        if info is not None and info.is_array:
            draft.role = FieldRole.ARRAY
