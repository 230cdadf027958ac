from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Mapping, Optional, Sequence, Tuple

from .model import Metadata
from .schema import METADATA_CELLS, REQUEST_SECTION, SHARED_HEADER_SECTION
from .sheets import WorkbookSnapshot, cell_text

LOGGER = logging.getLogger(__name__)

DEFAULT_METADATA_PRIORITY: Tuple[str, ...] = (REQUEST_SECTION, SHARED_HEADER_SECTION)

# (snapshot, sheet name) pairs that may carry metadata rows, per priority label.
MetadataSources = Mapping[str, Sequence[Tuple[WorkbookSnapshot, str]]]


def extract_metadata(snapshot: WorkbookSnapshot, sheet_name: str) -> Metadata:
    """Read the descriptive attributes from the fixed metadata cells of one sheet."""

    values: Dict[str, Optional[str]] = {}
    for cell in METADATA_CELLS:
        values[cell.attribute] = cell_text(snapshot.cell(sheet_name, cell.row, cell.column))
    return Metadata(**values)


class MetadataResolver:
    """
    Picks document metadata from the first source, in priority order, that has
    an operation identifier.

    When no source is valid the first one with any descriptive value wins, and
    failing that the result is empty metadata.
    """

    def __init__(self, priority: Sequence[str] = DEFAULT_METADATA_PRIORITY) -> None:
        self.priority = tuple(priority)
        if self.priority != DEFAULT_METADATA_PRIORITY:
            LOGGER.warning(
                "Using non-default metadata priority %s (default is %s)",
                list(self.priority),
                list(DEFAULT_METADATA_PRIORITY),
            )

    def resolve(self, sources: MetadataSources) -> Metadata:
        fallback: Optional[Metadata] = None
        for label in self.priority:
            for snapshot, sheet_name in sources.get(label, ()):
                candidate = extract_metadata(snapshot, sheet_name)
                if candidate.is_valid:
                    LOGGER.debug("Metadata taken from %s sheet '%s'", snapshot.path.name, sheet_name)
                    return candidate
                if fallback is None and candidate.has_descriptive_fields:
                    fallback = candidate

        if fallback is not None:
            LOGGER.warning("No metadata source carries an operation id; using partial metadata")
            return fallback
        LOGGER.warning("No metadata found in any source")
        return Metadata()

    @staticmethod
    def with_provenance(
        metadata: Metadata,
        *,
        source_file: str,
        shared_header_file: Optional[str],
        parse_timestamp: str,
        parser_version: str,
    ) -> Metadata:
        return replace(
            metadata,
            source_file=source_file,
            shared_header_file=shared_header_file,
            parse_timestamp=parse_timestamp,
            parser_version=parser_version,
        )
