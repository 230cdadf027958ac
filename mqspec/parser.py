"""
End-to-end parsing of a spec workbook (plus an optional shared-header workbook)
into a MessageModel.

Every stage raises on the first error, so a MessageModel is only ever returned
for a document that parsed completely.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .classify import StructureClassifier
from .config import ParserSettings
from .errors import InputFileError, LayoutDetectionError
from .fixed_format import LAYOUT_FIXED, LAYOUT_STANDARD, FixedFormatAdapter, detect_layout
from .hierarchy import HierarchyBuilder, NodeArena, rows_from_sheet
from .metadata import MetadataResolver
from .model import FieldGroup, MessageModel
from .naming import NameNormalizer
from .schema import REQUEST_SECTION, RESPONSE_SECTION, SHARED_HEADER_SECTION
from .sheets import SheetLocator, WorkbookSnapshot, load_snapshot, validate_input_file
from .uniqueness import UniquenessGuard
from .versions import get_version

LOGGER = logging.getLogger(__name__)


def _timestamp(path: Path, source: str) -> str:
    if source == "now":
        moment = datetime.now(timezone.utc)
    else:
        moment = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    return moment.isoformat(timespec="seconds")


class SpecParser:
    def __init__(self, settings: Optional[ParserSettings] = None) -> None:
        self.settings = settings or ParserSettings()
        self.classifier = StructureClassifier(self.settings.repeat_count_aliases)
        self.normalizer = NameNormalizer(self.settings.max_identifier_length)
        self.guard = UniquenessGuard()
        self.metadata_resolver = MetadataResolver(self.settings.metadata_priority)

    def parse(self, spec_path: Path, shared_header_path: Optional[Path] = None) -> MessageModel:
        extensions = self.settings.allowed_extensions
        spec_path = validate_input_file(spec_path, extensions)
        if shared_header_path is not None:
            shared_header_path = validate_input_file(shared_header_path, extensions)

        snapshot = load_snapshot(spec_path)
        locator = SheetLocator(snapshot)

        request_sheet = locator.locate(REQUEST_SECTION, required=True)
        request_layout = detect_layout(snapshot, request_sheet)
        request = self.parse_section(snapshot, request_sheet, request_layout)

        response_sheet = locator.locate(RESPONSE_SECTION)
        response = self.parse_section(snapshot, response_sheet) if response_sheet else FieldGroup()

        # Fixed-format sheets have no metadata block.
        metadata_sources: Dict[str, List[Tuple[WorkbookSnapshot, str]]] = {
            REQUEST_SECTION: [],
            SHARED_HEADER_SECTION: [],
        }
        if request_layout != LAYOUT_FIXED:
            metadata_sources[REQUEST_SECTION].append((snapshot, request_sheet))

        shared_header = FieldGroup()
        embedded_sheet = locator.locate(SHARED_HEADER_SECTION)
        if embedded_sheet is not None:
            shared_header, embedded_layout = self._parse_embedded_shared_header(locator, embedded_sheet)
            if embedded_layout != LAYOUT_FIXED:
                metadata_sources[SHARED_HEADER_SECTION].append((snapshot, embedded_sheet))

        if shared_header_path is not None:
            shared_snapshot = load_snapshot(shared_header_path)
            shared_sheet, layout = self._shared_header_sheet(shared_snapshot)
            if embedded_sheet is not None:
                LOGGER.info("Shared header file %s replaces the embedded '%s' sheet", shared_header_path.name, embedded_sheet)
            shared_header = self.parse_section(shared_snapshot, shared_sheet, layout)
            if layout != LAYOUT_FIXED:
                metadata_sources[SHARED_HEADER_SECTION].append((shared_snapshot, shared_sheet))

        metadata = self.metadata_resolver.with_provenance(
            self.metadata_resolver.resolve(metadata_sources),
            source_file=str(spec_path),
            shared_header_file=str(shared_header_path) if shared_header_path is not None else None,
            parse_timestamp=_timestamp(spec_path, self.settings.timestamp_source),
            parser_version=get_version("parser"),
        )

        LOGGER.info(
            "Parsed %s: %s request, %s response, %s shared header root field(s)",
            spec_path.name,
            len(request),
            len(response),
            len(shared_header),
        )
        return MessageModel(metadata=metadata, shared_header=shared_header, request=request, response=response)

    def parse_section(self, snapshot: WorkbookSnapshot, sheet_name: str, layout: Optional[str] = None) -> FieldGroup:
        layout = layout or detect_layout(snapshot, sheet_name)
        if layout == LAYOUT_FIXED:
            arena = FixedFormatAdapter(sheet_name).build(snapshot, sheet_name)
        else:
            arena = self._build_hierarchical(SheetLocator(snapshot), sheet_name)
        return self._finish(arena, sheet_name)

    def _build_hierarchical(self, locator: SheetLocator, sheet_name: str) -> NodeArena:
        column_map = locator.column_map(sheet_name)
        rows = rows_from_sheet(locator.data_rows(sheet_name), column_map)
        builder = HierarchyBuilder(self.settings.max_nesting_depth, section=sheet_name)
        return self.classifier.classify(builder.build(rows))

    def _finish(self, arena: NodeArena, sheet_name: str) -> FieldGroup:
        self.normalizer.assign(arena)
        nodes = arena.freeze()
        self.guard.check(nodes)
        LOGGER.debug("Sheet '%s': %s node(s), %s root(s)", sheet_name, len(arena), len(nodes))
        return FieldGroup(section=sheet_name, nodes=nodes)

    def _parse_embedded_shared_header(self, locator: SheetLocator, sheet_name: str) -> Tuple[FieldGroup, str]:
        """Parse the embedded sheet; returns the group and the layout it was read with."""

        # A shared-header sheet may hold only the metadata block.
        try:
            layout = detect_layout(locator.snapshot, sheet_name)
        except LayoutDetectionError:
            if locator.has_header_row(sheet_name):
                raise
            layout = LAYOUT_STANDARD
        if layout != LAYOUT_FIXED and not locator.has_header_row(sheet_name):
            LOGGER.debug("Sheet '%s' has no field header row; shared header is empty", sheet_name)
            return FieldGroup(section=sheet_name), layout
        return self.parse_section(locator.snapshot, sheet_name, layout), layout

    def _shared_header_sheet(self, snapshot: WorkbookSnapshot) -> Tuple[str, str]:
        if not snapshot.sheet_names:
            raise InputFileError(f"Shared header file {snapshot.path.name} has no sheets")
        sheet_name = snapshot.find_sheet(SHARED_HEADER_SECTION) or snapshot.sheet_names[0]
        layout = detect_layout(snapshot, sheet_name)

        if layout != LAYOUT_FIXED:
            spec_sheets = [s for s in (REQUEST_SECTION, RESPONSE_SECTION) if snapshot.find_sheet(s)]
            if spec_sheets:
                raise InputFileError(
                    f"Shared header file {snapshot.path.name} contains {', '.join(spec_sheets)} sheet(s); "
                    "it looks like a message spec, not a shared header"
                )
        LOGGER.debug("Shared header file %s: sheet '%s' (%s layout)", snapshot.path.name, sheet_name, layout)
        return sheet_name, layout


def parse_spec(
    spec_path: Path,
    shared_header_path: Optional[Path] = None,
    settings: Optional[ParserSettings] = None,
) -> MessageModel:
    return SpecParser(settings).parse(Path(spec_path), Path(shared_header_path) if shared_header_path else None)
