"""
Immutable IR types returned by the parser.

FieldNode trees are built once per parse and never mutated afterwards; every
collection attribute is a tuple so downstream generators can share them freely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from .occurrence import ArrayInfo, parse_occurrence


class FieldRole(str, Enum):
    PLAIN = "plain"
    OBJECT = "object"
    ARRAY = "array"
    MARKER = "marker"


@dataclass(frozen=True)
class SourceRef:
    """Where a node came from: sheet name, 1-based row, byte offset (fixed format only)."""

    sheet_name: Optional[str]
    row_index: int
    byte_offset: Optional[int] = None


@dataclass(frozen=True)
class FieldNode:
    raw_name: str
    identifier: Optional[str]
    depth: int
    source: SourceRef
    role: FieldRole = FieldRole.PLAIN
    class_name: Optional[str] = None
    length: Optional[int] = None
    data_type: Optional[str] = None
    optionality: Optional[str] = None
    default_value: Optional[str] = None
    hard_code_value: Optional[str] = None
    group_id: Optional[str] = None
    repeat_count: Optional[str] = None
    children: Tuple["FieldNode", ...] = ()

    @property
    def is_array(self) -> bool:
        return self.role is FieldRole.ARRAY

    @property
    def is_object(self) -> bool:
        return self.role is FieldRole.OBJECT

    @property
    def is_marker(self) -> bool:
        return self.role is FieldRole.MARKER

    @property
    def is_container(self) -> bool:
        return self.role in (FieldRole.OBJECT, FieldRole.ARRAY)

    @property
    def array_info(self) -> Optional[ArrayInfo]:
        """Parsed repeat count, or None when absent or malformed."""
        try:
            return parse_occurrence(self.repeat_count)
        except ValueError:
            return None

    @property
    def fields(self) -> Tuple["FieldNode", ...]:
        """Children that are emitted by generators (markers excluded)."""
        return tuple(child for child in self.children if not child.is_marker)

    @property
    def markers(self) -> Tuple["FieldNode", ...]:
        return tuple(child for child in self.children if child.is_marker)

    def walk(self) -> Iterator["FieldNode"]:
        """Depth-first pre-order traversal starting at this node."""
        stack: List[FieldNode] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


@dataclass(frozen=True)
class FieldGroup:
    """Ordered root nodes of one document section."""

    section: Optional[str] = None
    nodes: Tuple[FieldNode, ...] = ()

    def __iter__(self) -> Iterator[FieldNode]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __bool__(self) -> bool:
        return bool(self.nodes)

    def walk(self) -> Iterator[FieldNode]:
        for root in self.nodes:
            yield from root.walk()

    def find(self, raw_name: str) -> Optional[FieldNode]:
        """First node (depth-first) whose raw name matches, ignoring case."""

        wanted = raw_name.strip().lower()
        for node in self.walk():
            if node.raw_name.strip().lower() == wanted:
                return node
        return None

    def find_by_offset(self, offset: int) -> Optional[FieldNode]:
        for node in self.walk():
            if node.source.byte_offset == offset:
                return node
        return None


@dataclass(frozen=True)
class Metadata:
    source_file: Optional[str] = None
    shared_header_file: Optional[str] = None
    parse_timestamp: Optional[str] = None
    parser_version: Optional[str] = None
    operation_name: Optional[str] = None
    operation_id: Optional[str] = None
    version: Optional[str] = None
    service_category: Optional[str] = None
    service_interface: Optional[str] = None
    service_component: Optional[str] = None
    service_id: Optional[str] = None
    description: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return bool(self.operation_id)

    @property
    def has_descriptive_fields(self) -> bool:
        return any(getattr(self, name) for name in DESCRIPTIVE_FIELDS)


DESCRIPTIVE_FIELDS: Tuple[str, ...] = (
    "operation_name",
    "operation_id",
    "version",
    "service_category",
    "service_interface",
    "service_component",
    "service_id",
    "description",
)


def missing_fields(metadata: Metadata) -> List[str]:
    """Names of descriptive metadata attributes that are empty."""

    return [name for name in DESCRIPTIVE_FIELDS if not getattr(metadata, name)]


@dataclass(frozen=True)
class MessageModel:
    metadata: Metadata = field(default_factory=Metadata)
    shared_header: FieldGroup = field(default_factory=FieldGroup)
    request: FieldGroup = field(default_factory=FieldGroup)
    response: FieldGroup = field(default_factory=FieldGroup)

    def groups(self) -> Tuple[Tuple[str, FieldGroup], ...]:
        """(IR key, group) pairs in emission order."""
        return (
            ("sharedHeader", self.shared_header),
            ("request", self.request),
            ("response", self.response),
        )
