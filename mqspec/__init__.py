"""
Spreadsheet message-spec parser: rebuilds the nested field tree of a spec
workbook and serializes it as a canonical JSON document.
"""

from .errors import (  # noqa: F401
    ConfigError,
    OutputError,
    SpecParseError,
    SpecToolError,
)
from .model import (  # noqa: F401
    FieldGroup,
    FieldNode,
    FieldRole,
    MessageModel,
    Metadata,
    SourceRef,
    missing_fields,
)
from .naming import NameNormalizer  # noqa: F401
from .occurrence import ArrayInfo, parse_occurrence  # noqa: F401
from .parser import SpecParser, parse_spec  # noqa: F401
from .serialize import dumps, write_output  # noqa: F401
from .uniqueness import UniquenessGuard, find_duplicates  # noqa: F401

__all__ = [
    "ConfigError",
    "OutputError",
    "SpecParseError",
    "SpecToolError",
    "FieldGroup",
    "FieldNode",
    "FieldRole",
    "MessageModel",
    "Metadata",
    "SourceRef",
    "missing_fields",
    "NameNormalizer",
    "ArrayInfo",
    "parse_occurrence",
    "SpecParser",
    "parse_spec",
    "dumps",
    "write_output",
    "UniquenessGuard",
    "find_duplicates",
]
