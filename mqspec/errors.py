"""Exception taxonomy for the spec parser; every error is terminal."""

from __future__ import annotations

from typing import Optional

EXIT_SUCCESS = 0
EXIT_INPUT_VALIDATION = 1
EXIT_PARSE = 2
EXIT_CONFIG = 5
EXIT_OUTPUT = 7
EXIT_INTERNAL = 99


class SpecToolError(Exception):
    """Base error; carries the process exit code the CLI should use."""

    exit_code = EXIT_INTERNAL


class SpecParseError(SpecToolError, ValueError):
    """A document could not be turned into an IR tree."""

    exit_code = EXIT_PARSE

    def __init__(
        self,
        message: str,
        *,
        section: Optional[str] = None,
        row: Optional[int] = None,
        field_name: Optional[str] = None,
    ) -> None:
        self.reason = message
        self.section = section
        self.row = row
        self.field_name = field_name
        super().__init__(self._format())

    def _format(self) -> str:
        parts = [self.reason]
        if self.section is not None:
            parts.append(f" in sheet '{self.section}'")
        if self.row is not None:
            parts.append(f" at row {self.row}")
        if self.field_name is not None:
            parts.append(f" (field: '{self.field_name}')")
        return "".join(parts)


class InputFileError(SpecParseError):
    exit_code = EXIT_INPUT_VALIDATION


class MissingSectionError(SpecParseError):
    pass


class MissingColumnsError(SpecParseError):
    def __init__(self, missing, *, section: Optional[str] = None, row: Optional[int] = None) -> None:
        self.missing = list(missing)
        super().__init__(
            f"Required column(s) not found: {', '.join(self.missing)}",
            section=section,
            row=row,
        )


class DepthValueError(SpecParseError):
    """Missing or non-numeric nesting depth."""


class DepthJumpError(SpecParseError):
    """Depth increased by more than one level between consecutive rows."""

    def __init__(self, previous: int, current: int, **context) -> None:
        self.previous = previous
        self.current = current
        super().__init__(
            f"Seg lvl jump from {previous} to {current}. Missing intermediate level.",
            **context,
        )


class ContainerNameError(SpecParseError):
    """A 'name:TypeName' row that does not split into two non-empty parts."""


class DuplicateFieldError(SpecParseError):
    def __init__(self, identifier: str, *, first_row: Optional[int] = None, **context) -> None:
        self.identifier = identifier
        self.first_row = first_row
        message = f"Duplicate field name '{identifier}'"
        if first_row is not None:
            message += f" (first defined at row {first_row})"
        super().__init__(message, **context)


class LayoutDetectionError(SpecParseError):
    """Neither the hierarchical nor the fixed-format columns were found."""


class FixedFormatError(SpecParseError):
    pass


class ConfigError(SpecToolError, ValueError):
    """Raised when the YAML configuration is invalid."""

    exit_code = EXIT_CONFIG


class OutputError(SpecToolError, OSError):
    exit_code = EXIT_OUTPUT
