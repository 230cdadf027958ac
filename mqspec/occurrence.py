from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

_OCCURRENCE_RE = re.compile(r"^(\d+)\.\.(\d+)$")


@dataclass(frozen=True)
class ArrayInfo:
    """Parsed ``min..max`` repeat-count expression."""

    min: int
    max: int

    @property
    def is_array(self) -> bool:
        return self.max > 1

    @property
    def is_optional(self) -> bool:
        return self.min == 0

    @property
    def fixed_count(self) -> int:
        """Number of slots a fixed-length encoder reserves."""
        return self.max

    def __str__(self) -> str:
        kind = "array" if self.is_array else "object"
        need = "optional" if self.is_optional else "required"
        return f"{self.min}..{self.max} [{kind}] [{need}]"


def parse_occurrence(expression: Optional[str]) -> Optional[ArrayInfo]:
    """
    Parse a repeat-count expression such as ``0..9``.

    Returns None for blank input and raises ValueError when the text is not of
    the form ``min..max``.
    """

    if expression is None or not str(expression).strip():
        return None

    text = str(expression).strip()
    match = _OCCURRENCE_RE.match(text)
    if not match:
        raise ValueError(
            f"Invalid occurrenceCount format: {expression}. "
            "Expected format: 'min..max' (e.g., '0..9', '1..1')"
        )
    return ArrayInfo(min=int(match.group(1)), max=int(match.group(2)))
