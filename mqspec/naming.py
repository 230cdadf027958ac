"""
Derive safe lower-camel-case identifiers from human-authored field names.

The normalizer is a pure function of its input and its length limit, so the
same raw name always yields the same identifier whatever order rows are
processed in.
"""

from __future__ import annotations

import hashlib
import re
from typing import List

from pypinyin import Style, lazy_pinyin

from .hierarchy import NodeArena
from .model import FieldRole

IDENTIFIER_PREFIX = "field"
HASH_LENGTH = 4
DEFAULT_MAX_IDENTIFIER_LENGTH = 50

_DISALLOWED_RE = re.compile(r"[^A-Za-z0-9_\-]")
_SEPARATOR_RE = re.compile(r"[_\-]+")
_LOWER_CAMEL_RE = re.compile(r"^[a-z][a-z0-9]*(?:[A-Z][a-z0-9]*)*$")


def is_cjk(char: str) -> bool:
    code = ord(char)
    return (
        0x4E00 <= code <= 0x9FFF  # CJK Unified Ideographs
        or 0x3400 <= code <= 0x4DBF  # Extension A
        or 0x20000 <= code <= 0x2A6DF  # Extension B
    )


def short_hash(text: str) -> str:
    """First two bytes of the MD5 of ``text`` as four lowercase hex digits."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def transliterate(text: str) -> str:
    """
    Replace runs of CJK ideographs with pinyin syllables.

    Each syllable starts with a capital letter unless it opens the output, so
    word boundaries survive the later camel-case join ("客户姓名" -> "keHuXingMing").
    """

    out: List[str] = []
    run: List[str] = []

    def flush() -> None:
        if not run:
            return
        for syllable in lazy_pinyin("".join(run), style=Style.NORMAL):
            if not syllable:
                continue
            if out:
                out.append(syllable[:1].upper() + syllable[1:])
            else:
                out.append(syllable.lower())
        run.clear()

    for char in text:
        if is_cjk(char):
            run.append(char)
        else:
            flush()
            out.append(char)
    flush()
    return "".join(out)


def _case_segment(segment: str, first: bool) -> str:
    # Only segments already in lower camel case keep their inner capitals;
    # everything else ("FIRST", "AcctNO", "IDKeHu") is folded to lowercase.
    if _LOWER_CAMEL_RE.match(segment):
        rest = segment[1:]
    else:
        rest = segment[1:].lower()
    head = segment[:1].lower() if first else segment[:1].upper()
    return head + rest


class NameNormalizer:
    def __init__(self, max_length: int = DEFAULT_MAX_IDENTIFIER_LENGTH) -> None:
        if max_length <= HASH_LENGTH:
            raise ValueError(f"max_length must be greater than {HASH_LENGTH}, got {max_length}")
        self.max_length = max_length

    def normalize(self, raw_name: str) -> str:
        text = _DISALLOWED_RE.sub("", transliterate(raw_name or ""))
        segments = [seg for seg in _SEPARATOR_RE.split(text) if seg]
        result = "".join(_case_segment(seg, idx == 0) for idx, seg in enumerate(segments))

        if result[:1].isdigit():
            result = IDENTIFIER_PREFIX + result
        if not result:
            result = IDENTIFIER_PREFIX + short_hash(raw_name or "")

        if len(result) > self.max_length:
            result = result[: self.max_length - HASH_LENGTH] + short_hash(result)
        return result

    def assign(self, arena: NodeArena) -> NodeArena:
        """Give every non-marker draft its identifier; containers use their field-name part."""

        for draft in arena.drafts:
            if draft.role is FieldRole.MARKER:
                draft.identifier = None
            elif draft.field_name is not None:
                draft.identifier = self.normalize(draft.field_name)
            else:
                draft.identifier = self.normalize(draft.row.name)
        return arena
