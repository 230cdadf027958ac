from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import yaml

from .errors import ConfigError
from .hierarchy import DEFAULT_MAX_NESTING_DEPTH
from .metadata import DEFAULT_METADATA_PRIORITY
from .naming import DEFAULT_MAX_IDENTIFIER_LENGTH, HASH_LENGTH
from .schema import LEGACY_REPEAT_COUNT_ALIASES, REQUEST_SECTION, SHARED_HEADER_SECTION
from .serialize import DEFAULT_INDENT
from .sheets import DEFAULT_ALLOWED_EXTENSIONS

CONFIG_ENV_VAR = "MQSPEC_CONFIG"
TIMESTAMP_SOURCES = ("mtime", "now")
METADATA_SOURCES = (REQUEST_SECTION, SHARED_HEADER_SECTION)


@dataclass
class ParserSettings:
    max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH
    max_identifier_length: int = DEFAULT_MAX_IDENTIFIER_LENGTH
    repeat_count_aliases: List[str] = field(default_factory=lambda: list(LEGACY_REPEAT_COUNT_ALIASES))
    metadata_priority: List[str] = field(default_factory=lambda: list(DEFAULT_METADATA_PRIORITY))
    timestamp_source: str = "mtime"
    allowed_extensions: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_EXTENSIONS))


@dataclass
class OutputSettings:
    indent: int = DEFAULT_INDENT
    path: Optional[Path] = None


@dataclass
class AppConfig:
    path: Optional[Path] = None
    parser: ParserSettings = field(default_factory=ParserSettings)
    output: OutputSettings = field(default_factory=OutputSettings)


def _ensure_list(value: Optional[Iterable[str]], fallback: Sequence[str]) -> List[str]:
    if value is None:
        return list(fallback)
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _resolve_path(base: Path, value: str) -> Path:
    return (base / value).expanduser().resolve()


def _section(raw: Mapping[str, object], name: str, allowed: Iterable[str]) -> Dict[str, object]:
    section = raw.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"`{name}` must be a mapping")
    unknown = sorted(set(section) - set(allowed))
    if unknown:
        raise ConfigError(f"Unknown key(s) in `{name}`: {', '.join(map(str, unknown))}")
    return section


def _as_int(section: Mapping[str, object], key: str, default: int) -> int:
    value = section.get(key, default)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"`{key}` must be an integer, got {value!r}") from exc


def resolve_config_path(explicit: Optional[Path] = None) -> Optional[Path]:
    """CLI argument first, then the MQSPEC_CONFIG environment variable."""

    if explicit is not None:
        return Path(explicit)
    env_value = os.environ.get(CONFIG_ENV_VAR)
    return Path(env_value) if env_value else None


def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load and validate the YAML configuration; no path means built-in defaults."""

    if path is None:
        return AppConfig()

    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    unknown = sorted(set(raw) - {"parser", "output"})
    if unknown:
        raise ConfigError(f"Unknown top-level key(s): {', '.join(map(str, unknown))}")

    defaults = ParserSettings()
    parser_cfg = _section(raw, "parser", defaults.__dataclass_fields__)

    max_depth = _as_int(parser_cfg, "max_nesting_depth", defaults.max_nesting_depth)
    if max_depth <= 0:
        max_depth = DEFAULT_MAX_NESTING_DEPTH

    max_length = _as_int(parser_cfg, "max_identifier_length", defaults.max_identifier_length)
    if max_length <= HASH_LENGTH:
        raise ConfigError(f"`max_identifier_length` must be greater than {HASH_LENGTH}, got {max_length}")

    priority = _ensure_list(parser_cfg.get("metadata_priority"), defaults.metadata_priority)
    bad_sources = [p for p in priority if p not in METADATA_SOURCES]
    if bad_sources or not priority:
        raise ConfigError(
            f"`metadata_priority` entries must be among {list(METADATA_SOURCES)}, got {priority}"
        )

    timestamp_source = str(parser_cfg.get("timestamp_source", defaults.timestamp_source))
    if timestamp_source not in TIMESTAMP_SOURCES:
        raise ConfigError(f"`timestamp_source` must be one of {list(TIMESTAMP_SOURCES)}, got {timestamp_source!r}")

    extensions = [
        ext.lower() if ext.startswith(".") else f".{ext.lower()}"
        for ext in _ensure_list(parser_cfg.get("allowed_extensions"), defaults.allowed_extensions)
    ]

    parser = ParserSettings(
        max_nesting_depth=max_depth,
        max_identifier_length=max_length,
        repeat_count_aliases=_ensure_list(parser_cfg.get("repeat_count_aliases"), defaults.repeat_count_aliases),
        metadata_priority=priority,
        timestamp_source=timestamp_source,
        allowed_extensions=extensions,
    )

    output_cfg = _section(raw, "output", OutputSettings.__dataclass_fields__)
    indent = _as_int(output_cfg, "indent", DEFAULT_INDENT)
    if indent < 0:
        raise ConfigError(f"`indent` must not be negative, got {indent}")
    output_path = output_cfg.get("path")
    output = OutputSettings(
        indent=indent,
        path=_resolve_path(path.parent, str(output_path)) if output_path else None,
    )

    return AppConfig(path=path, parser=parser, output=output)
