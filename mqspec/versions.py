"""Read-only version registry, loaded from versions.yaml on first access."""

from __future__ import annotations

import threading
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

import yaml

VERSIONS_FILE = Path(__file__).with_name("versions.yaml")

_LOCK = threading.Lock()
_REGISTRY: Optional[Mapping[str, str]] = None


def _load(path: Path) -> Mapping[str, str]:
    with path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a mapping of version tags")
    return MappingProxyType({str(k): str(v) for k, v in raw.items()})


def registry() -> Mapping[str, str]:
    global _REGISTRY
    if _REGISTRY is None:
        with _LOCK:
            if _REGISTRY is None:
                _REGISTRY = _load(VERSIONS_FILE)
    return _REGISTRY


def get_version(component: str = "parser") -> str:
    return registry().get(component, "unknown")
