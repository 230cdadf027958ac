"""
Canonical JSON rendering of a MessageModel.

Keys are emitted in a fixed order built explicitly here, never from dataclass
or dict iteration order, and every key is always present (null when absent).
Non-ASCII text is written as UTF-8 rather than escaped.
"""

from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Any, Dict, List

from .errors import OutputError
from .model import FieldGroup, FieldNode, MessageModel, Metadata

LOGGER = logging.getLogger(__name__)

DEFAULT_INDENT = 2


def node_to_dict(node: FieldNode) -> Dict[str, Any]:
    return {
        "originalName": node.raw_name,
        "camelCaseName": node.identifier,
        "className": node.class_name,
        "segLevel": node.depth,
        "length": node.length,
        "dataType": node.data_type,
        "optionality": node.optionality,
        "defaultValue": node.default_value,
        "hardCodeValue": node.hard_code_value,
        "groupId": node.group_id,
        "occurrenceCount": node.repeat_count,
        "isArray": node.is_array,
        "isObject": node.is_object,
        "isTransitory": node.is_marker,
        "children": [node_to_dict(child) for child in node.children],
        "_source": {
            "sheetName": node.source.sheet_name,
            "rowIndex": node.source.row_index,
            "byteOffset": node.source.byte_offset,
        },
    }


def group_to_dict(group: FieldGroup) -> Dict[str, List[Dict[str, Any]]]:
    return {"fields": [node_to_dict(node) for node in group.nodes]}


def metadata_to_dict(metadata: Metadata) -> Dict[str, Any]:
    return {
        "sourceFile": metadata.source_file,
        "sharedHeaderFile": metadata.shared_header_file,
        "parseTimestamp": metadata.parse_timestamp,
        "parserVersion": metadata.parser_version,
        "operationName": metadata.operation_name,
        "operationId": metadata.operation_id,
        "version": metadata.version,
        "serviceCategory": metadata.service_category,
        "serviceInterface": metadata.service_interface,
        "serviceComponent": metadata.service_component,
        "serviceId": metadata.service_id,
        "description": metadata.description,
    }


def model_to_dict(model: MessageModel) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"metadata": metadata_to_dict(model.metadata)}
    for key, group in model.groups():
        payload[key] = group_to_dict(group)
    return payload


def _target_mode(path: Path) -> int:
    """Mode of an existing target, else what a plain open() would create under the umask."""

    if path.exists():
        return stat.S_IMODE(path.stat().st_mode)
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def dumps(model: MessageModel, indent: int = DEFAULT_INDENT) -> str:
    return json.dumps(model_to_dict(model), ensure_ascii=False, indent=indent) + "\n"


def write_output(model: MessageModel, path: Path, indent: int = DEFAULT_INDENT) -> Path:
    """
    Serialize fully in memory, then write to a temporary sibling and rename it
    over ``path`` so readers never observe a partial file.
    """

    text = dumps(model, indent=indent)
    path = Path(path)
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            newline="\n",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            tmp_name = handle.name
            handle.write(text)
        os.chmod(tmp_name, _target_mode(path))
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise OutputError(f"Failed to write {path}: {exc}") from exc

    LOGGER.info("Wrote %s", path)
    return path
