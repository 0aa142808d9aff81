"""Structural edits on automation and script file contents.

Every edit takes the current file text and returns the complete new text. The caller
reads the file right before the edit and writes the result back in one call.
"""

from __future__ import annotations

from typing import Any

import yaml

from .fs_utils import parse_yaml, yaml_dump
from .records import IndexedOrigin, KeyedOrigin, Origin


class EditorError(Exception):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        return self.message


def load_document(text: str, label: str = "file") -> Any:
    try:
        return parse_yaml(text)
    except yaml.YAMLError as exc:
        raise EditorError(f"Invalid YAML in {label}: {exc}") from exc


def replace_entry(text: str, origin: Origin, value: dict[str, Any], label: str = "file") -> str:
    data = load_document(text, label)
    if isinstance(data, list):
        if isinstance(origin, IndexedOrigin):
            if not 0 <= origin.index < len(data):
                raise EditorError(f"{label} changed on disk; entry {origin.index} no longer exists.", 409)
            data[origin.index] = value
    elif isinstance(data, dict):
        if isinstance(origin, KeyedOrigin):
            data[origin.key] = value
    else:
        raise EditorError(f"{label} does not contain a list or a map.")
    return yaml_dump(data)


def remove_entry(text: str, origin: Origin, label: str = "file") -> str:
    data = load_document(text, label)
    if isinstance(data, list) and isinstance(origin, IndexedOrigin):
        if not 0 <= origin.index < len(data):
            raise EditorError(f"{label} changed on disk; entry {origin.index} no longer exists.", 409)
        data.pop(origin.index)
    elif isinstance(data, dict) and isinstance(origin, KeyedOrigin):
        data.pop(origin.key, None)
    return yaml_dump(data)


def append_list_entry(text: str, value: dict[str, Any], label: str = "file") -> str:
    data = load_document(text, label)
    if isinstance(data, list):
        data.append(value)
    else:
        data = [value]
    return yaml_dump(data)


def set_keyed_entry(text: str, key: Any, value: dict[str, Any], label: str = "file") -> str:
    data = load_document(text, label)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise EditorError(f"{label} is not a map.")
    data[key] = value
    return yaml_dump(data)
