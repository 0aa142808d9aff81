from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from .yaml_tags import tagged_to_json

VALID_MODES = ("single", "restart", "queued", "parallel")


@dataclass(frozen=True)
class IndexedOrigin:
    """Entry at a position in an array-format file."""

    index: int


@dataclass(frozen=True)
class KeyedOrigin:
    """Entry under a key in a mapping-format file."""

    key: Any


Origin = Union[IndexedOrigin, KeyedOrigin]


def _origin_fields(origin: Origin) -> dict[str, Any]:
    if isinstance(origin, IndexedOrigin):
        return {"index": origin.index}
    return {"key": str(origin.key)}


@dataclass
class AutomationRecord:
    id: str
    alias: str
    file: str
    full_path: Path
    origin: Origin
    description: str = ""
    mode: str = "single"
    variables: dict[str, Any] = field(default_factory=dict)
    triggers: list[Any] = field(default_factory=list)
    conditions: list[Any] = field(default_factory=list)
    actions: list[Any] = field(default_factory=list)
    enabled: bool = True
    line_number: int = 1

    def editable(self) -> dict[str, Any]:
        """Editable fields with loaded YAML values left untouched."""

        return {
            "id": self.id,
            "alias": self.alias,
            "description": self.description,
            "mode": self.mode,
            "variables": self.variables,
            "triggers": self.triggers,
            "conditions": self.conditions,
            "actions": self.actions,
            "enabled": self.enabled,
        }

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "alias": tagged_to_json(self.alias),
            "description": tagged_to_json(self.description),
            "mode": tagged_to_json(self.mode),
            "variables": tagged_to_json(self.variables),
            "triggers": tagged_to_json(self.triggers),
            "conditions": tagged_to_json(self.conditions),
            "actions": tagged_to_json(self.actions),
            "enabled": self.enabled,
            "file": self.file,
            "full_path": str(self.full_path),
            **_origin_fields(self.origin),
            "line_number": self.line_number,
        }


@dataclass
class ScriptRecord:
    id: str
    alias: str
    file: str
    full_path: Path
    origin: KeyedOrigin
    description: str = ""
    mode: str = "single"
    sequence: list[Any] = field(default_factory=list)
    variables: dict[str, Any] = field(default_factory=dict)
    fields: dict[str, Any] = field(default_factory=dict)
    icon: str = ""
    line_number: int = 1

    def editable(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "alias": self.alias,
            "description": self.description,
            "mode": self.mode,
            "sequence": self.sequence,
            "variables": self.variables,
            "fields": self.fields,
            "icon": self.icon,
        }

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "alias": tagged_to_json(self.alias),
            "description": tagged_to_json(self.description),
            "mode": tagged_to_json(self.mode),
            "sequence": tagged_to_json(self.sequence),
            "variables": tagged_to_json(self.variables),
            "fields": tagged_to_json(self.fields),
            "icon": tagged_to_json(self.icon),
            "file": self.file,
            "full_path": str(self.full_path),
            **_origin_fields(self.origin),
            "line_number": self.line_number,
        }
