from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any

from .config_paths import get_config_file_paths
from .fs_utils import read_text, relative_path, write_text, yaml_dump, yaml_load
from .line_locator import find_line_number, slice_keyed_entry
from .mutations import EditorError, remove_entry, replace_entry, set_keyed_entry
from .records import KeyedOrigin, ScriptRecord

logger = logging.getLogger(__name__)

SCRIPT_KEYS = (
    "id",
    "alias",
    "description",
    "mode",
    "sequence",
    "variables",
    "fields",
    "icon",
    "max",
    "max_exceeded",
    "trace",
)

PASSTHROUGH_KEYS = ("max", "max_exceeded", "trace")


def is_script(value: Any) -> bool:
    """A map entry is a script when it has a `sequence` and no trigger field."""

    if not isinstance(value, dict):
        return False
    has_triggers = value.get("triggers") is not None or value.get("trigger") is not None
    return value.get("sequence") is not None and not has_triggers


def extract_scripts(config_dir: Path) -> list[ScriptRecord]:
    scripts: list[ScriptRecord] = []
    for path in get_config_file_paths(config_dir).script_paths:
        if not path.is_file():
            continue
        data, text, error = yaml_load(path, config_dir)
        if error:
            logger.warning("Skipping %s", error)
            continue
        if not isinstance(data, dict):
            continue
        rel_path = relative_path(path, config_dir)
        lines = text.split("\n")
        for key, value in data.items():
            if not is_script(value):
                continue
            scripts.append(
                ScriptRecord(
                    id=str(key),
                    alias=value.get("alias") or str(key),
                    description=value.get("description") or "",
                    mode=value.get("mode") or "single",
                    sequence=value.get("sequence") or [],
                    variables=value.get("variables") or {},
                    fields=value.get("fields") or {},
                    icon=value.get("icon") or "",
                    file=rel_path,
                    full_path=path,
                    origin=KeyedOrigin(key),
                    line_number=find_line_number(lines, key, value.get("alias"), False),
                )
            )
    return scripts


def get_script(script_id: str, config_dir: Path) -> ScriptRecord | None:
    for script in extract_scripts(config_dir):
        if script.id == script_id:
            return script
    return None


def _require_script(script_id: str, config_dir: Path) -> ScriptRecord:
    existing = get_script(script_id, config_dir)
    if existing is None:
        raise EditorError(f"Script not found: {script_id}", status_code=404)
    return existing


def build_script_payload(
    script: dict[str, Any],
    *,
    default_alias: Any = None,
    default_variables: Any = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "alias": script.get("alias") or default_alias,
        "description": script.get("description") or "",
        "mode": script.get("mode") or "single",
        "sequence": script.get("sequence") or [],
    }
    variables = script.get("variables") or default_variables
    if variables:
        payload["variables"] = variables
    if script.get("fields"):
        payload["fields"] = script["fields"]
    if script.get("icon"):
        payload["icon"] = script["icon"]
    for key in PASSTHROUGH_KEYS:
        if script.get(key) is not None:
            payload[key] = script[key]
    return payload


def update_script(script_id: str, script: dict[str, Any], config_dir: Path) -> bool:
    existing = _require_script(script_id, config_dir)

    unknown = [key for key in script if key not in SCRIPT_KEYS]
    if unknown:
        raise EditorError(f"Unknown keys in script: {', '.join(map(str, unknown))}")

    payload = build_script_payload(
        script,
        default_alias=existing.alias,
        default_variables=existing.variables,
    )
    content = existing.full_path.read_text(encoding="utf-8")
    updated = replace_entry(content, existing.origin, payload, label=existing.file)
    write_text(existing.full_path, updated)
    logger.info("Updated script %s in %s", script_id, existing.file)
    return True


def create_script(script: dict[str, Any], config_dir: Path) -> dict[str, Any]:
    path = get_config_file_paths(config_dir).script_paths[0]
    rel_path = relative_path(path, config_dir)
    script_id = script.get("id") or f"script_{int(time.time() * 1000)}"
    payload = build_script_payload(script, default_alias="New Script")

    updated = set_keyed_entry(read_text(path), script_id, payload, label=rel_path)
    write_text(path, updated)
    logger.info("Created script %s in %s", script_id, rel_path)
    return {"id": script_id, **payload, "file": rel_path, "full_path": str(path)}


def delete_script(script_id: str, config_dir: Path) -> bool:
    existing = _require_script(script_id, config_dir)
    content = existing.full_path.read_text(encoding="utf-8")
    updated = remove_entry(content, existing.origin, label=existing.file)
    write_text(existing.full_path, updated)
    logger.info("Deleted script %s from %s", script_id, existing.file)
    return True


def script_to_yaml(script: ScriptRecord | dict[str, Any]) -> str:
    if isinstance(script, ScriptRecord):
        script = script.editable()
    return yaml_dump({script.get("id"): build_script_payload(script)})


def get_raw_script_yaml(script_id: str, config_dir: Path) -> str | None:
    script = get_script(script_id, config_dir)
    if script is None:
        return None
    try:
        content = script.full_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Cannot read %s: %s", script.file, exc)
        return None
    return slice_keyed_entry(content.split("\n"), script.line_number - 1)
