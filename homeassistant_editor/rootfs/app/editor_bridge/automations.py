from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any

import yaml

from .config_paths import get_config_file_paths
from .fs_utils import parse_yaml, read_text, relative_path, write_text, yaml_dump, yaml_load
from .line_locator import find_line_number, slice_keyed_entry, slice_list_entry
from .mutations import EditorError, append_list_entry, remove_entry, replace_entry
from .records import VALID_MODES, AutomationRecord, IndexedOrigin, KeyedOrigin

logger = logging.getLogger(__name__)

AUTOMATION_KEYS = (
    "id",
    "alias",
    "description",
    "mode",
    "triggers",
    "conditions",
    "actions",
    "enabled",
    "trigger",
    "condition",
    "action",
    "initial_state",
    "max",
    "max_exceeded",
    "variables",
    "trace",
)

PASSTHROUGH_KEYS = ("max", "max_exceeded", "trace")


def _sequence(value: dict[str, Any], plural: str, singular: str) -> Any:
    return value.get(plural) or value.get(singular) or []


def _is_enabled(value: dict[str, Any]) -> bool:
    return value.get("enabled") is not False and value.get("initial_state") is not False


def _has_triggers(value: dict[str, Any]) -> bool:
    return value.get("triggers") is not None or value.get("trigger") is not None


def _build_record(
    value: dict[str, Any],
    *,
    item_id: str,
    alias: Any,
    file: str,
    full_path: Path,
    origin: IndexedOrigin | KeyedOrigin,
    line_number: int,
) -> AutomationRecord:
    return AutomationRecord(
        id=item_id,
        alias=alias,
        description=value.get("description") or "",
        mode=value.get("mode") or "single",
        variables=value.get("variables") or {},
        triggers=_sequence(value, "triggers", "trigger"),
        conditions=_sequence(value, "conditions", "condition"),
        actions=_sequence(value, "actions", "action"),
        enabled=_is_enabled(value),
        file=file,
        full_path=full_path,
        origin=origin,
        line_number=line_number,
    )


def _records_from_file(path: Path, data: Any, text: str, config_dir: Path) -> list[AutomationRecord]:
    rel_path = relative_path(path, config_dir)
    lines = text.split("\n")
    records: list[AutomationRecord] = []

    if isinstance(data, list):
        for index, value in enumerate(data):
            if not isinstance(value, dict) or not (value.get("alias") or value.get("id")):
                continue
            item_id = str(value["id"]) if value.get("id") else f"auto_{index}"
            records.append(
                _build_record(
                    value,
                    item_id=item_id,
                    alias=value.get("alias") or f"Automation {index}",
                    file=rel_path,
                    full_path=path,
                    origin=IndexedOrigin(index),
                    line_number=find_line_number(lines, item_id, value.get("alias"), True),
                )
            )
        return records

    if isinstance(data, dict):
        for key, value in data.items():
            if not isinstance(value, dict) or not _has_triggers(value):
                continue
            item_id = str(value["id"]) if value.get("id") else str(key)
            records.append(
                _build_record(
                    value,
                    item_id=item_id,
                    alias=value.get("alias") or str(key),
                    file=rel_path,
                    full_path=path,
                    origin=KeyedOrigin(key),
                    line_number=find_line_number(lines, key, value.get("alias"), False),
                )
            )
    return records


def extract_automations(config_dir: Path) -> list[AutomationRecord]:
    """Collect automations from every resolved automation file.

    Both the classic list layout and a map of `key: automation` are accepted. Missing
    files are skipped and files that fail to parse are logged and skipped.
    """

    automations: list[AutomationRecord] = []
    for path in get_config_file_paths(config_dir).automation_paths:
        if not path.is_file():
            continue
        data, text, error = yaml_load(path, config_dir)
        if error:
            logger.warning("Skipping %s", error)
            continue
        if data is None:
            continue
        automations.extend(_records_from_file(path, data, text, config_dir))
    return automations


def get_automation(automation_id: str, config_dir: Path) -> AutomationRecord | None:
    for automation in extract_automations(config_dir):
        if automation.id == automation_id:
            return automation
    return None


def _require_automation(automation_id: str, config_dir: Path) -> AutomationRecord:
    existing = get_automation(automation_id, config_dir)
    if existing is None:
        raise EditorError(f"Automation not found: {automation_id}", status_code=404)
    return existing


def _initial_state(automation: dict[str, Any]) -> bool:
    if "enabled" in automation:
        return automation["enabled"] is not False
    return automation.get("initial_state") is not False


def build_automation_payload(
    automation: dict[str, Any],
    automation_id: str,
    *,
    default_alias: Any = None,
    default_variables: Any = None,
) -> dict[str, Any]:
    """Build the object written to disk for an automation.

    Optional fields are defaulted and `initial_state` is always written as a bool.
    """

    payload: dict[str, Any] = {
        "id": automation.get("id") or automation_id,
        "alias": automation.get("alias") or default_alias,
        "description": automation.get("description") or "",
        "mode": automation.get("mode") or "single",
        "triggers": _sequence(automation, "triggers", "trigger"),
        "conditions": _sequence(automation, "conditions", "condition"),
        "actions": _sequence(automation, "actions", "action"),
    }
    variables = automation.get("variables") or default_variables
    if variables:
        payload["variables"] = variables
    for key in PASSTHROUGH_KEYS:
        if automation.get(key) is not None:
            payload[key] = automation[key]
    payload["initial_state"] = _initial_state(automation)
    return payload


def update_automation(automation_id: str, automation: dict[str, Any], config_dir: Path) -> bool:
    existing = _require_automation(automation_id, config_dir)

    unknown = [key for key in automation if key not in AUTOMATION_KEYS]
    if unknown:
        raise EditorError(f"Unknown keys in automation: {', '.join(map(str, unknown))}")

    payload = build_automation_payload(
        automation,
        automation_id,
        default_alias=existing.alias,
        default_variables=existing.variables,
    )
    content = existing.full_path.read_text(encoding="utf-8")
    updated = replace_entry(content, existing.origin, payload, label=existing.file)
    write_text(existing.full_path, updated)
    logger.info("Updated automation %s in %s", automation_id, existing.file)
    return True


def create_automation(automation: dict[str, Any], config_dir: Path) -> dict[str, Any]:
    path = get_config_file_paths(config_dir).automation_paths[0]
    rel_path = relative_path(path, config_dir)
    new_id = automation.get("id") or f"automation_{int(time.time() * 1000)}"
    payload = build_automation_payload(automation, new_id, default_alias="New Automation")

    updated = append_list_entry(read_text(path), payload, label=rel_path)
    write_text(path, updated)
    logger.info("Created automation %s in %s", new_id, rel_path)
    return {**payload, "file": rel_path, "full_path": str(path)}


def delete_automation(automation_id: str, config_dir: Path) -> bool:
    existing = _require_automation(automation_id, config_dir)
    content = existing.full_path.read_text(encoding="utf-8")
    updated = remove_entry(content, existing.origin, label=existing.file)
    write_text(existing.full_path, updated)
    logger.info("Deleted automation %s from %s", automation_id, existing.file)
    return True


def automation_to_yaml(automation: AutomationRecord | dict[str, Any]) -> str:
    if isinstance(automation, AutomationRecord):
        automation = automation.editable()
    payload = build_automation_payload(automation, automation.get("id"))
    return yaml_dump(payload)


def yaml_to_automation(content: str) -> Any:
    try:
        return parse_yaml(content)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML: {exc}") from exc


def validate_automation(automation: Any) -> list[str]:
    if not isinstance(automation, dict):
        return ["Automation must be a YAML map"]

    errors: list[str] = []
    mode = automation.get("mode")
    if mode and mode not in VALID_MODES:
        errors.append(f"Invalid mode: '{mode}'. Must be one of: {', '.join(VALID_MODES)}")
    for key, label in (("triggers", "Triggers"), ("conditions", "Conditions"), ("actions", "Actions")):
        value = automation.get(key)
        if value is not None and not isinstance(value, list):
            errors.append(f"{label} must be a list")
    return errors


def get_raw_automation_yaml(automation_id: str, config_dir: Path) -> str | None:
    """Return the automation's text exactly as written in its source file."""

    automation = get_automation(automation_id, config_dir)
    if automation is None:
        return None
    try:
        content = automation.full_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Cannot read %s: %s", automation.file, exc)
        return None
    lines = content.split("\n")
    start = automation.line_number - 1
    if isinstance(automation.origin, IndexedOrigin):
        return slice_list_entry(lines, start)
    return slice_keyed_entry(lines, start)
