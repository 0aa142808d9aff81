"""Run history for automations and scripts, read from Home Assistant's saved traces store."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from . import settings

logger = logging.getLogger(__name__)

FAILED_EXECUTIONS = {"failed_single", "error"}
TRACE_DOMAINS = {"automation", "script"}

_SEPARATORS = re.compile(r"[\s_]+")


def saved_traces_path(config_dir: Path) -> Path:
    return config_dir / settings.STORAGE_DIRNAME / settings.SAVED_TRACES_FILENAME


def _normalize(value: str) -> str:
    return _SEPARATORS.sub("", value.lower())


def _result_text(result: Any) -> str | None:
    if not isinstance(result, dict) or not result:
        return None
    if result.get("choice"):
        return f"-> {result['choice']}"
    if result.get("result") is True:
        return "passed"
    if result.get("result") is False:
        return "failed"
    return json.dumps(result)


def format_trace_steps(trace_data: Any) -> list[dict[str, Any]]:
    """Flatten a trace's `{path: [step, ...]}` map into one row per path (first step only)."""

    steps: list[dict[str, Any]] = []
    if not isinstance(trace_data, dict):
        return steps
    for path, step_data in trace_data.items():
        if not isinstance(step_data, list) or not step_data or not isinstance(step_data[0], dict):
            continue
        step = step_data[0]
        trigger = (step.get("changed_variables") or {}).get("trigger")
        if not isinstance(trigger, dict):
            trigger = {}
        steps.append(
            {
                "path": path,
                "timestamp": step.get("timestamp"),
                "result": step.get("result") or None,
                "result_text": _result_text(step.get("result")),
                "error": step.get("error"),
                "entity_id": trigger.get("entity_id"),
                "description": trigger.get("description"),
            }
        )
    return steps


def _entries_for(data: dict[str, Any], domain: str, item_id: str) -> list[Any]:
    direct = data.get(f"{domain}.{item_id}")
    if direct:
        return direct
    wanted = _normalize(item_id)
    for key, entries in data.items():
        key_domain, _, key_item = str(key).partition(".")
        if key_domain == domain and _normalize(key_item) == wanted:
            return entries or []
    return []


def _summarize(entry: dict[str, Any]) -> dict[str, Any]:
    short = entry.get("short_dict") or {}
    extended = entry.get("extended_dict") or {}
    short_time = short.get("timestamp") or {}
    extended_time = extended.get("timestamp") or {}
    failed = short.get("script_execution") in FAILED_EXECUTIONS or (
        short.get("state") == "stopped" and bool(extended.get("error"))
    )
    return {
        "run_id": short.get("run_id") or extended.get("run_id"),
        "timestamp": short_time.get("start") or extended_time.get("start"),
        "finish_time": short_time.get("finish") or extended_time.get("finish"),
        "state": short.get("state") or extended.get("state"),
        "script_execution": short.get("script_execution") or extended.get("script_execution"),
        "trigger": short.get("trigger") or extended.get("trigger") or "unknown",
        "error": (extended.get("error") or short.get("script_execution")) if failed else None,
        "last_step": short.get("last_step") or extended.get("last_step"),
        "steps": format_trace_steps(extended.get("trace")),
    }


def get_traces(domain: str, item_id: str, config_dir: Path) -> list[dict[str, Any]]:
    """Return the saved runs of one automation or script, newest first.

    Entries are looked up under `<domain>.<item_id>` and, failing that, under any key of
    the same domain whose object id matches once case, spaces and underscores are
    ignored. Duplicate run ids are dropped. A missing or unreadable store gives [].
    """

    if domain not in TRACE_DOMAINS:
        raise ValueError("Invalid domain")
    path = saved_traces_path(config_dir)
    if not path.exists():
        return []
    try:
        stored = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.error("Error reading saved traces from %s: %s", path, exc)
        return []
    data = stored.get("data") if isinstance(stored, dict) else None
    if not isinstance(data, dict):
        return []

    traces: list[dict[str, Any]] = []
    seen: set[Any] = set()
    for entry in _entries_for(data, domain, item_id):
        if not isinstance(entry, dict):
            continue
        trace = _summarize(entry)
        if trace["run_id"] in seen:
            continue
        seen.add(trace["run_id"])
        traces.append(trace)
    traces.sort(key=lambda trace: str(trace["timestamp"] or ""), reverse=True)
    return traces[: settings.MAX_TRACES]
