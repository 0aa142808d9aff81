from __future__ import annotations

import re
from typing import Any

_LIST_ITEM_PREFIX = re.compile(r"^(\s*)- ")
_LEADING_WS = re.compile(r"^(\s*)")


def _first_match(lines: list[str], pattern: re.Pattern[str]) -> int | None:
    for number, line in enumerate(lines, start=1):
        if pattern.search(line):
            return number
    return None


def find_line_number(lines: list[str], item_id: Any, alias: Any, list_item: bool) -> int:
    """Best-effort 1-based line where an automation or script starts.

    Looks for the id first (`- id: <id>` for list entries, `<id>:` for keyed entries) and
    falls back to the alias. Returns 1 when nothing matches. The result is only used to
    cut a display snippet out of the file; duplicate ids or aliases can point at the
    wrong entry.
    """

    if not lines:
        return 1

    if item_id:
        escaped = re.escape(str(item_id))
        if list_item:
            pattern = re.compile(rf"^\s*-\s+id:\s*['\"]?{escaped}['\"]?")
        else:
            pattern = re.compile(rf"^\s*{escaped}:")
        number = _first_match(lines, pattern)
        if number is not None:
            return number

    if alias:
        escaped = re.escape(str(alias))
        if list_item:
            pattern = re.compile(rf"^\s*-\s+alias:\s*['\"]?{escaped}['\"]?")
        else:
            pattern = re.compile(rf"^\s*alias:\s*['\"]?{escaped}['\"]?")
        number = _first_match(lines, pattern)
        if number is not None:
            return number

    return 1


def _indent(line: str) -> int:
    match = _LEADING_WS.match(line)
    return len(match.group(1)) if match else 0


def slice_list_entry(lines: list[str], start: int) -> str:
    """Cut one `- ...` list entry starting at 0-based `start` and render it as a plain map."""

    start = max(0, min(start, len(lines) - 1))
    start_indent = _indent(lines[start])
    end = len(lines)
    for idx in range(start + 1, len(lines)):
        line = lines[idx]
        if not line.strip():
            continue
        if _indent(line) <= start_indent and line.strip().startswith("- "):
            end = idx
            break

    block = lines[start:end]
    content = "\n".join(block)
    if content.strip().startswith("- "):
        content = "\n".join(
            _LIST_ITEM_PREFIX.sub(r"\1", line, count=1) if idx == 0 else re.sub(r"^  ", "", line)
            for idx, line in enumerate(block)
        )
    return content.strip()


def slice_keyed_entry(lines: list[str], start: int) -> str:
    """Cut one top-level `key:` entry starting at 0-based `start`, key line included."""

    start = max(0, min(start, len(lines) - 1))
    end = len(lines)
    for idx in range(start + 1, len(lines)):
        line = lines[idx]
        if not line.strip():
            continue
        if not line.startswith((" ", "\t")) and ":" in line:
            end = idx
            break
    return "\n".join(lines[start:end]).rstrip()
