from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

from .yaml_tags import EditorYamlDumper, EditorYamlLoader


def read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ""


def relative_path(path: Path, config_dir: Path) -> str:
    try:
        return path.relative_to(config_dir).as_posix()
    except ValueError:
        return path.as_posix()


def parse_yaml(text: str) -> Any:
    if not text.strip():
        return None
    return yaml.load(text, Loader=EditorYamlLoader)


def yaml_load(path: Path, config_dir: Path) -> tuple[Any, str, str | None]:
    """Load a YAML file, returning its data, its raw text and a parse error (if any)."""

    try:
        text = read_text(path)
    except (OSError, UnicodeDecodeError) as exc:
        return None, "", f"{relative_path(path, config_dir)}: {exc}"
    try:
        data = parse_yaml(text)
    except yaml.YAMLError as exc:
        return None, text, f"{relative_path(path, config_dir)}: {exc}"
    return data, text, None


def yaml_dump(data: Any) -> str:
    if data is None:
        return ""
    rendered = yaml.dump(
        data,
        Dumper=EditorYamlDumper,
        indent=2,
        width=float("inf"),
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )
    return rendered.rstrip() + "\n"


def write_text(path: Path, content: str) -> None:
    """Replace `path` with `content`; the old file stays intact if the write fails."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
    ) as handle:
        handle.write(content)
        tmp_path = Path(handle.name)
    try:
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
