from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from . import settings

logger = logging.getLogger(__name__)

_DIRECTIVE_PATTERNS = {
    ("automation", "file"): re.compile(r"^automation:\s*!include\s+(.+)$"),
    ("automation", "dir"): re.compile(r"^automation:\s*!include_dir_list\s+(.+)$"),
    ("script", "file"): re.compile(r"^script:\s*!include\s+(.+)$"),
    ("script", "dir"): re.compile(r"^script:\s*!include_dir_list\s+(.+)$"),
}


@dataclass
class ConfigFilePaths:
    automation_paths: list[Path] = field(default_factory=list)
    script_paths: list[Path] = field(default_factory=list)


def _default_paths(config_dir: Path) -> ConfigFilePaths:
    return ConfigFilePaths(
        automation_paths=[config_dir / settings.DEFAULT_AUTOMATIONS_FILENAME],
        script_paths=[config_dir / settings.DEFAULT_SCRIPTS_FILENAME],
    )


def _list_yaml_dir(directory: Path) -> list[Path]:
    try:
        names = [child.name for child in directory.iterdir()]
    except OSError:
        logger.debug("Include directory not readable: %s", directory)
        return []
    return [directory / name for name in names if Path(name).suffix in settings.YAML_EXTENSIONS]


def get_config_file_paths(config_dir: Path) -> ConfigFilePaths:
    """Find the automation and script files referenced by configuration.yaml.

    The file is scanned line by line rather than parsed, so the `!include` tag family
    does not need to be resolved. Only `automation:`/`script:` directives
    pointing at `!include <file>` or `!include_dir_list <dir>` are recognised.
    """

    config_file = config_dir / settings.CONFIGURATION_FILENAME
    try:
        content = config_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Using default file locations, cannot read %s: %s", config_file, exc)
        return _default_paths(config_dir)

    found: dict[str, list[Path]] = {"automation": [], "script": []}
    for line in content.splitlines():
        stripped = line.strip()
        for (domain, kind), pattern in _DIRECTIVE_PATTERNS.items():
            match = pattern.match(stripped)
            if not match:
                continue
            target = config_dir / match.group(1).strip()
            if kind == "file":
                found[domain].append(target)
            else:
                found[domain].extend(_list_yaml_dir(target))

    defaults = _default_paths(config_dir)
    paths = ConfigFilePaths(
        automation_paths=found["automation"] or defaults.automation_paths,
        script_paths=found["script"] or defaults.script_paths,
    )
    logger.debug("Automation paths: %s", [str(path) for path in paths.automation_paths])
    logger.debug("Script paths: %s", [str(path) for path in paths.script_paths])
    return paths
