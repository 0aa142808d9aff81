from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from . import settings
from .fs_utils import write_text

logger = logging.getLogger(__name__)


def folders_path(config_dir: Path) -> Path:
    return config_dir / settings.STORAGE_DIRNAME / settings.FOLDERS_FILENAME


def get_folders(config_dir: Path) -> Any:
    """Return the stored folder layout, or an empty list when none is readable."""

    path = folders_path(config_dir)
    if not path.exists():
        return []
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.error("Error reading folders from %s: %s", path, exc)
        return []


def save_folders(folders: Any, config_dir: Path) -> bool:
    write_text(folders_path(config_dir), json.dumps(folders, indent=2))
    return True
