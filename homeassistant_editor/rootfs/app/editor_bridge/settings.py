from __future__ import annotations

import os
from pathlib import Path

CONFIG_DIR = Path(os.environ.get("CONFIG_PATH", "/config"))
PORT = int(os.environ.get("PORT", "54002"))
HA_URL = os.environ.get("HA_URL", "").rstrip("/") or None
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
SUPERVISOR_API_URL = "http://supervisor/core/api"
CONFIGURATION_FILENAME = "configuration.yaml"
DEFAULT_AUTOMATIONS_FILENAME = "automations.yaml"
DEFAULT_SCRIPTS_FILENAME = "scripts.yaml"
STORAGE_DIRNAME = ".storage"
FOLDERS_FILENAME = "automation_folders.json"
SAVED_TRACES_FILENAME = "trace.saved_traces"
MAX_TRACES = 50
YAML_EXTENSIONS = {".yaml", ".yml"}
HTTP_TIMEOUT_SECONDS = 10.0
STATIC_DIR = Path(__file__).resolve().parent.parent / "static"
