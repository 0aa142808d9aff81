import importlib.machinery
import importlib.util
import json
import os
import sys
import uuid
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
APP_PATH = REPO_ROOT / "homeassistant_editor/rootfs/app/main.py"


def load_main(tmp_path: Path):
    config_dir = tmp_path / "config"
    config_dir.mkdir(parents=True, exist_ok=True)

    os.environ["CONFIG_PATH"] = str(config_dir)

    for module_name in list(sys.modules):
        if module_name.startswith("editor_bridge"):
            sys.modules.pop(module_name, None)

    module_name = f"ha_editor_main_{uuid.uuid4().hex}"
    loader = importlib.machinery.SourceFileLoader(module_name, str(APP_PATH))
    spec = importlib.util.spec_from_loader(loader.name, loader)
    module = importlib.util.module_from_spec(spec)
    loader.exec_module(module)
    return module, config_dir


def get_folders_module():
    return sys.modules["editor_bridge.folders"]


def test_missing_folders_file_returns_empty(tmp_path: Path) -> None:
    _, config_dir = load_main(tmp_path)

    assert get_folders_module().get_folders(config_dir) == []


def test_save_and_get_folders(tmp_path: Path) -> None:
    _, config_dir = load_main(tmp_path)
    folders = get_folders_module()
    layout = [{"id": "lights", "name": "Lights", "items": ["1001", "night"]}]

    assert folders.save_folders(layout, config_dir) is True

    path = config_dir / ".storage/automation_folders.json"
    assert json.loads(path.read_text(encoding="utf-8")) == layout
    assert path.read_text(encoding="utf-8") == json.dumps(layout, indent=2)
    assert folders.get_folders(config_dir) == layout


def test_invalid_folders_file_returns_empty(tmp_path: Path) -> None:
    _, config_dir = load_main(tmp_path)
    path = config_dir / ".storage/automation_folders.json"
    path.parent.mkdir(parents=True)
    path.write_text("{not json", encoding="utf-8")

    assert get_folders_module().get_folders(config_dir) == []
