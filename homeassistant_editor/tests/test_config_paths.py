import importlib.machinery
import importlib.util
import os
import sys
import uuid
from pathlib import Path

import pytest

yaml = pytest.importorskip("yaml")

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


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def get_config_paths_module():
    return sys.modules["editor_bridge.config_paths"]


def test_missing_configuration_uses_defaults(tmp_path: Path) -> None:
    _, config_dir = load_main(tmp_path)
    config_paths = get_config_paths_module()

    paths = config_paths.get_config_file_paths(config_dir)

    assert paths.automation_paths == [config_dir / "automations.yaml"]
    assert paths.script_paths == [config_dir / "scripts.yaml"]


def test_include_and_include_dir_list_directives(tmp_path: Path) -> None:
    _, config_dir = load_main(tmp_path)
    write_text(
        config_dir / "configuration.yaml",
        "homeassistant:\n"
        "  name: Home\n"
        "automation: !include automations/main.yaml\n"
        "script: !include_dir_list scripts\n",
    )
    write_text(config_dir / "scripts/lights.yaml", "{}\n")
    write_text(config_dir / "scripts/media.yml", "{}\n")
    write_text(config_dir / "scripts/README.txt", "not yaml\n")

    paths = get_config_paths_module().get_config_file_paths(config_dir)

    assert paths.automation_paths == [config_dir / "automations/main.yaml"]
    assert sorted(paths.script_paths) == [
        config_dir / "scripts/lights.yaml",
        config_dir / "scripts/media.yml",
    ]


def test_category_without_directive_falls_back(tmp_path: Path) -> None:
    _, config_dir = load_main(tmp_path)
    write_text(config_dir / "configuration.yaml", "script: !include my_scripts.yaml\n")

    paths = get_config_paths_module().get_config_file_paths(config_dir)

    assert paths.automation_paths == [config_dir / "automations.yaml"]
    assert paths.script_paths == [config_dir / "my_scripts.yaml"]


def test_missing_include_dir_is_skipped(tmp_path: Path) -> None:
    _, config_dir = load_main(tmp_path)
    write_text(
        config_dir / "configuration.yaml",
        "automation: !include_dir_list missing_dir\n"
        "automation: !include extra.yaml\n",
    )

    paths = get_config_paths_module().get_config_file_paths(config_dir)

    assert paths.automation_paths == [config_dir / "extra.yaml"]


def test_unreadable_configuration_uses_defaults(tmp_path: Path) -> None:
    _, config_dir = load_main(tmp_path)
    (config_dir / "configuration.yaml").mkdir()

    paths = get_config_paths_module().get_config_file_paths(config_dir)

    assert paths.automation_paths == [config_dir / "automations.yaml"]
    assert paths.script_paths == [config_dir / "scripts.yaml"]


def test_nested_directives_are_ignored(tmp_path: Path) -> None:
    _, config_dir = load_main(tmp_path)
    write_text(
        config_dir / "configuration.yaml",
        "automation manual: !include manual.yaml\n"
        "homeassistant:\n"
        "  packages: !include_dir_named packages\n",
    )

    paths = get_config_paths_module().get_config_file_paths(config_dir)

    assert paths.automation_paths == [config_dir / "automations.yaml"]
