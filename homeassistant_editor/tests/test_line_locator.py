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

THREE_AUTOMATIONS = """- id: first
  alias: First
  triggers:
  - trigger: state
    entity_id: sensor.a
  actions: []
- id: second
  alias: Second
  description: Middle entry

  triggers:
  - trigger: state
    entity_id: sensor.b
  actions:
  - action: light.toggle
- id: third
  alias: Third
  mode: queued
  triggers: []
  actions: []
"""


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


def get_line_locator():
    return sys.modules["editor_bridge.line_locator"]


def test_find_line_number_by_id(tmp_path: Path) -> None:
    load_main(tmp_path)
    locator = get_line_locator()
    lines = THREE_AUTOMATIONS.split("\n")

    assert locator.find_line_number(lines, "first", "First", True) == 1
    assert locator.find_line_number(lines, "second", "Second", True) == 7
    assert locator.find_line_number(lines, "third", None, True) == 16


def test_find_line_number_quoted_id_and_alias_fallback(tmp_path: Path) -> None:
    load_main(tmp_path)
    locator = get_line_locator()
    lines = ['- id: "1001"', "  alias: One", "- alias: Two", "  triggers: []"]

    assert locator.find_line_number(lines, "1001", "One", True) == 1
    assert locator.find_line_number(lines, "auto_1", "Two", True) == 3
    assert locator.find_line_number(lines, "auto_9", "Missing", True) == 1
    assert locator.find_line_number([], "x", "y", True) == 1


def test_find_line_number_escapes_id(tmp_path: Path) -> None:
    load_main(tmp_path)
    locator = get_line_locator()
    lines = ["- id: axb", "- id: a.b"]

    assert locator.find_line_number(lines, "a.b", None, True) == 2


def test_find_line_number_keyed(tmp_path: Path) -> None:
    load_main(tmp_path)
    locator = get_line_locator()
    lines = ["first:", "  sequence: []", "second:", "  alias: Second alias", "  sequence: []"]

    assert locator.find_line_number(lines, "second", None, False) == 3
    assert locator.find_line_number(lines, "renamed", "Second alias", False) == 4


def test_slice_keyed_entry(tmp_path: Path) -> None:
    load_main(tmp_path)
    locator = get_line_locator()
    lines = ["first:", "  sequence:", "  - delay: 1", "", "second:", "  sequence: []"]

    assert locator.slice_keyed_entry(lines, 0) == "first:\n  sequence:\n  - delay: 1"
    assert locator.slice_keyed_entry(lines, 4) == "second:\n  sequence: []"


def test_raw_automation_yaml_is_middle_entry_only(tmp_path: Path) -> None:
    _, config_dir = load_main(tmp_path)
    (config_dir / "automations.yaml").write_text(THREE_AUTOMATIONS, encoding="utf-8")
    automations = sys.modules["editor_bridge.automations"]

    raw = automations.get_raw_automation_yaml("second", config_dir)
    parsed = automations.yaml_to_automation(raw)

    assert raw.startswith("id: second\n")
    assert parsed["id"] == "second"
    assert parsed["alias"] == "Second"
    assert parsed["triggers"] == [{"trigger": "state", "entity_id": "sensor.b"}]
    assert parsed["actions"] == [{"action": "light.toggle"}]
    assert "mode" not in parsed
    assert automations.get_raw_automation_yaml("missing", config_dir) is None


def test_raw_keyed_automation_yaml(tmp_path: Path) -> None:
    _, config_dir = load_main(tmp_path)
    (config_dir / "configuration.yaml").write_text("automation: !include keyed.yaml\n", encoding="utf-8")
    (config_dir / "keyed.yaml").write_text(
        "porch:\n  trigger: []\n  action: []\nhall:\n  triggers: []\n  actions: []\n",
        encoding="utf-8",
    )
    automations = sys.modules["editor_bridge.automations"]

    assert automations.get_raw_automation_yaml("hall", config_dir) == "hall:\n  triggers: []\n  actions: []"


def test_raw_script_yaml(tmp_path: Path) -> None:
    _, config_dir = load_main(tmp_path)
    (config_dir / "scripts.yaml").write_text(
        "first_script:\n"
        "  alias: First\n"
        "  sequence:\n"
        "  - delay: 1\n"
        "\n"
        "second_script:\n"
        "  alias: Second\n"
        "  sequence:\n"
        "  - service: light.turn_on\n"
        "third_script:\n"
        "  sequence: []\n",
        encoding="utf-8",
    )
    scripts = sys.modules["editor_bridge.scripts"]

    assert scripts.get_raw_script_yaml("first_script", config_dir) == (
        "first_script:\n  alias: First\n  sequence:\n  - delay: 1"
    )
    assert scripts.get_raw_script_yaml("second_script", config_dir) == (
        "second_script:\n  alias: Second\n  sequence:\n  - service: light.turn_on"
    )
    assert scripts.get_raw_script_yaml("missing", config_dir) is None
