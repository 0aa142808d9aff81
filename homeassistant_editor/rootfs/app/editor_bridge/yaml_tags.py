from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any

import yaml


@dataclass(frozen=True)
class TaggedValue:
    """Represents a YAML node with an explicit tag (e.g. `!secret`, `!input`, `!include`)."""

    tag: str
    value: Any
    line: int | None = None


class EditorYamlLoader(yaml.SafeLoader):
    """Safe YAML loader that preserves `!` tags as TaggedValue objects."""


class EditorYamlDumper(yaml.SafeDumper):
    """Safe YAML dumper for rewritten automation and script files.

    Emits TaggedValue objects with their tag (`!secret name`, unquoted when the value
    allows it), never writes anchors or aliases and prefers double quotes whenever a
    scalar has to be quoted.
    """

    def ignore_aliases(self, data: Any) -> bool:
        return True

    def _plain_tagged_scalar(self) -> bool:
        tag = getattr(self.event, "tag", None)
        if not tag or not tag.startswith("!") or self.event.style:
            return False
        if self.analysis is None:
            self.analysis = self.analyze_scalar(self.event.value)
        if self.analysis.empty or (self.simple_key_context and self.analysis.multiline):
            return False
        if self.flow_level:
            return self.analysis.allow_flow_plain
        return self.analysis.allow_block_plain

    def choose_scalar_style(self) -> str | None:
        if self._plain_tagged_scalar():
            return ""
        style = super().choose_scalar_style()
        if style == "'":
            return '"'
        return style


def _construct_tagged(loader: EditorYamlLoader, suffix: str, node: yaml.Node) -> TaggedValue:
    tag = f"!{suffix}"
    line = node.start_mark.line + 1 if getattr(node, "start_mark", None) else None
    if isinstance(node, yaml.ScalarNode):
        value: Any = loader.construct_scalar(node)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    elif isinstance(node, yaml.MappingNode):
        value = loader.construct_mapping(node, deep=True)
    else:
        value = loader.construct_object(node)
    return TaggedValue(tag=tag, value=value, line=line)


def _represent_tagged(dumper: EditorYamlDumper, data: TaggedValue) -> yaml.Node:
    value = data.value
    if isinstance(value, dict):
        return dumper.represent_mapping(data.tag, value)
    if isinstance(value, list):
        return dumper.represent_sequence(data.tag, value)
    rendered = "" if value is None else str(value)
    return dumper.represent_scalar(data.tag, rendered)


EditorYamlLoader.add_multi_constructor("!", _construct_tagged)
EditorYamlDumper.add_representer(TaggedValue, _represent_tagged)


def tagged_to_json(value: Any) -> Any:
    """Render loaded YAML data as JSON-friendly values, keeping tags as `!tag value` strings."""

    if isinstance(value, TaggedValue):
        inner = value.value
        if isinstance(inner, (dict, list)):
            return {"tag": value.tag, "value": tagged_to_json(inner)}
        rendered = "" if inner is None else str(inner)
        return f"{value.tag} {rendered}".rstrip()
    if isinstance(value, dict):
        return {str(key): tagged_to_json(item) for key, item in value.items()}
    if isinstance(value, list):
        return [tagged_to_json(item) for item in value]
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    return value
