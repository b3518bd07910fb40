"""
Document formats used by managed files.

Each format renders a nested mapping (scalars, lists, mappings) to text with an optional ownership
marker, and parses text back into a mapping. Rendering is deterministic: mapping keys keep their
insertion order and nothing time-dependent is emitted.
"""

from __future__ import annotations

import datetime as _dt
import json
import re
import tomllib
from collections.abc import Mapping
from typing import Any, Protocol

import yaml

from projsynth.errors import SynthError

JSON_MARKER_KEY = "//"

_TOML_BARE_KEY_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


class DocumentFormatError(SynthError):
    code = "invalid_document"


class DocumentFormat(Protocol):
    name: str
    comment_prefix: str | None

    def render(self, obj: Mapping[str, Any], *, marker: str | None = None) -> str: ...

    def parse(self, text: str) -> dict[str, Any]: ...


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (dict, list, tuple)) and len(value) == 0)


def omit_empty(value: Any) -> Any:
    """
    Recursively drop None values and empty mappings/sequences.

    Falsy scalars (`0`, `False`, `""`) are kept. An emptied root mapping is returned as `{}`.
    """

    if isinstance(value, Mapping):
        out: dict[str, Any] = {}
        for key, item in value.items():
            cleaned = omit_empty(item)
            if _is_empty(cleaned):
                continue
            out[key] = cleaned
        return out
    if isinstance(value, (list, tuple)):
        items = [omit_empty(item) for item in value]
        return [item for item in items if not _is_empty(item)]
    return value


def _toml_quote_string(value: str) -> str:
    escaped = (
        value.replace("\\", "\\\\").replace("\t", "\\t").replace("\r", "\\r").replace("\n", "\\n").replace('"', '\\"')
    )
    return f'"{escaped}"'


def _toml_format_key(key: str) -> str:
    """Format a TOML key, quoting it only when required."""
    if not isinstance(key, str) or not key:
        raise DocumentFormatError(f"Unsupported TOML key: {key!r}")
    if _TOML_BARE_KEY_RE.match(key):
        return key
    return _toml_quote_string(key)


def _toml_format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(value)
    if isinstance(value, (_dt.datetime, _dt.date, _dt.time)):
        return value.isoformat()
    if isinstance(value, str):
        return _toml_quote_string(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_toml_format_value(v) for v in value if v is not None) + "]"
    if isinstance(value, Mapping):
        inner = ", ".join(
            f"{_toml_format_key(k)} = {_toml_format_value(v)}" for k, v in value.items() if v is not None
        )
        return "{ " + inner + " }" if inner else "{}"
    raise DocumentFormatError(f"Unsupported TOML value type: {type(value).__name__}")


def _is_table_array(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and bool(value) and all(isinstance(v, Mapping) for v in value)


def _render_toml_table(lines: list[str], path: list[str], table: Mapping[str, Any], *, header: str | None) -> None:
    scalars = [
        (k, v) for k, v in table.items() if v is not None and not isinstance(v, Mapping) and not _is_table_array(v)
    ]
    children = [(k, v) for k, v in table.items() if isinstance(v, Mapping) or _is_table_array(v)]

    # Headers are only emitted for tables that hold values of their own (or nothing at all).
    if header is not None and (scalars or not children):
        if lines:
            lines.append("")
        lines.append(header)
    for key, value in scalars:
        lines.append(f"{_toml_format_key(key)} = {_toml_format_value(value)}")

    for key, value in children:
        child_path = [*path, _toml_format_key(key)]
        dotted = ".".join(child_path)
        if isinstance(value, Mapping):
            _render_toml_table(lines, child_path, value, header=f"[{dotted}]")
            continue
        for item in value:
            if lines:
                lines.append("")
            lines.append(f"[[{dotted}]]")
            _render_toml_table(lines, child_path, item, header=None)


class TomlFormat:
    name = "toml"
    comment_prefix: str | None = "#"

    def render(self, obj: Mapping[str, Any], *, marker: str | None = None) -> str:
        lines: list[str] = []
        _render_toml_table(lines, [], obj, header=None)
        body = "\n".join(lines).strip("\n")
        head = f"# {marker}\n\n" if marker else ""
        return head + body + "\n" if body else head.rstrip("\n") + "\n"

    def parse(self, text: str) -> dict[str, Any]:
        try:
            return tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise DocumentFormatError(f"Failed to parse TOML: {exc}") from exc


class JsonFormat:
    name = "json"
    # JSON has no comments; the marker is a top-level "//" key.
    comment_prefix: str | None = None

    def render(self, obj: Mapping[str, Any], *, marker: str | None = None) -> str:
        data: dict[str, Any] = {}
        if marker:
            data[JSON_MARKER_KEY] = marker
        data.update(obj)
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    def parse(self, text: str) -> dict[str, Any]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DocumentFormatError(f"Failed to parse JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise DocumentFormatError(f"Expected a JSON object, got {type(data).__name__}.")
        return data


class YamlFormat:
    name = "yaml"
    comment_prefix: str | None = "#"

    def render(self, obj: Mapping[str, Any], *, marker: str | None = None) -> str:
        body = yaml.safe_dump(
            _plain(obj),
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=True,
        )
        head = f"# {marker}\n" if marker else ""
        return head + body

    def parse(self, text: str) -> dict[str, Any]:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise DocumentFormatError(f"Failed to parse YAML: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise DocumentFormatError(f"Expected a YAML mapping, got {type(data).__name__}.")
        return data


def _plain(value: Any) -> Any:
    # safe_dump only represents builtin containers.
    if isinstance(value, Mapping):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


TOML = TomlFormat()
JSON = JsonFormat()
YAML = YamlFormat()


__all__ = [
    "JSON",
    "JSON_MARKER_KEY",
    "TOML",
    "YAML",
    "DocumentFormat",
    "DocumentFormatError",
    "JsonFormat",
    "TomlFormat",
    "YamlFormat",
    "omit_empty",
]
