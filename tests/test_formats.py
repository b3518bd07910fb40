from __future__ import annotations

import json

import pytest

from projsynth.formats import JSON, TOML, YAML, DocumentFormatError, omit_empty


def test_omit_empty_keeps_falsy_scalars() -> None:
    data = {"a": None, "b": {}, "c": [], "d": 0, "e": False, "f": "", "g": {"h": {"i": None}}, "j": [None, {}, 1]}
    assert omit_empty(data) == {"d": 0, "e": False, "f": "", "j": [1]}


def test_json_marker_is_first_key() -> None:
    text = JSON.render({"b": 1, "a": [1, 2]}, marker="GENERATED")
    assert list(json.loads(text)) == ["//", "b", "a"]
    assert text.endswith("\n")


def test_json_parse_rejects_non_object() -> None:
    with pytest.raises(DocumentFormatError):
        JSON.parse("[1, 2]")


def test_yaml_marker_comment_and_key_order() -> None:
    text = YAML.render({"z": 1, "a": {"nested": ["x", "y"]}}, marker="GENERATED")
    assert text.splitlines()[0] == "# GENERATED"
    assert YAML.parse(text) == {"z": 1, "a": {"nested": ["x", "y"]}}
    assert text.index("z:") < text.index("a:")


def test_toml_tables_and_arrays() -> None:
    obj = {
        "build-system": {"requires": ["poetry_core>=1.0.0"], "build-backend": "poetry.core.masonry.api"},
        "tool": {
            "poetry": {
                "name": "demo",
                "skip": None,
                "dependencies": {"python": "^3.8"},
                "packages": [{"include": "demo"}],
            }
        },
    }
    text = TOML.render(obj, marker="GENERATED")

    assert text.startswith("# GENERATED\n\n[build-system]\n")
    # `[tool]` holds no values of its own, so only the nested header appears.
    assert "\n[tool]\n" not in text
    assert '[tool.poetry]\nname = "demo"\n' in text
    assert "[tool.poetry.dependencies]" in text
    assert "[[tool.poetry.packages]]" in text
    assert "skip" not in text
    assert TOML.parse(text) == {
        "build-system": obj["build-system"],
        "tool": {
            "poetry": {"name": "demo", "dependencies": {"python": "^3.8"}, "packages": [{"include": "demo"}]}
        },
    }


def test_toml_quotes_keys_and_escapes_strings() -> None:
    text = TOML.render({"a.b": 'say "hi"\n', "ok": True})
    assert '"a.b" = "say \\"hi\\"\\n"' in text
    assert TOML.parse(text) == {"a.b": 'say "hi"\n', "ok": True}


def test_toml_rejects_unsupported_values() -> None:
    with pytest.raises(DocumentFormatError):
        TOML.render({"a": object()})


def test_rendering_is_deterministic() -> None:
    obj = {"b": [1, 2], "a": {"c": "d"}}
    assert TOML.render(obj) == TOML.render(obj)
    assert JSON.render(obj) == JSON.render(obj)
    assert YAML.render(obj) == YAML.render(obj)
