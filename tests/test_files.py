from __future__ import annotations

import json
from pathlib import Path

import pytest

from projsynth.files import (
    MARKER,
    FileChange,
    IgnoreFile,
    JsonFile,
    SampleFile,
    TextFile,
    TomlFile,
    YamlFile,
    has_marker,
    normalize_rel_path,
)
from projsynth.project import Project


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("a/b.txt", "a/b.txt"), ("./a//b.txt", "a/b.txt"), ("a\\b.txt", "a/b.txt"), ("a/../c", "c")],
)
def test_normalize_rel_path(raw: str, expected: str) -> None:
    assert normalize_rel_path(raw) == expected


@pytest.mark.parametrize("raw", ["/etc/passwd", "C:/x", "..", "../up", "a/../../b", "", "."])
def test_normalize_rel_path_rejects_escapes(raw: str) -> None:
    with pytest.raises(ValueError):
        normalize_rel_path(raw)


def test_json_file_overrides(project: Project) -> None:
    f = JsonFile(project, "package.json", obj={"name": "demo", "scripts": {"build": "tsc"}})
    f.add_override("scripts.test", "jest")
    f.add_override("engines.node", ">=18")
    f.add_deletion_override("scripts.build")
    f.add_deletion_override("missing.key")

    data = json.loads(f.render() or "")
    assert data == {
        "//": MARKER,
        "name": "demo",
        "scripts": {"test": "jest"},
        "engines": {"node": ">=18"},
    }


def test_object_file_copies_input(project: Project) -> None:
    obj = {"a": {"b": 1}}
    f = YamlFile(project, "conf.yml", obj=obj)
    obj["a"]["b"] = 2
    assert "b: 1" in (f.render() or "")


def test_toml_file_without_marker(project: Project) -> None:
    f = TomlFile(project, "conf.toml", obj={"a": 1}, marker=False)
    assert f.render() == "a = 1\n"


def test_invalid_override_path(project: Project) -> None:
    f = JsonFile(project, "x.json")
    with pytest.raises(ValueError):
        f.add_override("a..b", 1)


def test_text_and_ignore_files(project: Project) -> None:
    text = TextFile(project, "notes.txt", lines=["one"], comment_prefix="//")
    text.add_line("two")
    assert text.render() == f"// {MARKER}\none\ntwo\n"

    ignore = IgnoreFile(project, ".dockerignore")
    ignore.add_patterns("node_modules/", "dist/", "node_modules/")
    assert ignore.lines == ("node_modules/", "dist/")


def test_sample_file_is_written_once(project: Project, tmp_path: Path) -> None:
    sample = SampleFile(project, "src/main.py", contents="print('hi')\n")
    assert sample.render() == "print('hi')\n"
    assert not sample.marker

    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.py").write_text("# mine\n", encoding="utf-8")
    assert sample.render() is None


def test_file_change_actions_and_diff() -> None:
    created = FileChange(path="a.txt", before=None, after="x\n")
    updated = FileChange(path="a.txt", before="x\n", after="y\n")
    deleted = FileChange(path="a.txt", before="y\n", after=None)

    assert [c.action for c in (created, updated, deleted)] == ["created", "updated", "deleted"]
    diff = updated.unified_diff()
    assert "--- a/a.txt" in diff
    assert "-x" in diff and "+y" in diff
    assert "--- /dev/null" in created.unified_diff()


def test_has_marker() -> None:
    assert has_marker(f"# {MARKER}\n")
    assert not has_marker("hand written\n")
