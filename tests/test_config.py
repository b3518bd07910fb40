from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FakeShellExecutor
from projsynth.config import build_project, load_project_definition
from projsynth.errors import ConfigError, UnknownTaskError
from projsynth.logger import Logger
from projsynth.tasks import TaskCategory


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _rc(tmp_path: Path, text: str) -> Path:
    path = tmp_path / ".projsynthrc.yml"
    _write(path, text)
    return path


def test_generic_definition(tmp_path: Path) -> None:
    rc = _rc(
        tmp_path,
        "\n".join(
            [
                "name: demo",
                "outdir: out",
                "clobber: false",
                "deps: [left-pad@^1.3.0]",
                "env:",
                "  CI: 1",
                "tasks:",
                "  build:",
                "    description: Build it",
                "    category: build",
                "    exec: make",
                "    steps:",
                "      - say: done",
                "      - spawn: lint",
                "        cwd: pkg",
                "  lint:",
                "    steps: [ruff check .]",
                "",
            ]
        ),
    )

    definition = load_project_definition(rc)

    assert definition.type == "generic"
    assert definition.outdir == tmp_path / "out"
    assert definition.clobber is False
    assert definition.env == (("CI", "1"),)
    build = definition.tasks[0]
    assert build.category is TaskCategory.BUILD
    assert [s.exec or s.say or s.spawn for s in build.steps] == ["make", "done", "lint"]
    assert build.steps[2].cwd == "pkg"
    assert definition.tasks[1].steps[0].exec == "ruff check ."


def test_build_project_from_generic_definition(tmp_path: Path) -> None:
    rc = _rc(
        tmp_path,
        "name: demo\nenv: {CI: 'true'}\ntasks:\n  build:\n    steps:\n      - spawn: compile\n"
        "  compile:\n    exec: tsc\n",
    )
    project = build_project(load_project_definition(rc), logger=Logger.off(), executor=FakeShellExecutor())

    assert project.outdir == tmp_path.resolve()
    assert project.tasks.get("build").to_shell_command() == "(export CI=true && tsc)"


def test_python_definition_spawns_ecosystem_tasks(tmp_path: Path) -> None:
    rc = _rc(
        tmp_path,
        "\n".join(
            [
                "type: python",
                "name: my-lib",
                "deps: [Django@3.2]",
                "python:",
                "  version: 1.0",
                "  venv: false",
                "tasks:",
                "  ci:",
                "    steps:",
                "      - spawn: install",
                "      - spawn: test",
                "",
            ]
        ),
    )
    definition = load_project_definition(rc)
    assert definition.python is not None
    assert definition.python.version == "1.0"

    project = build_project(definition, logger=Logger.off(), executor=FakeShellExecutor())
    steps = [s.command for s in project.tasks.get("ci").flatten()]
    assert steps == ["python -m pip install -r requirements.txt -r requirements-dev.txt", "pytest"]
    assert project.deps.get("django").version == "3.2"


def test_empty_file_requires_name(tmp_path: Path) -> None:
    with pytest.raises(ConfigError) as exc:
        load_project_definition(_rc(tmp_path, ""))
    assert exc.value.details["field"] == "name"


@pytest.mark.parametrize(
    ("text", "needle"),
    [
        ("name: demo\nnmae: typo\n", "Unknown keys in project"),
        ("name: demo\ntasks:\n  t:\n    exce: x\n", "Unknown keys in tasks.t"),
        ("name: demo\ntasks:\n  t:\n    steps:\n      - run: x\n", "Unknown keys in tasks.t.steps[0]"),
        ("type: python\nname: demo\npython:\n  flavour: x\n", "Unknown keys in python"),
    ],
)
def test_unknown_keys_are_rejected(tmp_path: Path, text: str, needle: str) -> None:
    with pytest.raises(ConfigError) as exc:
        load_project_definition(_rc(tmp_path, text))
    assert needle in str(exc.value)


@pytest.mark.parametrize(
    "text",
    [
        "- just\n- a list\n",
        "name: demo\nclobber: maybe\n",
        "name: demo\ndeps: django\n",
        "name: demo\ntype: rust\n",
        "name: demo\ntasks:\n  t:\n    category: nightly\n",
        "name: demo\ntasks:\n  t:\n    steps:\n      - exec: a\n        say: b\n",
        "name: demo\npython: {}\n",
        "type: python\nname: demo\npython:\n  poetry: true\n",
        "name: [unclosed\n",
    ],
)
def test_invalid_definitions(tmp_path: Path, text: str) -> None:
    with pytest.raises(ConfigError):
        load_project_definition(_rc(tmp_path, text))


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_project_definition(tmp_path / "nope.yml")


def test_rc_task_with_unknown_spawn_fails_when_resolved(tmp_path: Path) -> None:
    rc = _rc(tmp_path, "name: demo\ntasks:\n  t:\n    steps:\n      - spawn: ghost\n")
    project = build_project(load_project_definition(rc), logger=Logger.off(), executor=FakeShellExecutor())
    with pytest.raises(UnknownTaskError):
        project.tasks.get("t").flatten()


@pytest.mark.parametrize(
    ("text", "field"),
    [
        ("name: demo\ntasks:\n  my task:\n    exec: echo hi\n", "tasks.my task"),
        ("name: demo\nenv: {1BAD: x}\n", "env.1BAD"),
        ("name: demo\ntasks:\n  t:\n    env: {BAD-NAME: x}\n", "tasks.t.env.BAD-NAME"),
        ("name: demo\ntasks:\n  t:\n    steps:\n      - spawn: a b\n", "tasks.t.steps[0].spawn"),
    ],
)
def test_invalid_names_are_config_errors(tmp_path: Path, text: str, field: str) -> None:
    with pytest.raises(ConfigError) as exc:
        load_project_definition(_rc(tmp_path, text))
    assert exc.value.details["field"] == field
