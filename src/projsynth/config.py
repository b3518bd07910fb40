from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from projsynth.errors import ConfigError
from projsynth.logger import Logger
from projsynth.project import Project
from projsynth.python.project import PythonProjectOptions, create_python_project
from projsynth.shell import ShellExecutor
from projsynth.tasks import TaskCategory, TaskStep, validate_env_name, validate_task_name

DEFAULT_RC_FILE = ".projsynthrc.yml"
_PROJECT_TYPES = frozenset({"generic", "python"})

_TOP_LEVEL_KEYS = {
    "type",
    "name",
    "outdir",
    "clobber",
    "deps",
    "dev_deps",
    "test_deps",
    "env",
    "tasks",
    "python",
}
_TASK_KEYS = {"description", "category", "env", "cwd", "condition", "steps", "exec"}
_STEP_KEYS = {"exec", "spawn", "say", "name", "cwd"}
# `name`, `deps`, `dev_deps` and `test_deps` come from the top level.
_PYTHON_KEYS = {
    f.name for f in dataclasses.fields(PythonProjectOptions) if f.name not in {"name", "deps", "dev_deps", "test_deps"}
}


@dataclass(frozen=True)
class TaskDefinition:
    name: str
    description: str = ""
    category: TaskCategory = TaskCategory.MISC
    env: tuple[tuple[str, str], ...] = ()
    cwd: str | None = None
    condition: str | None = None
    steps: tuple[TaskStep, ...] = ()


@dataclass(frozen=True)
class ProjectDefinition:
    type: str
    name: str
    source_path: Path
    outdir: Path
    clobber: bool = True
    deps: tuple[str, ...] = ()
    dev_deps: tuple[str, ...] = ()
    test_deps: tuple[str, ...] = ()
    env: tuple[tuple[str, str], ...] = ()
    tasks: tuple[TaskDefinition, ...] = ()
    python: PythonProjectOptions | None = None


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}", details={"path": str(path)}) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML in {path}: {e}", details={"path": str(path)}) from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(raw).__name__}.")
    return raw


def _ensure_no_unknown_keys(*, data: dict[str, Any], allowed: set[str], path: Path, where: str) -> None:
    unknown = {str(k) for k in data} - allowed
    if not unknown:
        return
    unknown_list = ", ".join(sorted(unknown))
    allowed_list = ", ".join(sorted(allowed))
    raise ConfigError(
        f"Unknown keys in {where} ({path}): {unknown_list}. Allowed: {allowed_list}.",
        details={"unknown": sorted(unknown), "where": where},
    )


def _require_str(value: Any, *, path: Path, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"Expected non-empty string for {field} in {path}.", details={"field": field})
    return value


def _optional_str(value: Any, *, path: Path, field: str) -> str | None:
    if value is None:
        return None
    return _require_str(value, path=path, field=field)


def _checked(check: Callable[[str], str], value: str, *, path: Path, field: str) -> str:
    try:
        return check(value)
    except ValueError as e:
        raise ConfigError(f"Invalid {field} in {path}: {e}", details={"field": field}) from e


def _require_bool(value: Any, *, path: Path, field: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"Expected boolean for {field} in {path}.", details={"field": field})
    return value


def _str_list(value: Any, *, path: Path, field: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise ConfigError(f"Expected list for {field} in {path}.", details={"field": field})
    out: list[str] = []
    for idx, item in enumerate(value):
        out.append(_require_str(item, path=path, field=f"{field}[{idx}]"))
    return tuple(out)


def _env_pairs(value: Any, *, path: Path, field: str) -> tuple[tuple[str, str], ...]:
    if value is None:
        return ()
    if not isinstance(value, dict):
        raise ConfigError(f"Expected mapping for {field} in {path}.", details={"field": field})
    out: list[tuple[str, str]] = []
    for key, item in value.items():
        if not isinstance(key, str) or isinstance(item, (dict, list)) or item is None:
            raise ConfigError(f"Expected string values for {field}.{key} in {path}.", details={"field": field})
        out.append((_checked(validate_env_name, key, path=path, field=f"{field}.{key}"), str(item)))
    return tuple(out)


def _parse_category(value: Any, *, path: Path, field: str) -> TaskCategory:
    if value is None:
        return TaskCategory.MISC
    try:
        return TaskCategory(str(value).lower())
    except ValueError:
        allowed = ", ".join(c.value for c in TaskCategory)
        raise ConfigError(
            f"Unknown category {value!r} for {field} in {path}. Allowed: {allowed}.",
            details={"field": field},
        ) from None


def _parse_step(raw: Any, *, path: Path, field: str) -> TaskStep:
    if isinstance(raw, str):
        return TaskStep(exec=_require_str(raw, path=path, field=field))
    if not isinstance(raw, dict):
        raise ConfigError(f"Expected mapping or string for {field} in {path}.", details={"field": field})
    _ensure_no_unknown_keys(data=raw, allowed=_STEP_KEYS, path=path, where=field)
    spawn = _optional_str(raw.get("spawn"), path=path, field=f"{field}.spawn")
    if spawn is not None:
        spawn = _checked(validate_task_name, spawn, path=path, field=f"{field}.spawn")
    try:
        return TaskStep(
            exec=_optional_str(raw.get("exec"), path=path, field=f"{field}.exec"),
            spawn=spawn,
            say=_optional_str(raw.get("say"), path=path, field=f"{field}.say"),
            name=_optional_str(raw.get("name"), path=path, field=f"{field}.name"),
            cwd=_optional_str(raw.get("cwd"), path=path, field=f"{field}.cwd"),
        )
    except ValueError as e:
        raise ConfigError(f"Invalid {field} in {path}: {e}", details={"field": field}) from e


def _parse_task(name: Any, raw: Any, *, path: Path) -> TaskDefinition:
    task_name = _require_str(name, path=path, field="tasks")
    where = f"tasks.{task_name}"
    _checked(validate_task_name, task_name, path=path, field=where)
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Expected mapping for {where} in {path}.", details={"field": where})
    _ensure_no_unknown_keys(data=raw, allowed=_TASK_KEYS, path=path, where=where)

    steps: list[TaskStep] = []
    if raw.get("exec") is not None:
        steps.append(TaskStep(exec=_require_str(raw["exec"], path=path, field=f"{where}.exec")))
    raw_steps = raw.get("steps")
    if raw_steps is not None:
        if not isinstance(raw_steps, list):
            raise ConfigError(f"Expected list for {where}.steps in {path}.", details={"field": f"{where}.steps"})
        for idx, raw_step in enumerate(raw_steps):
            steps.append(_parse_step(raw_step, path=path, field=f"{where}.steps[{idx}]"))

    return TaskDefinition(
        name=task_name,
        description=str(raw.get("description") or ""),
        category=_parse_category(raw.get("category"), path=path, field=f"{where}.category"),
        env=_env_pairs(raw.get("env"), path=path, field=f"{where}.env"),
        cwd=_optional_str(raw.get("cwd"), path=path, field=f"{where}.cwd"),
        condition=_optional_str(raw.get("condition"), path=path, field=f"{where}.condition"),
        steps=tuple(steps),
    )


def _parse_python_options(raw: Any, *, name: str, path: Path) -> PythonProjectOptions:
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Expected mapping for python in {path}.", details={"field": "python"})
    _ensure_no_unknown_keys(data=raw, allowed=_PYTHON_KEYS, path=path, where="python")

    kwargs: dict[str, Any] = {"name": name}
    for key, value in raw.items():
        field = f"python.{key}"
        if key in {"pip", "venv", "setuptools", "poetry", "pytest", "sample"}:
            kwargs[key] = _require_bool(value, path=path, field=field)
        elif key == "classifiers":
            kwargs[key] = _str_list(value, path=path, field=field)
        elif key in {"module_name", "license", "homepage"}:
            kwargs[key] = _optional_str(value, path=path, field=field)
        elif key in {"description", "author_name", "author_email"}:
            if not isinstance(value, str):
                raise ConfigError(f"Expected string for {field} in {path}.", details={"field": field})
            kwargs[key] = value
        else:
            # version, pytest_version: YAML may read `0.1` or `6` as numbers.
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                raise ConfigError(f"Expected string for {field} in {path}.", details={"field": field})
            kwargs[key] = _require_str(str(value), path=path, field=field)
    options = PythonProjectOptions(**kwargs)
    options.validate()
    return options


def load_project_definition(path: Path) -> ProjectDefinition:
    """Read and validate a `.projsynthrc.yml` file. Unknown keys are rejected at every level."""

    data = _load_yaml_mapping(path)
    _ensure_no_unknown_keys(data=data, allowed=_TOP_LEVEL_KEYS, path=path, where="project")

    project_type = data.get("type", "generic")
    if project_type not in _PROJECT_TYPES:
        allowed = ", ".join(sorted(_PROJECT_TYPES))
        raise ConfigError(f"Unknown project type {project_type!r} in {path}. Allowed: {allowed}.")

    name = _require_str(data.get("name"), path=path, field="name")
    outdir_raw = _optional_str(data.get("outdir"), path=path, field="outdir")
    outdir = Path(outdir_raw) if outdir_raw else Path(".")
    if not outdir.is_absolute():
        outdir = path.parent / outdir

    clobber = True
    if "clobber" in data:
        clobber = _require_bool(data["clobber"], path=path, field="clobber")

    raw_tasks = data.get("tasks")
    if raw_tasks is not None and not isinstance(raw_tasks, dict):
        raise ConfigError(f"Expected mapping for tasks in {path}.", details={"field": "tasks"})
    tasks = tuple(_parse_task(k, v, path=path) for k, v in (raw_tasks or {}).items())

    python: PythonProjectOptions | None = None
    if project_type == "python":
        python = _parse_python_options(data.get("python"), name=name, path=path)
    elif data.get("python") is not None:
        raise ConfigError(f"python options require type: python in {path}.", details={"field": "python"})

    return ProjectDefinition(
        type=project_type,
        name=name,
        source_path=path,
        outdir=outdir,
        clobber=clobber,
        deps=_str_list(data.get("deps"), path=path, field="deps"),
        dev_deps=_str_list(data.get("dev_deps"), path=path, field="dev_deps"),
        test_deps=_str_list(data.get("test_deps"), path=path, field="test_deps"),
        env=_env_pairs(data.get("env"), path=path, field="env"),
        tasks=tasks,
        python=python,
    )


def build_project(
    definition: ProjectDefinition,
    *,
    logger: Logger | None = None,
    executor: ShellExecutor | None = None,
    dry_run: bool = False,
) -> Project:
    """Create the Project described by `definition`; ecosystem components come first so rc tasks can spawn theirs."""

    if definition.python is not None:
        project = create_python_project(
            definition.python,
            outdir=definition.outdir,
            logger=logger,
            executor=executor,
            clobber=definition.clobber,
            dry_run=dry_run,
        )
    else:
        project = Project(
            name=definition.name,
            outdir=definition.outdir,
            clobber=definition.clobber,
            logger=logger,
            executor=executor,
            dry_run=dry_run,
        )

    for spec in definition.deps:
        project.add_dependency(spec)
    for spec in definition.dev_deps:
        project.add_dev_dependency(spec)
    for spec in definition.test_deps:
        project.add_test_dependency(spec)
    for key, value in definition.env:
        project.tasks.add_env(key, value)
    for task_def in definition.tasks:
        project.add_task(
            task_def.name,
            description=task_def.description,
            category=task_def.category,
            steps=task_def.steps,
            env=dict(task_def.env),
            cwd=task_def.cwd,
            condition=task_def.condition,
        )
    return project


__all__ = [
    "DEFAULT_RC_FILE",
    "ProjectDefinition",
    "TaskDefinition",
    "build_project",
    "load_project_definition",
]
