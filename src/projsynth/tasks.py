from __future__ import annotations

import enum
import re
import shlex
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from projsynth.errors import CyclicTaskError, DuplicateTaskError, UnknownTaskError

_TASK_NAME_RE = re.compile(r"^[a-zA-Z0-9_:.-]+$")
_ENV_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Commands containing these are grouped before being chained with `&&`.
_POSIX_LIST_OPERATORS = ("||", ";", "\n")
_POSIX_BACKGROUND_RE = re.compile(r"(?<!&)&(?!&)")
_PS_EXIT_CHECK = "if ($LASTEXITCODE) { exit $LASTEXITCODE }"


class TaskCategory(enum.Enum):
    BUILD = "build"
    TEST = "test"
    RELEASE = "release"
    MAINTAIN = "maintain"
    MISC = "misc"


class Shell(enum.Enum):
    POSIX = "posix"
    POWERSHELL = "powershell"


def validate_task_name(name: str) -> str:
    if not isinstance(name, str) or not _TASK_NAME_RE.match(name):
        raise ValueError(f"Task name must match {_TASK_NAME_RE.pattern} (rejects spaces and slashes): {name!r}")
    return name


def validate_env_name(name: str) -> str:
    if not isinstance(name, str) or not _ENV_NAME_RE.match(name):
        raise ValueError(f"Invalid environment variable name: {name!r}")
    return name


@dataclass(frozen=True)
class TaskStep:
    exec: str | None = None
    spawn: str | None = None
    say: str | None = None
    name: str | None = None
    cwd: str | None = None

    def __post_init__(self) -> None:
        kinds = [k for k in ("exec", "spawn", "say") if getattr(self, k) is not None]
        if len(kinds) != 1:
            raise ValueError(f"A task step needs exactly one of exec, spawn or say (got {kinds or 'none'})")
        value = getattr(self, kinds[0])
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"Task step {kinds[0]} must be a non-empty string")

    def to_manifest(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for key in ("name", "exec", "spawn", "say", "cwd"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        return out


@dataclass(frozen=True)
class ResolvedStep:
    """One executable step after spawn expansion."""

    task: str
    command: str | None
    say: str | None
    cwd: str | None
    env: Mapping[str, str] = field(default_factory=dict)
    conditions: tuple[str, ...] = ()
    name: str | None = None


@dataclass(frozen=True)
class ResolvedTask:
    """A task with its spawns expanded into nested ResolvedTask nodes."""

    task: str
    condition: str | None
    cwd: str | None
    env: Mapping[str, str]
    items: tuple[ResolvedTask | ResolvedStep, ...]


class Task:
    def __init__(
        self,
        name: str,
        *,
        tasks: Tasks,
        description: str = "",
        category: TaskCategory = TaskCategory.MISC,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
        condition: str | None = None,
    ) -> None:
        self.name = validate_task_name(name)
        self.description = description
        self.category = category
        self.cwd = cwd
        self.condition = condition
        self._tasks = tasks
        self._env: dict[str, str] = {}
        self._steps: list[TaskStep] = []
        for key, value in (env or {}).items():
            self.add_env(key, value)

    def __repr__(self) -> str:
        return f"Task({self.name!r})"

    @property
    def steps(self) -> tuple[TaskStep, ...]:
        return tuple(self._steps)

    @property
    def env(self) -> dict[str, str]:
        return dict(self._env)

    def add_env(self, name: str, value: str) -> None:
        self._env[validate_env_name(name)] = str(value)

    def exec(self, command: str, *, name: str | None = None, cwd: str | None = None) -> None:
        self._steps.append(TaskStep(exec=command, name=name, cwd=cwd))

    def prepend_exec(self, command: str, *, name: str | None = None, cwd: str | None = None) -> None:
        self._steps.insert(0, TaskStep(exec=command, name=name, cwd=cwd))

    def spawn(self, task: Task | str, *, name: str | None = None, cwd: str | None = None) -> None:
        self._steps.append(TaskStep(spawn=self._spawn_target(task), name=name, cwd=cwd))

    def prepend_spawn(self, task: Task | str, *, name: str | None = None, cwd: str | None = None) -> None:
        self._steps.insert(0, TaskStep(spawn=self._spawn_target(task), name=name, cwd=cwd))

    def say(self, message: str) -> None:
        self._steps.append(TaskStep(say=message))

    def add_step(self, step: TaskStep) -> None:
        if step.spawn is not None:
            self._spawn_target(step.spawn)
        self._steps.append(step)

    def reset(self, command: str | None = None) -> None:
        self._steps.clear()
        if command is not None:
            self.exec(command)

    def _spawn_target(self, task: Task | str) -> str:
        if isinstance(task, Task):
            if task._tasks is not self._tasks:
                raise UnknownTaskError(
                    f"Task {task.name!r} belongs to a different project and cannot be spawned from {self.name!r}",
                    details={"task": task.name},
                )
            return task.name
        return validate_task_name(task)

    def flatten(self) -> tuple[ResolvedStep, ...]:
        """
        Return the task's steps with every spawn expanded, in execution order.

        Raises CyclicTaskError when a task spawns itself directly or transitively and UnknownTaskError
        when a spawned task does not exist.
        """

        out: list[ResolvedStep] = []

        def walk(node: ResolvedTask | ResolvedStep) -> None:
            if isinstance(node, ResolvedStep):
                out.append(node)
                return
            for item in node.items:
                walk(item)

        walk(self._tasks.resolve(self))
        return tuple(out)

    def to_shell_command(self, shell: Shell = Shell.POSIX) -> str:
        root = self._tasks.resolve(self)
        if shell is Shell.POWERSHELL:
            return "; ".join(_render_powershell(root)) or "$null"
        return _render_posix(root) or "true"

    def to_manifest(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name}
        if self.description:
            out["description"] = self.description
        out["category"] = self.category.value
        if self._env:
            out["env"] = {k: self._env[k] for k in sorted(self._env)}
        if self.cwd:
            out["cwd"] = self.cwd
        if self.condition:
            out["condition"] = self.condition
        if self._steps:
            out["steps"] = [step.to_manifest() for step in self._steps]
        return out


class Tasks:
    """Task registry for one project. Names are unique; insertion never replaces an existing task."""

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}
        self._env: dict[str, str] = {}

    def add_task(
        self,
        name: str,
        *,
        description: str = "",
        category: TaskCategory = TaskCategory.MISC,
        exec: str | None = None,
        steps: Iterable[TaskStep] | None = None,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
        condition: str | None = None,
    ) -> Task:
        if name in self._tasks:
            raise DuplicateTaskError(f"A task named {name!r} already exists", details={"task": name})
        task = Task(
            name,
            tasks=self,
            description=description,
            category=category,
            env=env,
            cwd=cwd,
            condition=condition,
        )
        if exec is not None:
            task.exec(exec)
        for step in steps or ():
            task.add_step(step)
        self._tasks[name] = task
        return task

    def try_find(self, name: str) -> Task | None:
        return self._tasks.get(name)

    def get(self, name: str) -> Task:
        task = self._tasks.get(name)
        if task is None:
            known = ", ".join(sorted(self._tasks)) or "(none)"
            raise UnknownTaskError(f"Unknown task: {name!r}. Known tasks: {known}", details={"task": name})
        return task

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    @property
    def all(self) -> tuple[Task, ...]:
        return tuple(self._tasks[name] for name in sorted(self._tasks))

    @property
    def env(self) -> dict[str, str]:
        return dict(self._env)

    def add_env(self, name: str, value: str) -> None:
        self._env[validate_env_name(name)] = str(value)

    def by_category(self) -> dict[TaskCategory, list[str]]:
        grouped: dict[TaskCategory, list[str]] = {}
        for category in TaskCategory:
            names = [t.name for t in self.all if t.category is category]
            if names:
                grouped[category] = names
        return grouped

    def to_manifest(self) -> dict[str, Any]:
        return {
            "env": {k: self._env[k] for k in sorted(self._env)},
            "tasks": {task.name: task.to_manifest() for task in self.all},
        }

    def resolve(
        self,
        task: Task | str,
        *,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
        conditions: tuple[str, ...] = (),
        chain: tuple[str, ...] = (),
    ) -> ResolvedTask:
        """Expand spawns into a tree, merging env (global < spawning task < task) and inheriting cwd."""
        if isinstance(task, str):
            task = self.get(task)
        if task.name in chain:
            cycle = [*chain[chain.index(task.name) :], task.name]
            raise CyclicTaskError(
                f"Task cycle detected: {' -> '.join(cycle)}",
                details={"task": chain[0], "cycle": cycle},
            )
        chain = (*chain, task.name)
        merged_env = {**self._env, **(env or {}), **task.env}
        task_cwd = task.cwd or cwd
        if task.condition:
            conditions = (*conditions, task.condition)

        items: list[ResolvedTask | ResolvedStep] = []
        for step in task.steps:
            step_cwd = step.cwd or task_cwd
            if step.spawn is not None:
                child = self._tasks.get(step.spawn)
                if child is None:
                    raise UnknownTaskError(
                        f"Task {task.name!r} spawns unknown task {step.spawn!r}",
                        details={"task": task.name, "spawn": step.spawn},
                    )
                items.append(self.resolve(child, env=merged_env, cwd=step_cwd, conditions=conditions, chain=chain))
                continue
            items.append(
                ResolvedStep(
                    task=task.name,
                    command=step.exec,
                    say=step.say,
                    cwd=step_cwd,
                    env=merged_env,
                    conditions=conditions,
                    name=step.name,
                )
            )
        return ResolvedTask(
            task=task.name,
            condition=task.condition,
            cwd=task_cwd,
            env=merged_env,
            items=tuple(items),
        )


def _group_posix(cmd: str) -> str:
    # A comment runs to the end of the line, so the closing paren goes on the next one.
    if "#" in cmd:
        return f"({cmd}\n)"
    if any(op in cmd for op in _POSIX_LIST_OPERATORS) or _POSIX_BACKGROUND_RE.search(cmd):
        return f"({cmd})"
    return cmd


def _posix_scoped(cmd: str, *, cwd: str | None, env: Mapping[str, str]) -> str:
    prefix: list[str] = []
    if cwd:
        prefix.append(f"cd {shlex.quote(cwd)}")
    for key in sorted(env):
        prefix.append(f"export {key}={shlex.quote(env[key])}")
    if prefix:
        return "(" + " && ".join([*prefix, cmd]) + ")"
    return cmd


def _render_posix(node: ResolvedTask | ResolvedStep) -> str:
    if isinstance(node, ResolvedStep):
        if node.say is not None:
            cmd = f"echo {shlex.quote(node.say)}"
        else:
            cmd = _group_posix(node.command or "true")
        return _posix_scoped(cmd, cwd=node.cwd, env=node.env)

    parts = [rendered for rendered in (_render_posix(item) for item in node.items) if rendered]
    body = " && ".join(parts)
    if node.condition:
        # The condition sees the same cwd and env as the task's own steps.
        cond = _posix_scoped(_group_posix(node.condition), cwd=node.cwd, env=node.env)
        return f"if {cond}; then {body or 'true'}; fi"
    return body


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _render_powershell(node: ResolvedTask | ResolvedStep) -> list[str]:
    if isinstance(node, ResolvedStep):
        statements: list[str] = []
        if node.cwd:
            statements.append(f"Push-Location -LiteralPath {_ps_quote(node.cwd)}")
        for key in sorted(node.env):
            statements.append(f"$env:{key} = {_ps_quote(node.env[key])}")
        if node.say is not None:
            statements.append(f"Write-Output {_ps_quote(node.say)}")
        else:
            statements.append(node.command or "$null")
            statements.append(_PS_EXIT_CHECK)
        if node.cwd:
            statements.append("Pop-Location")
        return statements

    body: list[str] = []
    for item in node.items:
        body.extend(_render_powershell(item))
    if not node.condition:
        return body

    statements = [f"$env:{key} = {_ps_quote(node.env[key])}" for key in sorted(node.env)]
    if node.cwd:
        statements.append(f"Push-Location -LiteralPath {_ps_quote(node.cwd)}; {node.condition}; $ok = $?; Pop-Location")
    else:
        statements.append(f"{node.condition}; $ok = $?")
    return [*statements, "if ($ok) { " + ("; ".join(body) or "$null") + " }"]


__all__ = [
    "ResolvedStep",
    "ResolvedTask",
    "Shell",
    "Task",
    "TaskCategory",
    "TaskStep",
    "Tasks",
    "validate_env_name",
    "validate_task_name",
]
