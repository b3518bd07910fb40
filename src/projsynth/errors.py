from __future__ import annotations

from typing import Any


class SynthError(RuntimeError):
    code = "synth_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code
        self.details = details or {}


class DependencySpecError(SynthError):
    """A dependency spec is not of the form `<name>@<range>`."""

    code = "invalid_dependency_spec"


class DuplicateDependencyError(SynthError):
    code = "duplicate_dependency"


class DuplicateTaskError(SynthError):
    code = "duplicate_task"


class UnknownTaskError(SynthError):
    code = "unknown_task"


class CyclicTaskError(SynthError):
    code = "cyclic_task"


class PathConflictError(SynthError):
    code = "path_conflict"


class ClobberRefusedError(SynthError):
    """
    An existing file at a managed path does not carry the ownership marker.

    This is the only error the orchestrator recovers from: it is logged as a warning and the single
    write is skipped.
    """

    code = "clobber_refused"


class PhaseFailure(SynthError):
    code = "phase_failure"

    def __init__(self, *, component: str, phase: str, error: BaseException) -> None:
        super().__init__(
            f"{phase} failed in {component}: {error}",
            details={"component": component, "phase": phase},
        )
        self.component = component
        self.phase = phase


class ConfigError(SynthError):
    code = "invalid_config"


class ShellCommandError(SynthError):
    code = "shell_command_failed"


class TaskFailedError(SynthError):
    code = "task_failed"

    def __init__(self, message: str, *, task: str, command: str, exit_code: int) -> None:
        super().__init__(message, details={"task": task, "command": command, "exit_code": exit_code})
        self.exit_code = exit_code


__all__ = [
    "ClobberRefusedError",
    "ConfigError",
    "CyclicTaskError",
    "DependencySpecError",
    "DuplicateDependencyError",
    "DuplicateTaskError",
    "PathConflictError",
    "PhaseFailure",
    "ShellCommandError",
    "SynthError",
    "TaskFailedError",
    "UnknownTaskError",
]
