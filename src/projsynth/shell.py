"""
Shell executor used by post-synthesis components and the task runtime.

The synthesis core only produces command strings; everything that actually spawns a process goes
through a `ShellExecutor` so it can be replaced in tests and dry runs.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from projsynth.errors import ShellCommandError
from projsynth.logger import Logger
from projsynth.tasks import Shell


@dataclass(frozen=True)
class ShellResult:
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ShellExecutor(Protocol):
    shell: Shell

    def run(
        self,
        command: str,
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
        timeout_seconds: float | None = None,
    ) -> ShellResult: ...

    def which(self, cmd: str) -> str | None: ...


def default_shell() -> Shell:
    return Shell.POWERSHELL if os.name == "nt" else Shell.POSIX


class SubprocessShellExecutor:
    def __init__(
        self,
        *,
        logger: Logger | None = None,
        shell: Shell | None = None,
        capture: bool = True,
        timeout_seconds: float | None = None,
    ) -> None:
        self.shell = shell or default_shell()
        self._logger = logger or Logger.off()
        self._capture = capture
        self._timeout_seconds = timeout_seconds

    def _argv(self, command: str) -> list[str] | str:
        if self.shell is Shell.POWERSHELL:
            exe = shutil.which("pwsh") or shutil.which("powershell") or "powershell"
            return [exe, "-NoProfile", "-NonInteractive", "-Command", command]
        return command

    def run(
        self,
        command: str,
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
        timeout_seconds: float | None = None,
    ) -> ShellResult:
        timeout = timeout_seconds if timeout_seconds is not None else self._timeout_seconds
        full_env: dict[str, str] | None = None
        if env:
            full_env = dict(os.environ)
            full_env.update(env)

        argv = self._argv(command)
        self._logger.info(f"+ ({cwd}) {command}")
        try:
            cp = subprocess.run(
                argv,
                cwd=str(cwd),
                env=full_env,
                shell=isinstance(argv, str),
                text=True,
                encoding="utf-8",
                errors="replace",
                capture_output=self._capture,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise ShellCommandError(
                f"Command timed out after {timeout:.1f}s: {command}",
                details={"command": command, "cwd": str(cwd), "timeout_seconds": timeout},
            ) from exc
        except OSError as exc:
            raise ShellCommandError(
                f"Failed to execute {command!r}: {exc}",
                details={"command": command, "cwd": str(cwd)},
            ) from exc
        return ShellResult(stdout=cp.stdout or "", stderr=cp.stderr or "", exit_code=cp.returncode)

    def which(self, cmd: str) -> str | None:
        return shutil.which(cmd)


__all__ = ["ShellExecutor", "ShellResult", "SubprocessShellExecutor", "default_shell"]
