from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from projsynth.logger import Logger
from projsynth.project import Project
from projsynth.shell import ShellResult
from projsynth.tasks import Shell


@dataclass
class RecordedCall:
    command: str
    cwd: Path
    env: dict[str, str]


@dataclass
class FakeShellExecutor:
    """Records commands instead of running them; exit codes are looked up by exact command."""

    shell: Shell = Shell.POSIX
    exit_codes: dict[str, int] = field(default_factory=dict)
    available: dict[str, str] = field(default_factory=dict)
    calls: list[RecordedCall] = field(default_factory=list)

    def run(
        self,
        command: str,
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
        timeout_seconds: float | None = None,
    ) -> ShellResult:
        self.calls.append(RecordedCall(command=command, cwd=cwd, env=dict(env or {})))
        return ShellResult(stdout="", stderr="", exit_code=self.exit_codes.get(command, 0))

    def which(self, cmd: str) -> str | None:
        return self.available.get(cmd)

    @property
    def commands(self) -> list[str]:
        return [c.command for c in self.calls]


@pytest.fixture
def fake_executor() -> FakeShellExecutor:
    return FakeShellExecutor()


@pytest.fixture
def project(tmp_path: Path, fake_executor: FakeShellExecutor) -> Project:
    return Project(name="demo", outdir=tmp_path, logger=Logger.off(), executor=fake_executor)
