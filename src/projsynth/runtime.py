from __future__ import annotations

from pathlib import Path

from projsynth.errors import TaskFailedError
from projsynth.logger import Logger
from projsynth.shell import ShellExecutor
from projsynth.tasks import ResolvedStep, ResolvedTask, Tasks


class TaskRuntime:
    """
    Executes tasks step by step through a shell executor.

    Steps run in declaration order with spawns expanded in place. A task whose condition exits non-zero
    is skipped along with everything it spawns; any other non-zero exit stops the run with
    TaskFailedError.
    """

    def __init__(
        self,
        tasks: Tasks,
        *,
        workdir: Path,
        executor: ShellExecutor,
        logger: Logger | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self._tasks = tasks
        self._workdir = workdir
        self._executor = executor
        self._logger = logger or Logger.off()
        self._timeout_seconds = timeout_seconds

    def run_task(self, name: str) -> None:
        # Resolve first so cycles and unknown spawns fail before anything runs.
        plan = self._tasks.resolve(name)
        self._run(plan)

    def _cwd(self, rel: str | None) -> Path:
        return self._workdir / rel if rel else self._workdir

    def _run(self, node: ResolvedTask | ResolvedStep) -> None:
        if isinstance(node, ResolvedStep):
            self._run_step(node)
            return

        if node.condition:
            result = self._executor.run(
                node.condition,
                cwd=self._cwd(node.cwd),
                env=node.env,
                timeout_seconds=self._timeout_seconds,
            )
            if not result.ok:
                self._logger.info(f"{node.task}: condition exited with {result.exit_code}, skipping")
                return
        for item in node.items:
            self._run(item)

    def _run_step(self, step: ResolvedStep) -> None:
        if step.say is not None:
            print(step.say)
            return
        assert step.command is not None
        if step.name:
            self._logger.info(f"{step.task} | {step.name}")
        result = self._executor.run(
            step.command,
            cwd=self._cwd(step.cwd),
            env=step.env,
            timeout_seconds=self._timeout_seconds,
        )
        if not result.ok:
            raise TaskFailedError(
                f"Task {step.task!r} failed: {step.command!r} exited with {result.exit_code}",
                task=step.task,
                command=step.command,
                exit_code=result.exit_code,
            )


__all__ = ["TaskRuntime"]
