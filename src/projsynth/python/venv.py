from __future__ import annotations

from typing import TYPE_CHECKING

from projsynth.component import Component
from projsynth.errors import ShellCommandError

if TYPE_CHECKING:
    from projsynth.project import Project


class Venv(Component):
    """Creates a virtual environment with `python -m venv` after synthesis, if it does not exist yet."""

    def __init__(self, project: Project, *, env_dir: str = ".env", python_exec: str = "python") -> None:
        super().__init__(project)
        self.env_dir = env_dir
        self.python_exec = python_exec
        project.gitignore.add_patterns(f"/{env_dir}")

    @property
    def env_python(self) -> str:
        return f"{self.env_dir}/bin/python"

    def post_synthesize(self) -> None:
        self.setup_environment()

    def setup_environment(self) -> None:
        if (self.project.outdir / self.env_dir).exists():
            return
        logger = self.project.logger
        logger.info(f"Setting up a virtual environment using the python installation found: {self.python_exec}.")
        command = f"{self.python_exec} -m venv {self.env_dir}"
        result = self.project.executor.run(command, cwd=self.project.outdir)
        if not result.ok:
            raise ShellCommandError(
                f"Failed to create virtual environment ({result.exit_code}): {command}",
                details={"command": command, "exit_code": result.exit_code, "stderr": result.stderr},
            )
        logger.info(f"Environment successfully created (located in /{self.env_dir}).")


__all__ = ["Venv"]
