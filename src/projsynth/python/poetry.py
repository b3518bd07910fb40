from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from projsynth.component import Component
from projsynth.deps import Dependency, DependencyType
from projsynth.errors import ShellCommandError
from projsynth.files import TomlFile
from projsynth.python.pip import DEV_KINDS
from projsynth.tasks import TaskCategory

if TYPE_CHECKING:
    from projsynth.project import Project

DEFAULT_PYTHON_RANGE = "^3.8"


@dataclass(frozen=True)
class PoetryPyprojectOptions:
    """
    `[tool.poetry]` metadata.

    See https://python-poetry.org/docs/pyproject/ for the meaning of each field. Authors and maintainers
    use the form "name <email>".
    """

    name: str
    version: str
    description: str
    license: str | None = None
    authors: tuple[str, ...] = ()
    maintainers: tuple[str, ...] = ()
    readme: str | None = None
    homepage: str | None = None
    repository: str | None = None
    documentation: str | None = None
    keywords: tuple[str, ...] = ()
    classifiers: tuple[str, ...] = ()
    packages: tuple[Mapping[str, str], ...] = ()
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    scripts: Mapping[str, str] = field(default_factory=dict)


def _version_mapping(deps: tuple[Dependency, ...]) -> dict[str, str]:
    return {dep.name: dep.version for dep in deps}


class PoetryPyproject(Component):
    """Poetry's `pyproject.toml`; the dependency tables are filled from the registry before rendering."""

    def __init__(self, project: Project, options: PoetryPyprojectOptions) -> None:
        super().__init__(project)
        self.options = options
        self.file = TomlFile(
            project,
            "pyproject.toml",
            omit_empty=True,
            obj={
                "build-system": {
                    "requires": ["poetry_core>=1.0.0"],
                    "build-backend": "poetry.core.masonry.api",
                },
                "tool": {
                    "poetry": {
                        "name": options.name,
                        "version": options.version,
                        "description": options.description,
                        "license": options.license,
                        "authors": list(options.authors),
                        "maintainers": list(options.maintainers),
                        "readme": options.readme,
                        "homepage": options.homepage,
                        "repository": options.repository,
                        "documentation": options.documentation,
                        "keywords": list(options.keywords),
                        "classifiers": list(options.classifiers),
                        "packages": [dict(p) for p in options.packages],
                        "include": list(options.include),
                        "exclude": list(options.exclude),
                    }
                },
            },
        )

    def pre_synthesize(self) -> None:
        deps = self.project.deps
        dev: list[Dependency] = [dep for dep in deps.all if dep.type in DEV_KINDS]
        poetry = self.file.obj["tool"]["poetry"]
        runtime = _version_mapping(deps.all_of_kind(DependencyType.RUNTIME))
        if not any(name.lower() == "python" for name in runtime):
            runtime = {"python": DEFAULT_PYTHON_RANGE, **runtime}
        poetry["dependencies"] = runtime
        poetry["dev-dependencies"] = _version_mapping(tuple(dev))
        poetry["scripts"] = dict(self.options.scripts)


class Poetry(Component):
    """Dependencies, environment and packaging through the poetry CLI."""

    def __init__(self, project: Project, *, python_exec: str = "python") -> None:
        super().__init__(project)
        self.python_exec = python_exec
        if "python" not in project.deps:
            project.add_dependency(f"python@{DEFAULT_PYTHON_RANGE}")
        self.install_task = project.add_task(
            "install",
            description="Install and upgrade dependencies",
            category=TaskCategory.BUILD,
            exec="poetry install",
        )

    def add_dependency(self, spec: str) -> Dependency:
        return self.project.deps.add_dependency(spec, DependencyType.RUNTIME)

    def add_dev_dependency(self, spec: str) -> Dependency:
        return self.project.deps.add_dependency(spec, DependencyType.DEVENV)

    def post_synthesize(self) -> None:
        if not self.setup_environment():
            return
        self.install_dependencies()

    def _run(self, command: str) -> bool:
        return self.project.executor.run(command, cwd=self.project.outdir).ok

    def setup_environment(self) -> bool:
        logger = self.project.logger
        if self.project.executor.which("poetry") is None:
            logger.info(
                "Unable to setup an environment since poetry is not installed. Please install poetry "
                "(https://python-poetry.org/docs/) or use a different component for managing environments "
                "such as 'venv'."
            )
            return False

        if self._run("poetry env info -p"):
            return True
        logger.info(f"Setting up a virtual environment using the python installation found: {self.python_exec}.")
        command = f"poetry env use {self.python_exec}"
        result = self.project.executor.run(command, cwd=self.project.outdir)
        if not result.ok:
            raise ShellCommandError(
                f"Failed to create poetry environment ({result.exit_code}): {command}",
                details={"command": command, "exit_code": result.exit_code, "stderr": result.stderr},
            )
        logger.info("Environment successfully created.")
        return True

    def install_dependencies(self) -> None:
        self.project.logger.info("Installing dependencies...")
        executor = self.project.executor
        command = self.install_task.to_shell_command(executor.shell)
        result = executor.run(command, cwd=self.project.outdir)
        if not result.ok:
            raise ShellCommandError(
                f"Dependency installation failed ({result.exit_code}): {command}",
                details={"command": command, "exit_code": result.exit_code, "stderr": result.stderr},
            )


__all__ = ["DEFAULT_PYTHON_RANGE", "Poetry", "PoetryPyproject", "PoetryPyprojectOptions"]
