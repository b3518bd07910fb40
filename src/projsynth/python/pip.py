from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from packaging.requirements import InvalidRequirement, Requirement
from packaging.version import InvalidVersion, Version

from projsynth.component import Component
from projsynth.deps import ANY_VERSION, Dependency, DependencyType
from projsynth.errors import DependencySpecError, ShellCommandError
from projsynth.files import MARKER, FileBase
from projsynth.tasks import TaskCategory

if TYPE_CHECKING:
    from projsynth.project import Project

_PEP440_OPERATORS = ("==", "!=", "<=", ">=", "<", ">", "~=", "===")
DEV_KINDS = (DependencyType.BUILD, DependencyType.DEVENV, DependencyType.TEST)


def _base_version(version: str, *, spec: str) -> Version:
    try:
        return Version(version)
    except InvalidVersion as exc:
        raise DependencySpecError(f"Invalid version in {spec!r}: {exc}", details={"spec": spec}) from exc


def _caret_upper(base: Version) -> str:
    major, minor, micro = (list(base.release) + [0, 0])[:3]
    if major > 0:
        return f"{major + 1}.0.0"
    if minor > 0:
        return f"0.{minor + 1}.0"
    return f"0.0.{micro + 1}"


def _tilde_upper(base: Version) -> str:
    major, minor = (list(base.release) + [0])[:2]
    return f"{major}.{minor + 1}.0"


def to_pep440_requirement(dep: Dependency) -> str:
    """
    Render a dependency as a PEP 508 requirement line.

    `*` becomes the bare name, `^1.2.3` becomes `>=1.2.3, <2.0.0`, `~1.2.3` becomes `>=1.2.3, <1.3.0`,
    PEP 440 operators pass through and a plain version is pinned with `==`.
    """

    version = dep.version
    if version == ANY_VERSION:
        spec = ""
    elif version.startswith("^"):
        base = _base_version(version[1:], spec=dep.spec)
        spec = f">={version[1:]}, <{_caret_upper(base)}"
    elif version.startswith("~") and not version.startswith("~="):
        base = _base_version(version[1:], spec=dep.spec)
        spec = f">={version[1:]}, <{_tilde_upper(base)}"
    elif version.startswith(_PEP440_OPERATORS):
        spec = version
    else:
        spec = f"=={version}"

    line = f"{dep.name}{spec}"
    try:
        Requirement(line)
    except InvalidRequirement as exc:
        raise DependencySpecError(
            f"Dependency {dep.spec!r} is not a valid Python requirement: {exc}",
            details={"spec": dep.spec, "requirement": line},
        ) from exc
    return line


class RequirementsFile(FileBase):
    """A pip requirements file listing the registry's dependencies of the given kinds."""

    def __init__(self, project: Project, path: str, *, kinds: Iterable[DependencyType]) -> None:
        super().__init__(project, path)
        self.kinds = tuple(kinds)

    def render(self) -> str | None:
        lines = [f"# {MARKER}"]
        for dep in self.project.deps.all:
            if dep.type in self.kinds:
                lines.append(to_pep440_requirement(dep))
        return "\n".join(lines) + "\n"


class Pip(Component):
    """Manages dependencies through `requirements.txt`/`requirements-dev.txt` and pip."""

    def __init__(self, project: Project, *, python_exec: str = "python") -> None:
        super().__init__(project)
        self.runtime_requirements = RequirementsFile(project, "requirements.txt", kinds=(DependencyType.RUNTIME,))
        self.dev_requirements = RequirementsFile(project, "requirements-dev.txt", kinds=DEV_KINDS)
        self.install_task = project.add_task(
            "install",
            description="Install and upgrade dependencies",
            category=TaskCategory.BUILD,
            exec=f"{python_exec} -m pip install -r requirements.txt -r requirements-dev.txt",
        )

    def add_dependency(self, spec: str) -> Dependency:
        return self.project.deps.add_dependency(spec, DependencyType.RUNTIME)

    def add_dev_dependency(self, spec: str) -> Dependency:
        return self.project.deps.add_dependency(spec, DependencyType.DEVENV)

    def post_synthesize(self) -> None:
        self.install_dependencies()

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


__all__ = ["DEV_KINDS", "Pip", "RequirementsFile", "to_pep440_requirement"]
