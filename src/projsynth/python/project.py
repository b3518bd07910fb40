from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from packaging.utils import canonicalize_name

from projsynth.deps import ConflictPolicy
from projsynth.errors import ConfigError
from projsynth.files import SampleFile
from projsynth.logger import Logger
from projsynth.project import Project
from projsynth.python.pip import Pip
from projsynth.python.poetry import Poetry, PoetryPyproject, PoetryPyprojectOptions
from projsynth.python.setuptools import SetupPyOptions, Setuptools
from projsynth.python.testing import Pytest, PytestOptions
from projsynth.python.venv import Venv
from projsynth.shell import ShellExecutor

_SNAKE_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]+")

PYTHON_GITIGNORE = (
    "__pycache__/",
    "*.py[cod]",
    "/dist/",
    "/build/",
    "*.egg-info/",
)


def to_module_name(name: str) -> str:
    snake = _SNAKE_NON_ALNUM_RE.sub("_", name.strip()).strip("_").lower()
    return snake or "project"


@dataclass(frozen=True)
class PythonProjectOptions:
    name: str
    module_name: str | None = None
    version: str = "0.1.0"
    description: str = ""
    author_name: str = ""
    author_email: str = ""
    license: str | None = None
    homepage: str | None = None
    python_exec: str = "python"
    classifiers: tuple[str, ...] = ()
    deps: tuple[str, ...] = ()
    dev_deps: tuple[str, ...] = ()
    test_deps: tuple[str, ...] = ()
    pip: bool = True
    venv: bool = True
    setuptools: bool = True
    poetry: bool = False
    pytest: bool = True
    pytest_version: str = "6.2.1"
    sample: bool = True

    def validate(self) -> None:
        if self.poetry:
            clashing = [flag for flag in ("pip", "venv", "setuptools") if getattr(self, flag)]
            if clashing:
                raise ConfigError(
                    f"poetry manages dependencies, environments and packaging itself; disable {', '.join(clashing)}",
                    details={"clashing": clashing},
                )

    @property
    def resolved_module_name(self) -> str:
        return self.module_name or to_module_name(self.name)


def create_python_project(
    options: PythonProjectOptions,
    *,
    outdir: Path | str,
    logger: Logger | None = None,
    executor: ShellExecutor | None = None,
    clobber: bool = True,
    dry_run: bool = False,
    dependency_policy: ConflictPolicy = ConflictPolicy.OVERWRITE,
) -> Project:
    """
    Build a generic Project and attach the Python components selected by `options`.

    Dependency names are keyed by their PEP 503 canonical form, so `Django` and `django` are one entry.
    """

    options.validate()
    project = Project(
        name=options.name,
        outdir=outdir,
        clobber=clobber,
        logger=logger,
        executor=executor,
        dry_run=dry_run,
        dependency_policy=dependency_policy,
        dependency_key=canonicalize_name,
    )
    project.gitignore.add_patterns(*PYTHON_GITIGNORE)
    module_name = options.resolved_module_name

    python_exec = options.python_exec
    if options.venv:
        venv = Venv(project, python_exec=options.python_exec)
        python_exec = venv.env_python
    if options.pip:
        Pip(project, python_exec=python_exec)
    if options.setuptools:
        Setuptools(
            project,
            SetupPyOptions(
                name=options.name,
                version=options.version,
                description=options.description,
                author_name=options.author_name,
                author_email=options.author_email,
                homepage=options.homepage,
                license=options.license,
                classifiers=options.classifiers,
                packages=(module_name,),
            ),
        )
    if options.poetry:
        Poetry(project, python_exec=options.python_exec)
        author = options.author_name
        if options.author_email:
            author = f"{author} <{options.author_email}>".strip()
        PoetryPyproject(
            project,
            PoetryPyprojectOptions(
                name=options.name,
                version=options.version,
                description=options.description,
                license=options.license,
                authors=(author,) if author else (),
                homepage=options.homepage,
                classifiers=options.classifiers,
                packages=({"include": module_name},),
            ),
        )
    if options.pytest:
        Pytest(project, PytestOptions(version=options.pytest_version))
    if options.sample:
        SampleFile(project, f"{module_name}/__init__.py", contents=f'__version__ = "{options.version}"\n')

    for spec in options.deps:
        project.add_dependency(spec)
    for spec in options.dev_deps:
        project.add_dev_dependency(spec)
    for spec in options.test_deps:
        project.add_test_dependency(spec)
    return project


__all__ = ["PYTHON_GITIGNORE", "PythonProjectOptions", "create_python_project", "to_module_name"]
