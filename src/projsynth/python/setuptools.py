from __future__ import annotations

import pprint
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from projsynth.component import Component
from projsynth.deps import DependencyType
from projsynth.files import MARKER, FileBase
from projsynth.formats import omit_empty
from projsynth.python.pip import to_pep440_requirement
from projsynth.tasks import TaskCategory

if TYPE_CHECKING:
    from projsynth.project import Project


@dataclass(frozen=True)
class SetupPyOptions:
    name: str
    version: str
    description: str = ""
    author_name: str = ""
    author_email: str = ""
    homepage: str | None = None
    license: str | None = None
    classifiers: tuple[str, ...] = ()
    packages: tuple[str, ...] = ()
    python_requires: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


class SetupPy(FileBase):
    """
    A managed `setup.py` that passes its keyword arguments to `setuptools.setup` as a Python literal.

    `install_requires` is filled from the project's runtime dependencies in `pre_synthesize`, after
    every component has declared its dependencies.
    """

    def __init__(self, project: Project, options: SetupPyOptions) -> None:
        super().__init__(project, "setup.py")
        self.options = options
        self.kwargs: dict[str, Any] = {
            "name": options.name,
            "version": options.version,
            "description": options.description,
            "author": options.author_name,
            "author_email": options.author_email,
            "url": options.homepage,
            "license": options.license,
            "classifiers": list(options.classifiers),
            "packages": list(options.packages),
            "python_requires": options.python_requires,
            **options.extra,
        }

    def pre_synthesize(self) -> None:
        self.kwargs["install_requires"] = [
            to_pep440_requirement(dep) for dep in self.project.deps.all_of_kind(DependencyType.RUNTIME)
        ]

    def render(self) -> str | None:
        payload = pprint.pformat(omit_empty(self.kwargs), sort_dicts=False)
        return "\n".join(
            [
                f"# {MARKER}",
                "",
                "import setuptools",
                "",
                f"kwargs = {payload}",
                "",
                "setuptools.setup(**kwargs)",
                "",
            ]
        )


class Setuptools(Component):
    """Packaging through setuptools: `setup.py` plus `package` and `upload:test` release tasks."""

    def __init__(self, project: Project, options: SetupPyOptions) -> None:
        super().__init__(project)
        project.add_dev_dependency("wheel@0.36.2")
        project.add_dev_dependency("twine@3.3.0")

        self.package_task = project.add_task(
            "package",
            description="Creates source archive and wheel for distribution.",
            category=TaskCategory.RELEASE,
            exec="rm -fr dist/* && python setup.py sdist bdist_wheel",
        )
        self.upload_task = project.add_task(
            "upload:test",
            description="Uploads the package against a test PyPI endpoint.",
            category=TaskCategory.RELEASE,
            exec="twine upload --repository-url https://test.pypi.org/legacy/ dist/*",
        )
        self.setup_py = SetupPy(project, options)


__all__ = ["SetupPy", "SetupPyOptions", "Setuptools"]
