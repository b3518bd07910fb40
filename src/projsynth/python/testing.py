from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from projsynth.component import Component
from projsynth.files import SampleFile
from projsynth.tasks import TaskCategory

if TYPE_CHECKING:
    from projsynth.project import Project


@dataclass(frozen=True)
class PytestOptions:
    version: str = "6.2.1"
    testdir: str = "tests"


class Pytest(Component):
    def __init__(self, project: Project, options: PytestOptions | None = None) -> None:
        super().__init__(project)
        self.options = options or PytestOptions()
        project.add_test_dependency(f"pytest@{self.options.version}")
        self.test_task = project.add_task(
            "test",
            description="Runs tests",
            category=TaskCategory.TEST,
            exec="pytest",
        )
        SampleFile(project, f"{self.options.testdir}/__init__.py", contents="")
        project.gitignore.add_patterns(".pytest_cache/")


__all__ = ["Pytest", "PytestOptions"]
