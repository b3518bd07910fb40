from __future__ import annotations

from typing import TYPE_CHECKING, Any

from projsynth.files import JsonFile

if TYPE_CHECKING:
    from projsynth.project import Project

STATE_DIR = ".projsynth"
TASKS_MANIFEST = f"{STATE_DIR}/tasks.json"
DEPS_MANIFEST = f"{STATE_DIR}/deps.json"
FILES_MANIFEST = f"{STATE_DIR}/files.json"


class TasksManifest(JsonFile):
    def __init__(self, project: Project) -> None:
        super().__init__(project, TASKS_MANIFEST, omit_empty=True)

    def content(self) -> dict[str, Any]:
        return self.project.tasks.to_manifest()


class DepsManifest(JsonFile):
    def __init__(self, project: Project) -> None:
        super().__init__(project, DEPS_MANIFEST, omit_empty=True)

    def content(self) -> dict[str, Any]:
        return self.project.deps.to_manifest()


class FilesManifest(JsonFile):
    """The sorted list of marker-carrying paths; the next synth uses it to remove stale outputs."""

    def __init__(self, project: Project) -> None:
        super().__init__(project, FILES_MANIFEST)

    def content(self) -> dict[str, Any]:
        return {"files": sorted(self.project.managed_paths())}


__all__ = [
    "DEPS_MANIFEST",
    "FILES_MANIFEST",
    "STATE_DIR",
    "TASKS_MANIFEST",
    "DepsManifest",
    "FilesManifest",
    "TasksManifest",
]
