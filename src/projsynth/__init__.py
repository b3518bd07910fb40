"""Compose a project from components and synthesize its managed files, dependencies and tasks."""

from projsynth.component import Component
from projsynth.deps import ConflictPolicy, Dependencies, Dependency, DependencyType
from projsynth.errors import (
    ClobberRefusedError,
    ConfigError,
    CyclicTaskError,
    DependencySpecError,
    DuplicateDependencyError,
    DuplicateTaskError,
    PathConflictError,
    PhaseFailure,
    ShellCommandError,
    SynthError,
    TaskFailedError,
    UnknownTaskError,
)
from projsynth.files import (
    MARKER,
    FileBase,
    FileChange,
    IgnoreFile,
    JsonFile,
    ObjectFile,
    SampleFile,
    TextFile,
    TomlFile,
    YamlFile,
)
from projsynth.logger import Logger, LogLevel
from projsynth.project import Project
from projsynth.runtime import TaskRuntime
from projsynth.shell import ShellResult, SubprocessShellExecutor
from projsynth.tasks import Shell, Task, TaskCategory, Tasks, TaskStep

__version__ = "0.1.0"

__all__ = [
    "MARKER",
    "ClobberRefusedError",
    "Component",
    "ConfigError",
    "ConflictPolicy",
    "CyclicTaskError",
    "Dependencies",
    "Dependency",
    "DependencySpecError",
    "DependencyType",
    "DuplicateDependencyError",
    "DuplicateTaskError",
    "FileBase",
    "FileChange",
    "IgnoreFile",
    "JsonFile",
    "LogLevel",
    "Logger",
    "ObjectFile",
    "PathConflictError",
    "PhaseFailure",
    "Project",
    "SampleFile",
    "Shell",
    "ShellCommandError",
    "ShellResult",
    "SubprocessShellExecutor",
    "SynthError",
    "Task",
    "TaskCategory",
    "TaskFailedError",
    "TaskRuntime",
    "TaskStep",
    "Tasks",
    "TextFile",
    "TomlFile",
    "UnknownTaskError",
    "YamlFile",
    "__version__",
]
