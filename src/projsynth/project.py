from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

from projsynth.component import Component
from projsynth.deps import ConflictPolicy, Dependencies, Dependency, DependencyType
from projsynth.errors import ClobberRefusedError, PathConflictError, PhaseFailure, SynthError
from projsynth.files import FileBase, FileChange, IgnoreFile, has_marker, normalize_rel_path
from projsynth.logger import Logger
from projsynth.manifests import FILES_MANIFEST, DepsManifest, FilesManifest, TasksManifest
from projsynth.shell import ShellExecutor, SubprocessShellExecutor
from projsynth.tasks import Task, Tasks

_PHASES = ("pre_synthesize", "synthesize", "post_synthesize")


class Project:
    """
    Root aggregate of one synthesis run.

    Owns the ordered component list, the dependency and task registries, and the policy for writing
    files into `outdir`. Components attach themselves on construction; `synth()` then runs
    pre_synthesize, synthesize and post_synthesize across all of them, in registration order.
    """

    def __init__(
        self,
        *,
        name: str,
        outdir: Path | str = ".",
        clobber: bool = True,
        logger: Logger | None = None,
        executor: ShellExecutor | None = None,
        dry_run: bool = False,
        dependency_policy: ConflictPolicy = ConflictPolicy.OVERWRITE,
        dependency_key: Callable[[str], str] | None = None,
    ) -> None:
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Project name must be a non-empty string")
        self.name = name
        self.outdir = Path(outdir).resolve()
        self.clobber = clobber
        self.dry_run = dry_run
        self.logger = logger or Logger()
        self.executor: ShellExecutor = executor or SubprocessShellExecutor(logger=self.logger)
        self.deps = Dependencies(policy=dependency_policy, key_fn=dependency_key, logger=self.logger)
        self.tasks = Tasks()
        self.file_changes: list[FileChange] = []
        self.skipped_files: list[str] = []

        self._components: list[Component] = []
        self._files: dict[str, FileBase] = {}
        self._phase: str | None = None

        self.gitignore = IgnoreFile(self, ".gitignore")
        TasksManifest(self)
        DepsManifest(self)
        FilesManifest(self)

    def __repr__(self) -> str:
        return f"Project({self.name!r}, outdir={str(self.outdir)!r})"

    @property
    def components(self) -> tuple[Component, ...]:
        return tuple(self._components)

    @property
    def files(self) -> tuple[FileBase, ...]:
        return tuple(self._files.values())

    def try_find_file(self, path: str) -> FileBase | None:
        return self._files.get(normalize_rel_path(path))

    def managed_paths(self) -> list[str]:
        return [f.path for f in self._files.values() if f.marker]

    def add_dependency(self, spec: str) -> Dependency:
        return self.deps.add_dependency(spec, DependencyType.RUNTIME)

    def add_dev_dependency(self, spec: str) -> Dependency:
        return self.deps.add_dependency(spec, DependencyType.DEVENV)

    def add_test_dependency(self, spec: str) -> Dependency:
        return self.deps.add_dependency(spec, DependencyType.TEST)

    def add_task(self, name: str, **options: Any) -> Task:
        return self.tasks.add_task(name, **options)

    def _register_component(self, component: Component) -> None:
        if self._phase is not None:
            raise SynthError(
                f"Cannot register {component.name} during {self._phase}; components must be created before synth()",
                details={"component": component.name, "phase": self._phase},
            )
        if any(c is component for c in self._components):
            raise SynthError(f"Component {component.name} is already registered", details={"component": component.name})
        if isinstance(component, FileBase):
            existing = self._files.get(component.path)
            if existing is not None:
                raise PathConflictError(
                    f"Two managed files target {component.path!r}: {existing.name} and {type(component).__name__}",
                    details={"path": component.path, "existing": existing.name},
                )
            self._files[component.path] = component
        self._components.append(component)

    def synth(self, *, post: bool = True) -> list[FileChange]:
        """
        Run the three lifecycle phases and return the file changes made (or planned, in a dry run).

        A hook failure aborts the remaining components and phases and is raised as PhaseFailure. A
        refused clobber is the exception: it is logged and only that file is skipped.
        """

        if self._phase is not None:
            raise SynthError("synth() is already running")
        self.file_changes = []
        self.skipped_files = []
        try:
            self._run_phase("pre_synthesize")
            self._phase = "cleanup"
            self._remove_stale_files()
            self._run_phase("synthesize")
            if post and not self.dry_run:
                self._run_phase("post_synthesize")
        finally:
            self._phase = None
        return list(self.file_changes)

    def _run_phase(self, phase: str) -> None:
        assert phase in _PHASES
        self._phase = phase
        self.logger.debug(f"{phase}: {len(self._components)} component(s)")
        for component in self._components:
            hook = getattr(component, phase)
            try:
                hook()
            except ClobberRefusedError as exc:
                self.skipped_files.append(str(exc.details.get("path", component.name)))
                self.logger.warn(str(exc))
            except Exception as exc:
                raise PhaseFailure(component=component.name, phase=phase, error=exc) from exc

    def _read_existing(self, target: Path) -> str | None:
        if not target.exists():
            return None
        try:
            return target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise SynthError(f"Failed to read {target}: {exc}", details={"path": str(target)}) from exc

    def _write_file(self, file: FileBase, content: str) -> None:
        target = self.outdir / file.path
        existing = self._read_existing(target)
        if existing == content:
            self.logger.debug(f"unchanged: {file.path}")
            return

        clobber = self.clobber if file.clobber is None else file.clobber
        if existing is not None and not has_marker(existing):
            if not clobber:
                raise ClobberRefusedError(
                    f"Refusing to overwrite {file.path}: the existing file was not generated by projsynth "
                    "(no marker found). Remove it or enable clobber.",
                    details={"path": file.path},
                )
            self.logger.info(f"Overwriting {file.path}: the existing file has no projsynth marker (clobber is on).")

        self.file_changes.append(FileChange(path=file.path, before=existing, after=content))
        if self.dry_run:
            return
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8", newline="\n")
        except OSError as exc:
            raise SynthError(f"Failed to write {target}: {exc}", details={"path": file.path}) from exc
        self.logger.debug(f"wrote: {file.path}")

    def _previous_managed_paths(self) -> list[str]:
        text = self._read_existing(self.outdir / FILES_MANIFEST)
        if text is None:
            return []
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            self.logger.warn(f"Ignoring unreadable {FILES_MANIFEST}; stale files will not be removed this run.")
            return []
        files = data.get("files") if isinstance(data, dict) else None
        if not isinstance(files, list):
            return []
        return [p for p in files if isinstance(p, str)]

    def _remove_stale_files(self) -> None:
        current = set(self._files)
        for raw in self._previous_managed_paths():
            try:
                path = normalize_rel_path(raw)
            except ValueError:
                self.logger.warn(f"Ignoring invalid path in {FILES_MANIFEST}: {raw!r}")
                continue
            if path in current:
                continue
            target = self.outdir / path
            existing = self._read_existing(target)
            if existing is None:
                continue
            if not has_marker(existing):
                self.logger.info(f"Keeping {path}: no longer managed and its marker was removed.")
                continue
            self.file_changes.append(FileChange(path=path, before=existing, after=None))
            if self.dry_run:
                continue
            try:
                target.unlink()
            except OSError as exc:
                raise SynthError(f"Failed to remove stale file {target}: {exc}", details={"path": path}) from exc
            self.logger.info(f"removed stale file: {path}")


__all__ = ["Project"]
