from __future__ import annotations

import copy
import difflib
import posixpath
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from projsynth.component import Component
from projsynth.formats import JSON, TOML, YAML, DocumentFormat, omit_empty

if TYPE_CHECKING:
    from projsynth.project import Project

MARKER_TOKEN = "~~ Generated by projsynth"
MARKER = f'{MARKER_TOKEN}. To modify, edit .projsynthrc.yml and run "projsynth synth".'


def has_marker(text: str) -> bool:
    return MARKER_TOKEN in text


def normalize_rel_path(value: str) -> str:
    """Normalize a managed-file path to POSIX form relative to the project output directory."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError("File path must be a non-empty string")
    normalized = value.strip().replace("\\", "/")
    if normalized.startswith("/") or (len(normalized) > 1 and normalized[1] == ":"):
        raise ValueError(f"File path must be relative to the project directory: {value!r}")
    normalized = posixpath.normpath(normalized)
    if normalized == "." or normalized == ".." or normalized.startswith("../"):
        raise ValueError(f"File path escapes the project directory: {value!r}")
    return normalized


@dataclass(frozen=True)
class FileChange:
    """A write (or deletion, when `after` is None) performed or planned during synthesis."""

    path: str
    before: str | None
    after: str | None

    @property
    def action(self) -> str:
        if self.after is None:
            return "deleted"
        if self.before is None:
            return "created"
        return "updated"

    def unified_diff(self) -> str:
        diff = difflib.unified_diff(
            (self.before or "").splitlines(keepends=True),
            (self.after or "").splitlines(keepends=True),
            fromfile=f"a/{self.path}" if self.before is not None else "/dev/null",
            tofile=f"b/{self.path}" if self.after is not None else "/dev/null",
        )
        return "".join(diff)


class FileBase(Component):
    """
    A generated file at a project-relative path.

    Paths are unique per project; a second file at the same path fails at construction with
    PathConflictError, before anything touches the disk.
    """

    def __init__(
        self,
        project: Project,
        path: str,
        *,
        marker: bool = True,
        clobber: bool | None = None,
    ) -> None:
        self.path = normalize_rel_path(path)
        self.marker = marker
        self.clobber = clobber
        super().__init__(project)

    @property
    def name(self) -> str:
        return f"{type(self).__name__}({self.path})"

    @property
    def absolute_path(self) -> Path:
        return self.project.outdir / self.path

    def render(self) -> str | None:
        """Return the full file content, or None to skip writing."""
        raise NotImplementedError

    def synthesize(self) -> None:
        content = self.render()
        if content is None:
            return
        self.project._write_file(self, content)


class ObjectFile(FileBase):
    """A file rendered from a nested mapping through a document format."""

    def __init__(
        self,
        project: Project,
        path: str,
        *,
        format: DocumentFormat,
        obj: Mapping[str, Any] | None = None,
        omit_empty: bool = False,
        marker: bool = True,
        clobber: bool | None = None,
    ) -> None:
        super().__init__(project, path, marker=marker, clobber=clobber)
        self.format = format
        self.obj: dict[str, Any] = copy.deepcopy(dict(obj or {}))
        self.omit_empty = omit_empty
        self._overrides: list[tuple[tuple[str, ...], Any, bool]] = []

    def add_override(self, path: str, value: Any) -> None:
        """Set a value at a dotted path (`tool.poetry.name`) after the base content is assembled."""
        self._overrides.append((_split_path(path), copy.deepcopy(value), False))

    def add_deletion_override(self, path: str) -> None:
        self._overrides.append((_split_path(path), None, True))

    def content(self) -> dict[str, Any]:
        return copy.deepcopy(self.obj)

    def render(self) -> str | None:
        data = self.content()
        for keys, value, delete in self._overrides:
            _apply_override(data, keys, value, delete=delete)
        if self.omit_empty:
            data = omit_empty(data)
        return self.format.render(data, marker=MARKER if self.marker else None)


def _split_path(path: str) -> tuple[str, ...]:
    keys = tuple(path.split("."))
    if not path or any(not k for k in keys):
        raise ValueError(f"Invalid override path: {path!r}")
    return keys


def _apply_override(data: dict[str, Any], keys: tuple[str, ...], value: Any, *, delete: bool) -> None:
    cur = data
    for key in keys[:-1]:
        nxt = cur.get(key)
        if not isinstance(nxt, dict):
            if delete:
                return
            nxt = {}
            cur[key] = nxt
        cur = nxt
    if delete:
        cur.pop(keys[-1], None)
    else:
        cur[keys[-1]] = value


class JsonFile(ObjectFile):
    def __init__(self, project: Project, path: str, **kwargs: Any) -> None:
        super().__init__(project, path, format=JSON, **kwargs)


class TomlFile(ObjectFile):
    def __init__(self, project: Project, path: str, **kwargs: Any) -> None:
        super().__init__(project, path, format=TOML, **kwargs)


class YamlFile(ObjectFile):
    def __init__(self, project: Project, path: str, **kwargs: Any) -> None:
        super().__init__(project, path, format=YAML, **kwargs)


class TextFile(FileBase):
    def __init__(
        self,
        project: Project,
        path: str,
        *,
        lines: Iterable[str] = (),
        comment_prefix: str = "#",
        marker: bool = True,
        clobber: bool | None = None,
    ) -> None:
        super().__init__(project, path, marker=marker, clobber=clobber)
        self.comment_prefix = comment_prefix
        self._lines = list(lines)

    def add_line(self, line: str) -> None:
        self._lines.append(line)

    @property
    def lines(self) -> tuple[str, ...]:
        return tuple(self._lines)

    def render(self) -> str | None:
        out: list[str] = []
        if self.marker:
            out.append(f"{self.comment_prefix} {MARKER}")
        out.extend(self.lines)
        return "\n".join(out) + "\n"


class IgnoreFile(TextFile):
    """An ignore file (`.gitignore` and friends); patterns are de-duplicated, first occurrence wins."""

    def add_patterns(self, *patterns: str) -> None:
        for pattern in patterns:
            if pattern not in self._lines:
                self._lines.append(pattern)


class SampleFile(FileBase):
    """Written once when missing and never touched again; the user owns it afterwards."""

    def __init__(self, project: Project, path: str, *, contents: str) -> None:
        super().__init__(project, path, marker=False)
        self.contents = contents

    def render(self) -> str | None:
        if self.absolute_path.exists():
            return None
        return self.contents


__all__ = [
    "MARKER",
    "MARKER_TOKEN",
    "FileBase",
    "FileChange",
    "IgnoreFile",
    "JsonFile",
    "ObjectFile",
    "SampleFile",
    "TextFile",
    "TomlFile",
    "YamlFile",
    "has_marker",
    "normalize_rel_path",
]
