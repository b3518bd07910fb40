from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

from projsynth.errors import DependencySpecError, DuplicateDependencyError
from projsynth.logger import Logger

ANY_VERSION = "*"


class DependencyType(enum.Enum):
    RUNTIME = "runtime"
    BUILD = "build"
    DEVENV = "devenv"
    TEST = "test"
    PEER = "peer"
    OPTIONAL = "optional"


class ConflictPolicy(enum.Enum):
    # Re-declaring a name updates version and type in place; the entry keeps its position.
    OVERWRITE = "overwrite"
    # Re-declaring a name with anything but the identical spec raises DuplicateDependencyError.
    REJECT = "reject"


@dataclass(frozen=True)
class Dependency:
    name: str
    version: str
    type: DependencyType

    @property
    def spec(self) -> str:
        return f"{self.name}@{self.version}"


def _has_whitespace(value: str) -> bool:
    return any(ch.isspace() for ch in value)


def parse_dependency_spec(spec: str) -> tuple[str, str]:
    """
    Split `<name>@<range>` into `(name, range)`.

    The version separator is the last `@`; a leading `@` belongs to the name (scoped names such as
    `@scope/pkg@1.0`). A bare name means any version.
    """

    if not isinstance(spec, str) or not spec.strip():
        raise DependencySpecError("Dependency spec must be a non-empty string.", details={"spec": spec})

    idx = spec.rfind("@")
    if idx == 0 and "/" in spec:
        # scoped name without a version
        idx = -1
    if idx < 0:
        name, version = spec, ANY_VERSION
    else:
        name, version = spec[:idx], spec[idx + 1 :]

    if not name:
        raise DependencySpecError(
            f"Dependency spec has an empty name: {spec!r} (expected <name>@<range>)",
            details={"spec": spec},
        )
    if not version:
        raise DependencySpecError(
            f"Dependency spec has an empty version range: {spec!r} (use {ANY_VERSION!r} for any version)",
            details={"spec": spec},
        )
    if _has_whitespace(name) or _has_whitespace(version):
        raise DependencySpecError(f"Dependency spec must not contain whitespace: {spec!r}", details={"spec": spec})
    return name, version


class Dependencies:
    """
    Dependency registry for one project.

    Entries are keyed by `key_fn(name)`; there is at most one entry per key. Iteration order is
    first-insertion order regardless of later re-declarations.
    """

    def __init__(
        self,
        *,
        policy: ConflictPolicy = ConflictPolicy.OVERWRITE,
        key_fn: Callable[[str], str] | None = None,
        logger: Logger | None = None,
    ) -> None:
        self.policy = policy
        self._key_fn = key_fn or (lambda name: name)
        self._logger = logger or Logger.off()
        self._entries: dict[str, Dependency] = {}

    def add_dependency(self, spec: str, type: DependencyType) -> Dependency:
        name, version = parse_dependency_spec(spec)
        key = self._key_fn(name)
        existing = self._entries.get(key)
        if existing is None:
            dep = Dependency(name=name, version=version, type=type)
            self._entries[key] = dep
            return dep

        if existing.version == version and existing.type == type:
            return existing

        if self.policy is ConflictPolicy.REJECT:
            raise DuplicateDependencyError(
                f"Dependency {existing.name!r} is already declared as {existing.spec} ({existing.type.value}); "
                f"refusing {name}@{version} ({type.value})",
                details={
                    "name": existing.name,
                    "existing": {"version": existing.version, "type": existing.type.value},
                    "requested": {"version": version, "type": type.value},
                },
            )

        updated = replace(existing, version=version, type=type)
        self._entries[key] = updated
        self._logger.info(
            f"dependency {existing.name!r} re-declared: {existing.version} ({existing.type.value}) -> "
            f"{version} ({type.value})"
        )
        return updated

    def try_get(self, name: str) -> Dependency | None:
        return self._entries.get(self._key_fn(name))

    def get(self, name: str) -> Dependency:
        dep = self.try_get(name)
        if dep is None:
            raise KeyError(name)
        return dep

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.try_get(name) is not None

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def all(self) -> tuple[Dependency, ...]:
        return tuple(self._entries.values())

    def all_of_kind(self, type: DependencyType) -> tuple[Dependency, ...]:
        return tuple(dep for dep in self._entries.values() if dep.type is type)

    def to_manifest(self) -> dict[str, Any]:
        order = {t: i for i, t in enumerate(DependencyType)}
        deps = sorted(self._entries.values(), key=lambda d: (order[d.type], self._key_fn(d.name)))
        return {"dependencies": [{"name": d.name, "version": d.version, "type": d.type.value} for d in deps]}


__all__ = [
    "ANY_VERSION",
    "ConflictPolicy",
    "Dependencies",
    "Dependency",
    "DependencyType",
    "parse_dependency_spec",
]
