from __future__ import annotations

import io

import pytest

from projsynth.deps import ConflictPolicy, Dependencies, DependencyType, parse_dependency_spec
from projsynth.errors import DependencySpecError, DuplicateDependencyError
from projsynth.logger import Logger, LogLevel


@pytest.mark.parametrize(
    ("spec", "expected"),
    [
        ("Django@~3.1", ("Django", "~3.1")),
        ("requests", ("requests", "*")),
        ("@scope/pkg@^1.0.0", ("@scope/pkg", "^1.0.0")),
        ("@scope/pkg", ("@scope/pkg", "*")),
        ("pytest@>=7,<9", ("pytest", ">=7,<9")),
    ],
)
def test_parse_dependency_spec(spec: str, expected: tuple[str, str]) -> None:
    assert parse_dependency_spec(spec) == expected


@pytest.mark.parametrize("spec", ["", "   ", "@1.0", "django@", "dj ango@1.0", "django@1 .0"])
def test_parse_dependency_spec_rejects_malformed(spec: str) -> None:
    with pytest.raises(DependencySpecError) as exc:
        parse_dependency_spec(spec)
    assert exc.value.code == "invalid_dependency_spec"


def test_overwrite_policy_keeps_position_and_first_spelling() -> None:
    stream = io.StringIO()
    deps = Dependencies(key_fn=str.lower, logger=Logger(level=LogLevel.INFO, stream=stream))
    deps.add_dependency("Django@~3.1", DependencyType.RUNTIME)
    deps.add_dependency("requests@2.25.1", DependencyType.RUNTIME)
    updated = deps.add_dependency("django@3.2", DependencyType.TEST)

    assert updated.name == "Django"
    assert updated.version == "3.2"
    assert updated.type is DependencyType.TEST
    assert [d.name for d in deps.all] == ["Django", "requests"]
    assert len(deps) == 2
    assert "re-declared" in stream.getvalue()


def test_identical_redeclaration_is_a_noop_under_reject() -> None:
    deps = Dependencies(policy=ConflictPolicy.REJECT)
    first = deps.add_dependency("hypothesis@^6.0.0", DependencyType.TEST)
    again = deps.add_dependency("hypothesis@^6.0.0", DependencyType.TEST)
    assert again == first
    assert len(deps) == 1


def test_reject_policy_raises_on_conflicting_redeclaration() -> None:
    deps = Dependencies(policy=ConflictPolicy.REJECT)
    deps.add_dependency("Django@~3.1", DependencyType.RUNTIME)
    with pytest.raises(DuplicateDependencyError) as exc:
        deps.add_dependency("Django@3.2", DependencyType.RUNTIME)
    assert exc.value.details["existing"]["version"] == "~3.1"
    assert deps.get("Django").version == "~3.1"


def test_lookup_and_membership() -> None:
    deps = Dependencies(key_fn=str.lower)
    deps.add_dependency("PyYAML@6.0", DependencyType.RUNTIME)
    assert "pyyaml" in deps
    assert deps.try_get("nope") is None
    assert 42 not in deps
    with pytest.raises(KeyError):
        deps.get("nope")


def test_all_of_kind_filters_by_type() -> None:
    deps = Dependencies()
    deps.add_dependency("hypothesis@^6.0.0", DependencyType.TEST)
    deps.add_dependency("django@3.2", DependencyType.RUNTIME)
    deps.add_dependency("pytest@6.2.1", DependencyType.TEST)

    assert [d.name for d in deps.all_of_kind(DependencyType.TEST)] == ["hypothesis", "pytest"]
    assert deps.all_of_kind(DependencyType.PEER) == ()


def test_manifest_is_sorted_by_type_then_name() -> None:
    deps = Dependencies()
    deps.add_dependency("zeta@1", DependencyType.TEST)
    deps.add_dependency("beta@1", DependencyType.RUNTIME)
    deps.add_dependency("alpha@1", DependencyType.TEST)

    manifest = deps.to_manifest()
    assert manifest == {
        "dependencies": [
            {"name": "beta", "version": "1", "type": "runtime"},
            {"name": "alpha", "version": "1", "type": "test"},
            {"name": "zeta", "version": "1", "type": "test"},
        ]
    }


@pytest.mark.parametrize(
    ("spec", "name", "version"),
    [
        ("@scope/pkg@^1.2.0", "@scope/pkg", "^1.2.0"),
        ("@scope/pkg", "@scope/pkg", "*"),
        ("Django@>=3.2,<4.0", "Django", ">=3.2,<4.0"),
        ("requests@~=2.25", "requests", "~=2.25"),
        ("numpy@!=1.19.4", "numpy", "!=1.19.4"),
    ],
)
def test_manifest_round_trips_name_and_range(spec: str, name: str, version: str) -> None:
    deps = Dependencies()
    deps.add_dependency(spec, DependencyType.RUNTIME)

    (entry,) = deps.to_manifest()["dependencies"]
    assert (entry["name"], entry["version"]) == (name, version)
    assert parse_dependency_spec(f"{entry['name']}@{entry['version']}") == (name, version)
