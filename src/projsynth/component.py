from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from projsynth.project import Project


class Component:
    """
    A unit of project functionality.

    Constructing a component registers it with its project; there is no separate "add" step. Subclasses
    override any of the three lifecycle hooks, which the project calls in registration order:

    - `pre_synthesize()`: finalize configuration that depends on sibling components.
    - `synthesize()`: render managed files and request their writes.
    - `post_synthesize()`: side effects outside the filesystem (installers, environments).

    Constructors must not touch the filesystem; writes go through managed files.
    """

    def __init__(self, project: Project, *, name: str | None = None) -> None:
        self.project = project
        self._name = name
        project._register_component(self)

    @property
    def name(self) -> str:
        return self._name or type(self).__name__

    def __repr__(self) -> str:
        return f"<{self.name}>"

    def pre_synthesize(self) -> None:
        pass

    def synthesize(self) -> None:
        pass

    def post_synthesize(self) -> None:
        pass


__all__ = ["Component"]
