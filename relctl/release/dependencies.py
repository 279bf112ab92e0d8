from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from relctl.release.artifacts import ArtifactSet
from relctl.release.linking import placeholder_key, placeholder_names


@dataclass(frozen=True, slots=True)
class DependencyGraph:
    """Direct dependencies per unit. The graph is not validated: cycles are
    detected by whoever walks it."""

    edges: Mapping[str, tuple[str, ...]]

    def dependencies_of(self, name: str) -> tuple[str, ...]:
        return self.edges.get(name, ())

    @classmethod
    def from_mapping(cls, edges: Mapping[str, Sequence[str]]) -> DependencyGraph:
        return cls(edges={name: tuple(dict.fromkeys(deps)) for name, deps in edges.items()})

    @classmethod
    def from_artifacts(cls, artifacts: ArtifactSet) -> DependencyGraph:
        """Derive dependencies from the library placeholders in each artifact.

        Truncated placeholder names resolve to the artifact they were cut from.
        """
        full_names = {placeholder_key(name): name for name in artifacts}
        edges: dict[str, tuple[str, ...]] = {}
        for name in artifacts:
            artifact = artifacts.artifacts[name]
            deps = tuple(full_names.get(dep, dep) for dep in placeholder_names(artifact.bytecode))
            if deps:
                edges[name] = deps
        return cls(edges=edges)
