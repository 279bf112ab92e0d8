"""Failures that abort a release run.

Every failure names the unit it concerns (where there is one) so an operator
can act on the message without re-running with extra tracing.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AddressNotFound:
    unit: str


@dataclass(frozen=True, slots=True)
class RegistryLookupFailed:
    unit: str
    reason: str


@dataclass(frozen=True, slots=True)
class ArtifactNotFound:
    unit: str
    build_dir: str | None = None


@dataclass(frozen=True, slots=True)
class InvalidInput:
    message: str
    source: str | None = None


@dataclass(frozen=True, slots=True)
class CyclicDependency:
    # First and last entries are the same unit: ("A", "B", "A").
    cycle: tuple[str, ...]

    @property
    def unit(self) -> str:
        return self.cycle[0]


@dataclass(frozen=True, slots=True)
class GovernanceProxyForbidden:
    unit: str


@dataclass(frozen=True, slots=True)
class MissingVersionNumber:
    unit: str


@dataclass(frozen=True, slots=True)
class UnsupportedConstructor:
    unit: str
    inputs: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class InitializerEncodingFailed:
    unit: str
    expected: tuple[str, ...]
    actual: tuple[object, ...]
    reason: str


@dataclass(frozen=True, slots=True)
class DeploymentFailed:
    unit: str
    step: str
    reason: str


@dataclass(frozen=True, slots=True)
class ProposalWriteFailed:
    path: str
    reason: str


ReleaseFailure = (
    AddressNotFound
    | RegistryLookupFailed
    | ArtifactNotFound
    | InvalidInput
    | CyclicDependency
    | GovernanceProxyForbidden
    | MissingVersionNumber
    | UnsupportedConstructor
    | InitializerEncodingFailed
    | DeploymentFailed
    | ProposalWriteFailed
)
