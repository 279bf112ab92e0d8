from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Literal

from relctl.chain.abi import AbiParam


@dataclass(frozen=True, slots=True)
class Initializer:
    """The ``initialize`` function declared by an implementation."""

    inputs: tuple[AbiParam, ...]


@dataclass(frozen=True, slots=True)
class Artifact:
    """A compiled unit, as loaded from the build directory.

    ``bytecode`` may still contain library placeholders; see ``linking``.
    """

    name: str
    bytecode: str
    initializer: Initializer | None
    has_version_number: bool
    constructor_inputs: tuple[AbiParam, ...] = ()


@dataclass(frozen=True, slots=True)
class ContractChange:
    """Report entry for a core contract, classified at load time."""

    name: str
    has_storage_changes: bool
    is_new_unit: bool

    @property
    def needs_new_proxy(self) -> bool:
        return self.has_storage_changes or self.is_new_unit


@dataclass(frozen=True, slots=True)
class LibraryChange:
    name: str


ReportEntry = ContractChange | LibraryChange


class ReleaseState(Enum):
    UNVISITED = auto()
    IN_PROGRESS = auto()
    RELEASED = auto()


DeployStrategy = Literal["keep", "library", "implementation", "proxy"]


@dataclass(frozen=True, slots=True)
class ProposalTx:
    """One governance transaction. ``contract`` is the registry name of the target."""

    contract: str
    function: str
    args: tuple[object, ...]
    value: str = "0"
    description: str | None = None
