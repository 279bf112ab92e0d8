"""Dependency-ordered release of changed units.

``release(name)`` walks the dependency graph depth-first and post-order:
every dependency is fully released (deployed, table updated) before the unit
that links against it. Traversal is strictly sequential; the address table
is read and written between steps, so concurrent releases would race on it.

Per unit, the compatibility report decides what happens:

- core contract, no storage change and not new: deploy a new implementation
  and propose ``<Name>Proxy.setImplementation``
- core contract with storage changes or new: deploy implementation and a new
  proxy, hand the proxy to Governance, point the table at the new proxy,
  propose ``Registry.setAddressFor`` then a single (set-and-initialize)
  implementation call
- library: deploy and point the table at the new library
- anything else: keep the registered address
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from relctl.chain.abi import canonical_type, encode_function_call
from relctl.core.config import ReleasePolicyConfig
from relctl.core.result import Err, Ok, Result
from relctl.output.console import ConsoleProtocol, Style
from relctl.release.addresses import AddressTable
from relctl.release.artifacts import INITIALIZE, ArtifactSet
from relctl.release.dependencies import DependencyGraph
from relctl.release.deployer import Deployer
from relctl.release.errors import (
    AddressNotFound,
    CyclicDependency,
    GovernanceProxyForbidden,
    InitializerEncodingFailed,
    ReleaseFailure,
)
from relctl.release.linking import link_artifact
from relctl.release.model import (
    Artifact,
    ContractChange,
    LibraryChange,
    ProposalTx,
    ReleaseState,
)
from relctl.release.proposal import ProposalBuilder
from relctl.release.report import CompatibilityReport

REGISTRY = "Registry"
SET_ADDRESS_FOR = "setAddressFor"
SET_IMPLEMENTATION = "setImplementation"
SET_AND_INITIALIZE_IMPLEMENTATION = "setAndInitializeImplementation"


def select_roots(
    names: Iterable[str], *, core_units: Iterable[str], proxy_suffix: str
) -> tuple[str, ...]:
    """Traversal roots: core units that are fronted by their own proxy.

    Everything else is only ever released as somebody's dependency.
    """
    available = set(names)
    core = set(core_units)
    roots: list[str] = []
    for name in sorted(available):
        if name.endswith(proxy_suffix) or name not in core:
            continue
        if f"{name}{proxy_suffix}" in available:
            roots.append(name)
    return tuple(roots)


class ReleaseOrchestrator:
    def __init__(
        self,
        *,
        artifacts: ArtifactSet,
        graph: DependencyGraph,
        report: CompatibilityReport,
        addresses: AddressTable,
        deployer: Deployer,
        proposal: ProposalBuilder,
        console: ConsoleProtocol,
        initialization_data: Mapping[str, Sequence[object]] | None = None,
        policy: ReleasePolicyConfig | None = None,
    ) -> None:
        self._artifacts = artifacts
        self._graph = graph
        self._report = report
        self._addresses = addresses
        self._deployer = deployer
        self._proposal = proposal
        self._console = console
        self._init_data = initialization_data or {}
        self._policy = policy or ReleasePolicyConfig()

        self._states: dict[str, ReleaseState] = {}
        self._path: list[str] = []
        self.released_order: list[str] = []

    def state(self, name: str) -> ReleaseState:
        return self._states.get(name, ReleaseState.UNVISITED)

    def release_roots(self, roots: Iterable[str]) -> Result[None, ReleaseFailure]:
        for root in roots:
            released = self.release(root)
            if isinstance(released, Err):
                return released
        return Ok(None)

    def release(self, name: str) -> Result[None, ReleaseFailure]:
        state = self.state(name)
        if state is ReleaseState.RELEASED:
            return Ok(None)
        if state is ReleaseState.IN_PROGRESS:
            start = self._path.index(name)
            return Err(CyclicDependency(cycle=(*self._path[start:], name)))

        self._states[name] = ReleaseState.IN_PROGRESS
        self._path.append(name)
        try:
            result = self._release_with_dependencies(name)
        finally:
            self._path.pop()

        if isinstance(result, Err):
            # Back to UNVISITED: a later call retries instead of reporting a cycle.
            del self._states[name]
            return result

        self._states[name] = ReleaseState.RELEASED
        self.released_order.append(name)
        return Ok(None)

    def _release_with_dependencies(self, name: str) -> Result[None, ReleaseFailure]:
        # Dependencies first, so their table entries are canonical at link time.
        dependencies = self._graph.dependencies_of(name)
        for dependency in dependencies:
            released = self.release(dependency)
            if isinstance(released, Err):
                return released
        return self._release_unit(name, dependencies)

    def _release_unit(
        self, name: str, dependencies: Sequence[str]
    ) -> Result[None, ReleaseFailure]:
        artifact = self._artifacts.require(name)
        if isinstance(artifact, Err):
            return artifact
        linked = link_artifact(artifact.value, dependencies, self._addresses)
        if isinstance(linked, Err):
            return linked

        match self._report.get(name):
            case ContractChange() as change:
                return self._release_core_contract(linked.value, change)
            case LibraryChange():
                return self._release_library(linked.value)
            case None:
                return Ok(None)

    def _release_library(self, artifact: Artifact) -> Result[None, ReleaseFailure]:
        deployed = self._deployer.deploy_implementation(artifact, require_version=False)
        if isinstance(deployed, Err):
            return deployed
        self._addresses.set(artifact.name, deployed.value)
        return Ok(None)

    def _release_core_contract(
        self, artifact: Artifact, change: ContractChange
    ) -> Result[None, ReleaseFailure]:
        name = change.name
        proxy_name = f"{name}{self._policy.proxy_suffix}"

        if not change.needs_new_proxy:
            implementation = self._deployer.deploy_implementation(
                artifact, require_version=self._policy.require_version
            )
            if isinstance(implementation, Err):
                return implementation
            self._proposal.append(
                ProposalTx(
                    contract=proxy_name,
                    function=SET_IMPLEMENTATION,
                    args=(implementation.value,),
                )
            )
            self._console.warning(
                f"{name} is not flagged for a new proxy; the proposal upgrades its implementation"
            )
            return Ok(None)

        # A new Governance proxy would require moving ownership of every other
        # proxy, in an order this tool does not control.
        if name == self._policy.governance:
            return Err(GovernanceProxyForbidden(unit=name))

        # Resolve everything that can fail before the first deployment.
        proxy_artifact = self._artifacts.require(proxy_name)
        if isinstance(proxy_artifact, Err):
            return proxy_artifact
        governance = self._new_proxy_owner()
        if isinstance(governance, Err):
            return governance
        init_data = self._encode_initializer(artifact)
        if isinstance(init_data, Err):
            return init_data

        implementation = self._deployer.deploy_implementation(
            artifact, require_version=self._policy.require_version
        )
        if isinstance(implementation, Err):
            return implementation

        proxy = self._deployer.deploy_proxy(proxy_artifact.value)
        if isinstance(proxy, Err):
            return proxy
        transferred = self._deployer.transfer_ownership(proxy_name, proxy.value, governance.value)
        if isinstance(transferred, Err):
            return transferred

        self._addresses.set(name, proxy.value)
        self._proposal.append(
            ProposalTx(
                contract=REGISTRY,
                function=SET_ADDRESS_FOR,
                args=(name, proxy.value),
                description=f"Registry: {name} -> {proxy.value}",
            )
        )

        # Set and initialize in one transaction: the implementation must never
        # be reachable through the proxy while uninitialized.
        if init_data.value is None:
            tx = ProposalTx(
                contract=proxy_name, function=SET_IMPLEMENTATION, args=(implementation.value,)
            )
        else:
            tx = ProposalTx(
                contract=proxy_name,
                function=SET_AND_INITIALIZE_IMPLEMENTATION,
                args=(implementation.value, init_data.value),
            )
        self._console.print(
            f"Add '{proxy_name}.{tx.function}' with {list(tx.args)} to proposal", Style.DIM
        )
        self._proposal.append(tx)
        return Ok(None)

    def _new_proxy_owner(self) -> Result[str, AddressNotFound]:
        governance = self._addresses.get(self._policy.governance)
        # Dry runs skip the ownership transfer, so an unregistered Governance is fine.
        if isinstance(governance, Err) and self._deployer.dry_run:
            return Ok(self._policy.governance)
        return governance

    def _encode_initializer(
        self, artifact: Artifact
    ) -> Result[str | None, InitializerEncodingFailed]:
        if artifact.initializer is None:
            return Ok(None)

        inputs = artifact.initializer.inputs
        args = tuple(self._init_data.get(artifact.name, ()))
        encoded = encode_function_call(INITIALIZE, inputs, args)
        if isinstance(encoded, Err):
            return Err(
                InitializerEncodingFailed(
                    unit=artifact.name,
                    expected=tuple(canonical_type(p) for p in inputs),
                    actual=args,
                    reason=encoded.error.reason,
                )
            )
        return Ok(encoded.value)
