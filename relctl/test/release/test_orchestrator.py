from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from relctl.chain.abi import AbiParam, encode_function_call
from relctl.chain.backend import MockExecutionBackend
from relctl.core.config import REGISTRY_ADDRESS, ReleasePolicyConfig
from relctl.core.result import Err, Ok
from relctl.output.console import MockConsole
from relctl.release.addresses import AddressTable
from relctl.release.artifacts import ArtifactSet
from relctl.release.dependencies import DependencyGraph
from relctl.release.deployer import TRANSFER_OWNERSHIP, Deployer
from relctl.release.errors import (
    AddressNotFound,
    ArtifactNotFound,
    CyclicDependency,
    DeploymentFailed,
    GovernanceProxyForbidden,
    InitializerEncodingFailed,
    MissingVersionNumber,
)
from relctl.release.model import (
    Artifact,
    ContractChange,
    Initializer,
    LibraryChange,
    ProposalTx,
    ReleaseState,
    ReportEntry,
)
from relctl.release.orchestrator import ReleaseOrchestrator, select_roots
from relctl.release.proposal import ProposalBuilder
from relctl.release.report import CompatibilityReport

GOVERNANCE = "0x" + "99" * 20
OLD_EXCHANGE = "0x" + "ee" * 20
REGISTRY_INIT = (AbiParam(name="registryAddress", type="address"),)


def _addr(n: int) -> str:
    return "0x" + f"{0x1000 + n:040x}"


def _placeholder(name: str) -> str:
    return ("__" + name).ljust(40, "_")


def _contract(
    name: str,
    *,
    bytecode: str | None = None,
    init: tuple[AbiParam, ...] | None = None,
    version: bool = True,
) -> Artifact:
    return Artifact(
        name=name,
        bytecode=bytecode or f"0x{name.encode().hex()}",
        initializer=None if init is None else Initializer(inputs=init),
        has_version_number=version,
    )


def _proxy(name: str) -> Artifact:
    return _contract(f"{name}Proxy", version=False)


@dataclass
class _Harness:
    orchestrator: ReleaseOrchestrator
    backend: MockExecutionBackend
    table: AddressTable
    proposal: ProposalBuilder
    deployer: Deployer
    console: MockConsole


def _harness(
    artifacts: Sequence[Artifact],
    report: Mapping[str, ReportEntry],
    *,
    table: Mapping[str, str] | None = None,
    edges: Mapping[str, Sequence[str]] | None = None,
    init_data: Mapping[str, Sequence[object]] | None = None,
    backend: MockExecutionBackend | None = None,
    dry_run: bool = False,
) -> _Harness:
    artifact_set = ArtifactSet(artifacts={a.name: a for a in artifacts})
    graph = (
        DependencyGraph.from_mapping(edges)
        if edges is not None
        else DependencyGraph.from_artifacts(artifact_set)
    )
    backend = backend or MockExecutionBackend()
    console = MockConsole()
    addresses = AddressTable(
        table if table is not None else {"Governance": GOVERNANCE, "Exchange": OLD_EXCHANGE}
    )
    deployer = Deployer(backend, console, dry_run=dry_run, stand_in_address=REGISTRY_ADDRESS)
    proposal = ProposalBuilder()
    orchestrator = ReleaseOrchestrator(
        artifacts=artifact_set,
        graph=graph,
        report=CompatibilityReport(entries=dict(report)),
        addresses=addresses,
        deployer=deployer,
        proposal=proposal,
        console=console,
        initialization_data=init_data,
        policy=ReleasePolicyConfig(),
    )
    return _Harness(orchestrator, backend, addresses, proposal, deployer, console)


class TestImplementationOnly:
    def test_unchanged_storage_upgrades_implementation(self) -> None:
        h = _harness(
            [_contract("Exchange"), _proxy("Exchange")],
            {"Exchange": ContractChange("Exchange", False, False)},
        )

        result = h.orchestrator.release("Exchange")

        assert result == Ok(None)
        assert h.proposal.finalize() == (
            ProposalTx(contract="ExchangeProxy", function="setImplementation", args=(_addr(1),)),
        )
        assert len(h.backend.deployments) == 1
        assert h.backend.transactions == []
        # The table keeps pointing at the existing proxy.
        assert h.table.get("Exchange") == Ok(OLD_EXCHANGE)
        assert h.console.has_warning()

    def test_missing_version_number(self) -> None:
        h = _harness(
            [_contract("Exchange", version=False), _proxy("Exchange")],
            {"Exchange": ContractChange("Exchange", False, False)},
        )

        result = h.orchestrator.release("Exchange")

        assert result == Err(MissingVersionNumber(unit="Exchange"))
        assert h.backend.deployments == []
        assert len(h.proposal) == 0


class TestNewProxy:
    def test_storage_change_deploys_proxy_and_registers_it(self) -> None:
        h = _harness(
            [_contract("Exchange"), _proxy("Exchange")],
            {"Exchange": ContractChange("Exchange", True, False)},
        )

        result = h.orchestrator.release("Exchange")

        assert result == Ok(None)
        implementation, proxy = _addr(1), _addr(2)
        assert [b for b, _ in h.backend.deployments] == [
            _contract("Exchange").bytecode,
            _proxy("Exchange").bytecode,
        ]
        transfer = encode_function_call(
            TRANSFER_OWNERSHIP, (AbiParam(name="newOwner", type="address"),), [GOVERNANCE]
        )
        assert isinstance(transfer, Ok)
        assert h.backend.transactions == [(proxy, transfer.value)]
        assert h.table.get("Exchange") == Ok(proxy)
        assert h.proposal.finalize() == (
            ProposalTx(
                contract="Registry",
                function="setAddressFor",
                args=("Exchange", proxy),
                description=f"Registry: Exchange -> {proxy}",
            ),
            ProposalTx(
                contract="ExchangeProxy", function="setImplementation", args=(implementation,)
            ),
        )

    def test_new_unit_is_initialized_in_the_same_call(self) -> None:
        h = _harness(
            [_contract("StableTokenEUR", init=REGISTRY_INIT), _proxy("StableTokenEUR")],
            {"StableTokenEUR": ContractChange("StableTokenEUR", False, True)},
            init_data={"StableTokenEUR": [REGISTRY_ADDRESS]},
        )

        result = h.orchestrator.release("StableTokenEUR")

        assert result == Ok(None)
        expected = encode_function_call("initialize", REGISTRY_INIT, [REGISTRY_ADDRESS])
        assert isinstance(expected, Ok)
        txs = h.proposal.finalize()
        assert [tx.function for tx in txs] == [
            "setAddressFor",
            "setAndInitializeImplementation",
        ]
        assert txs[1].contract == "StableTokenEURProxy"
        assert txs[1].args == (_addr(1), expected.value)

    def test_initializer_mismatch_fails_before_deploying(self) -> None:
        h = _harness(
            [_contract("StableTokenEUR", init=REGISTRY_INIT), _proxy("StableTokenEUR")],
            {"StableTokenEUR": ContractChange("StableTokenEUR", False, True)},
        )

        result = h.orchestrator.release("StableTokenEUR")

        assert isinstance(result, Err)
        assert result.error == InitializerEncodingFailed(
            unit="StableTokenEUR",
            expected=("address",),
            actual=(),
            reason="expected 1 argument(s), got 0",
        )
        assert h.backend.deployments == []
        assert len(h.proposal) == 0

    def test_governance_proxy_is_refused(self) -> None:
        h = _harness(
            [_contract("Governance"), _proxy("Governance")],
            {"Governance": ContractChange("Governance", True, False)},
        )

        result = h.orchestrator.release("Governance")

        assert result == Err(GovernanceProxyForbidden(unit="Governance"))
        assert h.backend.deployments == []
        assert h.proposal.finalize() == ()

    def test_governance_implementation_upgrade_is_allowed(self) -> None:
        h = _harness(
            [_contract("Governance"), _proxy("Governance")],
            {"Governance": ContractChange("Governance", False, False)},
        )
        assert h.orchestrator.release("Governance") == Ok(None)
        assert h.proposal.finalize()[0].contract == "GovernanceProxy"

    def test_missing_proxy_artifact(self) -> None:
        h = _harness(
            [_contract("Exchange")], {"Exchange": ContractChange("Exchange", True, False)}
        )

        result = h.orchestrator.release("Exchange")

        assert result == Err(ArtifactNotFound(unit="ExchangeProxy"))
        assert h.backend.deployments == []

    def test_missing_governance_address(self) -> None:
        h = _harness(
            [_contract("Exchange"), _proxy("Exchange")],
            {"Exchange": ContractChange("Exchange", True, False)},
            table={},
        )

        result = h.orchestrator.release("Exchange")

        assert result == Err(AddressNotFound(unit="Governance"))
        assert h.backend.deployments == []

    def test_proxy_deploy_failure_keeps_executed_steps(self) -> None:
        backend = MockExecutionBackend(fail_on_deploy={_proxy("Exchange").bytecode})
        h = _harness(
            [_contract("Exchange"), _proxy("Exchange")],
            {"Exchange": ContractChange("Exchange", True, False)},
            backend=backend,
        )

        result = h.orchestrator.release("Exchange")

        assert isinstance(result, Err)
        assert isinstance(result.error, DeploymentFailed)
        assert result.error.unit == "ExchangeProxy"
        assert h.deployer.executed == [f"Exchange at {_addr(1)}"]
        assert len(h.proposal) == 0

    def test_dry_run_deploys_nothing(self) -> None:
        h = _harness(
            [_contract("Exchange"), _proxy("Exchange")],
            {"Exchange": ContractChange("Exchange", True, False)},
            dry_run=True,
        )

        result = h.orchestrator.release("Exchange")

        assert result == Ok(None)
        assert h.backend.deployments == []
        assert h.backend.transactions == []
        assert h.table.get("Exchange") == Ok(REGISTRY_ADDRESS)
        assert len(h.proposal) == 2

    def test_dry_run_does_not_need_governance_address(self) -> None:
        h = _harness(
            [_contract("Exchange"), _proxy("Exchange")],
            {"Exchange": ContractChange("Exchange", True, False)},
            table={},
            dry_run=True,
        )

        result = h.orchestrator.release("Exchange")

        assert result == Ok(None)
        assert h.backend.transactions == []
        assert h.table.get("Exchange") == Ok(REGISTRY_ADDRESS)
        assert len(h.proposal) == 2
        assert h.console.find("Transferring ownership of ExchangeProxy to Governance")


class TestTraversal:
    def test_changed_library_is_deployed_first_and_linked(self) -> None:
        exchange = _contract("Exchange", bytecode="0x60" + _placeholder("FixidityLib"))
        h = _harness(
            [exchange, _proxy("Exchange"), _contract("FixidityLib", version=False)],
            {
                "Exchange": ContractChange("Exchange", False, False),
                "FixidityLib": LibraryChange("FixidityLib"),
            },
        )

        result = h.orchestrator.release("Exchange")

        assert result == Ok(None)
        library = _addr(1)
        assert h.table.get("FixidityLib") == Ok(library)
        assert h.backend.deployments[1][0] == "0x60" + library.removeprefix("0x")
        assert h.orchestrator.released_order == ["FixidityLib", "Exchange"]

    def test_unchanged_dependency_links_against_known_address(self) -> None:
        known = "0x" + "12" * 20
        exchange = _contract("Exchange", bytecode="0x60" + _placeholder("FixidityLib"))
        h = _harness(
            [exchange, _proxy("Exchange"), _contract("FixidityLib")],
            {"Exchange": ContractChange("Exchange", False, False)},
            table={"FixidityLib": known, "Governance": GOVERNANCE},
        )

        assert h.orchestrator.release("Exchange") == Ok(None)
        assert h.backend.deployments == [("0x60" + "12" * 20, _addr(1))]

    def test_unknown_dependency_address(self) -> None:
        exchange = _contract("Exchange", bytecode="0x60" + _placeholder("FixidityLib"))
        h = _harness(
            [exchange, _proxy("Exchange"), _contract("FixidityLib")],
            {"Exchange": ContractChange("Exchange", False, False)},
            table={"Governance": GOVERNANCE},
        )

        result = h.orchestrator.release("Exchange")

        assert result == Err(AddressNotFound(unit="FixidityLib"))
        assert h.backend.deployments == []

    def test_failed_unit_can_be_retried(self) -> None:
        exchange = _contract("Exchange", bytecode="0x60" + _placeholder("FixidityLib"))
        h = _harness(
            [exchange, _proxy("Exchange"), _contract("FixidityLib")],
            {"Exchange": ContractChange("Exchange", False, False)},
            table={"Governance": GOVERNANCE},
        )
        assert h.orchestrator.release("Exchange") == Err(AddressNotFound(unit="FixidityLib"))
        assert h.orchestrator.state("Exchange") is ReleaseState.UNVISITED

        h.table.set("FixidityLib", "0x" + "f1" * 20)
        result = h.orchestrator.release("Exchange")

        assert result == Ok(None)
        assert h.orchestrator.state("Exchange") is ReleaseState.RELEASED
        assert h.orchestrator.released_order == ["FixidityLib", "Exchange"]
        assert h.backend.deployments[0][0] == "0x60" + "f1" * 20

    def test_shared_dependency_released_once(self) -> None:
        lib = _placeholder("LinkedList")
        h = _harness(
            [
                _contract("Exchange", bytecode="0x01" + lib),
                _contract("Reserve", bytecode="0x02" + lib),
                _contract("LinkedList"),
                _proxy("Exchange"),
                _proxy("Reserve"),
            ],
            {
                "Exchange": ContractChange("Exchange", False, False),
                "Reserve": ContractChange("Reserve", False, False),
                "LinkedList": LibraryChange("LinkedList"),
            },
        )

        result = h.orchestrator.release_roots(["Exchange", "Reserve"])

        assert result == Ok(None)
        assert h.orchestrator.released_order == ["LinkedList", "Exchange", "Reserve"]
        assert len(h.backend.deployments) == 3
        assert [tx.contract for tx in h.proposal.finalize()] == ["ExchangeProxy", "ReserveProxy"]

    def test_release_is_idempotent(self) -> None:
        h = _harness(
            [_contract("Exchange"), _proxy("Exchange")],
            {"Exchange": ContractChange("Exchange", False, False)},
        )

        assert h.orchestrator.release("Exchange") == Ok(None)
        assert h.orchestrator.release("Exchange") == Ok(None)

        assert len(h.backend.deployments) == 1
        assert len(h.proposal) == 1
        assert h.orchestrator.state("Exchange") is ReleaseState.RELEASED

    def test_unchanged_unit_is_a_no_op(self) -> None:
        h = _harness([_contract("Accounts"), _proxy("Accounts")], {})

        assert h.orchestrator.release("Accounts") == Ok(None)
        assert h.backend.deployments == []
        assert len(h.proposal) == 0
        assert h.orchestrator.released_order == ["Accounts"]

    def test_cycle_is_detected(self) -> None:
        h = _harness(
            [_contract("A"), _contract("B")],
            {"A": LibraryChange("A"), "B": LibraryChange("B")},
            edges={"A": ["B"], "B": ["A"]},
        )

        result = h.orchestrator.release("A")

        assert result == Err(CyclicDependency(cycle=("A", "B", "A")))
        assert h.backend.deployments == []
        assert h.orchestrator.state("A") is ReleaseState.UNVISITED
        assert h.orchestrator.state("B") is ReleaseState.UNVISITED

    def test_missing_artifact(self) -> None:
        h = _harness([], {})
        result = h.orchestrator.release("Exchange")
        assert result == Err(ArtifactNotFound(unit="Exchange"))


class TestSelectRoots:
    def test_core_units_with_own_proxy(self) -> None:
        names = ["Exchange", "ExchangeProxy", "Reserve", "FixidityLib", "Helper", "HelperProxy"]

        roots = select_roots(names, core_units=("Exchange", "Reserve"), proxy_suffix="Proxy")

        assert roots == ("Exchange",)

    def test_proxies_are_never_roots(self) -> None:
        names = ["RegistryProxy", "RegistryProxyProxy"]
        roots = select_roots(names, core_units=("RegistryProxy",), proxy_suffix="Proxy")
        assert roots == ()
