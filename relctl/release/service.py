from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from relctl.chain.backend import ExecutionBackend
from relctl.chain.registry import RegistryLookup
from relctl.core.config import ReleasePolicyConfig
from relctl.core.result import Err, Ok, Result
from relctl.output.console import ConsoleProtocol, Style
from relctl.release.addresses import AddressTable
from relctl.release.artifacts import ArtifactSet, load_artifacts
from relctl.release.dependencies import DependencyGraph
from relctl.release.deployer import Deployer
from relctl.release.errors import ReleaseFailure
from relctl.release.extras import ExtraTx, load_extras, resolve_extras
from relctl.release.inputs import load_initialization_data, load_library_mapping
from relctl.release.model import ProposalTx
from relctl.release.orchestrator import ReleaseOrchestrator, select_roots
from relctl.release.planner import PlannedStep, plan_release
from relctl.release.proposal import ProposalBuilder
from relctl.release.report import CompatibilityReport, load_report


@dataclass(frozen=True, slots=True)
class ReleaseInputPaths:
    report: Path
    build_dir: Path
    initialize_data: Path | None = None
    libraries: Path | None = None
    extra: Path | None = None


@dataclass(frozen=True, slots=True)
class ReleaseInputs:
    """Everything loaded once at start; never mutated during the run."""

    report: CompatibilityReport
    artifacts: ArtifactSet
    graph: DependencyGraph
    library_mapping: dict[str, str]
    initialization_data: dict[str, tuple[object, ...]]
    extras: tuple[ExtraTx, ...] = ()


@dataclass(frozen=True, slots=True)
class ReleaseOutcome:
    roots: tuple[str, ...]
    released: tuple[str, ...]
    proposal: tuple[ProposalTx, ...]
    addresses: dict[str, str]


def load_release_inputs(paths: ReleaseInputPaths) -> Result[ReleaseInputs, ReleaseFailure]:
    report = load_report(paths.report)
    if isinstance(report, Err):
        return report

    artifacts = load_artifacts(paths.build_dir)
    if isinstance(artifacts, Err):
        return artifacts

    libraries = load_library_mapping(paths.libraries)
    if isinstance(libraries, Err):
        return libraries

    init_data = load_initialization_data(paths.initialize_data)
    if isinstance(init_data, Err):
        return init_data

    extras: tuple[ExtraTx, ...] = ()
    if paths.extra is not None:
        loaded = load_extras(paths.extra)
        if isinstance(loaded, Err):
            return loaded
        extras = loaded.value

    return Ok(
        ReleaseInputs(
            report=report.value,
            artifacts=artifacts.value,
            graph=DependencyGraph.from_artifacts(artifacts.value),
            library_mapping=libraries.value,
            initialization_data=init_data.value,
            extras=extras,
        )
    )


def plan(
    inputs: ReleaseInputs, *, policy: ReleasePolicyConfig
) -> Result[tuple[PlannedStep, ...], ReleaseFailure]:
    roots = select_roots(
        inputs.artifacts.names, core_units=policy.core_units, proxy_suffix=policy.proxy_suffix
    )
    return plan_release(
        roots,
        graph=inputs.graph,
        report=inputs.report,
        artifacts=inputs.artifacts,
        policy=policy,
    )


def make_release(
    inputs: ReleaseInputs,
    *,
    registry: RegistryLookup,
    backend: ExecutionBackend,
    console: ConsoleProtocol,
    policy: ReleasePolicyConfig,
    dry_run: bool,
    stand_in_address: str,
    from_address: str | None = None,
) -> Result[ReleaseOutcome, ReleaseFailure]:
    """Seed addresses, release every root, append extras, return the proposal.

    The first failure aborts the run. Deployments already executed stay on
    chain; they are listed so the operator can account for them.
    """
    console.header("Resolving registered addresses")
    seeded = AddressTable.seed(inputs.artifacts.names, registry, inputs.library_mapping)
    if isinstance(seeded, Err):
        return seeded
    addresses = seeded.value

    roots = select_roots(
        inputs.artifacts.names, core_units=policy.core_units, proxy_suffix=policy.proxy_suffix
    )
    console.print(f"release roots: {', '.join(roots) or '(none)'}", Style.DIM)

    deployer = Deployer(
        backend,
        console,
        dry_run=dry_run,
        stand_in_address=stand_in_address,
        from_address=from_address,
    )
    proposal = ProposalBuilder()
    orchestrator = ReleaseOrchestrator(
        artifacts=inputs.artifacts,
        graph=inputs.graph,
        report=inputs.report,
        addresses=addresses,
        deployer=deployer,
        proposal=proposal,
        console=console,
        initialization_data=inputs.initialization_data,
        policy=policy,
    )

    console.header("Releasing")
    released = orchestrator.release_roots(roots)
    if isinstance(released, Err):
        _report_side_effects(deployer, console)
        return released

    extras = resolve_extras(inputs.extras, addresses)
    if isinstance(extras, Err):
        _report_side_effects(deployer, console)
        return extras
    proposal.extend(extras.value)

    return Ok(
        ReleaseOutcome(
            roots=roots,
            released=tuple(orchestrator.released_order),
            proposal=proposal.finalize(),
            addresses=addresses.as_dict(),
        )
    )


def _report_side_effects(deployer: Deployer, console: ConsoleProtocol) -> None:
    if not deployer.executed:
        return
    console.warning(
        f"{len(deployer.executed)} on-chain step(s) were executed before the failure "
        "and are not rolled back:"
    )
    for step in deployer.executed:
        console.print(f"  {step}", Style.DIM)
