from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from relctl.core.config import ReleasePolicyConfig
from relctl.core.result import Err, Ok, Result
from relctl.release.artifacts import ArtifactSet
from relctl.release.dependencies import DependencyGraph
from relctl.release.errors import CyclicDependency, GovernanceProxyForbidden
from relctl.release.model import ContractChange, DeployStrategy, LibraryChange
from relctl.release.report import CompatibilityReport


@dataclass(frozen=True, slots=True)
class PlannedStep:
    unit: str
    strategy: DeployStrategy
    dependencies: tuple[str, ...]
    # True when the new implementation is set and initialized in one call.
    initialize: bool = False


PlanError = CyclicDependency | GovernanceProxyForbidden


def strategy_for(name: str, report: CompatibilityReport) -> DeployStrategy:
    match report.get(name):
        case ContractChange() as change:
            return "proxy" if change.needs_new_proxy else "implementation"
        case LibraryChange():
            return "library"
        case None:
            return "keep"


def plan_release(
    roots: Iterable[str],
    *,
    graph: DependencyGraph,
    report: CompatibilityReport,
    artifacts: ArtifactSet | None = None,
    policy: ReleasePolicyConfig | None = None,
) -> Result[tuple[PlannedStep, ...], PlanError]:
    """Compute the release order and per-unit strategy without touching the chain.

    Uses the same post-order walk as the orchestrator, so the step order is
    the order units would be released in.
    """
    policy = policy or ReleasePolicyConfig()
    steps: list[PlannedStep] = []
    done: set[str] = set()
    path: list[str] = []

    def visit(name: str) -> Result[None, PlanError]:
        if name in done:
            return Ok(None)
        if name in path:
            return Err(CyclicDependency(cycle=(*path[path.index(name) :], name)))

        path.append(name)
        deps = graph.dependencies_of(name)
        for dep in deps:
            visited = visit(dep)
            if isinstance(visited, Err):
                return visited
        path.pop()

        strategy = strategy_for(name, report)
        if strategy == "proxy" and name == policy.governance:
            return Err(GovernanceProxyForbidden(unit=name))

        initialize = False
        if strategy == "proxy" and artifacts is not None and name in artifacts:
            initialize = artifacts.artifacts[name].initializer is not None

        steps.append(
            PlannedStep(unit=name, strategy=strategy, dependencies=deps, initialize=initialize)
        )
        done.add(name)
        return Ok(None)

    for root in roots:
        visited = visit(root)
        if isinstance(visited, Err):
            return visited
    return Ok(tuple(steps))
