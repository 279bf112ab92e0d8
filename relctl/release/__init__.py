"""Release domain: inputs, dependency walk, deployments and the proposal."""

from .addresses import AddressTable
from .artifacts import ArtifactSet, load_artifacts
from .dependencies import DependencyGraph
from .deployer import Deployer
from .errors import ReleaseFailure
from .orchestrator import ReleaseOrchestrator, select_roots
from .planner import PlannedStep, plan_release
from .proposal import ProposalBuilder, proposal_payload, write_proposal_file
from .report import CompatibilityReport, load_report
from .service import (
    ReleaseInputPaths,
    ReleaseInputs,
    ReleaseOutcome,
    load_release_inputs,
    make_release,
)

__all__ = [
    "AddressTable",
    "ArtifactSet",
    "CompatibilityReport",
    "DependencyGraph",
    "Deployer",
    "PlannedStep",
    "ProposalBuilder",
    "ReleaseFailure",
    "ReleaseInputPaths",
    "ReleaseInputs",
    "ReleaseOrchestrator",
    "ReleaseOutcome",
    "load_artifacts",
    "load_release_inputs",
    "load_report",
    "make_release",
    "plan_release",
    "proposal_payload",
    "select_roots",
    "write_proposal_file",
]
