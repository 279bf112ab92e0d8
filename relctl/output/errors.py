"""Error presentation utilities.

Centralized release failure formatting and exit code mapping.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from relctl.core.errors import ErrorCode
from relctl.output.console import Style
from relctl.release.errors import (
    AddressNotFound,
    ArtifactNotFound,
    CyclicDependency,
    DeploymentFailed,
    GovernanceProxyForbidden,
    InitializerEncodingFailed,
    InvalidInput,
    MissingVersionNumber,
    ProposalWriteFailed,
    RegistryLookupFailed,
    ReleaseFailure,
    UnsupportedConstructor,
)

if TYPE_CHECKING:
    from relctl.output.console import ConsoleProtocol

__all__ = ["print_release_failure", "release_failure_exit_code"]


def print_release_failure(failure: ReleaseFailure, console: ConsoleProtocol) -> None:
    """Print a release failure with a hint where one helps."""
    match failure:
        case AddressNotFound(unit=unit):
            console.error(f"{unit}: no known address")
            console.print(
                "hint: register it on chain or pass its address with --libraries", Style.DIM
            )
        case RegistryLookupFailed(unit=unit, reason=reason):
            console.error(f"{unit}: registry lookup failed ({reason})")
        case ArtifactNotFound(unit=unit, build_dir=build_dir):
            where = f" in {build_dir}" if build_dir else ""
            console.error(f"{unit}: build artifact not found{where}")
        case InvalidInput(message=message, source=source):
            console.error(message if source is None else f"{source}: {message}")
        case CyclicDependency(cycle=cycle):
            console.error(f"dependency cycle: {' -> '.join(cycle)}")
        case GovernanceProxyForbidden(unit=unit):
            console.error(f"{unit}: refusing to deploy a new proxy for the governance unit")
            console.print(
                "hint: governance proxies must be replaced manually, outside a proposal",
                Style.DIM,
            )
        case MissingVersionNumber(unit=unit):
            console.error(f"{unit}: artifact has no getVersionNumber()")
        case UnsupportedConstructor(unit=unit, inputs=inputs):
            console.error(f"{unit}: unsupported constructor ({', '.join(inputs)})")
        case InitializerEncodingFailed(unit=unit, expected=expected, actual=actual, reason=reason):
            console.error(f"{unit}: cannot encode initialize() arguments: {reason}")
            console.print(f"expected: ({', '.join(expected)})", Style.DIM)
            console.print(f"got: {list(actual)!r}", Style.DIM)
        case DeploymentFailed(unit=unit, step=step, reason=reason):
            console.error(f"{unit}: {step} failed ({reason})")
        case ProposalWriteFailed(path=path, reason=reason):
            console.error(f"failed to write proposal {path}: {reason}")


def release_failure_exit_code(failure: ReleaseFailure) -> int:
    """Get exit code for a release failure."""
    match failure:
        case (
            InvalidInput()
            | AddressNotFound()
            | CyclicDependency()
            | GovernanceProxyForbidden()
            | MissingVersionNumber()
            | UnsupportedConstructor()
            | InitializerEncodingFailed()
        ):
            return int(ErrorCode.USER_ERROR)
        case ArtifactNotFound():
            return int(ErrorCode.ENV_ERROR)
        case DeploymentFailed():
            return int(ErrorCode.DEPLOY_ERROR)
        case RegistryLookupFailed():
            return int(ErrorCode.NETWORK_ERROR)
        case ProposalWriteFailed():
            return int(ErrorCode.IO_ERROR)
