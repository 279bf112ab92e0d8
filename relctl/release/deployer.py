"""Deployment steps executed directly against the chain.

Unlike proposal entries, these happen immediately and are not rolled back if
a later step fails. ``executed`` records them so the operator can see what
was already done.
"""

from __future__ import annotations

from relctl.chain.abi import AbiParam, encode_arguments, encode_function_call
from relctl.chain.backend import ExecutionBackend
from relctl.core.result import Err, Ok, Result
from relctl.output.console import ConsoleProtocol, Style
from relctl.release.errors import (
    DeploymentFailed,
    MissingVersionNumber,
    UnsupportedConstructor,
)
from relctl.release.model import Artifact

TRANSFER_OWNERSHIP = "_transferOwnership"
_OWNER_PARAM = (AbiParam(name="newOwner", type="address"),)

DeployImplementationError = MissingVersionNumber | UnsupportedConstructor | DeploymentFailed


class Deployer:
    def __init__(
        self,
        backend: ExecutionBackend,
        console: ConsoleProtocol,
        *,
        dry_run: bool,
        stand_in_address: str,
        from_address: str | None = None,
    ) -> None:
        self._backend = backend
        self._console = console
        self._dry_run = dry_run
        # Dry runs "deploy" to an address that is known to hold code.
        self._stand_in = stand_in_address
        self._from = from_address
        self.executed: list[str] = []

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def deploy_implementation(
        self, artifact: Artifact, *, require_version: bool = True
    ) -> Result[str, DeployImplementationError]:
        # Any contract being changed must bump its version number.
        if require_version and not artifact.has_version_number:
            return Err(MissingVersionNumber(unit=artifact.name))

        bytecode = _with_constructor_args(artifact)
        if isinstance(bytecode, Err):
            return bytecode

        self._console.print(f"Deploying {artifact.name}")
        return self._deploy(artifact.name, bytecode.value)

    def deploy_proxy(self, proxy: Artifact) -> Result[str, DeploymentFailed]:
        self._console.print(f"Deploying {proxy.name}")
        return self._deploy(proxy.name, proxy.bytecode)

    def transfer_ownership(
        self, proxy_name: str, proxy_address: str, new_owner: str
    ) -> Result[None, DeploymentFailed]:
        self._console.print(f"Transferring ownership of {proxy_name} to {new_owner}")
        if self._dry_run:
            return Ok(None)

        data = encode_function_call(TRANSFER_OWNERSHIP, _OWNER_PARAM, [new_owner])
        if isinstance(data, Err):
            reason = data.error.reason
            return Err(DeploymentFailed(unit=proxy_name, step="transfer ownership", reason=reason))

        sent = self._backend.transact(proxy_address, data.value, from_address=self._from)
        if isinstance(sent, Err):
            reason = str(sent.error)
            return Err(DeploymentFailed(unit=proxy_name, step="transfer ownership", reason=reason))
        self.executed.append(f"{proxy_name}.{TRANSFER_OWNERSHIP}({new_owner})")
        return Ok(None)

    def _deploy(self, name: str, bytecode: str) -> Result[str, DeploymentFailed]:
        if self._dry_run:
            return Ok(self._stand_in)

        deployed = self._backend.deploy(bytecode, from_address=self._from)
        if isinstance(deployed, Err):
            return Err(DeploymentFailed(unit=name, step="deploy", reason=str(deployed.error)))
        self.executed.append(f"{name} at {deployed.value}")
        self._console.print(f"{name} deployed at {deployed.value}", Style.DIM)
        return Ok(deployed.value)


def _with_constructor_args(artifact: Artifact) -> Result[str, UnsupportedConstructor]:
    """Append constructor arguments to the creation bytecode.

    Implementations take either nothing or the single ``bool test`` flag,
    which is always false for a real release.
    """
    inputs = artifact.constructor_inputs
    if not inputs:
        return Ok(artifact.bytecode)
    if len(inputs) == 1 and inputs[0].type == "bool":
        encoded = encode_arguments(inputs, [False])
        if isinstance(encoded, Err):
            return Err(UnsupportedConstructor(unit=artifact.name, inputs=("bool",)))
        return Ok(artifact.bytecode + encoded.value.hex())
    return Err(UnsupportedConstructor(unit=artifact.name, inputs=tuple(p.type for p in inputs)))
