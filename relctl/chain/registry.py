"""Registry lookups: name -> currently registered address."""

from __future__ import annotations

from collections.abc import Mapping
from threading import Lock
from typing import Protocol, runtime_checkable

from relctl.chain.abi import AbiParam, ZERO_ADDRESS, decode_address, encode_function_call
from relctl.chain.rpc import RpcClient, RpcError
from relctl.core.result import Err, Ok, Result

__all__ = ["MockRegistry", "RegistryLookup", "RpcRegistry"]

_GET_ADDRESS_FOR_STRING = "getAddressForString"
_NAME_PARAM = (AbiParam(name="identifier", type="string"),)


@runtime_checkable
class RegistryLookup(Protocol):
    def get_address_for_name(self, name: str) -> Result[str, RpcError]:
        """Return the registered address, or the zero address if unregistered."""
        ...


class RpcRegistry:
    """Reads the on-chain Registry with ``eth_call``."""

    def __init__(self, rpc: RpcClient, registry_address: str) -> None:
        self._rpc = rpc
        self._address = registry_address

    def get_address_for_name(self, name: str) -> Result[str, RpcError]:
        data = encode_function_call(_GET_ADDRESS_FOR_STRING, _NAME_PARAM, [name])
        if isinstance(data, Err):
            return Err(RpcError(method="eth_call", code=0, message=data.error.reason))

        result = self._rpc.call("eth_call", [{"to": self._address, "data": data.value}, "latest"])
        if isinstance(result, Err):
            return result
        if not isinstance(result.value, str):
            return Err(RpcError(method="eth_call", code=0, message="expected hex string result"))
        if result.value in ("0x", ""):
            # No code at the registry address behaves like "not registered".
            return Ok(ZERO_ADDRESS)

        decoded = decode_address(result.value)
        if isinstance(decoded, Err):
            return Err(RpcError(method="eth_call", code=0, message=decoded.error.reason))
        return Ok(decoded.value)


class MockRegistry:
    """In-memory registry; unknown names resolve to the zero address."""

    def __init__(
        self,
        addresses: Mapping[str, str] | None = None,
        *,
        failing: set[str] | None = None,
    ) -> None:
        self._addresses = dict(addresses or {})
        self._failing = failing or set()
        self._lock = Lock()
        self.lookups: list[str] = []

    def get_address_for_name(self, name: str) -> Result[str, RpcError]:
        with self._lock:
            self.lookups.append(name)
        if name in self._failing:
            return Err(RpcError(method="eth_call", code=0, message="connection refused (mock)"))
        return Ok(self._addresses.get(name, ZERO_ADDRESS))
