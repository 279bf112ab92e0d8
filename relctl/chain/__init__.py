"""Chain adapters: ABI encoding, JSON-RPC transport, execution, registry."""

from .backend import BackendError, ExecutionBackend, MockExecutionBackend, RpcExecutionBackend
from .registry import MockRegistry, RegistryLookup, RpcRegistry
from .rpc import MockRpcClient, RealRpcClient, RpcClient, RpcError

__all__ = [
    "BackendError",
    "ExecutionBackend",
    "MockExecutionBackend",
    "MockRegistry",
    "MockRpcClient",
    "RealRpcClient",
    "RegistryLookup",
    "RpcClient",
    "RpcError",
    "RpcExecutionBackend",
    "RpcRegistry",
]
