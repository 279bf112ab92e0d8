"""JSON-RPC client abstraction.

This module provides:
- RpcClient: Protocol for JSON-RPC calls (injectable for tests)
- RealRpcClient: HTTP implementation using urllib
- MockRpcClient: Scripted implementation for testing
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from collections.abc import Callable
from dataclasses import dataclass
from itertools import count
from threading import Lock
from typing import Protocol, runtime_checkable

from relctl import __version__
from relctl.core.result import Err, Ok, Result
from relctl.core.structured import as_str_dict, get_str

__all__ = [
    "RpcClient",
    "RpcError",
    "RealRpcClient",
    "MockRpcClient",
]


@dataclass(frozen=True, slots=True)
class RpcError:
    """JSON-RPC failure.

    Attributes:
        method: The RPC method that failed
        code: JSON-RPC error code, HTTP status, or 0 for transport errors
        message: Human-readable error message
    """

    method: str
    code: int
    message: str

    def __str__(self) -> str:
        if self.code:
            return f"{self.method}: {self.message} (code {self.code})"
        return f"{self.method}: {self.message}"


@runtime_checkable
class RpcClient(Protocol):
    def call(self, method: str, params: list[object]) -> Result[object, RpcError]:
        """Invoke ``method`` and return the ``result`` member of the response."""
        ...


class RealRpcClient:
    """JSON-RPC over HTTP(S) using urllib.

    Safe to share between threads: each call opens its own connection.
    """

    def __init__(self, url: str, *, timeout: float = 30.0) -> None:
        self.url = url
        self.timeout = timeout
        self._ssl_context = ssl.create_default_context()
        self._ids = count(1)
        self._ids_lock = Lock()

    def _next_id(self) -> int:
        with self._ids_lock:
            return next(self._ids)

    def call(self, method: str, params: list[object]) -> Result[object, RpcError]:
        body = json.dumps(
            {"jsonrpc": "2.0", "id": self._next_id(), "method": method, "params": params}
        ).encode("utf-8")
        req = urllib.request.Request(
            self.url,
            data=body,
            headers={
                "Content-Type": "application/json",
                "User-Agent": f"relctl/{__version__}",
            },
            method="POST",
        )

        try:
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context if self.url.startswith("https") else None,
            ) as response:
                raw = response.read()
        except urllib.error.HTTPError as e:
            return Err(RpcError(method=method, code=e.code, message=str(e.reason)))
        except urllib.error.URLError as e:
            return Err(RpcError(method=method, code=0, message=str(e.reason)))
        except TimeoutError:
            return Err(RpcError(method=method, code=0, message="request timed out"))
        except OSError as e:
            return Err(RpcError(method=method, code=0, message=str(e)))

        try:
            obj: object = json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(RpcError(method=method, code=0, message=f"invalid JSON response: {e}"))

        data = as_str_dict(obj)
        if data is None:
            return Err(RpcError(method=method, code=0, message="expected a JSON object"))

        error = as_str_dict(data.get("error"))
        if error is not None:
            code = error.get("code")
            return Err(
                RpcError(
                    method=method,
                    code=code if isinstance(code, int) else 0,
                    message=get_str(error, "message") or "unknown error",
                )
            )

        if "result" not in data:
            return Err(RpcError(method=method, code=0, message="response has no result"))
        return Ok(data["result"])


Handler = Callable[[list[object]], object]


class MockRpcClient:
    """Scripted RPC client for testing.

    Usage:
        rpc = MockRpcClient()
        rpc.set_result("eth_accounts", ["0xabc..."])
        rpc.set_handler("eth_call", lambda params: "0x" + "00" * 32)
    """

    def __init__(self) -> None:
        self._handlers: dict[str, Handler | RpcError] = {}
        self.calls: list[tuple[str, list[object]]] = []
        self._lock = Lock()

    def set_result(self, method: str, result: object) -> None:
        self._handlers[method] = lambda _params: result

    def set_handler(self, method: str, handler: Handler) -> None:
        self._handlers[method] = handler

    def set_error(self, method: str, message: str, code: int = -32000) -> None:
        self._handlers[method] = RpcError(method=method, code=code, message=message)

    def call(self, method: str, params: list[object]) -> Result[object, RpcError]:
        with self._lock:
            self.calls.append((method, params))

        handler = self._handlers.get(method)
        if handler is None:
            return Err(RpcError(method=method, code=-32601, message="method not found (mock)"))
        if isinstance(handler, RpcError):
            return Err(handler)
        return Ok(handler(params))

    def methods(self) -> list[str]:
        return [m for m, _ in self.calls]
