"""Execution backends: where deployments and direct transactions happen.

This module provides:
- ExecutionBackend: Protocol used by the deployer
- RpcExecutionBackend: Sends transactions through a node's unlocked account
- MockExecutionBackend: Deterministic in-memory backend for tests
"""

from __future__ import annotations

from dataclasses import dataclass, field
from time import monotonic, sleep
from typing import Protocol, runtime_checkable

from relctl.chain.rpc import RpcClient
from relctl.core.result import Err, Ok, Result
from relctl.core.structured import as_obj_list, as_str_dict, get_str

__all__ = [
    "BackendError",
    "ExecutionBackend",
    "MockExecutionBackend",
    "RpcExecutionBackend",
]


@dataclass(frozen=True, slots=True)
class BackendError:
    operation: str
    message: str

    def __str__(self) -> str:
        return f"{self.operation}: {self.message}"


@runtime_checkable
class ExecutionBackend(Protocol):
    def deploy(self, bytecode: str, *, from_address: str | None) -> Result[str, BackendError]:
        """Create a contract from ``bytecode``; return its address."""
        ...

    def transact(
        self, to: str, data: str, *, from_address: str | None
    ) -> Result[None, BackendError]:
        """Send a state-changing call and wait until it is mined."""
        ...


class RpcExecutionBackend:
    """Sends ``eth_sendTransaction`` and waits for the receipt.

    Signing is left to the node (unlocked or node-managed account). The
    receipt is only read to learn the created address and the status.
    """

    def __init__(
        self,
        rpc: RpcClient,
        *,
        receipt_timeout: float = 5 * 60.0,
        poll_interval: float = 1.0,
    ) -> None:
        self._rpc = rpc
        self._receipt_timeout = receipt_timeout
        self._poll_interval = poll_interval
        self._default_from: str | None = None

    def deploy(self, bytecode: str, *, from_address: str | None) -> Result[str, BackendError]:
        tx = self._send({"data": _hex(bytecode)}, from_address=from_address)
        if isinstance(tx, Err):
            return tx

        receipt = self._wait_for_receipt(tx.value)
        if isinstance(receipt, Err):
            return receipt

        address = get_str(receipt.value, "contractAddress")
        if address is None:
            return Err(BackendError("deploy", f"receipt for {tx.value} has no contractAddress"))
        return Ok(address)

    def transact(
        self, to: str, data: str, *, from_address: str | None
    ) -> Result[None, BackendError]:
        tx = self._send({"to": to, "data": _hex(data)}, from_address=from_address)
        if isinstance(tx, Err):
            return tx

        receipt = self._wait_for_receipt(tx.value)
        if isinstance(receipt, Err):
            return receipt
        return Ok(None)

    def _sender(self, from_address: str | None) -> Result[str, BackendError]:
        if from_address:
            return Ok(from_address)
        if self._default_from is not None:
            return Ok(self._default_from)

        accounts = self._rpc.call("eth_accounts", [])
        if isinstance(accounts, Err):
            return Err(BackendError("eth_accounts", str(accounts.error)))
        items = as_obj_list(accounts.value) or []
        if not items or not isinstance(items[0], str):
            return Err(BackendError("eth_accounts", "node has no unlocked account (pass --from)"))
        self._default_from = items[0]
        return Ok(items[0])

    def _send(
        self, tx: dict[str, object], *, from_address: str | None
    ) -> Result[str, BackendError]:
        sender = self._sender(from_address)
        if isinstance(sender, Err):
            return sender

        result = self._rpc.call("eth_sendTransaction", [{"from": sender.value, **tx}])
        if isinstance(result, Err):
            return Err(BackendError("eth_sendTransaction", str(result.error)))
        if not isinstance(result.value, str):
            return Err(BackendError("eth_sendTransaction", "expected a transaction hash"))
        return Ok(result.value)

    def _wait_for_receipt(self, tx_hash: str) -> Result[dict[str, object], BackendError]:
        deadline = monotonic() + self._receipt_timeout
        while True:
            result = self._rpc.call("eth_getTransactionReceipt", [tx_hash])
            if isinstance(result, Err):
                return Err(BackendError("eth_getTransactionReceipt", str(result.error)))

            receipt = as_str_dict(result.value)
            if receipt is not None:
                if get_str(receipt, "status") == "0x0":
                    return Err(BackendError("transaction", f"{tx_hash} reverted"))
                return Ok(receipt)

            if monotonic() >= deadline:
                return Err(
                    BackendError(
                        "transaction",
                        f"{tx_hash} not mined after {self._receipt_timeout:.0f}s",
                    )
                )
            sleep(self._poll_interval)


def _hex(data: str) -> str:
    return data if data.startswith("0x") else "0x" + data


def _empty_deployments() -> list[tuple[str, str]]:
    return []


def _empty_transactions() -> list[tuple[str, str]]:
    return []


def _empty_senders() -> list[str | None]:
    return []


@dataclass
class MockExecutionBackend:
    """Hands out sequential addresses and records every call.

    Usage:
        backend = MockExecutionBackend(fail_on_deploy={"0xdead"})
        backend.deploy("0x6080...", from_address=None)  # Ok("0x...1001")
    """

    fail_on_deploy: set[str] = field(default_factory=set)
    fail_on_transact: set[str] = field(default_factory=set)
    deployments: list[tuple[str, str]] = field(default_factory=_empty_deployments)
    transactions: list[tuple[str, str]] = field(default_factory=_empty_transactions)
    # Sender of each successful call, parallel to deployments / transactions.
    deploy_senders: list[str | None] = field(default_factory=_empty_senders)
    transact_senders: list[str | None] = field(default_factory=_empty_senders)
    _next: int = 0x1000

    def deploy(self, bytecode: str, *, from_address: str | None) -> Result[str, BackendError]:
        if bytecode in self.fail_on_deploy:
            return Err(BackendError("deploy", "execution reverted (mock)"))
        self._next += 1
        address = "0x" + f"{self._next:040x}"
        self.deployments.append((bytecode, address))
        self.deploy_senders.append(from_address)
        return Ok(address)

    def transact(
        self, to: str, data: str, *, from_address: str | None
    ) -> Result[None, BackendError]:
        if to in self.fail_on_transact:
            return Err(BackendError("transaction", "execution reverted (mock)"))
        self.transactions.append((to, data))
        self.transact_senders.append(from_address)
        return Ok(None)
