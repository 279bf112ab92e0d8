from __future__ import annotations

import pytest

import relctl.chain.backend as backend_mod
from relctl.chain.backend import ExecutionBackend, MockExecutionBackend, RpcExecutionBackend
from relctl.chain.rpc import MockRpcClient
from relctl.core.result import Err, Ok

SENDER = "0x" + "01" * 20
CREATED = "0x" + "cc" * 20


def _rpc(receipts: list[object]) -> MockRpcClient:
    rpc = MockRpcClient()
    rpc.set_result("eth_accounts", [SENDER])
    rpc.set_result("eth_sendTransaction", "0xhash")
    pending = list(receipts)
    rpc.set_handler("eth_getTransactionReceipt", lambda _params: pending.pop(0))
    return rpc


@pytest.fixture(autouse=True)
def _no_sleep(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    slept: list[float] = []
    monkeypatch.setattr(backend_mod, "sleep", slept.append)
    return slept


class TestRpcExecutionBackend:
    def test_deploy_polls_until_mined(self, _no_sleep: list[float]) -> None:
        rpc = _rpc([None, None, {"status": "0x1", "contractAddress": CREATED}])
        backend = RpcExecutionBackend(rpc, poll_interval=0.5)

        result = backend.deploy("6080", from_address=None)

        assert result == Ok(CREATED)
        assert _no_sleep == [0.5, 0.5]
        method, params = rpc.calls[1]
        assert method == "eth_sendTransaction"
        assert params == [{"from": SENDER, "data": "0x6080"}]

    def test_explicit_sender_skips_accounts(self) -> None:
        rpc = _rpc([{"status": "0x1"}])
        backend = RpcExecutionBackend(rpc)

        result = backend.transact("0xproxy", "0xabcd", from_address="0xme")

        assert result == Ok(None)
        assert "eth_accounts" not in rpc.methods()
        assert rpc.calls[0][1] == [{"from": "0xme", "to": "0xproxy", "data": "0xabcd"}]

    def test_default_sender_is_cached(self) -> None:
        rpc = _rpc([{"status": "0x1"}, {"status": "0x1"}])
        backend = RpcExecutionBackend(rpc)

        backend.transact("0xa", "0x", from_address=None)
        backend.transact("0xb", "0x", from_address=None)

        assert rpc.methods().count("eth_accounts") == 1

    def test_reverted_transaction(self) -> None:
        backend = RpcExecutionBackend(_rpc([{"status": "0x0"}]))

        result = backend.transact("0xa", "0x", from_address=None)

        assert isinstance(result, Err)
        assert "reverted" in str(result.error)

    def test_deploy_without_contract_address(self) -> None:
        backend = RpcExecutionBackend(_rpc([{"status": "0x1"}]))
        result = backend.deploy("0x6080", from_address=None)
        assert isinstance(result, Err)
        assert "contractAddress" in result.error.message

    def test_no_accounts(self) -> None:
        rpc = MockRpcClient()
        rpc.set_result("eth_accounts", [])
        result = RpcExecutionBackend(rpc).deploy("0x6080", from_address=None)
        assert isinstance(result, Err)
        assert result.error.operation == "eth_accounts"

    def test_send_error(self) -> None:
        rpc = _rpc([])
        rpc.set_error("eth_sendTransaction", "insufficient funds")
        result = RpcExecutionBackend(rpc).deploy("0x6080", from_address=None)
        assert isinstance(result, Err)
        assert "insufficient funds" in result.error.message

    def test_receipt_timeout(self, monkeypatch: pytest.MonkeyPatch) -> None:
        clock = iter([0.0, 5.0, 11.0])
        monkeypatch.setattr(backend_mod, "monotonic", lambda: next(clock))
        rpc = _rpc([None, None])
        backend = RpcExecutionBackend(rpc, receipt_timeout=10.0)

        result = backend.transact("0xa", "0x", from_address=None)

        assert isinstance(result, Err)
        assert "not mined after 10s" in result.error.message


class TestMockExecutionBackend:
    def test_sequential_addresses(self) -> None:
        backend = MockExecutionBackend()

        first = backend.deploy("0x01", from_address=None)
        second = backend.deploy("0x02", from_address=None)

        assert first == Ok("0x" + "0" * 36 + "1001")
        assert second == Ok("0x" + "0" * 36 + "1002")
        assert backend.deployments == [("0x01", first.value), ("0x02", second.value)]

    def test_records_senders(self) -> None:
        backend = MockExecutionBackend()

        backend.deploy("0x01", from_address="0xabc")
        backend.transact("0xproxy", "0x", from_address=None)

        assert backend.deploy_senders == ["0xabc"]
        assert backend.transact_senders == [None]

    def test_failures(self) -> None:
        backend = MockExecutionBackend(fail_on_deploy={"0xbad"}, fail_on_transact={"0xproxy"})
        assert isinstance(backend.deploy("0xbad", from_address=None), Err)
        assert isinstance(backend.transact("0xproxy", "0x", from_address=None), Err)
        assert backend.deployments == []
        assert backend.transactions == []

    def test_satisfies_protocol(self) -> None:
        assert isinstance(MockExecutionBackend(), ExecutionBackend)
