from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from relctl.core.result import Err, Ok, Result
from relctl.platform.files import atomic_write_json
from relctl.release.errors import ProposalWriteFailed
from relctl.release.model import ProposalTx


class ProposalBuilder:
    """Ordered, append-only list of proposal transactions.

    No deduplication or reordering: later entries may depend on state
    created by earlier ones, and the traversal already appends in causal
    order.
    """

    def __init__(self) -> None:
        self._txs: list[ProposalTx] = []

    def append(self, tx: ProposalTx) -> None:
        self._txs.append(tx)

    def extend(self, txs: Sequence[ProposalTx]) -> None:
        self._txs.extend(txs)

    def __len__(self) -> int:
        return len(self._txs)

    def finalize(self) -> tuple[ProposalTx, ...]:
        return tuple(self._txs)


def proposal_payload(txs: Sequence[ProposalTx]) -> list[dict[str, object]]:
    """JSON shape accepted by the governance propose tooling."""
    out: list[dict[str, object]] = []
    for tx in txs:
        item: dict[str, object] = {
            "contract": tx.contract,
            "function": tx.function,
            "args": list(tx.args),
            "value": tx.value,
        }
        if tx.description is not None:
            item["description"] = tx.description
        out.append(item)
    return out


def write_proposal_file(
    *, path: Path, txs: Sequence[ProposalTx]
) -> Result[None, ProposalWriteFailed]:
    try:
        atomic_write_json(path, proposal_payload(txs))
    except OSError as e:
        return Err(ProposalWriteFailed(path=str(path), reason=str(e)))
    return Ok(None)
