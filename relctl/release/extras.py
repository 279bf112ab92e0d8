"""Fixed transactions appended after the traversal.

Later release stages add calls such as oracle or exchange-spender
registration. Their arguments may reference units by name, written as
``"${Exchange}"``; references resolve against the address table *after*
every deployment, so they see new proxy addresses.

    [
      {"contract": "Reserve", "function": "addExchangeSpender", "args": ["${Exchange}"]},
      {"contract": "SortedOracles", "function": "addOracle",
       "args": ["${StableToken}", "0x..."], "description": "oracle for cUSD"}
    ]
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path

from relctl.core.result import Err, Ok, Result
from relctl.core.structured import as_obj_list, as_str_dict, get_list, get_str
from relctl.release.addresses import AddressTable
from relctl.release.errors import AddressNotFound, InvalidInput
from relctl.release.model import ProposalTx

_REFERENCE = re.compile(r"^\$\{([A-Za-z0-9_]+)\}$")


@dataclass(frozen=True, slots=True)
class ExtraTx:
    """An extra transaction whose address references are not resolved yet."""

    contract: str
    function: str
    args: tuple[object, ...]
    value: str = "0"
    description: str | None = None


def parse_extras(
    obj: object, *, source: str | None = None
) -> Result[tuple[ExtraTx, ...], InvalidInput]:
    items = as_obj_list(obj)
    if items is None:
        return Err(InvalidInput("extra transactions must be a JSON list", source))

    extras: list[ExtraTx] = []
    for index, item in enumerate(items):
        d = as_str_dict(item)
        if d is None:
            return Err(InvalidInput(f"extra transaction #{index} must be an object", source))
        contract = get_str(d, "contract")
        function = get_str(d, "function")
        if contract is None or function is None:
            return Err(
                InvalidInput(f"extra transaction #{index} needs contract and function", source)
            )
        args = get_list(d, "args")
        if "args" in d and args is None:
            return Err(InvalidInput(f"extra transaction #{index}: args must be a list", source))

        value = d.get("value", "0")
        if isinstance(value, int) and not isinstance(value, bool):
            value = str(value)
        if not isinstance(value, str):
            return Err(InvalidInput(f"extra transaction #{index}: invalid value", source))

        extras.append(
            ExtraTx(
                contract=contract,
                function=function,
                args=tuple(args or ()),
                value=value,
                description=get_str(d, "description"),
            )
        )
    return Ok(tuple(extras))


def load_extras(path: Path) -> Result[tuple[ExtraTx, ...], InvalidInput]:
    try:
        obj: object = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        return Err(InvalidInput(f"failed to read extra transactions: {e}", str(path)))
    except json.JSONDecodeError as e:
        return Err(InvalidInput(f"invalid JSON in extra transactions: {e}", str(path)))
    return parse_extras(obj, source=str(path))


def _resolve_arg(arg: object, table: AddressTable) -> Result[object, AddressNotFound]:
    if isinstance(arg, str):
        match = _REFERENCE.match(arg)
        if match is None:
            return Ok(arg)
        return table.get(match.group(1))
    if isinstance(arg, list):
        out: list[object] = []
        for item in arg:
            resolved = _resolve_arg(item, table)
            if isinstance(resolved, Err):
                return resolved
            out.append(resolved.value)
        return Ok(out)
    return Ok(arg)


def resolve_extras(
    extras: tuple[ExtraTx, ...], table: AddressTable
) -> Result[tuple[ProposalTx, ...], AddressNotFound]:
    txs: list[ProposalTx] = []
    for extra in extras:
        args: list[object] = []
        for arg in extra.args:
            resolved = _resolve_arg(arg, table)
            if isinstance(resolved, Err):
                return resolved
            args.append(resolved.value)
        txs.append(
            ProposalTx(
                contract=extra.contract,
                function=extra.function,
                args=tuple(args),
                value=extra.value,
                description=extra.description,
            )
        )
    return Ok(tuple(txs))
