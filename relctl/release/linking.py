"""Library placeholders in unlinked bytecode.

Truffle leaves a 40-character placeholder where a library address goes:
``__`` + library name, right-padded with underscores. Hex bytecode never
contains ``_``, so every ``__`` starts a placeholder.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import replace

from relctl.core.result import Err, Ok, Result
from relctl.release.addresses import AddressTable
from relctl.release.errors import AddressNotFound
from relctl.release.model import Artifact

_PLACEHOLDER = re.compile(r"__[A-Za-z0-9_$]{38}")
# Names longer than this are truncated inside the placeholder.
_MAX_NAME = 36


def placeholder_names(bytecode: str) -> tuple[str, ...]:
    """Library names referenced by ``bytecode``, in order of first appearance."""
    seen: dict[str, None] = {}
    for match in _PLACEHOLDER.finditer(bytecode):
        seen.setdefault(match.group(0)[2:].rstrip("_"), None)
    return tuple(seen)


def placeholder_key(name: str) -> str:
    """The name as it appears inside a placeholder."""
    return name[:_MAX_NAME]


def link_bytecode(bytecode: str, addresses: Mapping[str, str]) -> str:
    """Replace placeholders of the libraries in ``addresses``; others stay as they are."""
    by_key = {placeholder_key(name): address for name, address in addresses.items()}

    def _sub(match: re.Match[str]) -> str:
        address = by_key.get(match.group(0)[2:].rstrip("_"))
        if address is None:
            return match.group(0)
        return address.lower().removeprefix("0x")

    return _PLACEHOLDER.sub(_sub, bytecode)


def link_artifact(
    artifact: Artifact, dependencies: Sequence[str], table: AddressTable
) -> Result[Artifact, AddressNotFound]:
    """Link ``artifact`` against the current table entry of each dependency."""
    addresses: dict[str, str] = {}
    for dep in dependencies:
        address = table.get(dep)
        if isinstance(address, Err):
            return address
        addresses[dep] = address.value

    if not addresses:
        return Ok(artifact)
    return Ok(replace(artifact, bytecode=link_bytecode(artifact.bytecode, addresses)))
