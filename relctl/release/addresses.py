"""Name -> address table shared by every step of one release run.

Seeded once from the registry (in parallel) plus the trusted library mapping,
then overwritten as new libraries and proxies are deployed. A step that
links or transfers ownership reads the table at that moment, so dependencies
must be fully released before their dependents read it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor

from relctl.chain.abi import is_zero_address
from relctl.chain.registry import RegistryLookup
from relctl.core.result import Err, Ok, Result
from relctl.release.errors import AddressNotFound, RegistryLookupFailed

__all__ = ["AddressTable"]


class AddressTable:
    def __init__(self, addresses: Mapping[str, str] | None = None) -> None:
        self._addresses: dict[str, str] = dict(addresses or {})

    def get(self, name: str) -> Result[str, AddressNotFound]:
        """Current address of ``name``. Unknown names are an error, never the zero address."""
        address = self._addresses.get(name)
        if address is None:
            return Err(AddressNotFound(unit=name))
        return Ok(address)

    def set(self, name: str, address: str) -> None:
        self._addresses[name] = address

    def __contains__(self, name: object) -> bool:
        return name in self._addresses

    def as_dict(self) -> dict[str, str]:
        return dict(self._addresses)

    @classmethod
    def seed(
        cls,
        names: Iterable[str],
        registry: RegistryLookup,
        library_mapping: Mapping[str, str],
    ) -> Result[AddressTable, RegistryLookupFailed]:
        """Look up every name in the registry concurrently, then overlay libraries.

        Lookups are read-only and independent, so each gets its own worker.
        Zero addresses mean "not registered yet" and are skipped.
        """
        unique = list(dict.fromkeys(names))
        table = cls()

        if unique:
            with ThreadPoolExecutor(max_workers=len(unique)) as pool:
                results = list(pool.map(registry.get_address_for_name, unique))

            for name, result in zip(unique, results, strict=True):
                if isinstance(result, Err):
                    return Err(RegistryLookupFailed(unit=name, reason=str(result.error)))
                if not is_zero_address(result.value):
                    table.set(name, result.value)

        for library, address in library_mapping.items():
            table.set(library, address)

        return Ok(table)
