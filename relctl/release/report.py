"""Backwards-compatibility report loading.

The report is classified once, on load, into ``ContractChange`` and
``LibraryChange`` entries. Units absent from the report are unchanged and
keep their current address.

Accepted shapes (the checker writes the first, tests often use the second):

    {"report": {"contracts": {...}, "libraries": {...}}}
    {"contracts": {...}, "libraries": {...}}

Contract entries look like:

    "Exchange": {"changes": {"storage": [...], "major": [{"type": "NewContract"}], ...}}
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path

from relctl.core.result import Err, Ok, Result
from relctl.core.structured import StrDict, as_obj_list, as_str_dict, get_str, get_table
from relctl.release.errors import InvalidInput
from relctl.release.model import ContractChange, LibraryChange, ReportEntry

NEW_CONTRACT = "NewContract"


@dataclass(frozen=True, slots=True)
class CompatibilityReport:
    entries: Mapping[str, ReportEntry]

    def get(self, name: str) -> ReportEntry | None:
        return self.entries.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def contracts(self) -> tuple[ContractChange, ...]:
        return tuple(e for e in self.entries.values() if isinstance(e, ContractChange))

    @property
    def libraries(self) -> tuple[LibraryChange, ...]:
        return tuple(e for e in self.entries.values() if isinstance(e, LibraryChange))


def parse_report(
    obj: object, *, source: str | None = None
) -> Result[CompatibilityReport, InvalidInput]:
    root = as_str_dict(obj)
    if root is None:
        return Err(InvalidInput("report root must be a JSON object", source))

    body: StrDict = get_table(root, "report") or root
    contracts = body.get("contracts", {})
    libraries = body.get("libraries", {})

    contracts_map = as_str_dict(contracts)
    if contracts_map is None:
        return Err(InvalidInput("report.contracts must be an object", source))
    libraries_map = as_str_dict(libraries)
    if libraries_map is None:
        return Err(InvalidInput("report.libraries must be an object", source))

    entries: dict[str, ReportEntry] = {}
    for name in libraries_map:
        entries[name] = LibraryChange(name=name)

    # Contracts win over libraries with the same name.
    for name, raw in contracts_map.items():
        change = _classify_contract(name, raw, source=source)
        if isinstance(change, Err):
            return change
        entries[name] = change.value

    return Ok(CompatibilityReport(entries=entries))


def _classify_contract(
    name: str, raw: object, *, source: str | None
) -> Result[ContractChange, InvalidInput]:
    entry = as_str_dict(raw)
    if entry is None:
        return Err(InvalidInput(f"report entry for {name} must be an object", source))

    changes = get_table(entry, "changes")
    if changes is None:
        return Err(InvalidInput(f"report entry for {name} has no changes", source))

    storage = as_obj_list(changes.get("storage", []))
    major = as_obj_list(changes.get("major", []))
    if storage is None or major is None:
        return Err(
            InvalidInput(f"changes.storage and changes.major of {name} must be lists", source)
        )

    is_new = False
    for item in major:
        d = as_str_dict(item)
        if d is not None and get_str(d, "type") == NEW_CONTRACT:
            is_new = True
            break

    return Ok(ContractChange(name=name, has_storage_changes=len(storage) > 0, is_new_unit=is_new))


def load_report(path: Path) -> Result[CompatibilityReport, InvalidInput]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(InvalidInput(f"failed to read report: {e}", str(path)))

    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(InvalidInput(f"invalid JSON in report: {e}", str(path)))

    return parse_report(obj, source=str(path))
