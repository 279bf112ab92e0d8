"""Loading of the small JSON inputs: library addresses and initializer arguments."""

from __future__ import annotations

import json
from pathlib import Path

from relctl.core.result import Err, Ok, Result
from relctl.core.structured import as_obj_list, as_str_dict, get_table
from relctl.release.errors import InvalidInput


def _read_json(path: Path, *, what: str) -> Result[object, InvalidInput]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return Err(InvalidInput(f"failed to read {what}: {e}", str(path)))
    try:
        return Ok(json.loads(text))
    except json.JSONDecodeError as e:
        return Err(InvalidInput(f"invalid JSON in {what}: {e}", str(path)))


def parse_library_mapping(
    obj: object, *, source: str | None = None
) -> Result[dict[str, str], InvalidInput]:
    """Accept ``{"addresses": {name: address}}`` or a flat ``{name: address}``."""
    root = as_str_dict(obj)
    if root is None:
        return Err(InvalidInput("library mapping must be a JSON object", source))

    addresses = get_table(root, "addresses")
    mapping = addresses if addresses is not None else root

    out: dict[str, str] = {}
    for name, address in mapping.items():
        if not isinstance(address, str) or not address.startswith("0x"):
            return Err(InvalidInput(f"invalid address for library {name}: {address!r}", source))
        out[name] = address
    return Ok(out)


def load_library_mapping(path: Path | None) -> Result[dict[str, str], InvalidInput]:
    if path is None:
        return Ok({})
    obj = _read_json(path, what="library mapping")
    if isinstance(obj, Err):
        return obj
    return parse_library_mapping(obj.value, source=str(path))


def parse_initialization_data(
    obj: object, *, source: str | None = None
) -> Result[dict[str, tuple[object, ...]], InvalidInput]:
    """``{unit: [arg, ...]}``: positional ``initialize`` arguments per unit."""
    root = as_str_dict(obj)
    if root is None:
        return Err(InvalidInput("initialization data must be a JSON object", source))

    out: dict[str, tuple[object, ...]] = {}
    for name, args in root.items():
        items = as_obj_list(args)
        if items is None:
            return Err(InvalidInput(f"initialization args for {name} must be a list", source))
        out[name] = tuple(items)
    return Ok(out)


def load_initialization_data(
    path: Path | None,
) -> Result[dict[str, tuple[object, ...]], InvalidInput]:
    if path is None:
        return Ok({})
    obj = _read_json(path, what="initialization data")
    if isinstance(obj, Err):
        return obj
    return parse_initialization_data(obj.value, source=str(path))
