"""ABI encoding helpers.

Thin layer over ``eth_abi`` that works on typed ``AbiParam`` descriptors
(parsed once from artifact ABIs) and on loosely typed JSON values as found in
initializer argument files.

Usage:
    params = (AbiParam(name="registryAddress", type="address"),)
    data = encode_function_call("initialize", params, [REGISTRY_ADDRESS])
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError, ParseError
from eth_utils import keccak

from relctl.core.result import Err, Ok, Result
from relctl.core.structured import as_obj_list, as_str_dict, get_str

__all__ = [
    "AbiError",
    "AbiParam",
    "ZERO_ADDRESS",
    "canonical_type",
    "decode_address",
    "encode_arguments",
    "encode_function_call",
    "function_selector",
    "is_zero_address",
    "parse_params",
    "signature",
]

ZERO_ADDRESS = "0x" + "0" * 40


@dataclass(frozen=True, slots=True)
class AbiError:
    reason: str


@dataclass(frozen=True, slots=True)
class AbiParam:
    """One function input as declared in an artifact ABI."""

    name: str
    type: str
    components: tuple[AbiParam, ...] = ()


def parse_params(items: object) -> tuple[AbiParam, ...] | None:
    """Parse an ABI ``inputs`` list; None if the shape is invalid."""
    entries = as_obj_list(items)
    if entries is None:
        return None

    params: list[AbiParam] = []
    for entry in entries:
        d = as_str_dict(entry)
        if d is None:
            return None
        type_ = get_str(d, "type")
        if type_ is None:
            return None
        components: tuple[AbiParam, ...] = ()
        if "components" in d:
            parsed = parse_params(d["components"])
            if parsed is None:
                return None
            components = parsed
        params.append(AbiParam(name=get_str(d, "name") or "", type=type_, components=components))
    return tuple(params)


def canonical_type(param: AbiParam) -> str:
    """Canonical type string, expanding tuples: ``tuple[]`` -> ``(uint256,address)[]``."""
    if param.type.startswith("tuple"):
        inner = ",".join(canonical_type(c) for c in param.components)
        return f"({inner}){param.type[len('tuple'):]}"
    return param.type


def signature(name: str, params: Sequence[AbiParam]) -> str:
    return f"{name}({','.join(canonical_type(p) for p in params)})"


def function_selector(sig: str) -> bytes:
    return keccak(text=sig)[:4]


def is_zero_address(address: str) -> bool:
    return address.lower() in (ZERO_ADDRESS, "0x0", "")


def encode_arguments(params: Sequence[AbiParam], args: Sequence[object]) -> Result[bytes, AbiError]:
    """ABI-encode ``args`` against ``params`` (no selector)."""
    if len(args) != len(params):
        return Err(AbiError(f"expected {len(params)} argument(s), got {len(args)}"))

    normalized: list[object] = []
    for param, value in zip(params, args, strict=True):
        norm = _normalize(param, param.type, value)
        if isinstance(norm, Err):
            return norm
        normalized.append(norm.value)

    types = [canonical_type(p) for p in params]
    try:
        return Ok(encode(types, normalized))
    except (EncodingError, ParseError, TypeError, ValueError, OverflowError) as e:
        return Err(AbiError(str(e)))


def encode_function_call(
    name: str, params: Sequence[AbiParam], args: Sequence[object]
) -> Result[str, AbiError]:
    """Encode a full call (selector + arguments) as a 0x-prefixed hex string."""
    encoded = encode_arguments(params, args)
    if isinstance(encoded, Err):
        return encoded
    selector = function_selector(signature(name, params))
    return Ok("0x" + (selector + encoded.value).hex())


def decode_address(data: str) -> Result[str, AbiError]:
    """Decode a single ABI-encoded address return value."""
    raw = data[2:] if data.startswith("0x") else data
    try:
        (address,) = decode(["address"], bytes.fromhex(raw))
    except (DecodingError, ValueError) as e:
        return Err(AbiError(f"cannot decode address from {data!r}: {e}"))
    return Ok(str(address))


def _normalize(param: AbiParam, type_: str, value: object) -> Result[object, AbiError]:
    """Coerce JSON values into what eth_abi expects for ``type_``.

    JSON files carry big integers as strings and byte strings as hex.
    """
    if type_.endswith("]"):
        items = as_obj_list(value)
        if items is None:
            return Err(AbiError(f"{param.name or type_}: expected a list for {type_}"))
        inner = type_[: type_.rindex("[")]
        out: list[object] = []
        for item in items:
            norm = _normalize(param, inner, item)
            if isinstance(norm, Err):
                return norm
            out.append(norm.value)
        return Ok(out)

    if type_ == "tuple":
        return _normalize_tuple(param, value)

    if type_.startswith(("uint", "int")) and isinstance(value, str):
        try:
            return Ok(int(value, 0))
        except ValueError:
            return Err(AbiError(f"{param.name or type_}: not an integer: {value!r}"))

    if type_.startswith("bytes") and isinstance(value, str):
        raw = value[2:] if value.startswith("0x") else value
        try:
            return Ok(bytes.fromhex(raw))
        except ValueError:
            return Err(AbiError(f"{param.name or type_}: not hex: {value!r}"))

    return Ok(value)


def _normalize_tuple(param: AbiParam, value: object) -> Result[object, AbiError]:
    fields: Sequence[object]
    mapping = as_str_dict(value)
    if mapping is not None:
        missing = [c.name for c in param.components if c.name not in mapping]
        if missing:
            return Err(AbiError(f"{param.name}: missing field(s) {', '.join(missing)}"))
        fields = [mapping[c.name] for c in param.components]
    else:
        items = as_obj_list(value)
        if items is None or len(items) != len(param.components):
            return Err(
                AbiError(f"{param.name}: expected {len(param.components)} tuple field(s)")
            )
        fields = items

    out: list[object] = []
    for component, item in zip(param.components, fields, strict=True):
        norm = _normalize(component, component.type, item)
        if isinstance(norm, Err):
            return norm
        out.append(norm.value)
    return Ok(tuple(out))
