"""Build artifact loading.

Reads Truffle artifacts from ``<build_dir>/contracts/*.json`` and reduces each
ABI to the few facts the release needs, decided once at load time: the
``initialize`` inputs, whether ``getVersionNumber`` exists, and the
constructor inputs.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path

from relctl.chain.abi import AbiParam, parse_params
from relctl.core.result import Err, Ok, Result
from relctl.core.structured import ObjList, as_obj_list, as_str_dict, get_str
from relctl.release.errors import ArtifactNotFound, InvalidInput
from relctl.release.model import Artifact, Initializer

INITIALIZE = "initialize"
GET_VERSION_NUMBER = "getVersionNumber"


@dataclass(frozen=True, slots=True)
class ArtifactSet:
    artifacts: Mapping[str, Artifact]
    build_dir: str | None = None

    def require(self, name: str) -> Result[Artifact, ArtifactNotFound]:
        artifact = self.artifacts.get(name)
        if artifact is None:
            return Err(ArtifactNotFound(unit=name, build_dir=self.build_dir))
        return Ok(artifact)

    def __contains__(self, name: object) -> bool:
        return name in self.artifacts

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.artifacts))

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(sorted(self.artifacts))


def _find_function(abi: ObjList, name: str) -> dict[str, object] | None:
    for entry in abi:
        d = as_str_dict(entry)
        if d is not None and d.get("type") == "function" and d.get("name") == name:
            return d
    return None


def _find_constructor(abi: ObjList) -> dict[str, object] | None:
    for entry in abi:
        d = as_str_dict(entry)
        if d is not None and d.get("type") == "constructor":
            return d
    return None


def parse_artifact(
    obj: object, *, fallback_name: str, source: str | None = None
) -> Result[Artifact, InvalidInput]:
    data = as_str_dict(obj)
    if data is None:
        return Err(InvalidInput("artifact root must be a JSON object", source))

    name = get_str(data, "contractName") or fallback_name
    abi = as_obj_list(data.get("abi"))
    if abi is None:
        return Err(InvalidInput(f"artifact {name} has no abi list", source))
    bytecode = get_str(data, "bytecode")
    if bytecode is None:
        return Err(InvalidInput(f"artifact {name} has no bytecode", source))

    initializer: Initializer | None = None
    init_abi = _find_function(abi, INITIALIZE)
    if init_abi is not None:
        inputs = parse_params(init_abi.get("inputs", []))
        if inputs is None:
            return Err(InvalidInput(f"artifact {name}: malformed initialize inputs", source))
        initializer = Initializer(inputs=inputs)

    constructor_inputs: tuple[AbiParam, ...] = ()
    ctor = _find_constructor(abi)
    if ctor is not None:
        parsed = parse_params(ctor.get("inputs", []))
        if parsed is None:
            return Err(InvalidInput(f"artifact {name}: malformed constructor inputs", source))
        constructor_inputs = parsed

    return Ok(
        Artifact(
            name=name,
            bytecode=bytecode,
            initializer=initializer,
            has_version_number=_find_function(abi, GET_VERSION_NUMBER) is not None,
            constructor_inputs=constructor_inputs,
        )
    )


def load_artifacts(build_dir: Path) -> Result[ArtifactSet, InvalidInput]:
    contracts_dir = build_dir / "contracts"
    if not contracts_dir.is_dir():
        return Err(InvalidInput("missing contracts/ directory", str(build_dir)))

    artifacts: dict[str, Artifact] = {}
    for path in sorted(contracts_dir.glob("*.json")):
        try:
            obj: object = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            return Err(InvalidInput(f"failed to read artifact: {e}", str(path)))
        except json.JSONDecodeError as e:
            return Err(InvalidInput(f"invalid JSON in artifact: {e}", str(path)))

        artifact = parse_artifact(obj, fallback_name=path.stem, source=str(path))
        if isinstance(artifact, Err):
            return artifact
        artifacts[artifact.value.name] = artifact.value

    return Ok(ArtifactSet(artifacts=artifacts, build_dir=str(build_dir)))
