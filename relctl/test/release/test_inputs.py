from __future__ import annotations

import json
from pathlib import Path

from relctl.core.result import Err, Ok
from relctl.release.inputs import (
    load_initialization_data,
    load_library_mapping,
    parse_initialization_data,
    parse_library_mapping,
)

LIB = "0x" + "11" * 20


def test_library_mapping_shapes() -> None:
    assert parse_library_mapping({"addresses": {"FixidityLib": LIB}}) == Ok({"FixidityLib": LIB})
    assert parse_library_mapping({"FixidityLib": LIB}) == Ok({"FixidityLib": LIB})


def test_library_mapping_rejects_non_addresses() -> None:
    assert isinstance(parse_library_mapping({"FixidityLib": 12}), Err)
    assert isinstance(parse_library_mapping({"FixidityLib": "abc"}), Err)
    assert isinstance(parse_library_mapping([LIB]), Err)


def test_initialization_data() -> None:
    result = parse_initialization_data({"Exchange": ["0xce10", "1000"], "Reserve": []})
    assert result == Ok({"Exchange": ("0xce10", "1000"), "Reserve": ()})


def test_initialization_data_requires_lists() -> None:
    result = parse_initialization_data({"Exchange": "0xce10"}, source="init.json")
    assert isinstance(result, Err)
    assert "Exchange" in result.error.message
    assert result.error.source == "init.json"


def test_loaders_without_path() -> None:
    assert load_library_mapping(None) == Ok({})
    assert load_initialization_data(None) == Ok({})


def test_loaders_read_files(tmp_path: Path) -> None:
    libs = tmp_path / "libraries.json"
    libs.write_text(json.dumps({"addresses": {"A": LIB}}), encoding="utf-8")
    init = tmp_path / "init.json"
    init.write_text(json.dumps({"Exchange": [1]}), encoding="utf-8")

    assert load_library_mapping(libs) == Ok({"A": LIB})
    assert load_initialization_data(init) == Ok({"Exchange": (1,)})


def test_loader_errors(tmp_path: Path) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text("{", encoding="utf-8")
    assert isinstance(load_library_mapping(bad), Err)
    assert isinstance(load_initialization_data(tmp_path / "missing.json"), Err)
