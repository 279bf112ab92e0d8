"""Tests for relctl.core.result module."""

import pytest

from relctl.core.result import Err, Ok, Result


class TestOk:
    """Tests for Ok type."""

    def test_ok_holds_value(self) -> None:
        result = Ok(42)
        assert result.value == 42
        assert result == Ok(42)
        assert result != Ok(43)

    def test_ok_repr(self) -> None:
        assert repr(Ok("x")) == "Ok('x')"


class TestErr:
    """Tests for Err type."""

    def test_err_holds_error(self) -> None:
        result = Err("boom")
        assert result.error == "boom"
        assert result != Ok("boom")

    def test_err_repr(self) -> None:
        assert repr(Err("boom")) == "Err('boom')"


class TestNarrowing:
    def test_isinstance(self) -> None:
        result: Result[int, str] = Err("no")
        assert isinstance(result, Err)
        assert not isinstance(result, Ok)

    def test_pattern_matching(self) -> None:
        """Results destructure with match."""
        result: Result[int, str] = Err("missing")
        match result:
            case Ok(value):
                pytest.fail(f"unexpected value {value}")
            case Err(error):
                assert error == "missing"
