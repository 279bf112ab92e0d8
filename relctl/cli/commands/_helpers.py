"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import typer

from relctl.output.errors import print_release_failure, release_failure_exit_code
from relctl.release.errors import ReleaseFailure

if TYPE_CHECKING:
    from relctl.cli.context import CLIContext


def exit_with_failure(failure: ReleaseFailure, ctx: CLIContext) -> NoReturn:
    print_release_failure(failure, ctx.console)
    raise typer.Exit(code=release_failure_exit_code(failure))
