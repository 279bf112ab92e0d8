from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from relctl.core.config import Config, load_config_or_default
from relctl.core.errors import ErrorCode
from relctl.core.result import Err
from relctl.output.console import ConsoleProtocol, RichConsole

DEFAULT_CONFIG_NAME = "relctl.toml"


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: Config
    console: ConsoleProtocol


def build_context(config_path: Path | None = None) -> CLIContext:
    """Load ``--config`` (or ``./relctl.toml`` when present) and set up output."""
    console = RichConsole()

    explicit = config_path is not None
    path = config_path if config_path is not None else Path.cwd() / DEFAULT_CONFIG_NAME
    if explicit and not path.exists():
        console.error(f"config file not found: {path}")
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    config_result = load_config_or_default(path)
    if isinstance(config_result, Err):
        console.error(config_result.error.message)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return CLIContext(config=config_result.value, console=console)
