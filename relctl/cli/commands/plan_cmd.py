"""Plan command - show what a release would do, without any network access."""

from __future__ import annotations

from pathlib import Path

import typer

from relctl.cli.commands._helpers import exit_with_failure
from relctl.cli.context import build_context
from relctl.core.result import Err
from relctl.output.console import Style
from relctl.release.service import ReleaseInputPaths, load_release_inputs, plan


def plan_cmd(
    report: Path = typer.Option(..., "--report", help="Backward-compatibility report (JSON)"),
    build_dir: Path = typer.Option(
        ..., "--build-dir", help="Build directory holding contracts/*.json"
    ),
    config: Path | None = typer.Option(None, "--config", help="relctl.toml", show_default=False),
) -> None:
    """Print the release order and the strategy chosen for each unit."""
    ctx = build_context(config)

    inputs = load_release_inputs(ReleaseInputPaths(report=report, build_dir=build_dir))
    if isinstance(inputs, Err):
        exit_with_failure(inputs.error, ctx)

    steps = plan(inputs.value, policy=ctx.config.release)
    if isinstance(steps, Err):
        exit_with_failure(steps.error, ctx)

    if not steps.value:
        ctx.console.print("no release roots found", Style.DIM)
        return

    ctx.console.header("Release plan")
    for step in steps.value:
        line = f"{step.unit}: {step.strategy}"
        if step.initialize:
            line += " (initialize)"
        style = Style.DIM if step.strategy == "keep" else Style.DEFAULT
        ctx.console.print(line, style)
        if step.dependencies:
            ctx.console.print(f"  depends on: {', '.join(step.dependencies)}", Style.DIM)

    changed = sum(1 for s in steps.value if s.strategy != "keep")
    ctx.console.success(f"{changed} unit(s) to deploy")
