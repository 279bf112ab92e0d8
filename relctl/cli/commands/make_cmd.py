"""Make command - deploy changed units and write the governance proposal."""

from __future__ import annotations

from pathlib import Path

import typer

from relctl.chain.backend import RpcExecutionBackend
from relctl.chain.registry import RpcRegistry
from relctl.chain.rpc import RealRpcClient
from relctl.cli.commands._helpers import exit_with_failure
from relctl.cli.context import build_context
from relctl.core.result import Err
from relctl.output.console import Style
from relctl.release.proposal import write_proposal_file
from relctl.release.service import ReleaseInputPaths, load_release_inputs, make_release


def make(
    report: Path = typer.Option(..., "--report", help="Backward-compatibility report (JSON)"),
    build_dir: Path = typer.Option(
        ..., "--build-dir", help="Build directory holding contracts/*.json"
    ),
    proposal: Path = typer.Option(..., "--proposal", help="Where to write the proposal JSON"),
    initialize_data: Path | None = typer.Option(
        None,
        "--initialize-data",
        help="initialize() arguments per unit (JSON)",
        show_default=False,
    ),
    libraries: Path | None = typer.Option(
        None,
        "--libraries",
        help="Known library addresses (JSON)",
        show_default=False,
    ),
    extra: Path | None = typer.Option(
        None,
        "--extra",
        help="Extra transactions appended to the proposal (JSON)",
        show_default=False,
    ),
    from_address: str | None = typer.Option(
        None, "--from", help="Sending account (default: node's first account)", show_default=False
    ),
    rpc_url: str | None = typer.Option(None, "--rpc-url", help="JSON-RPC endpoint"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Resolve and link without deploying anything"
    ),
    config: Path | None = typer.Option(None, "--config", help="relctl.toml", show_default=False),
) -> None:
    """Deploy what the report requires and write the proposal."""
    ctx = build_context(config)
    network = ctx.config.network
    timeouts = ctx.config.timeouts

    inputs = load_release_inputs(
        ReleaseInputPaths(
            report=report,
            build_dir=build_dir,
            initialize_data=initialize_data,
            libraries=libraries,
            extra=extra,
        )
    )
    if isinstance(inputs, Err):
        exit_with_failure(inputs.error, ctx)

    rpc = RealRpcClient(rpc_url or network.rpc_url, timeout=timeouts.rpc)
    if dry_run:
        ctx.console.warning("dry run: nothing is deployed, new addresses are placeholders")

    outcome = make_release(
        inputs.value,
        registry=RpcRegistry(rpc, network.registry_address),
        backend=RpcExecutionBackend(
            rpc, receipt_timeout=timeouts.receipt, poll_interval=timeouts.poll_interval
        ),
        console=ctx.console,
        policy=ctx.config.release,
        dry_run=dry_run,
        stand_in_address=network.registry_address,
        from_address=from_address or network.from_address,
    )
    if isinstance(outcome, Err):
        exit_with_failure(outcome.error, ctx)

    written = write_proposal_file(path=proposal, txs=outcome.value.proposal)
    if isinstance(written, Err):
        exit_with_failure(written.error, ctx)

    released = outcome.value.released
    ctx.console.print(f"released: {', '.join(released) or '(nothing)'}", Style.DIM)
    ctx.console.success(f"{proposal} ({len(outcome.value.proposal)} transaction(s))")
