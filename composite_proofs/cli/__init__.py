"""
composite_proofs.cli
--------------------
Command-line entrypoints for working with encoded specs and proofs:

- inspect : Decode a ProofSpec or Proof file and summarise it
- verify  : Verify a proof file against a spec file (and optional nonce)

Each command module exports `main`, registered as a single Typer command.

Usage:
  python -m composite_proofs.cli inspect spec.cbor
  python -m composite_proofs.cli verify spec.cbor proof.cbor --nonce 0a0b --json
"""
from __future__ import annotations

from typing import Optional

import typer

from .. import logging as plog
from ..version import __version__, runtime_banner
from . import proof_inspect, proof_verify

__all__ = ["build_app", "main", "__version__"]


def build_app() -> typer.Typer:
    """Build and return the root Typer app."""
    app = typer.Typer(
        name="composite-proofs",
        help="Composite sigma-protocol proofs: inspect and verify encoded specs and proofs",
        no_args_is_help=True,
        add_completion=False,
    )

    @app.callback(invoke_without_command=True)
    def _meta(
        ctx: typer.Context,
        version: bool = typer.Option(
            False, "--version", "-V", help="Print version and exit", is_eager=True
        ),
        log_level: str = typer.Option("WARNING", "--log-level", help="Log level for library logs"),
        log_json: Optional[bool] = typer.Option(None, "--log-json/--log-text", help="Log format"),
    ) -> None:
        if version:
            typer.echo(runtime_banner())
            raise typer.Exit(0)
        if ctx.invoked_subcommand is None:
            typer.echo(ctx.get_help())
            raise typer.Exit(0)
        plog.configure(json=log_json, level=log_level)

    app.command(name="inspect")(proof_inspect.main)
    app.command(name="verify")(proof_verify.main)
    return app


def main(argv: Optional[list[str]] = None) -> int:
    """Entrypoint used by `python -m composite_proofs.cli`."""
    app = build_app()
    app(args=argv)
    return 0
