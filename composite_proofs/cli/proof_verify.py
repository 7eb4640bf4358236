"""
composite_proofs.cli.proof_verify
=================================

Verify an encoded Proof against an encoded ProofSpec.

Exit codes: 0 verified, 1 rejected, 2 unreadable spec or bad arguments.

Examples:
  python -m composite_proofs.cli verify spec.cbor proof.cbor
  python -m composite_proofs.cli verify spec.cbor proof.cbor --nonce 0xdeadbeef --json
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import ProofSystemConfig
from ..errors import ProofSystemError
from ..spec import ProofSpec
from ..verifier import VerificationResult, verify_proof_bytes
from .common import parse_hex, print_json, read_input


def _human_report(console: Console, spec: ProofSpec, result: VerificationResult) -> None:
    meta = Table.grid(padding=(0, 2))
    meta.add_row("Spec", spec.digest().hex())
    meta.add_row("Statements", str(len(spec)))
    meta.add_row("Verdict", "[green]VERIFIED[/green]" if result.verified else "[red]REJECTED[/red]")
    if not result.verified:
        meta.add_row("Reason", result.reason)
    console.print(Panel(meta, title="verify", expand=False))

    if result.failures:
        t = Table(title="Failures", box=box.SIMPLE)
        t.add_column("Reason")
        t.add_column("Where")
        t.add_column("Detail")
        for f in result.failures:
            where = ", ".join(f"{k}={v}" for k, v in f.ctx.items() if k != "reason")
            t.add_row(getattr(f, "reason", str(f.code)), where or "-", f.msg)
        console.print(t)


def main(
    spec_path: Path = typer.Argument(..., help="Encoded ProofSpec (CBOR)"),
    proof_path: Path = typer.Argument(..., help="Encoded Proof (CBOR)"),
    nonce: Optional[str] = typer.Option(None, "--nonce", help="Nonce used by the prover, hex"),
    json_out: bool = typer.Option(False, "--json", help="Print machine-readable JSON result"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="JSON or YAML config file"),
) -> None:
    """Verify a proof file against a spec file."""
    nonce_bytes = parse_hex(nonce, "--nonce") if nonce is not None else None
    try:
        config = ProofSystemConfig.from_file(str(config_path)) if config_path else ProofSystemConfig.from_env()
        spec = ProofSpec.from_bytes(read_input(spec_path), config=config)
    except (ProofSystemError, OSError) as e:
        if json_out:
            print_json({"verified": False, "error": str(e), "spec": str(spec_path)})
        else:
            typer.echo(f"[verify] {spec_path}: {e}", err=True)
        raise typer.Exit(2)

    result = verify_proof_bytes(spec, read_input(proof_path), nonce_bytes, config=config)
    if json_out:
        print_json({**result.to_dict(), "reason": result.reason})
    else:
        _human_report(Console(), spec, result)
    if not result.verified:
        raise typer.Exit(1)
