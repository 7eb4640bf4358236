"""
composite_proofs.cli.proof_inspect
==================================

Decode a canonical ProofSpec or Proof file and print a summary: statement
kinds, setup parameters, equality groups, context and digest for a spec;
per-statement proof kinds and nonce marker for a proof.

Examples:
  python -m composite_proofs.cli inspect spec.cbor
  python -m composite_proofs.cli inspect proof.cbor --json
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..cbor import loads
from ..errors import ProofSystemError
from ..proof import Proof
from ..spec import ProofSpec
from .common import print_json, read_input


def summarize_spec(spec: ProofSpec) -> Dict[str, Any]:
    return {
        "type": "spec",
        "digest": spec.digest(),
        "statements": [type(s).__name__ for s in spec.statements],
        "setup_params": [type(p).__name__ for p in spec.setup_params],
        "equalities": [[list(r) for r in g] for g in spec.equalities],
        "context": spec.context,
    }


def summarize_proof(proof: Proof) -> Dict[str, Any]:
    return {
        "type": "proof",
        "statements": [k.name for k in proof.kinds],
        "nonce_tag": proof.nonce_tag,
        "size": len(proof.to_bytes()),
    }


def decode_any(data: bytes) -> Dict[str, Any]:
    """Detect whether `data` encodes a spec or a proof and summarise it."""
    obj = loads(data)
    if isinstance(obj, dict) and "statements" in obj:
        return summarize_spec(ProofSpec.from_dict(obj))
    return summarize_proof(Proof.from_dict(obj))


def _human_report(console: Console, path: Path, summary: Dict[str, Any]) -> None:
    meta = Table.grid(padding=(0, 2))
    meta.add_row("File", str(path))
    meta.add_row("Type", summary["type"])
    if summary["type"] == "spec":
        meta.add_row("Digest", summary["digest"].hex())
        meta.add_row("Context", summary["context"].hex() or "-")
    else:
        tag = summary["nonce_tag"]
        meta.add_row("Nonce tag", tag.hex() if tag else "-")
        meta.add_row("Size", f"{summary['size']} bytes")
    console.print(Panel(meta, title="composite proofs", expand=False))

    t = Table(title="Statements", box=box.SIMPLE)
    t.add_column("#", justify="right")
    t.add_column("Kind")
    for i, name in enumerate(summary["statements"]):
        t.add_row(str(i), name)
    console.print(t)

    if summary["type"] == "spec" and summary["equalities"]:
        g = Table(title="Equality groups", box=box.SIMPLE)
        g.add_column("#", justify="right")
        g.add_column("(statement, slot)")
        for i, group in enumerate(summary["equalities"]):
            g.add_row(str(i), ", ".join(f"({s}, {slot})" for s, slot in group))
        console.print(g)


def main(
    path: Path = typer.Argument(..., help="Path to an encoded ProofSpec or Proof (CBOR)"),
    json_out: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
) -> None:
    """Decode a spec or proof file and summarise it."""
    data = read_input(path)
    try:
        summary = decode_any(data)
    except ProofSystemError as e:
        if json_out:
            print_json({"ok": False, "file": str(path), "error": str(e)})
        else:
            typer.echo(f"[inspect] {path}: {e}", err=True)
        raise typer.Exit(2)

    if json_out:
        print_json({"ok": True, "file": str(path), **summary})
        return
    _human_report(Console(), path, summary)
