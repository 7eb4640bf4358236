"""Helpers shared by the CLI commands."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer


def read_input(path: Path) -> bytes:
    """Read a file, exiting with code 2 when it cannot be read."""
    try:
        return path.read_bytes()
    except OSError as e:
        typer.echo(f"cannot read {path}: {e}", err=True)
        raise typer.Exit(2)


def parse_hex(value: str, option: str) -> bytes:
    s = value[2:] if value.startswith(("0x", "0X")) else value
    try:
        return bytes.fromhex(s)
    except ValueError:
        raise typer.BadParameter(f"{value!r} is not hex", param_hint=option)


def to_jsonable(x: Any) -> Any:
    if isinstance(x, (bytes, bytearray)):
        return "0x" + bytes(x).hex()
    if isinstance(x, dict):
        return {str(k): to_jsonable(v) for k, v in x.items()}
    if isinstance(x, (list, tuple)):
        return [to_jsonable(v) for v in x]
    return x


def print_json(obj: Any) -> None:
    typer.echo(json.dumps(to_jsonable(obj), indent=2, sort_keys=True))
