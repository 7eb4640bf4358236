"""
Version utilities for composite_proofs.

- __version__: semantic version of the package (PEP 440 core)
- version(): __version__ optionally enriched with local git metadata
- runtime_banner(): short human-readable banner for logs and the CLI

Standard library only.
"""

from __future__ import annotations

import os
import subprocess
from typing import Optional

# Can be overridden at build time with COMPOSITE_PROOFS_VERSION.
__version__ = os.getenv("COMPOSITE_PROOFS_VERSION", "0.1.0")

# Bumped whenever the canonical encoding of ProofSpec / Proof changes.
WIRE_VERSION = 1


def _git(args: list[str]) -> Optional[str]:
    try:
        out = subprocess.check_output(
            ["git"] + args,
            stderr=subprocess.DEVNULL,
            timeout=1.0,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    return out.decode("utf-8", "replace").strip() or None


def version() -> str:
    """
    Return a PEP 440 version string, e.g. '0.1.0' or '0.1.0+g1a2b3c4.dirty'.
    """
    commit = _git(["rev-parse", "--short", "HEAD"])
    if commit is None:
        return __version__
    meta = [f"g{commit}"]
    if _git(["status", "--porcelain"]):
        meta.append("dirty")
    return f"{__version__}+{'.'.join(meta)}"


def runtime_banner(prefix: str = "composite-proofs") -> str:
    return f"{prefix} {version()} wire=v{WIRE_VERSION}"


if __name__ == "__main__":
    print(runtime_banner())
