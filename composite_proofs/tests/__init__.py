"""
composite_proofs.tests helpers

Shared builders for the test modules. Everything is deterministic: tests
draw randomness from a seeded `random.Random`, never from the OS.

Exports:
- TEST_ROOT
- det_rng(seed) -> random.Random
- pedersen_case(rng, scalars) -> (statement, witness)
- signature_case(rng, messages, revealed) -> (statement, witness, keys)
- range_key() -> RangeKey
- configure_test_logging() -> None

Environment toggles:
- COMPOSITE_PROOFS_TEST_LOG=1   enable DEBUG logging for composite_proofs.*
"""

from __future__ import annotations

import logging
import os
import random
from pathlib import Path
from typing import Any, Dict, Iterable, Sequence, Tuple

from composite_proofs.params import PedersenBases, RangeKey, SignatureParams
from composite_proofs.providers.bbs_plus import generate_keypair, sign
from composite_proofs.providers.pedersen import pedersen_commit
from composite_proofs.statements import PedersenOpening, SignatureKnowledge
from composite_proofs.witnesses import PedersenOpeningWitness, SignatureKnowledgeWitness

TEST_ROOT: Path = Path(__file__).resolve().parent

TEST_LABEL = b"composite-proofs:tests"


def det_rng(seed: int = 7) -> random.Random:
    return random.Random(seed)


def pedersen_case(
    rng: random.Random, scalars: Sequence[int], label: bytes = TEST_LABEL
) -> Tuple[PedersenOpening, PedersenOpeningWitness]:
    bases = PedersenBases.generate(len(scalars), label)
    stmt = PedersenOpening(bases=bases, commitment=pedersen_commit(bases, scalars))
    return stmt, PedersenOpeningWitness(list(scalars))


def signature_case(
    rng: random.Random,
    messages: Sequence[int],
    revealed: Iterable[int] = (),
    label: bytes = TEST_LABEL,
) -> Tuple[SignatureKnowledge, SignatureKnowledgeWitness, Dict[str, Any]]:
    params = SignatureParams.generate(len(messages), label)
    sk, pk = generate_keypair(params, rng)
    sig = sign(list(messages), sk, params, rng)
    shown = set(revealed)
    stmt = SignatureKnowledge(
        params=params,
        public_key=pk,
        revealed={i: messages[i] for i in shown},
    )
    wit = SignatureKnowledgeWitness(
        signature=sig,
        unrevealed={i: m for i, m in enumerate(messages) if i not in shown},
    )
    return stmt, wit, {"params": params, "sk": sk, "pk": pk, "signature": sig}


def range_key(label: bytes = TEST_LABEL) -> RangeKey:
    return RangeKey.generate(label)


def env_flag(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}


def configure_test_logging() -> None:
    """Enable DEBUG logging for composite_proofs.* when COMPOSITE_PROOFS_TEST_LOG=1."""
    if not env_flag("COMPOSITE_PROOFS_TEST_LOG"):
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("composite_proofs").setLevel(logging.DEBUG)


configure_test_logging()

__all__ = [
    "TEST_ROOT",
    "TEST_LABEL",
    "det_rng",
    "pedersen_case",
    "signature_case",
    "range_key",
    "env_flag",
    "configure_test_logging",
]
