"""
composite_proofs.verifier

Proof verifier. Never raises on malformed input: every problem becomes a
failed VerificationResult.

Order of checks
---------------
1. shape      len(proof) == len(spec)                  (ProofShapeMismatch)
2. nonce      proof.nonce_tag matches the supplied nonce
3. kinds      proof i has the kind of statement i
4. statements challenge recomputed from the embedded commitments, then
              every provider verifies its proof (thread pool when
              config.workers > 1)
5. equality   every group's slot responses coincide; always evaluated, even
              after a statement failure

Checks 1-3 stop verification at the first failure. Steps 4 and 5 report all
failures when `config.collect_all_failures` is set, else only the first.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .config import DEFAULT, ProofSystemConfig
from .errors import DecodeError, ProofShapeMismatch, ProofSystemError, VerificationFailed
from .metrics import METRICS
from .proof import Proof, nonce_tag
from .providers.base import PROVIDER_ERRORS, StatementProof
from .providers.registry import get_provider
from .prover import check_nonce, compute_challenge
from .spec import ProofSpec

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    """
    Verdict of verify_proof.

    verified: True only if every check passed
    reason:   stable reason string of the first failure ("" when verified)
    error:    first failure as a structured error (None when verified)
    failures: all failures, in check order
    """

    verified: bool
    reason: str = ""
    error: Optional[ProofSystemError] = None
    failures: Tuple[ProofSystemError, ...] = field(default_factory=tuple)

    def __bool__(self) -> bool:
        return self.verified

    @classmethod
    def ok(cls) -> "VerificationResult":
        return cls(verified=True)

    @classmethod
    def failed(cls, failures: Sequence[ProofSystemError]) -> "VerificationResult":
        first = failures[0]
        return cls(
            verified=False,
            reason=_reason(first),
            error=first,
            failures=tuple(failures),
        )

    def to_dict(self) -> Dict[str, Any]:
        """{verified, error} response shape; error is the first failure's message."""
        return {"verified": self.verified, "error": None if self.error is None else str(self.error)}

    def details(self) -> Dict[str, Any]:
        return {
            "verified": self.verified,
            "reason": self.reason,
            "failures": [f.to_dict() for f in self.failures],
        }


def _reason(err: ProofSystemError) -> str:
    if isinstance(err, VerificationFailed):
        return err.reason
    if isinstance(err, ProofShapeMismatch):
        return "shape"
    if isinstance(err, DecodeError):
        return "decode"
    return str(getattr(err.code, "value", err.code)).lower()


_OUTCOME_BY_REASON = {
    "shape": "shape_mismatch",
    "nonce": "nonce_mismatch",
    "kind": "kind_mismatch",
    "equality": "equality_failed",
    "decode": "decode_error",
}


def _outcome(result: VerificationResult) -> str:
    if result.verified:
        return "verified"
    return _OUTCOME_BY_REASON.get(result.reason, "statement_failed")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def verify_proof(
    spec: ProofSpec,
    proof: Proof,
    nonce: Optional[bytes] = None,
    *,
    config: Optional[ProofSystemConfig] = None,
) -> VerificationResult:
    """Verify `proof` against `spec` and `nonce`; returns a verdict, never raises."""
    cfg = config or DEFAULT
    if cfg.metrics_enabled:
        with METRICS.verify_timer():
            result = _verify(spec, proof, nonce, cfg)
        METRICS.record_verification(_outcome(result))
        METRICS.observe_statements(len(spec))
    else:
        result = _verify(spec, proof, nonce, cfg)

    if result.verified:
        log.info("proof verified", extra={"statements": len(spec)})
    else:
        log.info(
            "proof rejected",
            extra={"reason": result.reason, "failures": len(result.failures)},
        )
    return result


def verify_proof_bytes(
    spec: ProofSpec,
    data: bytes,
    nonce: Optional[bytes] = None,
    *,
    config: Optional[ProofSystemConfig] = None,
) -> VerificationResult:
    """Decode a canonical proof encoding, then verify it. Decode errors fail the verdict."""
    try:
        proof = Proof.from_bytes(data)
    except ProofSystemError as e:
        cfg = config or DEFAULT
        if cfg.metrics_enabled:
            METRICS.record_verification("decode_error")
        log.info("proof rejected", extra={"reason": "decode", "detail": e.msg})
        return VerificationResult.failed([e])
    return verify_proof(spec, proof, nonce, config=config)


def verify_from_parts(
    statements: Iterable[Any],
    setup_params: Iterable[Any],
    equalities: Iterable[Iterable[Any]],
    proof: Proof,
    context: bytes = b"",
    nonce: Optional[bytes] = None,
    *,
    config: Optional[ProofSystemConfig] = None,
) -> VerificationResult:
    """Assemble the ProofSpec from its parts, then verify. A bad spec fails the verdict."""
    try:
        spec = ProofSpec.build(statements, setup_params, equalities, context, config=config)
    except ProofSystemError as e:
        return VerificationResult.failed([e])
    return verify_proof(spec, proof, nonce, config=config)


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


def _verify(
    spec: ProofSpec,
    proof: Any,
    nonce: Optional[bytes],
    cfg: ProofSystemConfig,
) -> VerificationResult:
    if not isinstance(proof, Proof):
        return VerificationResult.failed([DecodeError(f"not a Proof: {type(proof).__name__}")])
    if len(proof) != len(spec):
        return VerificationResult.failed([ProofShapeMismatch(len(spec), len(proof))])

    try:
        check_nonce(nonce, cfg)
    except ProofSystemError as e:
        return VerificationResult.failed([VerificationFailed("nonce", detail=e.msg, cause=e)])
    if proof.nonce_tag is not None and proof.nonce_tag != nonce_tag(nonce):
        return VerificationResult.failed(
            [VerificationFailed("nonce", detail="proof was created for a different nonce")]
        )

    statements = spec.resolved_statements
    for i, (st, sp) in enumerate(zip(statements, proof.statement_proofs)):
        if not isinstance(sp, StatementProof):
            return VerificationResult.failed(
                [DecodeError(f"proof {i} is not a statement proof: {type(sp).__name__}")]
            )
        if sp.KIND != st.KIND:
            return VerificationResult.failed(
                [
                    VerificationFailed(
                        "kind",
                        detail=f"proof {i} is {sp.KIND.name}, statement is {st.KIND.name}",
                        index=i,
                    )
                ]
            )

    failures: List[ProofSystemError] = []
    providers = [get_provider(st.KIND) for st in statements]
    try:
        contributions = [
            p.contribution(st, sp.commitment)
            for p, st, sp in zip(providers, statements, proof.statement_proofs)
        ]
    except PROVIDER_ERRORS as e:
        failures.append(VerificationFailed("contribution", detail=str(e), cause=e))
    else:
        challenge = compute_challenge(contributions, spec.context, nonce)
        log.debug("challenge recomputed", extra={"phase": "verify"})
        failures.extend(
            _verify_statements(providers, statements, proof.statement_proofs, challenge, cfg.workers)
        )

    failures.extend(_verify_equalities(spec, proof))
    if not failures:
        return VerificationResult.ok()
    if not cfg.collect_all_failures:
        failures = failures[:1]
    return VerificationResult.failed(failures)


def _verify_one(provider: Any, statement: Any, sp: Any, challenge: int, index: int) -> Optional[ProofSystemError]:
    try:
        provider.verify(statement, sp, challenge)
    except VerificationFailed as e:
        return e.at(index)
    except PROVIDER_ERRORS as e:
        return VerificationFailed("statement", detail=str(e), index=index, cause=e)
    return None


def _verify_statements(
    providers: Sequence[Any],
    statements: Sequence[Any],
    proofs: Sequence[Any],
    challenge: int,
    workers: int,
) -> List[ProofSystemError]:
    jobs = list(zip(providers, statements, proofs))
    if workers <= 1 or len(jobs) <= 1:
        results = [_verify_one(p, st, sp, challenge, i) for i, (p, st, sp) in enumerate(jobs)]
    else:
        with ThreadPoolExecutor(max_workers=min(workers, len(jobs))) as pool:
            futures = [
                pool.submit(_verify_one, p, st, sp, challenge, i) for i, (p, st, sp) in enumerate(jobs)
            ]
            results = [f.result() for f in futures]
    return [r for r in results if r is not None]


def _verify_equalities(spec: ProofSpec, proof: Proof) -> List[ProofSystemError]:
    failures: List[ProofSystemError] = []
    for group in spec.equalities:
        values = []
        for ref in group:
            try:
                values.append(proof.statement_proofs[ref.statement].slot_response(ref.slot))
            except PROVIDER_ERRORS:
                values.append(None)
        if None in values or len(set(values)) != 1:
            failures.append(
                VerificationFailed(
                    "equality",
                    detail="linked witness slots have different responses",
                    group=tuple(tuple(r) for r in group),
                )
            )
    return failures


__all__ = [
    "VerificationResult",
    "verify_proof",
    "verify_proof_bytes",
    "verify_from_parts",
]
