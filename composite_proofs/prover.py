"""
composite_proofs.prover

Proof orchestrator: turns a ProofSpec plus a witness table into one Proof.

    proof = create_proof(spec, witnesses, nonce=b"session-42")

Phases
------
1. checks     witness count (WitnessCountMismatch) and variants (MalformedSpec)
2. blindings  one fresh scalar per merged equality group, shared by its refs
3. commit     every provider commits, in statement order, from the same rng
4. challenge  c = H("composite:challenge", contrib_0..contrib_n-1, context, nonce)
5. respond    every provider answers c (thread pool when config.workers > 1)
6. scrub      prover states are zeroized, on success and on failure

Because each linked slot is masked with the same blinding r and answered
under the same c, its response r + c*w coincides across statements exactly
when the witnesses agree; that is what the verifier checks for equalities.
"""

from __future__ import annotations

import logging
import secrets
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .config import DEFAULT, ProofSystemConfig
from .ec.bn254 import ORDER, random_scalar
from .equality import EqualityGroup, merged_groups
from .errors import MalformedSpec, ProofSystemError, StatementProvingError, WitnessCountMismatch
from .metrics import METRICS
from .proof import Proof, nonce_tag
from .providers.base import PROVIDER_ERRORS, ProverState
from .providers.registry import get_provider
from .spec import ProofSpec
from .utils.hash import DOM_CHALLENGE, hash_to_scalar
from .witnesses import check_compatible

log = logging.getLogger(__name__)


def compute_challenge(contributions: Sequence[bytes], context: bytes, nonce: Optional[bytes]) -> int:
    """Shared Fiat-Shamir challenge; the verifier recomputes it the same way."""
    return hash_to_scalar(
        DOM_CHALLENGE,
        *contributions,
        bytes(context),
        b"" if nonce is None else bytes(nonce),
        order=ORDER,
    )


def check_nonce(nonce: Optional[bytes], config: ProofSystemConfig) -> None:
    if nonce is None:
        return
    if not isinstance(nonce, (bytes, bytearray)):
        raise MalformedSpec("nonce must be bytes", ctx={"type": type(nonce).__name__})
    if len(nonce) > config.max_nonce_bytes:
        raise MalformedSpec(
            f"nonce too large ({len(nonce)} > {config.max_nonce_bytes} bytes)",
            ctx={"size": len(nonce), "limit": config.max_nonce_bytes},
        )


def blinding_plan(groups: Iterable[EqualityGroup], rng: Any) -> Dict[int, Dict[int, int]]:
    """statement index -> {slot: shared blinding} for every equality-linked slot."""
    plan: Dict[int, Dict[int, int]] = {}
    for group in merged_groups(groups):
        r = random_scalar(rng)
        for ref in group:
            plan.setdefault(ref.statement, {})[ref.slot] = r
    return plan


def _outcome(err: BaseException) -> str:
    if isinstance(err, (WitnessCountMismatch, MalformedSpec)):
        return "witness_mismatch"
    if isinstance(err, StatementProvingError):
        return "proving_error"
    return "invalid"


def create_proof(
    spec: ProofSpec,
    witnesses: Sequence[Any],
    nonce: Optional[bytes] = None,
    *,
    rng: Any = None,
    config: Optional[ProofSystemConfig] = None,
) -> Proof:
    """
    Produce a composite proof for `spec` from `witnesses`.

    Args:
        spec:      validated ProofSpec.
        witnesses: one witness per statement, same order.
        nonce:     optional bytes bound into the challenge; the verifier must
                   supply the same value.
        rng:       randomness handle with the `random.Random` API; defaults to
                   `secrets.SystemRandom()`. Pass a seeded `random.Random` only
                   in tests.
        config:    execution limits and worker count.

    Raises:
        WitnessCountMismatch, MalformedSpec, StatementProvingError
    """
    cfg = config or DEFAULT
    metrics = METRICS if cfg.metrics_enabled else None
    try:
        if metrics is None:
            proof = _create(spec, witnesses, nonce, rng, cfg)
        else:
            with metrics.prove_timer():
                proof = _create(spec, witnesses, nonce, rng, cfg)
    except ProofSystemError as e:
        if metrics is not None:
            metrics.record_proof(_outcome(e))
        log.info("proof creation failed", extra={"code": str(e.code), "reason": e.msg})
        raise
    if metrics is not None:
        metrics.record_proof("ok")
        metrics.observe_statements(len(spec))
    return proof


def _create(
    spec: ProofSpec,
    witnesses: Sequence[Any],
    nonce: Optional[bytes],
    rng: Any,
    cfg: ProofSystemConfig,
) -> Proof:
    witnesses = list(witnesses)
    if len(witnesses) != len(spec):
        raise WitnessCountMismatch(len(spec), len(witnesses))
    check_nonce(nonce, cfg)
    statements = spec.resolved_statements
    for i, (st, wit) in enumerate(zip(statements, witnesses)):
        check_compatible(st, wit, i)

    rng = rng if rng is not None else secrets.SystemRandom()
    providers = [get_provider(st.KIND) for st in statements]
    plan = blinding_plan(spec.equalities, rng)

    states: List[ProverState] = []
    try:
        for i, (provider, st, wit) in enumerate(zip(providers, statements, witnesses)):
            try:
                states.append(provider.commit(st, wit, rng, plan.get(i, {})))
            except PROVIDER_ERRORS as e:
                raise StatementProvingError(i, e, kind=st.KIND.name) from e
        log.debug("commit phase done", extra={"phase": "commit", "statements": len(states)})

        contributions = [
            provider.contribution(st, state.commitment)
            for provider, st, state in zip(providers, statements, states)
        ]
        challenge = compute_challenge(contributions, spec.context, nonce)
        log.debug("challenge derived", extra={"phase": "challenge"})

        proofs = _respond_all(providers, states, challenge, statements, cfg.workers)
        log.debug("response phase done", extra={"phase": "respond", "workers": cfg.workers})
    finally:
        for state in states:
            state.zeroize()
        _scrub_plan(plan)

    return Proof(statement_proofs=tuple(proofs), nonce_tag=nonce_tag(nonce))


def _respond_all(
    providers: Sequence[Any],
    states: Sequence[ProverState],
    challenge: int,
    statements: Sequence[Any],
    workers: int,
) -> List[Any]:
    if workers <= 1 or len(states) <= 1:
        out = []
        for i, (provider, state) in enumerate(zip(providers, states)):
            try:
                out.append(provider.respond(state, challenge))
            except PROVIDER_ERRORS as e:
                raise StatementProvingError(i, e, kind=statements[i].KIND.name) from e
        return out

    with ThreadPoolExecutor(max_workers=min(workers, len(states))) as pool:
        futures = [pool.submit(p.respond, s, challenge) for p, s in zip(providers, states)]
        out = []
        for i, fut in enumerate(futures):
            try:
                out.append(fut.result())
            except PROVIDER_ERRORS as e:
                raise StatementProvingError(i, e, kind=statements[i].KIND.name) from e
        return out


def _scrub_plan(plan: Dict[int, Dict[int, int]]) -> None:
    for slots in plan.values():
        for k in slots:
            slots[k] = 0
        slots.clear()
    plan.clear()


def create_proof_from_parts(
    statements: Iterable[Any],
    setup_params: Iterable[Any],
    equalities: Iterable[Iterable[Any]],
    witnesses: Sequence[Any],
    context: bytes = b"",
    nonce: Optional[bytes] = None,
    *,
    rng: Any = None,
    config: Optional[ProofSystemConfig] = None,
) -> Proof:
    """Build the ProofSpec from its parts, then prove it."""
    spec = ProofSpec.build(statements, setup_params, equalities, context, config=config)
    return create_proof(spec, witnesses, nonce, rng=rng, config=config)


__all__ = [
    "create_proof",
    "create_proof_from_parts",
    "compute_challenge",
    "blinding_plan",
    "check_nonce",
]
