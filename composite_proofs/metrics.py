"""
Prometheus metrics for the proof system.

Counters and histograms for the two entry points:
  • proofs_total          proof creations per outcome
  • verifications_total   verification verdicts per outcome
  • prove_seconds         wall time of create_proof
  • verify_seconds        wall time of verify_proof
  • statements_per_proof  number of statements in each proved/verified spec

Label cardinality is kept low: only an `outcome` label with a small, fixed
vocabulary. Statement kinds and spec digests are never used as labels.

Usage
-----
    from composite_proofs.metrics import METRICS

    with METRICS.prove_timer():
        proof = create_proof(spec, witnesses)
    METRICS.record_proof("ok")

Construct your own `Metrics` with a separate registry for tests or when
embedding in a process that already owns the default names.
"""

from __future__ import annotations

from contextlib import contextmanager
from time import perf_counter
from typing import Iterable

from prometheus_client import Counter, Histogram, REGISTRY


_PROOF_OUTCOMES = (
    "ok",
    "witness_mismatch",   # witness count or variant does not match the spec
    "proving_error",      # a statement provider failed during commit/respond
    "invalid",            # anything else
)

_VERIFY_OUTCOMES = (
    "verified",
    "shape_mismatch",
    "nonce_mismatch",
    "kind_mismatch",
    "statement_failed",
    "equality_failed",
    "decode_error",
    "invalid",
)

_LATENCY_BUCKETS = (
    0.005, 0.01, 0.025, 0.05,
    0.1, 0.25, 0.5,
    1.0, 2.5, 5.0, 10.0, 30.0,
)

_STATEMENT_BUCKETS = (1.0, 2.0, 4.0, 8.0, 16.0, 32.0, 64.0, 128.0, 256.0)


class Metrics:
    """
    Container for the proof system's Prometheus instruments.

    Args:
        namespace: Prometheus metric namespace (prefix).
        subsystem: Prometheus metric subsystem.
        registry:  Prometheus registry to register the metrics with.
    """

    def __init__(
        self,
        *,
        namespace: str = "composite",
        subsystem: str = "proofs",
        registry=REGISTRY,
        latency_buckets: Iterable[float] = _LATENCY_BUCKETS,
        statement_buckets: Iterable[float] = _STATEMENT_BUCKETS,
    ) -> None:
        self.proofs_total = Counter(
            "proofs_total",
            "Number of composite proofs attempted, labeled by outcome.",
            labelnames=("outcome",),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.verifications_total = Counter(
            "verifications_total",
            "Number of composite proof verifications, labeled by outcome.",
            labelnames=("outcome",),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.prove_seconds = Histogram(
            "prove_seconds",
            "Time spent creating composite proofs (seconds).",
            buckets=tuple(latency_buckets),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.verify_seconds = Histogram(
            "verify_seconds",
            "Time spent verifying composite proofs (seconds).",
            buckets=tuple(latency_buckets),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.statements_per_proof = Histogram(
            "statements_per_proof",
            "Number of statements in each proved or verified spec.",
            buckets=tuple(statement_buckets),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )

    # ----- Recording helpers -------------------------------------------------

    def record_proof(self, outcome: str) -> None:
        """Increment the proof counter; unknown outcomes count as "invalid"."""
        if outcome not in _PROOF_OUTCOMES:
            outcome = "invalid"
        self.proofs_total.labels(outcome=outcome).inc()

    def record_verification(self, outcome: str) -> None:
        """Increment the verification counter; unknown outcomes count as "invalid"."""
        if outcome not in _VERIFY_OUTCOMES:
            outcome = "invalid"
        self.verifications_total.labels(outcome=outcome).inc()

    def observe_statements(self, count: int) -> None:
        self.statements_per_proof.observe(float(count))

    # ----- Context managers --------------------------------------------------

    @contextmanager
    def prove_timer(self):
        start = perf_counter()
        try:
            yield
        finally:
            self.prove_seconds.observe(perf_counter() - start)

    @contextmanager
    def verify_timer(self):
        start = perf_counter()
        try:
            yield
        finally:
            self.verify_seconds.observe(perf_counter() - start)


# Singleton used by the prover and verifier
METRICS = Metrics()

__all__ = [
    "Metrics",
    "METRICS",
    "_PROOF_OUTCOMES",
    "_VERIFY_OUTCOMES",
]
