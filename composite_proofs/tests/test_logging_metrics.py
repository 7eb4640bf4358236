import io
import json
import logging

import pytest
from prometheus_client import REGISTRY, CollectorRegistry

from composite_proofs import logging as plog
from composite_proofs.config import ProofSystemConfig
from composite_proofs.metrics import Metrics
from composite_proofs.prover import create_proof
from composite_proofs.spec import ProofSpec
from composite_proofs.tests import det_rng, pedersen_case
from composite_proofs.verifier import verify_proof


@pytest.fixture(autouse=True)
def _clean_logging():
    plog.clear_context()
    yield
    plog.clear_context()
    logger = logging.getLogger("composite_proofs.test")
    for h in list(logger.handlers):
        logger.removeHandler(h)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def test_bind_and_trace_scope():
    plog.bind(spec=b"\x01\x02")
    assert plog.context() == {"spec": "0102"}
    with plog.trace_scope("abc", phase="verify") as tid:
        assert tid == "abc"
        assert plog.context()["phase"] == "verify"
    assert plog.context() == {"spec": "0102"}
    plog.unbind("spec")
    assert plog.context() == {}


def test_json_lines_carry_context_and_extras():
    stream = io.StringIO()
    logger = plog.configure(json=True, level="DEBUG", stream=stream, logger_name="composite_proofs.test")
    with plog.trace_scope("t-1"):
        logger.info("proof verified", extra={"statements": 3})
    rec = json.loads(stream.getvalue().strip())
    assert rec["msg"] == "proof verified"
    assert rec["level"] == "INFO"
    assert rec["trace_id"] == "t-1"
    assert rec["statements"] == 3


def test_text_format_is_plain_on_non_tty():
    stream = io.StringIO()
    logger = plog.configure(json=False, level="INFO", stream=stream, logger_name="composite_proofs.test")
    logger.debug("hidden")
    logger.warning("proof rejected", extra={"reason": "nonce"})
    line = stream.getvalue().strip()
    assert "\x1b[" not in line
    assert "reason=nonce" in line and line.endswith("proof rejected")
    assert "hidden" not in line


def test_format_selection(monkeypatch):
    monkeypatch.setenv("COMPOSITE_PROOFS_LOG_FORMAT", "text")
    assert plog._decide_json(None, io.StringIO()) is False
    monkeypatch.setenv("COMPOSITE_PROOFS_LOG_FORMAT", "json")
    assert plog._decide_json(None, io.StringIO()) is True
    assert plog._decide_json(False, io.StringIO()) is False
    assert plog._coerce_level("bogus") == logging.INFO


def test_verifier_logs_rejection(caplog):
    rng = det_rng()
    stmt, wit = pedersen_case(rng, [1, 2])
    spec = ProofSpec.build([stmt])
    proof = create_proof(spec, [wit], nonce=b"a", rng=rng)
    with caplog.at_level(logging.INFO, logger="composite_proofs"):
        verify_proof(spec, proof, nonce=b"b")
    rec = [r for r in caplog.records if r.getMessage() == "proof rejected"][-1]
    assert rec.reason == "nonce"


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


def _sample(registry, name, **labels):
    return registry.get_sample_value(name, labels or None) or 0.0


def test_metrics_counters_and_timers():
    registry = CollectorRegistry()
    m = Metrics(registry=registry)
    m.record_proof("ok")
    m.record_proof("something-else")
    m.record_verification("nonce_mismatch")
    m.observe_statements(3)
    with m.prove_timer():
        pass
    with m.verify_timer():
        pass

    assert _sample(registry, "composite_proofs_proofs_total", outcome="ok") == 1.0
    assert _sample(registry, "composite_proofs_proofs_total", outcome="invalid") == 1.0
    assert _sample(registry, "composite_proofs_verifications_total", outcome="nonce_mismatch") == 1.0
    assert _sample(registry, "composite_proofs_statements_per_proof_sum") == 3.0
    assert _sample(registry, "composite_proofs_prove_seconds_count") == 1.0
    assert _sample(registry, "composite_proofs_verify_seconds_count") == 1.0


def test_prove_and_verify_record_default_metrics():
    rng = det_rng()
    stmt, wit = pedersen_case(rng, [1])
    spec = ProofSpec.build([stmt])

    ok_before = _sample(REGISTRY, "composite_proofs_proofs_total", outcome="ok")
    ver_before = _sample(REGISTRY, "composite_proofs_verifications_total", outcome="verified")
    proof = create_proof(spec, [wit], rng=rng)
    verify_proof(spec, proof)
    assert _sample(REGISTRY, "composite_proofs_proofs_total", outcome="ok") == ok_before + 1
    assert _sample(REGISTRY, "composite_proofs_verifications_total", outcome="verified") == ver_before + 1

    off = ProofSystemConfig(metrics_enabled=False)
    verify_proof(spec, proof, config=off)
    assert _sample(REGISTRY, "composite_proofs_verifications_total", outcome="verified") == ver_before + 1
