import pytest

from composite_proofs.errors import (
    ErrorCode,
    MalformedSpec,
    ProofSystemError,
    StatementProvingError,
    VerificationFailed,
    WitnessCountMismatch,
    ensure,
    require,
)


def test_structured_fields_and_str():
    e = WitnessCountMismatch(3, 2)
    assert e.code is ErrorCode.WITNESS_COUNT_MISMATCH
    assert e.ctx == {"expected": 3, "got": 2}
    assert "WITNESS_COUNT_MISMATCH" in str(e)
    assert isinstance(e, ProofSystemError) and isinstance(e, Exception)


def test_to_dict_from_dict_roundtrip():
    e = MalformedSpec("bad ref", ctx={"statement": 4})
    back = ProofSystemError.from_dict(e.to_dict())
    assert back.code == ErrorCode.MALFORMED_SPEC
    assert back.msg == "bad ref"
    assert back.ctx == {"statement": 4}


def test_unknown_code_survives_from_dict():
    back = ProofSystemError.from_dict({"code": "SOMETHING_NEW", "msg": "x"})
    assert back.code == "SOMETHING_NEW"


def test_with_context_merges_without_mutating():
    e = MalformedSpec("m", ctx={"a": 1})
    e2 = e.with_context(b=2)
    assert e2.ctx == {"a": 1, "b": 2}
    assert e.ctx == {"a": 1}


def test_statement_proving_error_keeps_cause_and_index():
    cause = ValueError("boom")
    e = StatementProvingError(5, cause, kind="PEDERSEN_OPENING")
    assert e.index == 5
    assert e.cause is cause
    assert e.ctx == {"index": 5, "kind": "PEDERSEN_OPENING"}


def test_verification_failed_at_attributes_index():
    e = VerificationFailed("schnorr", detail="relation does not hold")
    e2 = e.at(3)
    assert e2.index == 3 and e2.reason == "schnorr"
    assert e2.ctx["index"] == 3
    assert e.index is None


def test_ensure_and_require():
    ensure(True, "x")
    with pytest.raises(VerificationFailed) as ei:
        ensure(False, "pairing", "nope")
    assert ei.value.reason == "pairing" and ei.value.msg == "nope"
    require(True, "x")
    with pytest.raises(MalformedSpec) as ei2:
        require(False, "bad", statement=1)
    assert ei2.value.ctx == {"statement": 1}
