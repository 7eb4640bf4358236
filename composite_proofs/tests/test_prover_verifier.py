import pytest

from composite_proofs.config import ProofSystemConfig
from composite_proofs.ec.bn254 import ORDER
from composite_proofs.errors import (
    MalformedSpec,
    ProofShapeMismatch,
    StatementProvingError,
    VerificationFailed,
    WitnessCountMismatch,
)
from composite_proofs.params import RangeKey, SetupParamArena
from composite_proofs.proof import Proof, nonce_tag
from composite_proofs.prover import blinding_plan, create_proof, create_proof_from_parts
from composite_proofs.spec import ProofSpec
from composite_proofs.statements import BoundedValue, StatementKind
from composite_proofs.tests import TEST_LABEL, det_rng, pedersen_case, signature_case
from composite_proofs.verifier import (
    VerificationResult,
    verify_from_parts,
    verify_proof,
    verify_proof_bytes,
)
from composite_proofs.witnesses import (
    BoundedValueWitness,
    PedersenOpeningWitness,
    VerifiableEncryptionWitness,
    WitnessTable,
)

MESSAGES = [1111, 2222, 3333]


def _linked_case(seed=1, pedersen_scalars=(3333, 44), context=b"ctx"):
    """Signature revealing message 0, message 2 linked to Pedersen slot 0."""
    rng = det_rng(seed)
    sig_stmt, sig_wit, _ = signature_case(rng, MESSAGES, revealed=[0])
    ped_stmt, ped_wit = pedersen_case(rng, list(pedersen_scalars))
    spec = ProofSpec.build([sig_stmt, ped_stmt], equalities=[[(0, 2), (1, 0)]], context=context)
    return rng, spec, [sig_wit, ped_wit]


def _pedersen_chain(seed=2, count=3):
    rng = det_rng(seed)
    cases = [pedersen_case(rng, [9, 10 + i]) for i in range(count)]
    stmts = [s for s, _ in cases]
    wits = [w for _, w in cases]
    return rng, stmts, wits


# ---------------------------------------------------------------------------
# Completeness
# ---------------------------------------------------------------------------


def test_linked_signature_and_commitment_verify():
    rng, spec, wits = _linked_case()
    proof = create_proof(spec, wits, nonce=b"session-1", rng=rng)
    assert proof.kinds == (StatementKind.SIGNATURE_KNOWLEDGE, StatementKind.PEDERSEN_OPENING)
    assert proof.nonce_tag == nonce_tag(b"session-1")

    result = verify_proof(spec, proof, nonce=b"session-1")
    assert result.verified and bool(result)
    assert result.reason == "" and result.failures == ()
    assert result.to_dict() == {"verified": True, "error": None}

    assert proof.statement_proofs[0].slot_response(2) == proof.statement_proofs[1].slot_response(0)


def _group_values(spec, wits):
    return [{wits[r.statement].slot_value(r.slot) for r in group} for group in spec.equalities]


def test_linked_slots_hold_equal_values():
    _, spec, wits = _linked_case()
    assert _group_values(spec, wits) == [{3333}]
    _, spec, wits = _linked_case(pedersen_scalars=(3334, 44))
    assert _group_values(spec, wits) == [{3333, 3334}]


def test_slot_value_rejects_unknown_slots():
    _, _, (sig_wit, ped_wit) = _linked_case()
    assert sig_wit.slot_value(1) == 2222
    assert ped_wit.slot_value(1) == 44
    with pytest.raises(IndexError):
        sig_wit.slot_value(0)  # revealed
    with pytest.raises(IndexError):
        ped_wit.slot_value(2)
    assert BoundedValueWitness(-1).slot_value(0) == ORDER - 1
    with pytest.raises(IndexError):
        VerifiableEncryptionWitness(5).slot_value(1)


def test_overlapping_groups_share_one_blinding():
    rng, stmts, wits = _pedersen_chain()
    groups = [[(0, 0), (1, 0)], [(1, 0), (2, 0)]]
    spec = ProofSpec.build(stmts, equalities=groups)
    plan = blinding_plan(spec.equalities, det_rng())
    assert plan[0][0] == plan[1][0] == plan[2][0]

    proof = create_proof(spec, wits, rng=rng)
    assert verify_proof(spec, proof).verified


def test_parallel_workers_give_valid_proofs():
    rng, stmts, wits = _pedersen_chain(count=4)
    spec = ProofSpec.build(stmts, equalities=[[(0, 0), (3, 0)]])
    cfg = ProofSystemConfig(workers=2)
    proof = create_proof(spec, wits, rng=rng, config=cfg)
    assert verify_proof(spec, proof, config=cfg).verified
    assert verify_proof(spec, proof).verified


def test_default_rng_is_used_when_none_given():
    _, stmts, wits = _pedersen_chain(count=1)
    spec = ProofSpec.build(stmts)
    a = create_proof(spec, wits)
    b = create_proof(spec, wits)
    assert verify_proof(spec, a).verified
    assert verify_proof(spec, b).verified
    assert a != b


def test_witness_table_scrubs_after_proving():
    rng, stmts, wits = _pedersen_chain(count=2)
    spec = ProofSpec.build(stmts)
    with WitnessTable(wits) as table:
        proof = create_proof(spec, table, rng=rng)
    assert len(table) == 0
    assert wits[0].scalars == []
    assert verify_proof(spec, proof).verified


def test_from_parts():
    rng = det_rng(4)
    arena = SetupParamArena()
    rk = arena.add(RangeKey.generate(TEST_LABEL))
    ped, ped_wit = pedersen_case(rng, [21, 5])
    bound = BoundedValue(lower=18, upper=30, range_key=rk)
    proof = create_proof_from_parts(
        [ped, bound], arena, [[(0, 0), (1, 0)]], [ped_wit, BoundedValueWitness(21)], b"age", rng=rng
    )
    assert verify_from_parts([ped, bound], arena, [[(1, 0), (0, 0)]], proof, b"age").verified

    bad = verify_from_parts([ped, bound], (), [], proof, b"age")
    assert not bad.verified
    assert isinstance(bad.error, MalformedSpec)


# ---------------------------------------------------------------------------
# Prover errors
# ---------------------------------------------------------------------------


def test_witness_count_mismatch():
    rng, spec, wits = _linked_case()
    with pytest.raises(WitnessCountMismatch) as ei:
        create_proof(spec, wits[:1], rng=rng)
    assert ei.value.ctx == {"expected": 2, "got": 1}


def test_witness_variant_mismatch():
    rng, spec, wits = _linked_case()
    with pytest.raises(MalformedSpec) as ei:
        create_proof(spec, [wits[0], VerifiableEncryptionWitness(1)], rng=rng)
    assert ei.value.ctx["index"] == 1


def test_provider_failure_is_attributed():
    rng, spec, wits = _linked_case()
    with pytest.raises(StatementProvingError) as ei:
        create_proof(spec, [wits[0], PedersenOpeningWitness([1])], rng=rng)
    assert ei.value.index == 1
    assert isinstance(ei.value.cause, ValueError)


def test_out_of_bounds_value_is_a_proving_error():
    rng = det_rng()
    spec = ProofSpec.build([BoundedValue(lower=0, upper=7, range_key=RangeKey.generate(TEST_LABEL))])
    with pytest.raises(StatementProvingError) as ei:
        create_proof(spec, [BoundedValueWitness(8)], rng=rng)
    assert ei.value.ctx["kind"] == "BOUNDED_VALUE"


def test_oversized_nonce_rejected():
    rng, spec, wits = _linked_case()
    cfg = ProofSystemConfig(max_nonce_bytes=4)
    with pytest.raises(MalformedSpec):
        create_proof(spec, wits, nonce=b"12345", rng=rng, config=cfg)


# ---------------------------------------------------------------------------
# Verifier rejections
# ---------------------------------------------------------------------------


def test_mismatched_linked_witness_fails_equality():
    # Pedersen opens a valid commitment, but to 3334 instead of message 2
    rng, spec, wits = _linked_case(pedersen_scalars=(3334, 44))
    proof = create_proof(spec, wits, rng=rng)
    result = verify_proof(spec, proof)
    assert not result.verified
    assert result.reason == "equality"
    assert isinstance(result.error, VerificationFailed)
    assert result.error.group == ((0, 2), (1, 0))
    assert len(result.failures) == 1


def test_shape_mismatch():
    rng, spec, wits = _linked_case()
    proof = create_proof(spec, wits, rng=rng)
    short = Proof(statement_proofs=proof.statement_proofs[:1], nonce_tag=proof.nonce_tag)
    result = verify_proof(spec, short)
    assert result.reason == "shape"
    assert isinstance(result.error, ProofShapeMismatch)


def test_nonce_binding():
    rng, spec, wits = _linked_case()
    proof = create_proof(spec, wits, nonce=b"n1", rng=rng)
    assert verify_proof(spec, proof, nonce=b"n2").reason == "nonce"
    assert verify_proof(spec, proof).reason == "nonce"

    # a stripped tag still fails: the nonce is bound into the challenge
    stripped = Proof(statement_proofs=proof.statement_proofs, nonce_tag=None)
    result = verify_proof(spec, stripped)
    assert not result.verified
    assert result.reason == "schnorr"


def test_oversized_nonce_fails_verification():
    rng, spec, wits = _linked_case()
    proof = create_proof(spec, wits, rng=rng)
    result = verify_proof(spec, proof, nonce=b"x" * 10, config=ProofSystemConfig(max_nonce_bytes=4))
    assert result.reason == "nonce"


def test_kind_mismatch():
    rng, stmts, wits = _pedersen_chain(count=1)
    proof = create_proof(ProofSpec.build(stmts), wits, rng=rng)
    other = ProofSpec.build([BoundedValue(lower=0, upper=3, range_key=RangeKey.generate(TEST_LABEL))])
    result = verify_proof(other, proof)
    assert result.reason == "kind"
    assert result.error.index == 0


def test_context_is_bound():
    rng, spec, wits = _linked_case(context=b"a")
    proof = create_proof(spec, wits, rng=rng)
    _, other, _ = _linked_case(context=b"b")
    result = verify_proof(other, proof)
    assert not result.verified
    assert {f.index for f in result.failures} == {0, 1}


def test_first_failure_only_when_configured():
    rng, spec, wits = _linked_case(context=b"a")
    proof = create_proof(spec, wits, rng=rng)
    _, other, _ = _linked_case(context=b"b")
    result = verify_proof(other, proof, config=ProofSystemConfig(collect_all_failures=False))
    assert len(result.failures) == 1
    assert result.error.index == 0


def test_non_proof_input():
    _, spec, _ = _linked_case()
    result = verify_proof(spec, "not a proof")  # type: ignore[arg-type]
    assert result.reason == "decode"


def test_non_statement_proof_entry():
    rng, spec, wits = _linked_case()
    proof = create_proof(spec, wits, rng=rng)
    forged = Proof(statement_proofs=(proof.statement_proofs[0], "junk"), nonce_tag=proof.nonce_tag)
    result = verify_proof(spec, forged)  # type: ignore[arg-type]
    assert not result.verified
    assert result.reason == "decode"
    assert "proof 1" in result.error.msg


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def test_proof_bytes_roundtrip():
    rng, spec, wits = _linked_case()
    proof = create_proof(spec, wits, nonce=b"n", rng=rng)
    data = proof.to_bytes()
    back = Proof.from_bytes(data)
    assert back == proof
    assert back.to_bytes() == data
    assert verify_proof_bytes(spec, data, nonce=b"n").verified


def test_garbage_proof_bytes():
    _, spec, _ = _linked_case()
    result = verify_proof_bytes(spec, b"\x00garbage")
    assert isinstance(result, VerificationResult)
    assert not result.verified
    assert result.reason == "decode"
    assert result.to_dict()["error"]


def test_failure_details_are_serialisable():
    rng, spec, wits = _linked_case(pedersen_scalars=(1, 2))
    result = verify_proof(spec, create_proof(spec, wits, rng=rng))
    details = result.details()
    assert details["verified"] is False
    assert details["failures"][0]["code"] == "VERIFICATION_FAILED"
