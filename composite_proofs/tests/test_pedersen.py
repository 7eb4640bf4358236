import pytest

from composite_proofs.cbor import dumps_canonical, loads
from composite_proofs.ec.bn254 import G2_GROUP, ORDER
from composite_proofs.errors import VerificationFailed
from composite_proofs.params import PedersenBasesG2
from composite_proofs.providers.pedersen import (
    PedersenG2Provider,
    PedersenProof,
    PedersenProofG2,
    PedersenProvider,
    pedersen_commit,
)
from composite_proofs.statements import PedersenOpeningG2
from composite_proofs.tests import det_rng, pedersen_case
from composite_proofs.witnesses import PedersenOpeningWitness

CHALLENGE = 0x1234567890ABCDEF


def _run(provider, stmt, wit, rng, blindings=None, challenge=CHALLENGE):
    state = provider.commit(stmt, wit, rng, blindings or {})
    commitment = state.commitment
    proof = provider.respond(state, challenge)
    state.zeroize()
    return commitment, proof


def test_g1_opening_verifies():
    rng = det_rng()
    stmt, wit = pedersen_case(rng, [5, 6, 7])
    p = PedersenProvider()
    _, proof = _run(p, stmt, wit, rng)
    p.verify(stmt, proof, CHALLENGE)


def test_wrong_challenge_fails():
    rng = det_rng()
    stmt, wit = pedersen_case(rng, [5, 6])
    p = PedersenProvider()
    _, proof = _run(p, stmt, wit, rng)
    with pytest.raises(VerificationFailed) as ei:
        p.verify(stmt, proof, CHALLENGE + 1)
    assert ei.value.reason == "schnorr"


def test_wrong_opening_fails():
    rng = det_rng()
    stmt, _ = pedersen_case(rng, [5, 6])
    p = PedersenProvider()
    _, proof = _run(p, stmt, PedersenOpeningWitness([5, 7]), rng)
    with pytest.raises(VerificationFailed):
        p.verify(stmt, proof, CHALLENGE)


def test_response_count_checked():
    rng = det_rng()
    stmt, wit = pedersen_case(rng, [5, 6])
    p = PedersenProvider()
    _, proof = _run(p, stmt, wit, rng)
    short = PedersenProof(commitment=proof.commitment, responses=proof.responses[:1])
    with pytest.raises(VerificationFailed) as ei:
        p.verify(stmt, short, CHALLENGE)
    assert ei.value.reason == "response-count"


def test_commit_rejects_length_mismatch():
    rng = det_rng()
    stmt, _ = pedersen_case(rng, [1, 2])
    with pytest.raises(ValueError):
        PedersenProvider().commit(stmt, PedersenOpeningWitness([1]), rng, {})


def test_shared_blinding_gives_predictable_response():
    rng = det_rng()
    stmt, wit = pedersen_case(rng, [11, 22])
    r = 424242
    _, proof = _run(PedersenProvider(), stmt, wit, rng, blindings={1: r})
    assert proof.slot_response(1) == (r + CHALLENGE * 22) % ORDER
    assert proof.slot_response(2) is None


def test_contribution_binds_commitment():
    rng = det_rng()
    stmt, wit = pedersen_case(rng, [3])
    p = PedersenProvider()
    c1, proof = _run(p, stmt, wit, rng)
    assert p.contribution(stmt, c1) == p.contribution(stmt, proof.commitment)
    c2, _ = _run(p, stmt, wit, rng)
    assert p.contribution(stmt, c1) != p.contribution(stmt, c2)


def test_proof_encoding_roundtrip():
    rng = det_rng()
    stmt, wit = pedersen_case(rng, [8, 9])
    _, proof = _run(PedersenProvider(), stmt, wit, rng)
    back = PedersenProof.from_dict(loads(dumps_canonical(proof.to_dict())))
    assert back == proof


def test_g2_opening_verifies_and_roundtrips():
    rng = det_rng(5)
    bases = PedersenBasesG2.generate(2, rng)
    scalars = [13, 17]
    stmt = PedersenOpeningG2(bases=bases, commitment=pedersen_commit(bases, scalars, G2_GROUP))
    p = PedersenG2Provider()
    _, proof = _run(p, stmt, PedersenOpeningWitness(scalars), rng)
    assert isinstance(proof, PedersenProofG2)
    p.verify(stmt, proof, CHALLENGE)
    assert PedersenProofG2.from_dict(loads(dumps_canonical(proof.to_dict()))) == proof


def test_g1_proof_rejected_by_g2_provider():
    rng = det_rng()
    stmt, wit = pedersen_case(rng, [1])
    _, proof = _run(PedersenProvider(), stmt, wit, rng)
    bases = PedersenBasesG2.generate(1, rng)
    g2_stmt = PedersenOpeningG2(bases=bases, commitment=pedersen_commit(bases, [1], G2_GROUP))
    with pytest.raises(VerificationFailed) as ei:
        PedersenG2Provider().verify(g2_stmt, proof, CHALLENGE)
    assert ei.value.reason == "proof-type"
