import pytest

from composite_proofs.cbor import dumps_canonical, loads
from composite_proofs.ec.bn254 import G1_GROUP, ORDER
from composite_proofs.errors import DecodeError, VerificationFailed
from composite_proofs.proof import Proof
from composite_proofs.prover import create_proof
from composite_proofs.providers.bounds import BoundedValueProvider, BoundsProof
from composite_proofs.sigma import BitResponse, bit_check, bit_commit, bit_respond
from composite_proofs.spec import ProofSpec
from composite_proofs.statements import BoundedValue
from composite_proofs.tests import det_rng, range_key
from composite_proofs.verifier import verify_proof_bytes
from composite_proofs.witnesses import BoundedValueWitness

CHALLENGE = 55555


def _prove(stmt, value, rng, blindings=None):
    p = BoundedValueProvider()
    state = p.commit(stmt, BoundedValueWitness(value), rng, blindings or {})
    proof = p.respond(state, CHALLENGE)
    state.zeroize()
    return p, proof


@pytest.mark.parametrize("value", [18, 21, 25])
def test_values_inside_interval_verify(value):
    stmt = BoundedValue(lower=18, upper=25, range_key=range_key())
    p, proof = _prove(stmt, value, det_rng(value))
    p.verify(stmt, proof, CHALLENGE)


def test_degenerate_interval():
    stmt = BoundedValue(lower=7, upper=7, range_key=range_key())
    p, proof = _prove(stmt, 7, det_rng())
    p.verify(stmt, proof, CHALLENGE)


def test_value_outside_interval_cannot_commit():
    stmt = BoundedValue(lower=18, upper=25, range_key=range_key())
    with pytest.raises(ValueError):
        BoundedValueProvider().commit(stmt, BoundedValueWitness(17), det_rng(), {})


def test_proof_does_not_transfer_to_other_bounds():
    stmt = BoundedValue(lower=18, upper=25, range_key=range_key())
    p, proof = _prove(stmt, 20, det_rng())
    other = BoundedValue(lower=19, upper=26, range_key=range_key())
    with pytest.raises(VerificationFailed) as ei:
        p.verify(other, proof, CHALLENGE)
    assert ei.value.reason == "schnorr"


def test_slot_response_and_roundtrip():
    stmt = BoundedValue(lower=0, upper=15, range_key=range_key())
    p, proof = _prove(stmt, 9, det_rng(), blindings={0: 1000})
    assert proof.slot_response(0) == 1000 + CHALLENGE * 9
    back = BoundsProof.from_dict(loads(dumps_canonical(proof.to_dict())))
    assert back == proof
    p.verify(stmt, back, CHALLENGE)


def test_bit_proof_rejects_non_bits():
    rk = range_key()
    rng = det_rng()
    # A = 2*G + t*H is neither a commitment to 0 nor to 1
    t = 77
    a = G1_GROUP.norm(G1_GROUP.add(G1_GROUP.mul(rk.g, 2), G1_GROUP.mul(rk.h, t)))
    eqs = [(rk.h, a, rk.g)]
    commitment, state = bit_commit(G1_GROUP, eqs, 1, t, rng)
    assert not bit_check(G1_GROUP, eqs, commitment, bit_respond(state, CHALLENGE), CHALLENGE)
    with pytest.raises(ValueError):
        bit_commit(G1_GROUP, eqs, 2, t, rng)


def test_unreduced_bit_response_is_rejected():
    stmt = BoundedValue(lower=18, upper=25, range_key=range_key())
    spec = ProofSpec.build([stmt])
    proof = create_proof(spec, [BoundedValueWitness(20)], rng=det_rng(3))
    data = proof.to_bytes()
    assert verify_proof_bytes(spec, data).verified

    d = loads(data)
    c0 = int.from_bytes(d["proofs"][0]["body"]["a_responses"][0]["c0"], "big")
    assert c0 + ORDER < 2**256
    d["proofs"][0]["body"]["a_responses"][0]["c0"] = (c0 + ORDER).to_bytes(32, "big")
    mauled = dumps_canonical(d)
    assert mauled != data

    with pytest.raises(DecodeError) as ei:
        Proof.from_bytes(mauled)
    assert ei.value.ctx["path"].endswith("a_responses[0].c0")
    result = verify_proof_bytes(spec, mauled)
    assert not result.verified
    assert result.reason == "decode"


def test_bit_response_decode_bounds():
    top = (ORDER - 1).to_bytes(32, "big")
    br = BitResponse.from_dict({"c0": top, "s0": top, "s1": top})
    assert br == BitResponse(ORDER - 1, ORDER - 1, ORDER - 1)
    with pytest.raises(DecodeError):
        BitResponse.from_dict({"c0": top, "s0": ORDER.to_bytes(32, "big"), "s1": top})
