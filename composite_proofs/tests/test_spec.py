import pytest

from composite_proofs.config import ProofSystemConfig
from composite_proofs.errors import DecodeError, MalformedSpec
from composite_proofs.params import ParamRef, PedersenBases, RangeKey, SetupParamArena, SignatureParams
from composite_proofs.providers.bbs_plus import generate_keypair
from composite_proofs.providers.pedersen import pedersen_commit
from composite_proofs.spec import ProofSpec
from composite_proofs.statements import (
    BoundedValue,
    PedersenOpening,
    SignatureKnowledge,
    StatementKind,
    VerifiableEncryption,
    decode_statement,
    encode_statement,
)
from composite_proofs.tests import TEST_LABEL, det_rng


def _pedersen_with_ref(count=2):
    arena = SetupParamArena()
    bases = PedersenBases.generate(count, TEST_LABEL)
    ref = arena.add(bases)
    stmt = PedersenOpening(bases=ref, commitment=pedersen_commit(bases, list(range(1, count + 1))))
    return arena, stmt, bases


def _signature_with_refs(rng, count=3, revealed=None):
    arena = SetupParamArena()
    params = SignatureParams.generate(count, TEST_LABEL)
    _, pk = generate_keypair(params, rng)
    stmt = SignatureKnowledge(
        params=arena.add(params), public_key=arena.add(pk), revealed=revealed or {}
    )
    return arena, stmt


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


def test_revealed_messages_are_order_independent():
    rng = det_rng(2)
    params = SignatureParams.generate(3, TEST_LABEL)
    _, pk = generate_keypair(params, rng)
    a = SignatureKnowledge(params=params, public_key=pk, revealed={2: 9, 0: 5})
    b = SignatureKnowledge(params=params, public_key=pk, revealed=[(0, 5), (2, 9)])
    assert a == b
    assert a.revealed_messages == {0: 5, 2: 9}


def test_statement_field_validation():
    rk = RangeKey.generate(TEST_LABEL)
    with pytest.raises(MalformedSpec):
        BoundedValue(lower=10, upper=5, range_key=rk)
    with pytest.raises(MalformedSpec):
        BoundedValue(lower=0, upper=1 << 251, range_key=rk)
    with pytest.raises(MalformedSpec):
        VerifiableEncryption(encryption_key=ParamRef(0), chunk_bit_size=5, range_key=rk)
    with pytest.raises(MalformedSpec):
        PedersenOpening(bases=rk, commitment=rk.g)  # type: ignore[arg-type]


def test_bounded_value_bit_length():
    rk = RangeKey.generate(TEST_LABEL)
    assert BoundedValue(lower=3, upper=3, range_key=rk).bit_length == 1
    assert BoundedValue(lower=0, upper=255, range_key=rk).bit_length == 8
    assert BoundedValue(lower=0, upper=256, range_key=rk).bit_length == 9


def test_verifiable_encryption_chunk_count():
    rk = RangeKey.generate(TEST_LABEL)
    assert VerifiableEncryption(encryption_key=ParamRef(0), chunk_bit_size=16, range_key=rk).chunk_count == 16
    assert VerifiableEncryption(encryption_key=ParamRef(0), chunk_bit_size=8, range_key=rk).chunk_count == 32


def test_statement_encoding_roundtrip():
    _, stmt, _ = _pedersen_with_ref()
    enc = encode_statement(stmt)
    assert enc["kind"] == int(StatementKind.PEDERSEN_OPENING)
    assert decode_statement(enc) == stmt


def test_decode_statement_unknown_kind():
    with pytest.raises(DecodeError):
        decode_statement({"kind": 200, "body": {}})


# ---------------------------------------------------------------------------
# ProofSpec assembly
# ---------------------------------------------------------------------------


def test_build_resolves_refs():
    arena, stmt, bases = _pedersen_with_ref()
    spec = ProofSpec.build([stmt], arena)
    assert spec.statements[0].bases == ParamRef(0)
    assert spec.resolved(0).bases == bases
    assert spec.is_valid()
    assert len(spec) == 1


def test_out_of_range_param_ref():
    _, stmt, _ = _pedersen_with_ref()
    with pytest.raises(MalformedSpec):
        ProofSpec.build([stmt], setup_params=())


def test_param_ref_kind_mismatch_is_rejected():
    _, stmt, _ = _pedersen_with_ref()
    with pytest.raises(MalformedSpec) as ei:
        ProofSpec.build([stmt], setup_params=[RangeKey.generate(TEST_LABEL)])
    assert ei.value.ctx["field"] == "bases"


def test_equality_refs_are_checked():
    arena, stmt, _ = _pedersen_with_ref(count=2)
    with pytest.raises(MalformedSpec):
        ProofSpec.build([stmt], arena, equalities=[[(0, 0), (1, 0)]])
    with pytest.raises(MalformedSpec):
        ProofSpec.build([stmt], arena, equalities=[[(0, 0), (0, 2)]])
    spec = ProofSpec.build([stmt], arena, equalities=[[(0, 1), (0, 0)]])
    assert spec.equalities == (((0, 0), (0, 1)),)


def test_revealed_index_out_of_range():
    arena, stmt = _signature_with_refs(det_rng(4), count=2, revealed={5: 1})
    with pytest.raises(MalformedSpec) as ei:
        ProofSpec.build([stmt], arena)
    assert ei.value.ctx["index"] == 0


def test_revealed_slot_cannot_join_equality():
    arena, stmt = _signature_with_refs(det_rng(4), count=3, revealed={0: 1})
    arena2, ped, _ = _pedersen_with_ref()
    params = list(arena.entries) + list(arena2.entries)
    ped = PedersenOpening(bases=ParamRef(2), commitment=ped.commitment)
    with pytest.raises(MalformedSpec):
        ProofSpec.build([stmt, ped], params, equalities=[[(0, 0), (1, 0)]])
    ProofSpec.build([stmt, ped], params, equalities=[[(0, 1), (1, 0)]])


def test_non_statement_rejected():
    with pytest.raises(MalformedSpec):
        ProofSpec.build(["nope"])  # type: ignore[list-item]


def test_config_limits():
    _, stmt, bases = _pedersen_with_ref()
    inline = PedersenOpening(bases=bases, commitment=stmt.commitment)
    cfg = ProofSystemConfig(max_statements=1, max_context_bytes=4)
    with pytest.raises(MalformedSpec):
        ProofSpec.build([inline, inline], config=cfg)
    with pytest.raises(MalformedSpec):
        ProofSpec.build([inline], context=b"12345", config=cfg)
    ProofSpec.build([inline], context=b"1234", config=cfg)


def test_spec_is_deterministic_and_roundtrips():
    arena, stmt, _ = _pedersen_with_ref()
    a = ProofSpec.build([stmt], arena, equalities=[[(0, 0), (0, 1)]], context=b"ctx")
    b = ProofSpec.build([stmt], arena, equalities=[[(0, 1), (0, 0)]], context=b"ctx")
    assert a == b
    assert a.to_bytes() == b.to_bytes()
    assert a.digest() == b.digest()

    back = ProofSpec.from_bytes(a.to_bytes())
    assert back == a
    assert back.to_bytes() == a.to_bytes()


def test_spec_digest_depends_on_context():
    arena, stmt, _ = _pedersen_with_ref()
    a = ProofSpec.build([stmt], arena, context=b"a")
    b = ProofSpec.build([stmt], arena, context=b"b")
    assert a.digest() != b.digest()


def test_from_bytes_rejects_wrong_version():
    arena, stmt, _ = _pedersen_with_ref()
    d = ProofSpec.build([stmt], arena).to_dict()
    d["version"] = 999
    with pytest.raises(DecodeError):
        ProofSpec.from_dict(d)


def test_registry_covers_every_kind():
    from composite_proofs.providers.registry import get_provider, registered_kinds

    assert registered_kinds() == tuple(sorted(StatementKind))
    for kind in StatementKind:
        assert get_provider(kind).kind is kind
