import pytest

from composite_proofs.cbor import dumps_canonical, loads
from composite_proofs.ec.bn254 import G1_GROUP, g1_generator
from composite_proofs.errors import DecodeError, MalformedSpec
from composite_proofs.params import (
    AccumulatorParams,
    AccumulatorProvingKey,
    EncryptionKey,
    ParamRef,
    PedersenBases,
    PedersenBasesG2,
    RangeKey,
    SetupParamArena,
    SignatureParams,
    decode_param,
    decode_param_field,
    encode_param,
    encode_param_field,
    resolve_param,
)
from composite_proofs.tests import TEST_LABEL, det_rng


def test_generated_params_are_deterministic():
    assert SignatureParams.generate(3, TEST_LABEL) == SignatureParams.generate(3, TEST_LABEL)
    assert PedersenBases.generate(2, TEST_LABEL) != PedersenBases.generate(2, b"other-label")
    assert AccumulatorParams.generate(TEST_LABEL) == AccumulatorParams.generate(TEST_LABEL)
    rk = RangeKey.generate(TEST_LABEL)
    assert rk.g != rk.h


def test_signature_params_shape():
    params = SignatureParams.generate(4, TEST_LABEL)
    assert params.message_count == 4
    with pytest.raises(ValueError):
        SignatureParams.generate(0)


def test_param_rejects_non_points():
    with pytest.raises(MalformedSpec):
        PedersenBases(("not a point",))
    with pytest.raises(MalformedSpec):
        PedersenBases(())
    with pytest.raises(MalformedSpec):
        EncryptionKey(g=g1_generator(), pk=42)


def test_param_encoding_roundtrip_through_cbor():
    params = [
        SignatureParams.generate(2, TEST_LABEL),
        AccumulatorProvingKey.generate(TEST_LABEL),
        PedersenBases.generate(3, TEST_LABEL),
        PedersenBasesG2.generate(2, det_rng(3)),
        RangeKey.generate(TEST_LABEL),
    ]
    for p in params:
        back = decode_param(loads(dumps_canonical(encode_param(p))))
        assert back == p
        assert type(back) is type(p)


def test_decode_param_unknown_kind():
    with pytest.raises(DecodeError):
        decode_param({"kind": 99, "body": {}})


def test_param_field_encoding():
    bases = PedersenBases.generate(1, TEST_LABEL)
    assert encode_param_field(ParamRef(2)) == {"ref": 2}
    assert decode_param_field({"ref": 2}, PedersenBases, "$") == ParamRef(2)
    assert decode_param_field(encode_param_field(bases), PedersenBases, "$") == bases


def test_param_ref_validation():
    with pytest.raises(MalformedSpec):
        ParamRef(-1)
    with pytest.raises(MalformedSpec):
        ParamRef(True)


def test_arena_deduplicates_by_content():
    arena = SetupParamArena()
    r1 = arena.add(SignatureParams.generate(2, TEST_LABEL))
    r2 = arena.add(RangeKey.generate(TEST_LABEL))
    r3 = arena.add(SignatureParams.generate(2, TEST_LABEL))
    assert r1 == r3 == ParamRef(0)
    assert r2 == ParamRef(1)
    assert len(arena) == 2
    assert arena[r2] == RangeKey.generate(TEST_LABEL)
    with pytest.raises(MalformedSpec):
        arena.add("nope")  # type: ignore[arg-type]


def test_resolve_param_checks_range_and_kind():
    table = (RangeKey.generate(TEST_LABEL), PedersenBases.generate(1, TEST_LABEL))
    assert resolve_param(ParamRef(0), RangeKey, table, field_name="range_key") == table[0]
    inline = RangeKey.generate(b"inline")
    assert resolve_param(inline, RangeKey, table, field_name="range_key") is inline

    with pytest.raises(MalformedSpec) as ei:
        resolve_param(ParamRef(5), RangeKey, table, field_name="range_key", statement_index=3)
    assert ei.value.ctx["statement"] == 3 and ei.value.ctx["ref"] == 5

    with pytest.raises(MalformedSpec):
        resolve_param(ParamRef(1), RangeKey, table, field_name="range_key")


def test_points_are_normalised_on_construction():
    g = g1_generator()
    doubled = G1_GROUP.add(g, g)  # projective, z != 1
    rk = RangeKey(g=doubled, h=g)
    assert rk.g == G1_GROUP.norm(doubled)
