import pytest

from composite_proofs.cbor import dumps_canonical, field, loads, optional_field
from composite_proofs.ec.bn254 import ORDER
from composite_proofs.errors import DecodeError
from composite_proofs.utils.hash import (
    DOM_CHALLENGE,
    concat_lp,
    domain_tag,
    hash_to_scalar,
    sha3_256_tag,
    sha3_512_tag,
    to_hex,
)


def test_length_prefix_separates_parts():
    # ("ab", "c") and ("a", "bc") concatenate to the same bytes without prefixes
    assert concat_lp([b"ab", b"c"]) != concat_lp([b"a", b"bc"])
    assert concat_lp([b""]) == (0).to_bytes(8, "big")


def test_tagged_hashes_are_domain_separated():
    assert sha3_256_tag("composite:a", b"x") != sha3_256_tag("composite:b", b"x")
    assert len(sha3_256_tag("t", b"x")) == 32
    assert len(sha3_512_tag("t", b"x")) == 64
    assert domain_tag("composite:challenge").endswith(b"composite:challenge")


def test_hash_to_scalar_is_deterministic_and_reduced():
    a = hash_to_scalar(DOM_CHALLENGE, b"one", b"two", order=ORDER)
    b = hash_to_scalar(DOM_CHALLENGE, b"one", b"two", order=ORDER)
    c = hash_to_scalar(DOM_CHALLENGE, b"one", b"tw", b"o", order=ORDER)
    assert a == b
    assert a != c
    assert 0 <= a < ORDER


def test_to_hex():
    assert to_hex(b"\x01\xff") == "0x01ff"
    assert to_hex(b"\x01", prefix="") == "01"


def test_canonical_cbor_ignores_key_insertion_order():
    a = dumps_canonical({"zeta": 1, "a": [1, 2], "mid": {"y": b"\x00", "x": 2}})
    b = dumps_canonical({"mid": {"x": 2, "y": b"\x00"}, "a": (1, 2), "zeta": 1})
    assert a == b
    assert loads(a) == {"zeta": 1, "a": [1, 2], "mid": {"y": b"\x00", "x": 2}}


def test_non_text_keys_rejected():
    with pytest.raises(DecodeError):
        dumps_canonical({1: "x"})


def test_loads_rejects_garbage():
    with pytest.raises(DecodeError):
        loads(b"\xff\xff\xff")
    with pytest.raises(DecodeError):
        loads("not bytes")  # type: ignore[arg-type]


def test_field_accessors_report_paths():
    d = {"n": 3, "b": b"\x01"}
    assert field(d, "n", "int") == 3
    assert optional_field(d, "missing", "bytes") is None
    with pytest.raises(DecodeError) as ei:
        field(d, "b", "int", "$.body")
    assert ei.value.ctx["path"].startswith("$.body")
    with pytest.raises(DecodeError):
        field(d, "missing", "int")
    with pytest.raises(DecodeError):
        field([1, 2], "n", "int")
