"""
composite_proofs.ec.bn254
=========================

BN254 (altbn128) group arithmetic, pairing and fixed-width encodings on top
of `py_ecc.optimized_bn128`.

Public API
----------
- ORDER, FIELD_MODULUS
- g1_generator(), g2_generator(), G1_ZERO, G2_ZERO, GT_ONE
- random_scalar(rng), scalar_inv(k)
- Group objects G1_GROUP / G2_GROUP: add, neg, mul, msm, eq, norm, encode, decode
- hash_to_g1(label, *parts)
- pair(P, Q), pairing_product(pairs), check_pairing_product(pairs), gt_pow(x, k)
- encode_scalar / decode_scalar, encode_gt / decode_gt

Notes
-----
- Points are the backend's projective triples. Public objects keep them
  *normalised* (z = 1, or the canonical infinity Z1/Z2) so tuple equality is
  structural equality; use `norm()` on anything produced by arithmetic before
  storing it in a dataclass.
- e(P, Q) takes P in G1 and Q in G2. py_ecc expects (Q, P); this module
  handles the swap.
- Encodings are fixed width and big-endian:
    scalar 32 bytes (< ORDER)
    G1     64 bytes x || y, infinity = 64 zero bytes
    G2     128 bytes x.c0 || x.c1 || y.c0 || y.c1, infinity = zeros
    GT     12 x 32 bytes
  Decoders check field ranges, the curve equation, and G2 subgroup membership.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Sequence, Tuple

from py_ecc.optimized_bn128 import (
    FQ,
    FQ2,
    FQ12,
    G1,
    G2,
    Z1,
    Z2,
    add,
    b as _B,
    b2 as _B2,
    curve_order,
    eq as _eq,
    field_modulus,
    is_inf,
    is_on_curve,
    multiply,
    neg as _neg,
    normalize,
    pairing,
)

from ..errors import DecodeError
from ..utils.hash import DOM_HASH_TO_G1, Part, sha3_512_tag

ORDER: int = int(curve_order)
FIELD_MODULUS: int = int(field_modulus)

# Opaque backend point types.
G1Point = Any
G2Point = Any
GTElement = Any

G1_ZERO: G1Point = Z1
G2_ZERO: G2Point = Z2
GT_ONE: GTElement = FQ12.one()

SCALAR_SIZE = 32
G1_SIZE = 64
G2_SIZE = 128
GT_SIZE = 12 * 32


def g1_generator() -> G1Point:
    return G1


def g2_generator() -> G2Point:
    return G2


# -------------------------
# Scalars
# -------------------------


def random_scalar(rng: Any) -> int:
    """Uniform non-zero scalar drawn from the caller's rng (random.Random API)."""
    return rng.randrange(1, ORDER)


def scalar_inv(k: int) -> int:
    k %= ORDER
    if k == 0:
        raise ValueError("zero has no inverse")
    return pow(k, ORDER - 2, ORDER)


def encode_scalar(k: int) -> bytes:
    if not isinstance(k, int) or k < 0 or k >= ORDER:
        raise ValueError("scalar out of range")
    return k.to_bytes(SCALAR_SIZE, "big")


def decode_scalar(data: bytes) -> int:
    if not isinstance(data, (bytes, bytearray)) or len(data) != SCALAR_SIZE:
        raise DecodeError("scalar must be 32 bytes")
    k = int.from_bytes(data, "big")
    if k >= ORDER:
        raise DecodeError("scalar not reduced")
    return k


def _limb(c: Any) -> int:
    # optimized FQP keeps int coefficients, the reference FQP keeps FQ objects
    return int(getattr(c, "n", c))


def _int32(x: int) -> bytes:
    return x.to_bytes(32, "big")


def _read_ints(data: bytes, count: int) -> Tuple[int, ...]:
    vals = tuple(int.from_bytes(data[32 * i : 32 * (i + 1)], "big") for i in range(count))
    if any(v >= FIELD_MODULUS for v in vals):
        raise DecodeError("field element not reduced")
    return vals


# -------------------------
# Groups
# -------------------------


class Group:
    """
    Additive group facade used by the Schnorr helpers so that the same
    relation code runs over G1 and G2.
    """

    def __init__(
        self,
        name: str,
        zero: Any,
        one: Any,
        size: int,
        encode: Callable[[Any], bytes],
        decode: Callable[[bytes], Any],
        norm: Callable[[Any], Any],
    ) -> None:
        self.name = name
        self.zero = zero
        self.one = one
        self.size = size
        self.encode = encode
        self.decode = decode
        self.norm = norm

    def add(self, p: Any, q: Any) -> Any:
        return add(p, q)

    def neg(self, p: Any) -> Any:
        return _neg(p)

    def sub(self, p: Any, q: Any) -> Any:
        return add(p, _neg(q))

    def mul(self, p: Any, k: int) -> Any:
        return multiply(p, k % ORDER)

    def msm(self, terms: Iterable[Tuple[Any, int]]) -> Any:
        acc = self.zero
        for p, k in terms:
            acc = add(acc, multiply(p, k % ORDER))
        return acc

    def eq(self, p: Any, q: Any) -> bool:
        return bool(_eq(p, q))

    def is_zero(self, p: Any) -> bool:
        return bool(is_inf(p))

    def __repr__(self) -> str:
        return f"Group({self.name})"


def is_g1_point(p: Any) -> bool:
    return isinstance(p, tuple) and len(p) == 3 and all(isinstance(c, FQ) for c in p)


def is_g2_point(q: Any) -> bool:
    return isinstance(q, tuple) and len(q) == 3 and all(isinstance(c, FQ2) for c in q)


def g1_norm(p: G1Point) -> G1Point:
    if is_inf(p):
        return Z1
    x, y = normalize(p)
    return (x, y, FQ.one())


def g2_norm(q: G2Point) -> G2Point:
    if is_inf(q):
        return Z2
    x, y = normalize(q)
    return (x, y, FQ2.one())


def encode_g1(p: G1Point) -> bytes:
    if is_inf(p):
        return bytes(G1_SIZE)
    x, y = normalize(p)
    return _int32(_limb(x)) + _int32(_limb(y))


def decode_g1(data: bytes) -> G1Point:
    if not isinstance(data, (bytes, bytearray)) or len(data) != G1_SIZE:
        raise DecodeError("G1 point must be 64 bytes")
    if not any(data):
        return Z1
    x, y = _read_ints(bytes(data), 2)
    p = (FQ(x), FQ(y), FQ.one())
    if not is_on_curve(p, _B):
        raise DecodeError("G1 point not on curve")
    return p


def encode_g2(q: G2Point) -> bytes:
    if is_inf(q):
        return bytes(G2_SIZE)
    x, y = normalize(q)
    limbs = [_limb(c) for c in x.coeffs] + [_limb(c) for c in y.coeffs]
    return b"".join(_int32(v) for v in limbs)


def decode_g2(data: bytes) -> G2Point:
    if not isinstance(data, (bytes, bytearray)) or len(data) != G2_SIZE:
        raise DecodeError("G2 point must be 128 bytes")
    if not any(data):
        return Z2
    xc0, xc1, yc0, yc1 = _read_ints(bytes(data), 4)
    q = (FQ2([xc0, xc1]), FQ2([yc0, yc1]), FQ2.one())
    if not is_on_curve(q, _B2):
        raise DecodeError("G2 point not on curve")
    if not is_inf(multiply(q, ORDER)):
        raise DecodeError("G2 point not in the prime-order subgroup")
    return q


G1_GROUP = Group("G1", Z1, G1, G1_SIZE, encode_g1, decode_g1, g1_norm)
G2_GROUP = Group("G2", Z2, G2, G2_SIZE, encode_g2, decode_g2, g2_norm)


def hash_to_g1(label: Part, *parts: Part) -> G1Point:
    """
    Deterministic try-and-increment map to G1 (cofactor 1, so any curve point
    is in the group). Intended for public generators only: not constant time.
    """
    for ctr in range(1, 256):
        x = int.from_bytes(sha3_512_tag(DOM_HASH_TO_G1, label, *parts, ctr), "big") % FIELD_MODULUS
        rhs = (x * x * x + 3) % FIELD_MODULUS
        # FIELD_MODULUS = 3 mod 4
        y = pow(rhs, (FIELD_MODULUS + 1) // 4, FIELD_MODULUS)
        if y * y % FIELD_MODULUS != rhs:
            continue
        y = min(y, FIELD_MODULUS - y)
        return (FQ(x), FQ(y), FQ.one())
    raise RuntimeError("hash_to_g1 exhausted its counter")  # pragma: no cover


# -------------------------
# Pairing / GT
# -------------------------


def pair(p: G1Point, q: G2Point) -> GTElement:
    """e(P, Q) with P in G1 and Q in G2."""
    return pairing(q, p)


def pairing_product(pairs: Iterable[Tuple[G1Point, G2Point]]) -> GTElement:
    acc = GT_ONE
    for p, q in pairs:
        acc = acc * pair(p, q)
    return acc


def check_pairing_product(pairs: Iterable[Tuple[G1Point, G2Point]]) -> bool:
    """True iff prod e(P_i, Q_i) == 1."""
    return pairing_product(pairs) == GT_ONE


def gt_pow(x: GTElement, k: int) -> GTElement:
    return x ** (k % ORDER)


def gt_msm(terms: Sequence[Tuple[GTElement, int]]) -> GTElement:
    acc = GT_ONE
    for base, k in terms:
        acc = acc * gt_pow(base, k)
    return acc


def encode_gt(x: GTElement) -> bytes:
    return b"".join(_int32(_limb(c)) for c in x.coeffs)


def decode_gt(data: bytes) -> GTElement:
    if not isinstance(data, (bytes, bytearray)) or len(data) != GT_SIZE:
        raise DecodeError("GT element must be 384 bytes")
    return FQ12(list(_read_ints(bytes(data), 12)))


__all__ = [
    "ORDER",
    "FIELD_MODULUS",
    "G1Point",
    "G2Point",
    "GTElement",
    "G1_ZERO",
    "G2_ZERO",
    "GT_ONE",
    "Group",
    "G1_GROUP",
    "G2_GROUP",
    "g1_generator",
    "g2_generator",
    "is_g1_point",
    "is_g2_point",
    "g1_norm",
    "g2_norm",
    "random_scalar",
    "scalar_inv",
    "encode_scalar",
    "decode_scalar",
    "encode_g1",
    "decode_g1",
    "encode_g2",
    "decode_g2",
    "hash_to_g1",
    "pair",
    "pairing_product",
    "check_pairing_product",
    "gt_pow",
    "gt_msm",
    "encode_gt",
    "decode_gt",
]
