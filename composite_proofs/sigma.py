"""
composite_proofs.sigma

Schnorr-style building blocks shared by the providers.

LinearRelation
    A system of equations  target_j = sum_i w[var_i] * base_i  over one
    additive group. Commitments are T_j = sum r[var_i] * base_i, responses
    are s = r + c*w (mod ORDER), and the check is
    sum s[var_i] * base_i == T_j + c * target_j.
    Because the response is affine in the blinding, two relations that
    share a witness *and* its blinding produce bit-identical responses;
    that is what equality groups rely on.

Bit proofs (CDS OR composition)
    Prove that a set of points encodes a bit b in {0, 1}:
    for every equation j,  Y_j - b * D_j = t * B_j  for one secret t.
    The simulated branch picks its own sub-challenge; the two
    sub-challenges must sum to the shared challenge.

Range argument
    Bit-decompose a in [0, 2^n) as Pedersen bit commitments
    A_k = a_k * G + t_k * H under a RangeKey; sum 2^k A_k commits to a.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from .cbor import field
from .ec.bn254 import G1_GROUP, ORDER, Group, random_scalar
from .errors import DecodeError


def responses(blindings: Sequence[int], witness: Sequence[int], challenge: int) -> Tuple[int, ...]:
    if len(blindings) != len(witness):
        raise ValueError("blinding/witness length mismatch")
    return tuple((r + challenge * w) % ORDER for r, w in zip(blindings, witness))


class LinearRelation:
    """Linear equations over one group with a shared witness vector."""

    def __init__(self, group: Group, num_vars: int) -> None:
        self.group = group
        self.num_vars = num_vars
        self.equations: List[Tuple[Any, Tuple[Tuple[int, Any], ...]]] = []

    def add(self, target: Any, terms: Sequence[Tuple[int, Any]]) -> None:
        for var, _ in terms:
            if not 0 <= var < self.num_vars:
                raise ValueError(f"variable {var} out of range")
        self.equations.append((target, tuple(terms)))

    def image(self, scalars: Sequence[int]) -> Tuple[Any, ...]:
        return tuple(
            self.group.msm((base, scalars[var]) for var, base in terms)
            for _, terms in self.equations
        )

    def commit(self, blindings: Sequence[int]) -> Tuple[Any, ...]:
        if len(blindings) != self.num_vars:
            raise ValueError("wrong number of blindings")
        return tuple(self.group.norm(t) for t in self.image(blindings))

    def check(self, commitments: Sequence[Any], resp: Sequence[int], challenge: int) -> bool:
        if len(commitments) != len(self.equations) or len(resp) != self.num_vars:
            return False
        g = self.group
        lhs = self.image(resp)
        for (target, _), t, got in zip(self.equations, commitments, lhs):
            if not g.eq(got, g.add(t, g.mul(target, challenge))):
                return False
        return True


# ---------------------------------------------------------------------------
# Bit proofs
# ---------------------------------------------------------------------------

# (base B_j, image Y_j, offset D_j)
BitEquation = Tuple[Any, Any, Any]


@dataclass(frozen=True)
class BitCommitment:
    """First messages of both OR branches, one point per equation."""

    t0: Tuple[Any, ...]
    t1: Tuple[Any, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "t0": [G1_GROUP.encode(p) for p in self.t0],
            "t1": [G1_GROUP.encode(p) for p in self.t1],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "BitCommitment":
        return cls(t0=_points(d, "t0", path), t1=_points(d, "t1", path))


@dataclass(frozen=True)
class BitResponse:
    """Branch-0 sub-challenge and both branch responses; c1 = c - c0."""

    c0: int
    s0: int
    s1: int

    def to_dict(self) -> Dict[str, Any]:
        return {k: getattr(self, k).to_bytes(32, "big") for k in ("c0", "s0", "s1")}

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "BitResponse":
        vals = []
        for key in ("c0", "s0", "s1"):
            raw = field(d, key, "bytes", path)
            if len(raw) != 32:
                raise DecodeError("scalar must be 32 bytes", path=f"{path}.{key}")
            v = int.from_bytes(raw, "big")
            if v >= ORDER:
                raise DecodeError("scalar not reduced", path=f"{path}.{key}")
            vals.append(v)
        return cls(*vals)


def _points(d: Dict[str, Any], key: str, path: str) -> Tuple[Any, ...]:
    out = []
    for i, raw in enumerate(field(d, key, "list", path)):
        if not isinstance(raw, bytes):
            raise DecodeError("expected bytes", path=f"{path}.{key}[{i}]")
        out.append(G1_GROUP.decode(raw))
    return tuple(out)


def _branch_target(group: Group, eq: BitEquation, branch: int) -> Any:
    _, y, d = eq
    return y if branch == 0 else group.sub(y, d)


def bit_commit(
    group: Group, eqs: Sequence[BitEquation], bit: int, secret: int, rng: Any
) -> Tuple[BitCommitment, List[int]]:
    if bit not in (0, 1):
        raise ValueError("bit must be 0 or 1")
    r = random_scalar(rng)
    c_sim = random_scalar(rng)
    s_sim = random_scalar(rng)
    other = 1 - bit
    real = tuple(group.norm(group.mul(base, r)) for base, _, _ in eqs)
    sim = tuple(
        group.norm(
            group.sub(group.mul(eq[0], s_sim), group.mul(_branch_target(group, eq, other), c_sim))
        )
        for eq in eqs
    )
    commitment = BitCommitment(t0=real, t1=sim) if bit == 0 else BitCommitment(t0=sim, t1=real)
    return commitment, [bit, secret % ORDER, r, c_sim, s_sim]


def bit_respond(state: Sequence[int], challenge: int) -> BitResponse:
    bit, secret, r, c_sim, s_sim = state
    c_real = (challenge - c_sim) % ORDER
    s_real = (r + c_real * secret) % ORDER
    if bit == 0:
        return BitResponse(c0=c_real, s0=s_real, s1=s_sim)
    return BitResponse(c0=c_sim, s0=s_sim, s1=s_real)


def bit_check(
    group: Group,
    eqs: Sequence[BitEquation],
    commitment: BitCommitment,
    response: BitResponse,
    challenge: int,
) -> bool:
    if len(commitment.t0) != len(eqs) or len(commitment.t1) != len(eqs):
        return False
    c1 = (challenge - response.c0) % ORDER
    branches = ((0, commitment.t0, response.c0, response.s0), (1, commitment.t1, c1, response.s1))
    for branch, ts, cb, sb in branches:
        for eq, t in zip(eqs, ts):
            lhs = group.mul(eq[0], sb)
            rhs = group.add(t, group.mul(_branch_target(group, eq, branch), cb))
            if not group.eq(lhs, rhs):
                return False
    return True


# ---------------------------------------------------------------------------
# Range argument over a RangeKey (G, H)
# ---------------------------------------------------------------------------


@dataclass
class RangeWitness:
    """Prover-side bit decomposition; `total` = sum 2^k t_k."""

    bit_states: List[List[int]]
    total: int

    def zeroize(self) -> None:
        for st in self.bit_states:
            st[:] = [0] * len(st)
        self.bit_states.clear()
        self.total = 0


def _bit_equations(g: Any, h: Any, commitment: Any) -> List[BitEquation]:
    # branch b: A_k - b*G = t*H
    return [(h, commitment, g)]


def range_commit(
    g: Any, h: Any, value: int, n: int, rng: Any
) -> Tuple[Tuple[Any, ...], Tuple[BitCommitment, ...], RangeWitness]:
    """Commit to the n low bits of value; value must lie in [0, 2^n)."""
    if value < 0 or value >> n:
        raise ValueError(f"value does not fit in {n} bits")
    grp = G1_GROUP
    points: List[Any] = []
    commits: List[BitCommitment] = []
    states: List[List[int]] = []
    total = 0
    for k in range(n):
        bit = (value >> k) & 1
        t = random_scalar(rng)
        a_k = grp.norm(grp.add(grp.mul(g, bit), grp.mul(h, t)))
        bc, st = bit_commit(grp, _bit_equations(g, h, a_k), bit, t, rng)
        points.append(a_k)
        commits.append(bc)
        states.append(st)
        total = (total + (t << k)) % ORDER
    return tuple(points), tuple(commits), RangeWitness(bit_states=states, total=total)


def range_respond(witness: RangeWitness, challenge: int) -> Tuple[BitResponse, ...]:
    return tuple(bit_respond(st, challenge) for st in witness.bit_states)


def range_aggregate(points: Sequence[Any]) -> Any:
    """sum 2^k A_k"""
    grp = G1_GROUP
    return grp.msm((p, 1 << k) for k, p in enumerate(points))


def range_check(
    g: Any,
    h: Any,
    points: Sequence[Any],
    commits: Sequence[BitCommitment],
    resps: Sequence[BitResponse],
    challenge: int,
) -> bool:
    if not len(points) == len(commits) == len(resps):
        return False
    for a_k, bc, br in zip(points, commits, resps):
        if not bit_check(G1_GROUP, _bit_equations(g, h, a_k), bc, br, challenge):
            return False
    return True


__all__ = [
    "responses",
    "LinearRelation",
    "BitCommitment",
    "BitResponse",
    "bit_commit",
    "bit_respond",
    "bit_check",
    "RangeWitness",
    "range_commit",
    "range_respond",
    "range_aggregate",
    "range_check",
]
