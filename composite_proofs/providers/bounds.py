"""
BoundedValue provider: lower <= v <= upper by two bit decompositions.

With n = bitlen(upper - lower) the prover commits, under the range key
(G, H), to the bits of a = v - lower and of b = upper - v (points A_k, D_k,
each with a 0/1 OR proof) and links them to v:

    sum 2^k A_k + lower*G = v*G + T_a*H
    upper*G - sum 2^k D_k = v*G - T_b*H

Both a and b are below 2^n and a + b = upper - lower < 2^250 < r, so
the relation pins v to the interval. Variables: 0:v 1:T_a 2:T_b.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Mapping, Optional, Sequence, Tuple

from ..cbor import field
from ..ec.bn254 import G1_GROUP, random_scalar
from ..errors import DecodeError, ensure
from ..sigma import (
    BitCommitment,
    BitResponse,
    LinearRelation,
    range_aggregate,
    range_check,
    range_commit,
    range_respond,
    responses,
)
from ..statements import StatementKind
from .base import Provider, ProverState, StatementProof, blinding_for, enc_scalars, point_list, scalar_list

G1 = G1_GROUP


@dataclass(frozen=True)
class BoundsCommitment:
    a_points: Tuple[Any, ...]
    a_commits: Tuple[BitCommitment, ...]
    d_points: Tuple[Any, ...]
    d_commits: Tuple[BitCommitment, ...]
    t: Tuple[Any, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "a_points": [G1.encode(p) for p in self.a_points],
            "a_commits": [bc.to_dict() for bc in self.a_commits],
            "d_points": [G1.encode(p) for p in self.d_points],
            "d_commits": [bc.to_dict() for bc in self.d_commits],
            "t": [G1.encode(p) for p in self.t],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "BoundsCommitment":
        return cls(
            a_points=point_list(d, "a_points", path, G1),
            a_commits=_bit_list(d, "a_commits", path, BitCommitment),
            d_points=point_list(d, "d_points", path, G1),
            d_commits=_bit_list(d, "d_commits", path, BitCommitment),
            t=point_list(d, "t", path, G1),
        )


def _bit_list(d: Dict[str, Any], key: str, path: str, cls: Any) -> Tuple[Any, ...]:
    out = []
    for i, item in enumerate(field(d, key, "list", path)):
        if not isinstance(item, dict):
            raise DecodeError("expected a map", path=f"{path}.{key}[{i}]")
        out.append(cls.from_dict(item, f"{path}.{key}[{i}]"))
    return tuple(out)


@dataclass(frozen=True)
class BoundsProof(StatementProof):
    commitment: BoundsCommitment
    responses: Tuple[int, ...]
    a_responses: Tuple[BitResponse, ...]
    d_responses: Tuple[BitResponse, ...]

    KIND: ClassVar[StatementKind] = StatementKind.BOUNDED_VALUE

    def slot_response(self, slot: int) -> Optional[int]:
        if slot == 0 and self.responses:
            return self.responses[0]
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "commitment": self.commitment.to_dict(),
            "responses": enc_scalars(self.responses),
            "a_responses": [br.to_dict() for br in self.a_responses],
            "d_responses": [br.to_dict() for br in self.d_responses],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "BoundsProof":
        return cls(
            commitment=BoundsCommitment.from_dict(field(d, "commitment", "map", path), f"{path}.commitment"),
            responses=scalar_list(d, "responses", path),
            a_responses=_bit_list(d, "a_responses", path, BitResponse),
            d_responses=_bit_list(d, "d_responses", path, BitResponse),
        )


def _relation(statement: Any, a_points: Sequence[Any], d_points: Sequence[Any]) -> LinearRelation:
    g, h = statement.range_key.g, statement.range_key.h
    rel = LinearRelation(G1, 3)
    rel.add(G1.add(range_aggregate(a_points), G1.mul(g, statement.lower)), [(0, g), (1, h)])
    rel.add(G1.sub(G1.mul(g, statement.upper), range_aggregate(d_points)), [(0, g), (2, G1.neg(h))])
    return rel


class BoundedValueProvider(Provider):
    kind = StatementKind.BOUNDED_VALUE
    proof_type = BoundsProof

    def slots(self, statement: Any) -> Sequence[int]:
        return (0,)

    def commit(
        self, statement: Any, witness: Any, rng: Any, blindings: Mapping[int, int]
    ) -> ProverState:
        v = witness.value
        if not statement.lower <= v <= statement.upper:
            raise ValueError("value outside the statement bounds")
        n = statement.bit_length
        rk = statement.range_key
        a_pts, a_bcs, a_rw = range_commit(rk.g, rk.h, v - statement.lower, n, rng)
        d_pts, d_bcs, d_rw = range_commit(rk.g, rk.h, statement.upper - v, n, rng)
        blinds = [blinding_for(blindings, 0, rng), random_scalar(rng), random_scalar(rng)]
        commitment = BoundsCommitment(
            a_points=a_pts,
            a_commits=a_bcs,
            d_points=d_pts,
            d_commits=d_bcs,
            t=_relation(statement, a_pts, d_pts).commit(blinds),
        )
        return ProverState(
            commitment=commitment,
            secrets=blinds + [v, a_rw.total, d_rw.total],
            extra={"a": a_rw, "d": d_rw},
        )

    def respond(self, state: ProverState, challenge: int) -> BoundsProof:
        return BoundsProof(
            commitment=state.commitment,
            responses=responses(state.secrets[:3], state.secrets[3:], challenge),
            a_responses=range_respond(state.extra["a"], challenge),
            d_responses=range_respond(state.extra["d"], challenge),
        )

    def verify(self, statement: Any, proof: Any, challenge: int) -> None:
        ensure(type(proof) is BoundsProof, "proof-type")
        c = proof.commitment
        n = statement.bit_length
        rk = statement.range_key
        ensure(len(c.a_points) == n and len(c.d_points) == n, "shape", f"expected {n} bit commitments")
        ensure(len(proof.responses) == 3, "response-count")
        ensure(
            range_check(rk.g, rk.h, c.a_points, c.a_commits, proof.a_responses, challenge),
            "range",
            "lower-bound bit proofs do not hold",
        )
        ensure(
            range_check(rk.g, rk.h, c.d_points, c.d_commits, proof.d_responses, challenge),
            "range",
            "upper-bound bit proofs do not hold",
        )
        rel = _relation(statement, c.a_points, c.d_points)
        ensure(rel.check(c.t, proof.responses, challenge), "schnorr", "bound relations do not hold")


PROVIDERS = (BoundedValueProvider(),)

__all__ = ["BoundsCommitment", "BoundsProof", "BoundedValueProvider", "PROVIDERS"]
