"""
Pedersen opening provider (G1 and G2).

Statement: C = sum x_i * B_i. Witness slots 0..n-1 are the x_i.
Protocol: plain Schnorr over one linear equation,
    T = sum r_i * B_i,   s_i = r_i + c * x_i,   check sum s_i * B_i == T + c * C
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Mapping, Optional, Sequence, Tuple, Type

from ..cbor import field
from ..ec.bn254 import G1_GROUP, G2_GROUP, ORDER, Group
from ..errors import ensure
from ..sigma import LinearRelation, responses
from ..statements import StatementKind
from .base import Provider, ProverState, StatementProof, blinding_for, enc_scalars, scalar_list


def pedersen_commit(bases: Any, scalars: Sequence[int], group: Group = G1_GROUP) -> Any:
    """sum x_i * B_i, normalised. `bases` is a PedersenBases(G2) or a point sequence."""
    pts = getattr(bases, "bases", bases)
    if len(pts) != len(scalars):
        raise ValueError("bases/scalars length mismatch")
    return group.norm(group.msm(zip(pts, scalars)))


@dataclass(frozen=True)
class PedersenCommitment:
    t: Any

    GROUP: ClassVar[Group] = G1_GROUP

    def to_dict(self) -> Dict[str, Any]:
        return {"t": self.GROUP.encode(self.t)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "PedersenCommitment":
        return cls(t=cls.GROUP.decode(field(d, "t", "bytes", path)))


@dataclass(frozen=True)
class PedersenCommitmentG2(PedersenCommitment):
    GROUP: ClassVar[Group] = G2_GROUP


@dataclass(frozen=True)
class PedersenProof(StatementProof):
    commitment: PedersenCommitment
    responses: Tuple[int, ...]

    KIND: ClassVar[StatementKind] = StatementKind.PEDERSEN_OPENING
    COMMITMENT: ClassVar[Type[PedersenCommitment]] = PedersenCommitment

    def slot_response(self, slot: int) -> Optional[int]:
        if 0 <= slot < len(self.responses):
            return self.responses[slot]
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"commitment": self.commitment.to_dict(), "responses": enc_scalars(self.responses)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "PedersenProof":
        cpath = f"{path}.commitment"
        return cls(
            commitment=cls.COMMITMENT.from_dict(field(d, "commitment", "map", path), cpath),
            responses=scalar_list(d, "responses", path),
        )


@dataclass(frozen=True)
class PedersenProofG2(PedersenProof):
    KIND: ClassVar[StatementKind] = StatementKind.PEDERSEN_OPENING_G2
    COMMITMENT: ClassVar[Type[PedersenCommitment]] = PedersenCommitmentG2


class PedersenProvider(Provider):
    kind = StatementKind.PEDERSEN_OPENING
    proof_type: ClassVar[Type[PedersenProof]] = PedersenProof
    group: ClassVar[Group] = G1_GROUP

    def _relation(self, statement: Any) -> LinearRelation:
        bases = statement.bases.bases
        rel = LinearRelation(self.group, len(bases))
        rel.add(statement.commitment, [(i, b) for i, b in enumerate(bases)])
        return rel

    def slots(self, statement: Any) -> Sequence[int]:
        return range(len(statement.bases))

    def commit(
        self, statement: Any, witness: Any, rng: Any, blindings: Mapping[int, int]
    ) -> ProverState:
        n = len(statement.bases)
        if len(witness.scalars) != n:
            raise ValueError(f"expected {n} opened scalars, got {len(witness.scalars)}")
        r = [blinding_for(blindings, i, rng) for i in range(n)]
        (t,) = self._relation(statement).commit(r)
        return ProverState(
            commitment=self.proof_type.COMMITMENT(t=t),
            secrets=r + [x % ORDER for x in witness.scalars],
        )

    def respond(self, state: ProverState, challenge: int) -> PedersenProof:
        n = len(state.secrets) // 2
        resp = responses(state.secrets[:n], state.secrets[n:], challenge)
        return self.proof_type(commitment=state.commitment, responses=resp)

    def verify(self, statement: Any, proof: Any, challenge: int) -> None:
        ensure(type(proof) is self.proof_type, "proof-type")
        ensure(
            len(proof.responses) == len(statement.bases),
            "response-count",
            f"expected {len(statement.bases)} responses, got {len(proof.responses)}",
        )
        ensure(
            self._relation(statement).check((proof.commitment.t,), proof.responses, challenge),
            "schnorr",
            "pedersen opening relation does not hold",
        )


class PedersenG2Provider(PedersenProvider):
    kind = StatementKind.PEDERSEN_OPENING_G2
    proof_type = PedersenProofG2
    group = G2_GROUP


PROVIDERS = (PedersenProvider(), PedersenG2Provider())

__all__ = [
    "pedersen_commit",
    "PedersenCommitment",
    "PedersenCommitmentG2",
    "PedersenProof",
    "PedersenProofG2",
    "PedersenProvider",
    "PedersenG2Provider",
    "PROVIDERS",
]
