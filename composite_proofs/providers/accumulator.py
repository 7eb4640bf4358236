"""
Positive/universal pairing accumulator and its (non-)membership providers.

Accumulator (secret alpha, params P in G1 and P~ in G2, public key Q~ = alpha*P~)

    f(a)  = prod (y_i + a)           V = f(alpha) * P
    member y:      C = V / (y + alpha)             e(C, y*P~ + Q~) == e(V, P~)
    non-member y:  d = f(-y) != 0,
                   C = (f(alpha) - d)/(y + alpha) * P
                                                   e(C, y*P~ + Q~) * e(d*P, P~) == e(V, P~)

Zero-knowledge proof (proving key X, Y, Z, K in G1)

    sigma, rho random;  E_C = C + (sigma + rho)*Z
    T_sigma = sigma*X,  T_rho = rho*Y,  delta_sigma = y*sigma,  delta_rho = y*rho

    G1:  T_sigma = sigma*X
         T_rho   = rho*Y
         0       = y*T_sigma - delta_sigma*X
         0       = y*T_rho   - delta_rho*Y
    GT:  e(E_C,P~)^y * e(-Z,P~)^(delta_sigma+delta_rho) * e(-Z,Q~)^(sigma+rho) [* e(P,P~)^d]
           == e(V,P~) * e(-E_C,Q~)

Non-membership additionally shows d != 0 through E_dinv = d^-1*P + pi*K:
         P = d*E_dinv - w*K            with w = d*pi

Variables: 0:y 1:sigma 2:rho 3:delta_sigma 4:delta_rho [5:d 6:w].
Witness slot 0 is the element y.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dc_field
from typing import Any, ClassVar, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from ..cbor import field, optional_field
from ..ec.bn254 import (
    G1_GROUP,
    G2_GROUP,
    ORDER,
    decode_gt,
    encode_gt,
    gt_msm,
    gt_pow,
    pair,
    pairing_product,
    random_scalar,
    scalar_inv,
)
from ..errors import ensure
from ..params import AccumulatorParams, AccumulatorPublicKey
from ..sigma import LinearRelation, responses
from ..statements import StatementKind
from ..witnesses import MembershipWitness, NonMembershipWitness
from .base import Provider, ProverState, StatementProof, blinding_for, enc_scalars, point_list, scalar_list

G1 = G1_GROUP


# ---------------------------------------------------------------------------
# Accumulator manager
# ---------------------------------------------------------------------------


@dataclass
class AccumulatorSecretKey:
    alpha: int

    def zeroize(self) -> None:
        self.alpha = 0


def generate_keypair(
    params: AccumulatorParams, rng: Any
) -> Tuple[AccumulatorSecretKey, AccumulatorPublicKey]:
    alpha = random_scalar(rng)
    q = G2_GROUP.norm(G2_GROUP.mul(params.p_tilde, alpha))
    return AccumulatorSecretKey(alpha), AccumulatorPublicKey(q_tilde=q)


@dataclass
class Accumulator:
    """
    Manager-side accumulator. Holds the secret key and the member set, so it
    can compute witnesses directly (no update polynomials).

        acc = Accumulator(params, sk, members=[5, 7])
        wit = acc.membership_witness(5)
        stmt = AccumulatorMembership(params, pk, prk, acc.value)
    """

    params: AccumulatorParams
    secret_key: AccumulatorSecretKey
    members: Set[int] = dc_field(default_factory=set)

    def __post_init__(self) -> None:
        self.members = {y % ORDER for y in self.members}
        for y in self.members:
            self._check_element(y)

    def _check_element(self, y: int) -> None:
        if (y + self.secret_key.alpha) % ORDER == 0:
            raise ValueError("element cannot be accumulated")

    def _f(self, a: int) -> int:
        acc = 1
        for y in self.members:
            acc = acc * (y + a) % ORDER
        return acc

    @property
    def value(self) -> Any:
        return G1.norm(G1.mul(self.params.p, self._f(self.secret_key.alpha)))

    def __contains__(self, y: int) -> bool:
        return y % ORDER in self.members

    def add(self, y: int) -> Any:
        y %= ORDER
        self._check_element(y)
        self.members.add(y)
        return self.value

    def add_batch(self, ys: Iterable[int]) -> Any:
        for y in ys:
            self._check_element(y % ORDER)
            self.members.add(y % ORDER)
        return self.value

    def remove(self, y: int) -> Any:
        self.members.discard(y % ORDER)
        return self.value

    def membership_witness(self, y: int) -> MembershipWitness:
        y %= ORDER
        if y not in self.members:
            raise ValueError("element is not a member")
        k = self._f(self.secret_key.alpha) * scalar_inv(y + self.secret_key.alpha) % ORDER
        return MembershipWitness(c=G1.norm(G1.mul(self.params.p, k)))

    def non_membership_witness(self, y: int) -> NonMembershipWitness:
        y %= ORDER
        if y in self.members:
            raise ValueError("element is a member")
        alpha = self.secret_key.alpha
        d = self._f(-y)
        if d == 0:
            raise ValueError("element cannot be proven absent")
        k = (self._f(alpha) - d) * scalar_inv(y + alpha) % ORDER
        return NonMembershipWitness(c=G1.norm(G1.mul(self.params.p, k)), d=d)


def _y_plus_q(params: AccumulatorParams, pk: AccumulatorPublicKey, y: int) -> Any:
    return G2_GROUP.add(G2_GROUP.mul(params.p_tilde, y), pk.q_tilde)


def verify_membership(
    value: Any, y: int, witness: MembershipWitness, params: AccumulatorParams, pk: AccumulatorPublicKey
) -> bool:
    lhs = pair(witness.c, _y_plus_q(params, pk, y))
    return lhs == pair(value, params.p_tilde)


def verify_non_membership(
    value: Any, y: int, witness: NonMembershipWitness, params: AccumulatorParams, pk: AccumulatorPublicKey
) -> bool:
    if witness.d % ORDER == 0:
        return False
    lhs = pairing_product(
        [(witness.c, _y_plus_q(params, pk, y)), (G1.mul(params.p, witness.d), params.p_tilde)]
    )
    return lhs == pair(value, params.p_tilde)


# ---------------------------------------------------------------------------
# Proof objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccumulatorCommitment:
    e_c: Any
    t_sigma: Any
    t_rho: Any
    e_dinv: Optional[Any]
    r_g1: Tuple[Any, ...]
    r_gt: Any

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "e_c": G1.encode(self.e_c),
            "t_sigma": G1.encode(self.t_sigma),
            "t_rho": G1.encode(self.t_rho),
            "r_g1": [G1.encode(p) for p in self.r_g1],
            "r_gt": encode_gt(self.r_gt),
        }
        if self.e_dinv is not None:
            d["e_dinv"] = G1.encode(self.e_dinv)
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "AccumulatorCommitment":
        e_dinv = optional_field(d, "e_dinv", "bytes", path)
        return cls(
            e_c=G1.decode(field(d, "e_c", "bytes", path)),
            t_sigma=G1.decode(field(d, "t_sigma", "bytes", path)),
            t_rho=G1.decode(field(d, "t_rho", "bytes", path)),
            e_dinv=None if e_dinv is None else G1.decode(e_dinv),
            r_g1=point_list(d, "r_g1", path, G1),
            r_gt=decode_gt(field(d, "r_gt", "bytes", path)),
        )


@dataclass(frozen=True)
class MembershipProof(StatementProof):
    commitment: AccumulatorCommitment
    responses: Tuple[int, ...]

    KIND: ClassVar[StatementKind] = StatementKind.ACCUMULATOR_MEMBERSHIP

    def slot_response(self, slot: int) -> Optional[int]:
        if slot == 0 and self.responses:
            return self.responses[0]
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"commitment": self.commitment.to_dict(), "responses": enc_scalars(self.responses)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "MembershipProof":
        return cls(
            commitment=AccumulatorCommitment.from_dict(
                field(d, "commitment", "map", path), f"{path}.commitment"
            ),
            responses=scalar_list(d, "responses", path),
        )


@dataclass(frozen=True)
class NonMembershipProof(MembershipProof):
    KIND: ClassVar[StatementKind] = StatementKind.ACCUMULATOR_NON_MEMBERSHIP


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


class AccumulatorMembershipProvider(Provider):
    kind = StatementKind.ACCUMULATOR_MEMBERSHIP
    proof_type = MembershipProof
    non_member: ClassVar[bool] = False

    @property
    def num_vars(self) -> int:
        return 7 if self.non_member else 5

    def slots(self, statement: Any) -> Sequence[int]:
        return (0,)

    def _g1_relation(self, statement: Any, t_sigma: Any, t_rho: Any, e_dinv: Any) -> LinearRelation:
        prk = statement.proving_key
        rel = LinearRelation(G1, self.num_vars)
        rel.add(t_sigma, [(1, prk.x)])
        rel.add(t_rho, [(2, prk.y)])
        rel.add(G1.zero, [(0, t_sigma), (3, G1.neg(prk.x))])
        rel.add(G1.zero, [(0, t_rho), (4, G1.neg(prk.y))])
        if self.non_member:
            rel.add(statement.params.p, [(5, e_dinv), (6, G1.neg(prk.k))])
        return rel

    def _gt_bases(self, statement: Any, e_c: Any) -> Tuple[List[Tuple[Any, Tuple[int, ...]]], Any]:
        """[(base, vars whose scalars add up in its exponent)], target"""
        params = statement.params
        q = statement.public_key.q_tilde
        neg_z = G1.neg(statement.proving_key.z)
        bases = [
            (pair(e_c, params.p_tilde), (0,)),
            (pair(neg_z, params.p_tilde), (3, 4)),
            (pair(neg_z, q), (1, 2)),
        ]
        if self.non_member:
            bases.append((pair(params.p, params.p_tilde), (5,)))
        target = pairing_product([(statement.accumulated, params.p_tilde), (G1.neg(e_c), q)])
        return bases, target

    @staticmethod
    def _gt_image(bases: Sequence[Tuple[Any, Tuple[int, ...]]], scalars: Sequence[int]) -> Any:
        return gt_msm([(b, sum(scalars[v] for v in vs)) for b, vs in bases])

    def commit(
        self, statement: Any, witness: Any, rng: Any, blindings: Mapping[int, int]
    ) -> ProverState:
        prk = statement.proving_key
        y = witness.element % ORDER
        sigma, rho = random_scalar(rng), random_scalar(rng)
        e_c = G1.norm(G1.add(witness.witness.c, G1.mul(prk.z, sigma + rho)))
        t_sigma = G1.norm(G1.mul(prk.x, sigma))
        t_rho = G1.norm(G1.mul(prk.y, rho))
        wit = [y, sigma, rho, y * sigma % ORDER, y * rho % ORDER]

        e_dinv = None
        if self.non_member:
            d = witness.witness.d % ORDER
            if d == 0:
                raise ValueError("non-membership witness has d = 0")
            pi = random_scalar(rng)
            e_dinv = G1.norm(G1.add(G1.mul(statement.params.p, scalar_inv(d)), G1.mul(prk.k, pi)))
            wit += [d, d * pi % ORDER]

        blinds = [blinding_for(blindings, 0, rng)] + [random_scalar(rng) for _ in range(self.num_vars - 1)]
        r_g1 = self._g1_relation(statement, t_sigma, t_rho, e_dinv).commit(blinds)
        bases, _ = self._gt_bases(statement, e_c)
        commitment = AccumulatorCommitment(
            e_c=e_c,
            t_sigma=t_sigma,
            t_rho=t_rho,
            e_dinv=e_dinv,
            r_g1=r_g1,
            r_gt=self._gt_image(bases, blinds),
        )
        return ProverState(commitment=commitment, secrets=blinds + wit)

    def respond(self, state: ProverState, challenge: int) -> MembershipProof:
        n = self.num_vars
        resp = responses(state.secrets[:n], state.secrets[n:], challenge)
        return self.proof_type(commitment=state.commitment, responses=resp)

    def verify(self, statement: Any, proof: Any, challenge: int) -> None:
        ensure(type(proof) is self.proof_type, "proof-type")
        c = proof.commitment
        ensure(len(proof.responses) == self.num_vars, "response-count")
        ensure((c.e_dinv is not None) == self.non_member, "commitment-shape")
        rel = self._g1_relation(statement, c.t_sigma, c.t_rho, c.e_dinv)
        ensure(rel.check(c.r_g1, proof.responses, challenge), "schnorr", "accumulator G1 relations do not hold")
        bases, target = self._gt_bases(statement, c.e_c)
        lhs = self._gt_image(bases, proof.responses)
        ensure(lhs == c.r_gt * gt_pow(target, challenge), "pairing", "accumulator pairing relation does not hold")


class AccumulatorNonMembershipProvider(AccumulatorMembershipProvider):
    kind = StatementKind.ACCUMULATOR_NON_MEMBERSHIP
    proof_type = NonMembershipProof
    non_member = True


PROVIDERS = (AccumulatorMembershipProvider(), AccumulatorNonMembershipProvider())

__all__ = [
    "AccumulatorSecretKey",
    "generate_keypair",
    "Accumulator",
    "verify_membership",
    "verify_non_membership",
    "AccumulatorCommitment",
    "MembershipProof",
    "NonMembershipProof",
    "AccumulatorMembershipProvider",
    "AccumulatorNonMembershipProvider",
    "PROVIDERS",
]
