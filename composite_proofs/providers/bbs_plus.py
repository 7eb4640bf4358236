"""
BBS+ signatures and the SignatureKnowledge provider.

Signature scheme (messages m_0..m_{L-1}, params g1, g2, h0, h_i, pk w = x*g2)

    b(m, s) = g1 + s*h0 + sum m_i*h_i
    sign:    A = b / (x + e)
    verify:  e(A, w + e*g2) == e(b, g2)

Blind issuance: the holder sends C = s'*h0 + sum_{i in H} m_i*h_i, the
issuer signs with its own s'' and the holder unblinds with s = s'' + s'.

Proof of knowledge (randomised signature)

    r1, r2 random, r3 = 1/r1
    A' = r1*A          Abar = r1*b - e*A'  (= x*A')
    d  = r1*b - r2*h0  s'   = s - r2*r3

    pairing:  e(A', w) == e(Abar, g2),  A' != 0
    rel 1:    Abar - d                         = -e*A' + r2*h0
    rel 2:    g1 + sum_{i revealed} m_i*h_i    = r3*d - s'*h0 - sum_{i hidden} m_i*h_i

Variables of the combined relation: 0:e 1:r2 2:r3 3:s' then the hidden
messages in index order. Witness slot i is the hidden message m_i.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Sequence, Tuple

from ..cbor import field
from ..ec.bn254 import (
    G1_GROUP,
    G2_GROUP,
    ORDER,
    check_pairing_product,
    random_scalar,
    scalar_inv,
)
from ..errors import DecodeError, MalformedSpec, ensure
from ..params import SignatureParams, SignaturePublicKey
from ..sigma import LinearRelation, responses
from ..statements import StatementKind
from ..witnesses import Signature
from .base import Provider, ProverState, StatementProof, blinding_for, scalar_field

G1 = G1_GROUP


# ---------------------------------------------------------------------------
# Signature scheme
# ---------------------------------------------------------------------------


@dataclass
class SignatureSecretKey:
    x: int

    def zeroize(self) -> None:
        self.x = 0


def generate_keypair(
    params: SignatureParams, rng: Any
) -> Tuple[SignatureSecretKey, SignaturePublicKey]:
    x = random_scalar(rng)
    return SignatureSecretKey(x), SignaturePublicKey(w=G2_GROUP.norm(G2_GROUP.mul(params.g2, x)))


def _b(params: SignatureParams, messages: Mapping[int, int], s: int, base: Any = None) -> Any:
    acc = G1.add(params.g1, G1.mul(params.h0, s))
    if base is not None:
        acc = G1.add(acc, base)
    return G1.add(acc, G1.msm((params.h[i], m) for i, m in messages.items()))


def _as_map(messages: Any, params: SignatureParams) -> Dict[int, int]:
    m = dict(messages) if isinstance(messages, Mapping) else dict(enumerate(messages))
    for i in m:
        if not 0 <= i < params.message_count:
            raise ValueError(f"message index {i} out of range for {params.message_count} bases")
    return m


def _finish(b: Any, e: int, sk: SignatureSecretKey) -> Any:
    return G1.norm(G1.mul(b, scalar_inv(sk.x + e)))


def sign(
    messages: Sequence[int], sk: SignatureSecretKey, params: SignatureParams, rng: Any
) -> Signature:
    """Sign the full message vector (len == params.message_count)."""
    if len(messages) != params.message_count:
        raise ValueError(f"expected {params.message_count} messages, got {len(messages)}")
    e, s = random_scalar(rng), random_scalar(rng)
    b = _b(params, _as_map(messages, params), s)
    return Signature(a=_finish(b, e, sk), e=e, s=s)


def verify_signature(
    sig: Signature, messages: Sequence[int], pk: SignaturePublicKey, params: SignatureParams
) -> bool:
    if len(messages) != params.message_count or G1.is_zero(sig.a):
        return False
    b = _b(params, _as_map(messages, params), sig.s)
    w_e = G2_GROUP.add(pk.w, G2_GROUP.mul(params.g2, sig.e))
    return check_pairing_product([(sig.a, w_e), (G1.neg(b), params.g2)])


def commit_to_messages(messages: Mapping[int, int], params: SignatureParams, blinding: int) -> Any:
    """Holder side of blind issuance: C = s'*h0 + sum m_i*h_i over the hidden messages."""
    m = _as_map(messages, params)
    c = G1.add(G1.mul(params.h0, blinding), G1.msm((params.h[i], v) for i, v in m.items()))
    return G1.norm(c)


def blind_sign(
    commitment: Any,
    known_messages: Mapping[int, int],
    sk: SignatureSecretKey,
    params: SignatureParams,
    rng: Any,
) -> Signature:
    """Issuer side: sign commitment + known messages. The returned `s` is s''."""
    e, s2 = random_scalar(rng), random_scalar(rng)
    b = _b(params, _as_map(known_messages, params), s2, base=commitment)
    return Signature(a=_finish(b, e, sk), e=e, s=s2)


def unblind(sig: Signature, blinding: int) -> Signature:
    return Signature(a=sig.a, e=sig.e, s=(sig.s + blinding) % ORDER)


# ---------------------------------------------------------------------------
# Proof of knowledge
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SignatureCommitment:
    a_prime: Any
    a_bar: Any
    d: Any
    t1: Any
    t2: Any

    def to_dict(self) -> Dict[str, Any]:
        return {k: G1.encode(getattr(self, k)) for k in ("a_prime", "a_bar", "d", "t1", "t2")}

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "SignatureCommitment":
        return cls(
            *(G1.decode(field(d, k, "bytes", path)) for k in ("a_prime", "a_bar", "d", "t1", "t2"))
        )


@dataclass(frozen=True)
class SignatureProof(StatementProof):
    commitment: SignatureCommitment
    resp_e: int
    resp_r2: int
    resp_r3: int
    resp_s: int
    resp_msgs: Tuple[Tuple[int, int], ...]

    KIND: ClassVar[StatementKind] = StatementKind.SIGNATURE_KNOWLEDGE

    def slot_response(self, slot: int) -> Optional[int]:
        return dict(self.resp_msgs).get(slot)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "commitment": self.commitment.to_dict(),
            "resp_e": self.resp_e.to_bytes(32, "big"),
            "resp_r2": self.resp_r2.to_bytes(32, "big"),
            "resp_r3": self.resp_r3.to_bytes(32, "big"),
            "resp_s": self.resp_s.to_bytes(32, "big"),
            "resp_msgs": [[i, v.to_bytes(32, "big")] for i, v in self.resp_msgs],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "SignatureProof":
        msgs: List[Tuple[int, int]] = []
        for n, item in enumerate(field(d, "resp_msgs", "list", path)):
            where = f"{path}.resp_msgs[{n}]"
            if not (isinstance(item, list) and len(item) == 2 and isinstance(item[0], int)):
                raise DecodeError("expected [index, scalar]", path=where)
            msgs.append((item[0], scalar_field({"v": item[1]}, "v", where)))
        return cls(
            commitment=SignatureCommitment.from_dict(
                field(d, "commitment", "map", path), f"{path}.commitment"
            ),
            resp_e=scalar_field(d, "resp_e", path),
            resp_r2=scalar_field(d, "resp_r2", path),
            resp_r3=scalar_field(d, "resp_r3", path),
            resp_s=scalar_field(d, "resp_s", path),
            resp_msgs=tuple(msgs),
        )


def _relation(
    params: SignatureParams,
    revealed: Mapping[int, int],
    hidden: Sequence[int],
    a_prime: Any,
    a_bar: Any,
    d: Any,
) -> LinearRelation:
    rel = LinearRelation(G1, 4 + len(hidden))
    rel.add(G1.sub(a_bar, d), [(0, G1.neg(a_prime)), (1, params.h0)])
    target2 = G1.add(params.g1, G1.msm((params.h[i], m) for i, m in revealed.items()))
    terms = [(2, d), (3, G1.neg(params.h0))]
    terms += [(4 + j, G1.neg(params.h[i])) for j, i in enumerate(hidden)]
    rel.add(target2, terms)
    return rel


class SignatureKnowledgeProvider(Provider):
    kind = StatementKind.SIGNATURE_KNOWLEDGE
    proof_type = SignatureProof

    def slots(self, statement: Any) -> Sequence[int]:
        revealed = statement.revealed_messages
        return tuple(i for i in range(statement.params.message_count) if i not in revealed)

    def validate(self, statement: Any) -> None:
        count = statement.params.message_count
        for i, _ in statement.revealed:
            if i >= count:
                raise MalformedSpec(
                    f"revealed message index {i} out of range for {count} messages",
                    ctx={"message": i, "message_count": count},
                )

    def commit(
        self, statement: Any, witness: Any, rng: Any, blindings: Mapping[int, int]
    ) -> ProverState:
        params = statement.params
        hidden = self.slots(statement)
        if set(witness.unrevealed) != set(hidden):
            raise ValueError(
                f"unrevealed messages {sorted(witness.unrevealed)} do not match hidden indices {list(hidden)}"
            )
        sig = witness.signature
        messages = dict(statement.revealed_messages)
        messages.update(witness.unrevealed)
        b = _b(params, messages, sig.s)

        r1, r2 = random_scalar(rng), random_scalar(rng)
        r3 = scalar_inv(r1)
        a_prime = G1.norm(G1.mul(sig.a, r1))
        r1b = G1.mul(b, r1)
        a_bar = G1.norm(G1.sub(r1b, G1.mul(a_prime, sig.e)))
        d = G1.norm(G1.sub(r1b, G1.mul(params.h0, r2)))
        s_prime = (sig.s - r2 * r3) % ORDER

        wit = [sig.e % ORDER, r2, r3, s_prime] + [witness.unrevealed[i] % ORDER for i in hidden]
        blinds = [random_scalar(rng) for _ in range(4)]
        blinds += [blinding_for(blindings, i, rng) for i in hidden]
        rel = _relation(params, statement.revealed_messages, hidden, a_prime, a_bar, d)
        t1, t2 = rel.commit(blinds)
        commitment = SignatureCommitment(a_prime=a_prime, a_bar=a_bar, d=d, t1=t1, t2=t2)
        return ProverState(
            commitment=commitment,
            secrets=blinds + wit + [r1],
            extra={"hidden": tuple(hidden)},
        )

    def respond(self, state: ProverState, challenge: int) -> SignatureProof:
        hidden = state.extra["hidden"]
        n = 4 + len(hidden)
        resp = responses(state.secrets[:n], state.secrets[n : 2 * n], challenge)
        return SignatureProof(
            commitment=state.commitment,
            resp_e=resp[0],
            resp_r2=resp[1],
            resp_r3=resp[2],
            resp_s=resp[3],
            resp_msgs=tuple(zip(hidden, resp[4:])),
        )

    def verify(self, statement: Any, proof: Any, challenge: int) -> None:
        ensure(type(proof) is SignatureProof, "proof-type")
        params = statement.params
        c = proof.commitment
        ensure(not G1.is_zero(c.a_prime), "signature", "randomised signature is the identity")
        hidden = tuple(self.slots(statement))
        ensure(
            tuple(i for i, _ in proof.resp_msgs) == hidden,
            "hidden-messages",
            "responses do not cover exactly the hidden messages",
        )
        rel = _relation(params, statement.revealed_messages, hidden, c.a_prime, c.a_bar, c.d)
        resp = (proof.resp_e, proof.resp_r2, proof.resp_r3, proof.resp_s) + tuple(
            v for _, v in proof.resp_msgs
        )
        ensure(rel.check((c.t1, c.t2), resp, challenge), "schnorr", "signature relations do not hold")
        ensure(
            check_pairing_product([(c.a_prime, statement.public_key.w), (G1.neg(c.a_bar), params.g2)]),
            "pairing",
            "randomised signature does not verify under the public key",
        )


PROVIDERS = (SignatureKnowledgeProvider(),)

__all__ = [
    "SignatureSecretKey",
    "generate_keypair",
    "sign",
    "verify_signature",
    "commit_to_messages",
    "blind_sign",
    "unblind",
    "SignatureCommitment",
    "SignatureProof",
    "SignatureKnowledgeProvider",
    "PROVIDERS",
]
