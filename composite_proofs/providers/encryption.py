"""
Verifiable encryption: chunked exponential ElGamal with a per-chunk range
argument, and the matching VerifiableEncryption provider.

Encryption key (g, pk = sk*g). The plaintext m (slot 0) is split into
n = ceil(254 / b) chunks of b bits, m = sum 2^(b*j) * m_j, and each chunk is
encrypted separately:

    c1_j = r_j*g          c2_j = m_j*g + r_j*pk

Every m_j is bit-decomposed under the range key (G, H) as
B_jk = bit_k*G + t_jk*H, each with a 0/1 OR proof, and linked:

    sum_k 2^k * B_jk = m_j*G + T_j*H            T_j = sum 2^k t_jk

Relation variables per chunk j: 3j:m_j  3j+1:r_j  3j+2:T_j.

Equality linking: the slot response is sum 2^(b*j) * s_{m_j}. The prover
picks the chunk blindings so that sum 2^(b*j) * rho_{m_j} equals the shared
slot blinding, hence the slot response is rho_slot + c*m like every other
provider's.

Decryption is a baby-step giant-step discrete log per chunk, which the range
argument keeps below 2^b.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Sequence, Tuple

from ..cbor import field
from ..ec.bn254 import G1_GROUP, ORDER, hash_to_g1, random_scalar
from ..errors import DecodeError, MalformedSpec, ensure
from ..params import DEFAULT_LABEL, EncryptionKey
from ..sigma import (
    BitCommitment,
    BitResponse,
    LinearRelation,
    RangeWitness,
    range_aggregate,
    range_check,
    range_commit,
    range_respond,
    responses,
)
from ..statements import CHUNK_BIT_SIZES, StatementKind
from .base import Provider, ProverState, StatementProof, blinding_for, enc_scalars, point_list, scalar_list

G1 = G1_GROUP


# ---------------------------------------------------------------------------
# Keys, ciphertexts, decryption
# ---------------------------------------------------------------------------


@dataclass
class EncryptionSecretKey:
    sk: int

    def zeroize(self) -> None:
        self.sk = 0


def generate_encryption_keys(
    rng: Any, label: bytes = DEFAULT_LABEL
) -> Tuple[EncryptionSecretKey, EncryptionKey]:
    g = hash_to_g1(label, "enc:g")
    sk = random_scalar(rng)
    return EncryptionSecretKey(sk), EncryptionKey(g=g, pk=G1.norm(G1.mul(g, sk)))


@dataclass(frozen=True)
class Ciphertext:
    """Per-chunk (c1, c2) pairs, least significant chunk first."""

    chunks: Tuple[Tuple[Any, Any], ...]
    chunk_bit_size: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chunks": [[G1.encode(c1), G1.encode(c2)] for c1, c2 in self.chunks],
            "chunk_bit_size": self.chunk_bit_size,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "Ciphertext":
        chunks = []
        for i, item in enumerate(field(d, "chunks", "list", path)):
            if not (isinstance(item, list) and len(item) == 2):
                raise DecodeError("expected [c1, c2]", path=f"{path}.chunks[{i}]")
            if not all(isinstance(x, bytes) for x in item):
                raise DecodeError("expected encoded points", path=f"{path}.chunks[{i}]")
            chunks.append((G1.decode(item[0]), G1.decode(item[1])))
        b = field(d, "chunk_bit_size", "int", path)
        if b not in CHUNK_BIT_SIZES:
            raise DecodeError(
                f"chunk_bit_size must be one of {CHUNK_BIT_SIZES}", path=f"{path}.chunk_bit_size"
            )
        return cls(chunks=tuple(chunks), chunk_bit_size=b)


def chunk_count(chunk_bit_size: int) -> int:
    return -(-ORDER.bit_length() // chunk_bit_size)


def split_chunks(m: int, chunk_bit_size: int) -> List[int]:
    mask = (1 << chunk_bit_size) - 1
    return [(m >> (chunk_bit_size * j)) & mask for j in range(chunk_count(chunk_bit_size))]


def _dlog(target: Any, g: Any, bound: int) -> int:
    """x in [0, bound) with x*g == target."""
    step = max(1, math.isqrt(bound - 1) + 1)
    baby: Dict[bytes, int] = {}
    acc = G1.zero
    for i in range(step):
        baby.setdefault(G1.encode(acc), i)
        acc = G1.add(acc, g)
    giant = G1.neg(G1.mul(g, step))
    cur = target
    for j in range(step + 1):
        i = baby.get(G1.encode(cur))
        if i is not None:
            x = j * step + i
            if x < bound:
                return x
        cur = G1.add(cur, giant)
    raise ValueError("chunk plaintext out of range")


def decrypt(ciphertext: Ciphertext, secret_key: EncryptionSecretKey, key: EncryptionKey) -> int:
    """Recover the scalar encrypted in `ciphertext`."""
    b = ciphertext.chunk_bit_size
    m = 0
    for j, (c1, c2) in enumerate(ciphertext.chunks):
        point = G1.sub(c2, G1.mul(c1, secret_key.sk))
        m += _dlog(point, key.g, 1 << b) << (b * j)
    return m % ORDER


# ---------------------------------------------------------------------------
# Proof objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EncryptionCommitment:
    ciphertext: Ciphertext
    bit_points: Tuple[Tuple[Any, ...], ...]
    bit_commits: Tuple[Tuple[BitCommitment, ...], ...]
    t: Tuple[Any, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ciphertext": self.ciphertext.to_dict(),
            "bit_points": [[G1.encode(p) for p in row] for row in self.bit_points],
            "bit_commits": [[bc.to_dict() for bc in row] for row in self.bit_commits],
            "t": [G1.encode(p) for p in self.t],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "EncryptionCommitment":
        points = []
        for j, row in enumerate(field(d, "bit_points", "list", path)):
            points.append(point_list({"row": row}, "row", f"{path}.bit_points[{j}]", G1))
        commits = []
        for j, row in enumerate(field(d, "bit_commits", "list", path)):
            where = f"{path}.bit_commits[{j}]"
            if not isinstance(row, list):
                raise DecodeError("expected a list", path=where)
            commits.append(tuple(BitCommitment.from_dict(x, f"{where}[{k}]") for k, x in enumerate(row)))
        return cls(
            ciphertext=Ciphertext.from_dict(field(d, "ciphertext", "map", path), f"{path}.ciphertext"),
            bit_points=tuple(points),
            bit_commits=tuple(commits),
            t=point_list(d, "t", path, G1),
        )


@dataclass(frozen=True)
class EncryptionProof(StatementProof):
    commitment: EncryptionCommitment
    responses: Tuple[int, ...]
    bit_responses: Tuple[Tuple[BitResponse, ...], ...]

    KIND: ClassVar[StatementKind] = StatementKind.VERIFIABLE_ENCRYPTION

    def slot_response(self, slot: int) -> Optional[int]:
        if slot != 0:
            return None
        b = self.commitment.ciphertext.chunk_bit_size
        if b not in CHUNK_BIT_SIZES:
            return None
        return sum(s * pow(2, b * j, ORDER) for j, s in enumerate(self.responses[0::3])) % ORDER

    def to_dict(self) -> Dict[str, Any]:
        return {
            "commitment": self.commitment.to_dict(),
            "responses": enc_scalars(self.responses),
            "bit_responses": [[br.to_dict() for br in row] for row in self.bit_responses],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "EncryptionProof":
        rows = []
        for j, row in enumerate(field(d, "bit_responses", "list", path)):
            where = f"{path}.bit_responses[{j}]"
            if not isinstance(row, list):
                raise DecodeError("expected a list", path=where)
            rows.append(tuple(BitResponse.from_dict(x, f"{where}[{k}]") for k, x in enumerate(row)))
        return cls(
            commitment=EncryptionCommitment.from_dict(
                field(d, "commitment", "map", path), f"{path}.commitment"
            ),
            responses=scalar_list(d, "responses", path),
            bit_responses=tuple(rows),
        )


def ciphertext_from_proof(proof: Any, index: int) -> Ciphertext:
    """Ciphertext embedded in statement proof `index` of a composite Proof."""
    try:
        sp = proof.statement_proofs[index]
    except IndexError:
        raise MalformedSpec(f"proof has no statement {index}", ctx={"index": index}) from None
    if not isinstance(sp, EncryptionProof):
        raise MalformedSpec(
            f"statement {index} is not a verifiable encryption", ctx={"index": index}
        )
    return sp.commitment.ciphertext


def ciphertexts_from_proof(proof: Any, indices: Sequence[int]) -> Dict[int, Ciphertext]:
    return {i: ciphertext_from_proof(proof, i) for i in indices}


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------


def _relation(statement: Any, ciphertext: Ciphertext, aggregates: Sequence[Any]) -> LinearRelation:
    key = statement.encryption_key
    rk = statement.range_key
    n = len(ciphertext.chunks)
    rel = LinearRelation(G1, 3 * n)
    for j, ((c1, c2), agg) in enumerate(zip(ciphertext.chunks, aggregates)):
        m, r, t = 3 * j, 3 * j + 1, 3 * j + 2
        rel.add(c1, [(r, key.g)])
        rel.add(c2, [(m, key.g), (r, key.pk)])
        rel.add(agg, [(m, rk.g), (t, rk.h)])
    return rel


class VerifiableEncryptionProvider(Provider):
    kind = StatementKind.VERIFIABLE_ENCRYPTION
    proof_type = EncryptionProof

    def slots(self, statement: Any) -> Sequence[int]:
        return (0,)

    def commit(
        self, statement: Any, witness: Any, rng: Any, blindings: Mapping[int, int]
    ) -> ProverState:
        b = statement.chunk_bit_size
        key = statement.encryption_key
        rk = statement.range_key
        chunks = split_chunks(witness.plaintext % ORDER, b)
        n = len(chunks)

        cts: List[Tuple[Any, Any]] = []
        points: List[Tuple[Any, ...]] = []
        commits: List[Tuple[BitCommitment, ...]] = []
        ranges: List[RangeWitness] = []
        wit: List[int] = []
        for m_j in chunks:
            r_j = random_scalar(rng)
            c1 = G1.norm(G1.mul(key.g, r_j))
            c2 = G1.norm(G1.add(G1.mul(key.g, m_j), G1.mul(key.pk, r_j)))
            pts, bcs, rw = range_commit(rk.g, rk.h, m_j, b, rng)
            cts.append((c1, c2))
            points.append(pts)
            commits.append(bcs)
            ranges.append(rw)
            wit += [m_j, r_j, rw.total]

        # chunk-0 blinding absorbs the others so the weighted sum hits the slot blinding
        rho = [random_scalar(rng) for _ in range(3 * n)]
        slot_r = blinding_for(blindings, 0, rng)
        rest = sum(rho[3 * j] << (b * j) for j in range(1, n))
        rho[0] = (slot_r - rest) % ORDER

        ciphertext = Ciphertext(chunks=tuple(cts), chunk_bit_size=b)
        rel = _relation(statement, ciphertext, [range_aggregate(p) for p in points])
        commitment = EncryptionCommitment(
            ciphertext=ciphertext,
            bit_points=tuple(points),
            bit_commits=tuple(commits),
            t=rel.commit(rho),
        )
        extra = {f"range{j}": rw for j, rw in enumerate(ranges)}
        return ProverState(commitment=commitment, secrets=rho + wit, extra=extra)

    def respond(self, state: ProverState, challenge: int) -> EncryptionProof:
        n3 = len(state.secrets) // 2
        resp = responses(state.secrets[:n3], state.secrets[n3:], challenge)
        bits = tuple(range_respond(state.extra[f"range{j}"], challenge) for j in range(n3 // 3))
        return EncryptionProof(commitment=state.commitment, responses=resp, bit_responses=bits)

    def verify(self, statement: Any, proof: Any, challenge: int) -> None:
        ensure(type(proof) is EncryptionProof, "proof-type")
        c = proof.commitment
        ct = c.ciphertext
        b = statement.chunk_bit_size
        n = statement.chunk_count
        ensure(ct.chunk_bit_size == b, "chunk-size", "ciphertext chunk size differs from statement")
        ensure(
            len(ct.chunks) == n
            and len(c.bit_points) == n
            and len(c.bit_commits) == n
            and len(proof.bit_responses) == n
            and len(proof.responses) == 3 * n,
            "shape",
            f"expected {n} chunks",
        )
        rk = statement.range_key
        for j in range(n):
            ensure(
                len(c.bit_points[j]) == b
                and range_check(rk.g, rk.h, c.bit_points[j], c.bit_commits[j], proof.bit_responses[j], challenge),
                "range",
                f"chunk {j} is not a {b}-bit value",
            )
        rel = _relation(statement, ct, [range_aggregate(p) for p in c.bit_points])
        ensure(rel.check(c.t, proof.responses, challenge), "schnorr", "encryption relations do not hold")


PROVIDERS = (VerifiableEncryptionProvider(),)

__all__ = [
    "EncryptionSecretKey",
    "generate_encryption_keys",
    "Ciphertext",
    "chunk_count",
    "split_chunks",
    "decrypt",
    "EncryptionCommitment",
    "EncryptionProof",
    "ciphertext_from_proof",
    "ciphertexts_from_proof",
    "VerifiableEncryptionProvider",
    "PROVIDERS",
]
