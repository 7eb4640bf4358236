"""
composite_proofs.proof

Proof: ordered per-statement proofs plus an optional nonce marker.

    Proof(statement_proofs, nonce_tag)

nonce_tag = sha3_256_tag("composite:nonce", nonce) when the prover used a
nonce, else None. It lets the verifier reject a wrong nonce before doing any
group arithmetic; the nonce itself is still bound through the challenge.

Encoding (canonical CBOR):

    {"version": 1,
     "proofs": [{"kind": int, "body": {...}}, ...],
     "nonce_tag": bytes | null}

Decoding dispatches each entry to the provider registered for its kind.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .cbor import dumps_canonical, field, loads, optional_field
from .errors import DecodeError, MalformedSpec
from .providers.base import StatementProof
from .providers.encryption import Ciphertext, ciphertext_from_proof, ciphertexts_from_proof, decrypt
from .providers.registry import get_provider
from .statements import StatementKind
from .utils.hash import DOM_NONCE, sha3_256_tag
from .version import WIRE_VERSION


def nonce_tag(nonce: Optional[bytes]) -> Optional[bytes]:
    if nonce is None:
        return None
    return sha3_256_tag(DOM_NONCE, bytes(nonce))


@dataclass(frozen=True)
class Proof:
    statement_proofs: Tuple[StatementProof, ...]
    nonce_tag: Optional[bytes] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "statement_proofs", tuple(self.statement_proofs))

    def __len__(self) -> int:
        return len(self.statement_proofs)

    @property
    def kinds(self) -> Tuple[StatementKind, ...]:
        return tuple(p.KIND for p in self.statement_proofs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": WIRE_VERSION,
            "proofs": [{"kind": int(p.KIND), "body": p.to_dict()} for p in self.statement_proofs],
            "nonce_tag": self.nonce_tag,
        }

    def to_bytes(self) -> bytes:
        return dumps_canonical(self.to_dict())

    @classmethod
    def from_dict(cls, d: Any) -> "Proof":
        version = field(d, "version", "int")
        if version != WIRE_VERSION:
            raise DecodeError(f"unsupported proof wire version {version}", path="$.version")
        proofs = []
        for i, entry in enumerate(field(d, "proofs", "list")):
            path = f"$.proofs[{i}]"
            raw_kind = field(entry, "kind", "int", path)
            try:
                kind = StatementKind(raw_kind)
                provider = get_provider(kind)
            except (ValueError, MalformedSpec) as e:
                raise DecodeError(f"unknown statement kind {raw_kind}", path=f"{path}.kind") from e
            proofs.append(provider.proof_from_dict(field(entry, "body", "map", path), f"{path}.body"))
        tag = optional_field(d, "nonce_tag", "bytes")
        if tag is not None and len(tag) != 32:
            raise DecodeError("nonce_tag must be 32 bytes", path="$.nonce_tag")
        return cls(statement_proofs=tuple(proofs), nonce_tag=tag)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Proof":
        return cls.from_dict(loads(data))


__all__ = [
    "Proof",
    "nonce_tag",
    "Ciphertext",
    "ciphertext_from_proof",
    "ciphertexts_from_proof",
    "decrypt",
]
