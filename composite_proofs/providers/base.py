"""
composite_proofs.providers.base

The capability-provider contract every statement kind implements, plus the
small shared pieces (prover state, statement-proof base, blinding lookup).

Lifecycle of one statement inside a composite proof:

    state = provider.commit(statement, witness, rng, blindings)     # phase 1
    data  = provider.contribution(statement, state.commitment)      # -> challenge hash
    proof = provider.respond(state, challenge)                      # phase 3
    state.zeroize()
    ...
    provider.verify(statement, proof, challenge)                    # raises VerificationFailed
    provider.contribution(statement, proof.commitment) == data      # same bytes

`statement` is always the *resolved* statement (every ParamRef replaced by
its parameter object). `blindings` maps witness slot -> blinding scalar for
slots that belong to an equality group; a provider must use exactly that
scalar as the Schnorr mask of the slot so that `proof.slot_response(slot)`
equals r + c*w with the shared r.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Sequence, Type

from ..cbor import dumps_canonical, field as cbor_field
from ..ec.bn254 import ORDER, random_scalar
from ..errors import DecodeError, ProofSystemError
from ..statements import StatementKind
from ..utils.hash import concat_lp


@dataclass
class ProverState:
    """
    Per-statement prover state between commit and respond.

    commitment: public first message (embedded later in the StatementProof)
    secrets:    flat list of secret scalars (witness copies, blindings)
    extra:      provider-specific secret objects exposing zeroize()
    """

    commitment: Any
    secrets: List[int] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    def zeroize(self) -> None:
        self.secrets[:] = [0] * len(self.secrets)
        self.secrets.clear()
        for v in self.extra.values():
            if hasattr(v, "zeroize"):
                v.zeroize()
        self.extra.clear()


class StatementProof(abc.ABC):
    """
    Base of every per-statement proof dataclass.

    Subclasses are frozen dataclasses with a `commitment` field and their
    response scalars.
    """

    KIND: ClassVar[StatementKind]
    commitment: Any

    @abc.abstractmethod
    def slot_response(self, slot: int) -> Optional[int]:
        """Linear response for witness slot `slot`, or None if the slot is unknown."""

    @abc.abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        ...

    @classmethod
    @abc.abstractmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "StatementProof":
        ...


class Provider(abc.ABC):
    """Sigma-protocol implementation for one StatementKind."""

    kind: ClassVar[StatementKind]
    proof_type: ClassVar[Type[StatementProof]]

    @abc.abstractmethod
    def slots(self, statement: Any) -> Sequence[int]:
        """Witness slots addressable by equality groups."""

    def validate(self, statement: Any) -> None:
        """Kind-specific consistency checks on a resolved statement (MalformedSpec)."""

    @abc.abstractmethod
    def commit(
        self, statement: Any, witness: Any, rng: Any, blindings: Mapping[int, int]
    ) -> ProverState:
        ...

    def contribution(self, statement: Any, commitment: Any) -> bytes:
        """
        Challenge contribution: kind byte, canonical public statement data and
        canonical commitment encoding, each length-prefixed.
        """
        return concat_lp(
            [
                bytes([int(self.kind)]),
                dumps_canonical(statement.to_dict()),
                dumps_canonical(commitment.to_dict()),
            ]
        )

    @abc.abstractmethod
    def respond(self, state: ProverState, challenge: int) -> StatementProof:
        ...

    @abc.abstractmethod
    def verify(self, statement: Any, proof: StatementProof, challenge: int) -> None:
        """Raise VerificationFailed unless `proof` verifies under `challenge`."""

    def proof_from_dict(self, d: Dict[str, Any], path: str = "$") -> StatementProof:
        return self.proof_type.from_dict(d, path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.name})"


# Exceptions a provider may raise on bad input; py_ecc signals bad points via assert.
PROVIDER_ERRORS = (
    ProofSystemError,
    ValueError,
    TypeError,
    KeyError,
    IndexError,
    ArithmeticError,
    AssertionError,
)


def blinding_for(blindings: Mapping[int, int], slot: int, rng: Any) -> int:
    """Shared blinding of an equality-linked slot, else a fresh one."""
    r = blindings.get(slot)
    return random_scalar(rng) if r is None else r % ORDER


# ---------------------------------------------------------------------------
# Decoding helpers shared by the proof dataclasses
# ---------------------------------------------------------------------------


def scalar_field(d: Dict[str, Any], key: str, path: str) -> int:
    raw = cbor_field(d, key, "bytes", path)
    if len(raw) != 32:
        raise DecodeError("scalar must be 32 bytes", path=f"{path}.{key}")
    k = int.from_bytes(raw, "big")
    if k >= ORDER:
        raise DecodeError("scalar not reduced", path=f"{path}.{key}")
    return k


def scalar_list(d: Dict[str, Any], key: str, path: str) -> tuple:
    out = []
    for i, raw in enumerate(cbor_field(d, key, "list", path)):
        if not isinstance(raw, bytes) or len(raw) != 32:
            raise DecodeError("scalar must be 32 bytes", path=f"{path}.{key}[{i}]")
        k = int.from_bytes(raw, "big")
        if k >= ORDER:
            raise DecodeError("scalar not reduced", path=f"{path}.{key}[{i}]")
        out.append(k)
    return tuple(out)


def point_list(d: Dict[str, Any], key: str, path: str, group: Any) -> tuple:
    out = []
    for i, raw in enumerate(cbor_field(d, key, "list", path)):
        if not isinstance(raw, bytes):
            raise DecodeError("expected bytes", path=f"{path}.{key}[{i}]")
        out.append(group.decode(raw))
    return tuple(out)


def enc_scalars(values: Sequence[int]) -> List[bytes]:
    return [v.to_bytes(32, "big") for v in values]


__all__ = [
    "ProverState",
    "StatementProof",
    "Provider",
    "PROVIDER_ERRORS",
    "blinding_for",
    "scalar_field",
    "scalar_list",
    "point_list",
    "enc_scalars",
]
