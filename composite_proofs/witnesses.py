"""
composite_proofs.witnesses

Witness variants: the secret side of each statement. Positionally aligned
with the statement table.

Unlike statements these are *mutable* containers: the owner is expected to
call `zeroize()` (or WitnessTable.zeroize()) once the proof is produced.
Python ints are immutable, so zeroize() drops the references and overwrites
every container it owns; it cannot wipe interpreter-internal copies.

Every variant exposes:
  KIND               the StatementKind it satisfies
  slot_value(slot)   scalar held in a witness slot; linked slots must agree
  zeroize()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .ec.bn254 import G1_ZERO, ORDER
from .errors import MalformedSpec
from .statements import StatementKind


# ---------------------------------------------------------------------------
# Scheme objects held inside witnesses
# ---------------------------------------------------------------------------


@dataclass
class Signature:
    """BBS+ signature (A, e, s): A = (g1 + s*h0 + sum m_i*h_i) / (x + e)."""

    a: Any
    e: int
    s: int

    def zeroize(self) -> None:
        self.a = G1_ZERO
        self.e = 0
        self.s = 0


@dataclass
class MembershipWitness:
    """C = V / (y + alpha)."""

    c: Any

    def zeroize(self) -> None:
        self.c = G1_ZERO


@dataclass
class NonMembershipWitness:
    """(C, d) with f(alpha) = (y + alpha) * c(alpha) + d, d != 0."""

    c: Any
    d: int

    def zeroize(self) -> None:
        self.c = G1_ZERO
        self.d = 0


def _check_slot(slot: int, count: int) -> None:
    if not 0 <= slot < count:
        raise IndexError(f"witness slot {slot} out of range")


# ---------------------------------------------------------------------------
# Witness variants
# ---------------------------------------------------------------------------


@dataclass
class SignatureKnowledgeWitness:
    signature: Signature
    unrevealed: Dict[int, int] = field(default_factory=dict)

    KIND: ClassVar[StatementKind] = StatementKind.SIGNATURE_KNOWLEDGE

    def slot_value(self, slot: int) -> int:
        if slot not in self.unrevealed:
            raise IndexError(f"message {slot} is not an unrevealed message")
        return self.unrevealed[slot] % ORDER

    def zeroize(self) -> None:
        self.signature.zeroize()
        for k in list(self.unrevealed):
            self.unrevealed[k] = 0
        self.unrevealed.clear()


@dataclass
class AccumulatorMembershipWitness:
    element: int
    witness: MembershipWitness

    KIND: ClassVar[StatementKind] = StatementKind.ACCUMULATOR_MEMBERSHIP

    def slot_value(self, slot: int) -> int:
        _check_slot(slot, 1)
        return self.element % ORDER

    def zeroize(self) -> None:
        self.element = 0
        self.witness.zeroize()


@dataclass
class AccumulatorNonMembershipWitness:
    element: int
    witness: NonMembershipWitness

    KIND: ClassVar[StatementKind] = StatementKind.ACCUMULATOR_NON_MEMBERSHIP

    def slot_value(self, slot: int) -> int:
        _check_slot(slot, 1)
        return self.element % ORDER

    def zeroize(self) -> None:
        self.element = 0
        self.witness.zeroize()


@dataclass
class PedersenOpeningWitness:
    """Opened scalars, positionally aligned with the statement's bases (G1 or G2)."""

    scalars: List[int]

    KIND: ClassVar[StatementKind] = StatementKind.PEDERSEN_OPENING

    def __post_init__(self) -> None:
        self.scalars = list(self.scalars)

    def slot_value(self, slot: int) -> int:
        _check_slot(slot, len(self.scalars))
        return self.scalars[slot] % ORDER

    def zeroize(self) -> None:
        self.scalars[:] = [0] * len(self.scalars)
        self.scalars.clear()


@dataclass
class VerifiableEncryptionWitness:
    plaintext: int

    KIND: ClassVar[StatementKind] = StatementKind.VERIFIABLE_ENCRYPTION

    def slot_value(self, slot: int) -> int:
        _check_slot(slot, 1)
        return self.plaintext % ORDER

    def zeroize(self) -> None:
        self.plaintext = 0


@dataclass
class BoundedValueWitness:
    value: int

    KIND: ClassVar[StatementKind] = StatementKind.BOUNDED_VALUE

    def slot_value(self, slot: int) -> int:
        _check_slot(slot, 1)
        return self.value % ORDER

    def zeroize(self) -> None:
        self.value = 0


# statement kind -> accepted witness type
WITNESS_TYPES: Dict[StatementKind, type] = {
    StatementKind.SIGNATURE_KNOWLEDGE: SignatureKnowledgeWitness,
    StatementKind.ACCUMULATOR_MEMBERSHIP: AccumulatorMembershipWitness,
    StatementKind.ACCUMULATOR_NON_MEMBERSHIP: AccumulatorNonMembershipWitness,
    StatementKind.PEDERSEN_OPENING: PedersenOpeningWitness,
    StatementKind.PEDERSEN_OPENING_G2: PedersenOpeningWitness,
    StatementKind.VERIFIABLE_ENCRYPTION: VerifiableEncryptionWitness,
    StatementKind.BOUNDED_VALUE: BoundedValueWitness,
}


def check_compatible(statement: Any, witness: Any, index: Optional[int] = None) -> None:
    """Raise MalformedSpec unless `witness` is the variant `statement` expects."""
    expected = WITNESS_TYPES.get(statement.KIND)
    if expected is None or type(witness) is not expected:
        ctx: Dict[str, Any] = {
            "statement_kind": statement.KIND.name,
            "witness_type": type(witness).__name__,
        }
        if index is not None:
            ctx["index"] = index
        raise MalformedSpec(
            f"witness {type(witness).__name__} does not match statement {type(statement).__name__}",
            ctx=ctx,
        )


class WitnessTable(Sequence[Any]):
    """Ordered witnesses; supports `with` so they are scrubbed on exit."""

    def __init__(self, witnesses: Iterable[Any] = ()) -> None:
        self._items: List[Any] = list(witnesses)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, i: Any) -> Any:
        return self._items[i]

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items)

    def append(self, witness: Any) -> None:
        self._items.append(witness)

    def zeroize(self) -> None:
        for w in self._items:
            w.zeroize()
        self._items.clear()

    def __enter__(self) -> "WitnessTable":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.zeroize()

    def __repr__(self) -> str:
        kinds: Tuple[str, ...] = tuple(type(w).__name__ for w in self._items)
        return f"WitnessTable({', '.join(kinds)})"


__all__ = [
    "Signature",
    "MembershipWitness",
    "NonMembershipWitness",
    "SignatureKnowledgeWitness",
    "AccumulatorMembershipWitness",
    "AccumulatorNonMembershipWitness",
    "PedersenOpeningWitness",
    "VerifiableEncryptionWitness",
    "BoundedValueWitness",
    "WITNESS_TYPES",
    "check_compatible",
    "WitnessTable",
]
