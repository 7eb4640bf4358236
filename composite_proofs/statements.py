"""
composite_proofs.statements

Statement variants: public descriptions of the facts a composite proof
covers. A statement never carries secret material.

Each variant is a frozen dataclass with:
  KIND          its StatementKind tag
  PARAM_FIELDS  fields that hold a setup parameter (inline object or ParamRef)
  to_dict()/from_dict()

Points are validated and normalised in __post_init__; revealed-message maps
are stored as sorted (index, value) tuples so equality and encoding are
order-independent.

Encoding of a statement: {"kind": int, "body": {...}}.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, ClassVar, Dict, Mapping, Tuple, Type, Union

from .cbor import field
from .ec.bn254 import G1_GROUP, G2_GROUP, ORDER
from .errors import DecodeError, MalformedSpec
from .params import (
    AccumulatorParams,
    AccumulatorProvingKey,
    AccumulatorPublicKey,
    EncryptionKey,
    ParamRef,
    PedersenBases,
    PedersenBasesG2,
    RangeKey,
    SignatureParams,
    SignaturePublicKey,
    check_g1,
    check_g2,
    decode_param_field,
    encode_param_field,
)

# Chunk widths supported by the verifiable-encryption provider.
CHUNK_BIT_SIZES = (4, 8, 16)

# Widest admissible BoundedValue interval; keeps the two bit decompositions
# from wrapping modulo the group order.
MAX_RANGE_BITS = 250


class StatementKind(IntEnum):
    SIGNATURE_KNOWLEDGE = 0x01
    ACCUMULATOR_MEMBERSHIP = 0x02
    ACCUMULATOR_NON_MEMBERSHIP = 0x03
    PEDERSEN_OPENING = 0x04
    PEDERSEN_OPENING_G2 = 0x05
    VERIFIABLE_ENCRYPTION = 0x06
    BOUNDED_VALUE = 0x07


def _set(obj: Any, name: str, value: Any) -> None:
    object.__setattr__(obj, name, value)


def _scalar(v: Any, name: str) -> int:
    if isinstance(v, bool) or not isinstance(v, int) or not 0 <= v < ORDER:
        raise MalformedSpec(f"{name}: expected a scalar in [0, r)", ctx={"field": name})
    return v


def _check_param_field(value: Any, cls: Type[Any], name: str) -> None:
    if not isinstance(value, (cls, ParamRef)):
        raise MalformedSpec(
            f"{name}: expected {cls.__name__} or ParamRef, got {type(value).__name__}",
            ctx={"field": name},
        )


def _params_dict(st: Any) -> Dict[str, Any]:
    return {name: encode_param_field(getattr(st, name)) for name in st.PARAM_FIELDS}


def _params_from(d: Dict[str, Any], cls: Type[Any], path: str) -> Dict[str, Any]:
    return {
        name: decode_param_field(field(d, name, "map", path), ptype, f"{path}.{name}")
        for name, ptype in cls.PARAM_FIELDS.items()
    }


@dataclass(frozen=True)
class SignatureKnowledge:
    """
    Knowledge of a BBS+ signature on a message vector, some of which are
    revealed.

    Fields:
      params:     SignatureParams | ParamRef
      public_key: SignaturePublicKey | ParamRef
      revealed:   message index -> scalar (stored as sorted pairs)
    """

    params: Union[SignatureParams, ParamRef]
    public_key: Union[SignaturePublicKey, ParamRef]
    revealed: Tuple[Tuple[int, int], ...] = ()

    KIND: ClassVar[StatementKind] = StatementKind.SIGNATURE_KNOWLEDGE
    PARAM_FIELDS: ClassVar[Dict[str, Type[Any]]] = {
        "params": SignatureParams,
        "public_key": SignaturePublicKey,
    }

    def __post_init__(self) -> None:
        for name, cls in self.PARAM_FIELDS.items():
            _check_param_field(getattr(self, name), cls, name)
        items = self.revealed.items() if isinstance(self.revealed, Mapping) else self.revealed
        pairs = []
        for idx, val in items:
            if isinstance(idx, bool) or not isinstance(idx, int) or idx < 0:
                raise MalformedSpec("revealed message index must be a non-negative int")
            pairs.append((idx, _scalar(val, f"revealed[{idx}]")))
        pairs.sort()
        if len({i for i, _ in pairs}) != len(pairs):
            raise MalformedSpec("duplicate revealed message index")
        _set(self, "revealed", tuple(pairs))

    @property
    def revealed_messages(self) -> Dict[int, int]:
        return dict(self.revealed)

    def to_dict(self) -> Dict[str, Any]:
        d = _params_dict(self)
        d["revealed"] = [[i, v.to_bytes(32, "big")] for i, v in self.revealed]
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "SignatureKnowledge":
        revealed = []
        for n, item in enumerate(field(d, "revealed", "list", path)):
            where = f"{path}.revealed[{n}]"
            if not (isinstance(item, list) and len(item) == 2):
                raise DecodeError("expected [index, scalar]", path=where)
            idx, raw = item
            if not isinstance(idx, int) or not isinstance(raw, bytes) or len(raw) != 32:
                raise DecodeError("expected [int, 32-byte scalar]", path=where)
            revealed.append((idx, int.from_bytes(raw, "big")))
        return cls(revealed=tuple(revealed), **_params_from(d, cls, path))


@dataclass(frozen=True)
class _AccumulatorStatement:
    params: Union[AccumulatorParams, ParamRef]
    public_key: Union[AccumulatorPublicKey, ParamRef]
    proving_key: Union[AccumulatorProvingKey, ParamRef]
    accumulated: Any

    PARAM_FIELDS: ClassVar[Dict[str, Type[Any]]] = {
        "params": AccumulatorParams,
        "public_key": AccumulatorPublicKey,
        "proving_key": AccumulatorProvingKey,
    }

    def __post_init__(self) -> None:
        for name, cls in self.PARAM_FIELDS.items():
            _check_param_field(getattr(self, name), cls, name)
        _set(self, "accumulated", check_g1(self.accumulated, "accumulated"))

    def to_dict(self) -> Dict[str, Any]:
        d = _params_dict(self)
        d["accumulated"] = G1_GROUP.encode(self.accumulated)
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> Any:
        acc = G1_GROUP.decode(field(d, "accumulated", "bytes", path))
        return cls(accumulated=acc, **_params_from(d, cls, path))


@dataclass(frozen=True)
class AccumulatorMembership(_AccumulatorStatement):
    """Element (slot 0) is a member of the accumulator value `accumulated`."""

    KIND: ClassVar[StatementKind] = StatementKind.ACCUMULATOR_MEMBERSHIP


@dataclass(frozen=True)
class AccumulatorNonMembership(_AccumulatorStatement):
    """Element (slot 0) is *not* a member of the accumulator value `accumulated`."""

    KIND: ClassVar[StatementKind] = StatementKind.ACCUMULATOR_NON_MEMBERSHIP


@dataclass(frozen=True)
class PedersenOpening:
    """
    Knowledge of x_0..x_{n-1} with commitment = sum x_i * bases[i] in G1.
    `bases` may be given as a plain sequence of points.
    """

    bases: Union[PedersenBases, ParamRef]
    commitment: Any

    KIND: ClassVar[StatementKind] = StatementKind.PEDERSEN_OPENING
    PARAM_FIELDS: ClassVar[Dict[str, Type[Any]]] = {"bases": PedersenBases}

    def __post_init__(self) -> None:
        if isinstance(self.bases, (list, tuple)):
            _set(self, "bases", PedersenBases(tuple(self.bases)))
        _check_param_field(self.bases, PedersenBases, "bases")
        _set(self, "commitment", check_g1(self.commitment, "commitment"))

    def to_dict(self) -> Dict[str, Any]:
        d = _params_dict(self)
        d["commitment"] = G1_GROUP.encode(self.commitment)
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "PedersenOpening":
        c = G1_GROUP.decode(field(d, "commitment", "bytes", path))
        return cls(commitment=c, **_params_from(d, cls, path))


@dataclass(frozen=True)
class PedersenOpeningG2:
    """As PedersenOpening, over G2."""

    bases: Union[PedersenBasesG2, ParamRef]
    commitment: Any

    KIND: ClassVar[StatementKind] = StatementKind.PEDERSEN_OPENING_G2
    PARAM_FIELDS: ClassVar[Dict[str, Type[Any]]] = {"bases": PedersenBasesG2}

    def __post_init__(self) -> None:
        if isinstance(self.bases, (list, tuple)):
            _set(self, "bases", PedersenBasesG2(tuple(self.bases)))
        _check_param_field(self.bases, PedersenBasesG2, "bases")
        _set(self, "commitment", check_g2(self.commitment, "commitment"))

    def to_dict(self) -> Dict[str, Any]:
        d = _params_dict(self)
        d["commitment"] = G2_GROUP.encode(self.commitment)
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "PedersenOpeningG2":
        c = G2_GROUP.decode(field(d, "commitment", "bytes", path))
        return cls(commitment=c, **_params_from(d, cls, path))


@dataclass(frozen=True)
class VerifiableEncryption:
    """
    The slot-0 value is encrypted, in chunks of `chunk_bit_size` bits, to
    `encryption_key`; every chunk is range-bounded under `range_key`.
    """

    encryption_key: Union[EncryptionKey, ParamRef]
    chunk_bit_size: int
    range_key: Union[RangeKey, ParamRef]

    KIND: ClassVar[StatementKind] = StatementKind.VERIFIABLE_ENCRYPTION
    PARAM_FIELDS: ClassVar[Dict[str, Type[Any]]] = {
        "encryption_key": EncryptionKey,
        "range_key": RangeKey,
    }

    def __post_init__(self) -> None:
        for name, cls in self.PARAM_FIELDS.items():
            _check_param_field(getattr(self, name), cls, name)
        if self.chunk_bit_size not in CHUNK_BIT_SIZES:
            raise MalformedSpec(
                f"chunk_bit_size must be one of {CHUNK_BIT_SIZES}",
                ctx={"chunk_bit_size": self.chunk_bit_size},
            )

    @property
    def chunk_count(self) -> int:
        return -(-ORDER.bit_length() // self.chunk_bit_size)

    def to_dict(self) -> Dict[str, Any]:
        d = _params_dict(self)
        d["chunk_bit_size"] = self.chunk_bit_size
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "VerifiableEncryption":
        return cls(
            chunk_bit_size=field(d, "chunk_bit_size", "int", path),
            **_params_from(d, cls, path),
        )


@dataclass(frozen=True)
class BoundedValue:
    """The slot-0 value lies in the inclusive interval [lower, upper]."""

    lower: int
    upper: int
    range_key: Union[RangeKey, ParamRef]

    KIND: ClassVar[StatementKind] = StatementKind.BOUNDED_VALUE
    PARAM_FIELDS: ClassVar[Dict[str, Type[Any]]] = {"range_key": RangeKey}

    def __post_init__(self) -> None:
        _check_param_field(self.range_key, RangeKey, "range_key")
        _scalar(self.lower, "lower")
        _scalar(self.upper, "upper")
        if self.lower > self.upper:
            raise MalformedSpec("lower bound exceeds upper bound")
        if (self.upper - self.lower) >> MAX_RANGE_BITS:
            raise MalformedSpec(f"interval wider than 2^{MAX_RANGE_BITS}")

    @property
    def bit_length(self) -> int:
        return max(1, (self.upper - self.lower).bit_length())

    def to_dict(self) -> Dict[str, Any]:
        d = _params_dict(self)
        d["lower"] = self.lower.to_bytes(32, "big")
        d["upper"] = self.upper.to_bytes(32, "big")
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "BoundedValue":
        lo = field(d, "lower", "bytes", path)
        hi = field(d, "upper", "bytes", path)
        if len(lo) != 32 or len(hi) != 32:
            raise DecodeError("bounds must be 32-byte scalars", path=path)
        return cls(
            lower=int.from_bytes(lo, "big"),
            upper=int.from_bytes(hi, "big"),
            **_params_from(d, cls, path),
        )


Statement = Union[
    SignatureKnowledge,
    AccumulatorMembership,
    AccumulatorNonMembership,
    PedersenOpening,
    PedersenOpeningG2,
    VerifiableEncryption,
    BoundedValue,
]

STATEMENT_TYPES: Dict[StatementKind, Type[Any]] = {
    cls.KIND: cls
    for cls in (
        SignatureKnowledge,
        AccumulatorMembership,
        AccumulatorNonMembership,
        PedersenOpening,
        PedersenOpeningG2,
        VerifiableEncryption,
        BoundedValue,
    )
}


def is_statement(obj: Any) -> bool:
    return type(obj) in STATEMENT_TYPES.values()


def encode_statement(st: Statement) -> Dict[str, Any]:
    return {"kind": int(st.KIND), "body": st.to_dict()}


def decode_statement(d: Any, path: str = "$") -> Statement:
    kind_raw = field(d, "kind", "int", path)
    try:
        kind = StatementKind(kind_raw)
    except ValueError as e:
        raise DecodeError(f"unknown statement kind {kind_raw}", path=f"{path}.kind") from e
    body = field(d, "body", "map", path)
    try:
        return STATEMENT_TYPES[kind].from_dict(body, f"{path}.body")
    except MalformedSpec as e:
        raise DecodeError(e.msg, path=f"{path}.body", cause=e) from e


__all__ = [
    "CHUNK_BIT_SIZES",
    "MAX_RANGE_BITS",
    "StatementKind",
    "SignatureKnowledge",
    "AccumulatorMembership",
    "AccumulatorNonMembership",
    "PedersenOpening",
    "PedersenOpeningG2",
    "VerifiableEncryption",
    "BoundedValue",
    "Statement",
    "STATEMENT_TYPES",
    "is_statement",
    "encode_statement",
    "decode_statement",
]
