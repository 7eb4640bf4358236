"""
composite_proofs.params

Setup parameters: immutable public parameter objects shared by statements
through integer handles.

- SetupParamKind(IntEnum) tags every parameter type.
- Each parameter is a frozen dataclass with `to_dict()` / `from_dict()` and,
  where a public derivation exists, a `generate(...)` constructor that
  derives its generators by hash-to-curve.
- ParamRef(index) is the handle statements hold instead of a copy.
- SetupParamArena interns parameters by canonical encoding (dedup) and
  hands out ParamRefs.

Encoding of a parameter: {"kind": int, "body": {...}}.
Encoding of a parameter-typed statement field: {"ref": int} or {"val": {...}}.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Sequence, Tuple, Type, Union

from .cbor import dumps_canonical, field
from .ec.bn254 import (
    G1_GROUP,
    G2_GROUP,
    ORDER,
    g2_generator,
    hash_to_g1,
    is_g1_point,
    is_g2_point,
    random_scalar,
)
from .errors import DecodeError, MalformedSpec
from .utils.hash import DOM_HASH_TO_SCALAR, hash_to_scalar

DEFAULT_LABEL = b"composite-proofs:v1"


class SetupParamKind(IntEnum):
    SIGNATURE_PARAMS = 0x01
    SIGNATURE_PUBLIC_KEY = 0x02
    ACCUMULATOR_PARAMS = 0x03
    ACCUMULATOR_PUBLIC_KEY = 0x04
    ACCUMULATOR_PROVING_KEY = 0x05
    PEDERSEN_BASES_G1 = 0x06
    PEDERSEN_BASES_G2 = 0x07
    ENCRYPTION_KEY = 0x08
    RANGE_KEY = 0x09


def _set(obj: Any, name: str, value: Any) -> None:
    object.__setattr__(obj, name, value)


def check_g1(p: Any, name: str) -> Any:
    """Validate and normalise a G1 point supplied by a caller."""
    if not is_g1_point(p):
        raise MalformedSpec(f"{name}: expected a G1 point", ctx={"field": name})
    try:
        return G1_GROUP.decode(G1_GROUP.encode(p))
    except (ValueError, TypeError, AttributeError, ZeroDivisionError) as e:
        raise MalformedSpec(f"{name}: invalid G1 point", ctx={"field": name}, cause=e) from e


def check_g2(q: Any, name: str) -> Any:
    if not is_g2_point(q):
        raise MalformedSpec(f"{name}: expected a G2 point", ctx={"field": name})
    try:
        return G2_GROUP.decode(G2_GROUP.encode(q))
    except (ValueError, TypeError, AttributeError, ZeroDivisionError) as e:
        raise MalformedSpec(f"{name}: invalid G2 point", ctx={"field": name}, cause=e) from e


def _g1(d: Dict[str, Any], key: str, path: str) -> Any:
    return G1_GROUP.decode(field(d, key, "bytes", path))


def _g2(d: Dict[str, Any], key: str, path: str) -> Any:
    return G2_GROUP.decode(field(d, key, "bytes", path))


def _g1_list(d: Dict[str, Any], key: str, path: str) -> Tuple[Any, ...]:
    items = field(d, key, "list", path)
    out = []
    for i, raw in enumerate(items):
        if not isinstance(raw, bytes):
            raise DecodeError("expected bytes", path=f"{path}.{key}[{i}]")
        out.append(G1_GROUP.decode(raw))
    return tuple(out)


def _g2_list(d: Dict[str, Any], key: str, path: str) -> Tuple[Any, ...]:
    items = field(d, key, "list", path)
    out = []
    for i, raw in enumerate(items):
        if not isinstance(raw, bytes):
            raise DecodeError("expected bytes", path=f"{path}.{key}[{i}]")
        out.append(G2_GROUP.decode(raw))
    return tuple(out)


# ---------------------------------------------------------------------------
# Signature (BBS+)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SignatureParams:
    """
    BBS+ signature parameters.

    Fields:
      g1: G1 base of the message commitment
      g2: G2 base of the public key
      h0: G1 base for the signature blinding `s`
      h:  one G1 base per message slot
    """

    g1: Any
    g2: Any
    h0: Any
    h: Tuple[Any, ...]

    PARAM_KIND: ClassVar[SetupParamKind] = SetupParamKind.SIGNATURE_PARAMS

    def __post_init__(self) -> None:
        _set(self, "g1", check_g1(self.g1, "g1"))
        _set(self, "g2", check_g2(self.g2, "g2"))
        _set(self, "h0", check_g1(self.h0, "h0"))
        h = tuple(check_g1(p, f"h[{i}]") for i, p in enumerate(self.h))
        if not h:
            raise MalformedSpec("signature params need at least one message base")
        _set(self, "h", h)

    @property
    def message_count(self) -> int:
        return len(self.h)

    @classmethod
    def generate(cls, message_count: int, label: bytes = DEFAULT_LABEL) -> "SignatureParams":
        if message_count < 1:
            raise ValueError("message_count must be >= 1")
        return cls(
            g1=hash_to_g1(label, "bbs+:g1"),
            g2=g2_generator(),
            h0=hash_to_g1(label, "bbs+:h0"),
            h=tuple(hash_to_g1(label, "bbs+:h", i) for i in range(message_count)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "g1": G1_GROUP.encode(self.g1),
            "g2": G2_GROUP.encode(self.g2),
            "h0": G1_GROUP.encode(self.h0),
            "h": [G1_GROUP.encode(p) for p in self.h],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "SignatureParams":
        return cls(
            g1=_g1(d, "g1", path),
            g2=_g2(d, "g2", path),
            h0=_g1(d, "h0", path),
            h=_g1_list(d, "h", path),
        )


@dataclass(frozen=True)
class SignaturePublicKey:
    """BBS+ public key w = x * g2."""

    w: Any

    PARAM_KIND: ClassVar[SetupParamKind] = SetupParamKind.SIGNATURE_PUBLIC_KEY

    def __post_init__(self) -> None:
        _set(self, "w", check_g2(self.w, "w"))

    def to_dict(self) -> Dict[str, Any]:
        return {"w": G2_GROUP.encode(self.w)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "SignaturePublicKey":
        return cls(w=_g2(d, "w", path))


# ---------------------------------------------------------------------------
# Accumulator
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccumulatorParams:
    """Accumulator generators P in G1 and P~ in G2."""

    p: Any
    p_tilde: Any

    PARAM_KIND: ClassVar[SetupParamKind] = SetupParamKind.ACCUMULATOR_PARAMS

    def __post_init__(self) -> None:
        _set(self, "p", check_g1(self.p, "p"))
        _set(self, "p_tilde", check_g2(self.p_tilde, "p_tilde"))

    @classmethod
    def generate(cls, label: bytes = DEFAULT_LABEL) -> "AccumulatorParams":
        k = hash_to_scalar(DOM_HASH_TO_SCALAR, label, "acc:p~", order=ORDER) or 1
        return cls(
            p=hash_to_g1(label, "acc:p"),
            p_tilde=G2_GROUP.norm(G2_GROUP.mul(g2_generator(), k)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"p": G1_GROUP.encode(self.p), "p_tilde": G2_GROUP.encode(self.p_tilde)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "AccumulatorParams":
        return cls(p=_g1(d, "p", path), p_tilde=_g2(d, "p_tilde", path))


@dataclass(frozen=True)
class AccumulatorPublicKey:
    """Q~ = alpha * P~."""

    q_tilde: Any

    PARAM_KIND: ClassVar[SetupParamKind] = SetupParamKind.ACCUMULATOR_PUBLIC_KEY

    def __post_init__(self) -> None:
        _set(self, "q_tilde", check_g2(self.q_tilde, "q_tilde"))

    def to_dict(self) -> Dict[str, Any]:
        return {"q_tilde": G2_GROUP.encode(self.q_tilde)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "AccumulatorPublicKey":
        return cls(q_tilde=_g2(d, "q_tilde", path))


@dataclass(frozen=True)
class AccumulatorProvingKey:
    """
    Independent G1 generators for the membership protocols.
    K is only used by non-membership proofs.
    """

    x: Any
    y: Any
    z: Any
    k: Any

    PARAM_KIND: ClassVar[SetupParamKind] = SetupParamKind.ACCUMULATOR_PROVING_KEY

    def __post_init__(self) -> None:
        for name in ("x", "y", "z", "k"):
            _set(self, name, check_g1(getattr(self, name), name))

    @classmethod
    def generate(cls, label: bytes = DEFAULT_LABEL) -> "AccumulatorProvingKey":
        return cls(*(hash_to_g1(label, "acc:prk", n) for n in ("X", "Y", "Z", "K")))

    def to_dict(self) -> Dict[str, Any]:
        return {n: G1_GROUP.encode(getattr(self, n)) for n in ("x", "y", "z", "k")}

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "AccumulatorProvingKey":
        return cls(*(_g1(d, n, path) for n in ("x", "y", "z", "k")))


# ---------------------------------------------------------------------------
# Pedersen
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PedersenBases:
    """Ordered G1 commitment bases."""

    bases: Tuple[Any, ...]

    PARAM_KIND: ClassVar[SetupParamKind] = SetupParamKind.PEDERSEN_BASES_G1

    def __post_init__(self) -> None:
        bases = tuple(check_g1(p, f"bases[{i}]") for i, p in enumerate(self.bases))
        if not bases:
            raise MalformedSpec("pedersen bases must not be empty")
        _set(self, "bases", bases)

    def __len__(self) -> int:
        return len(self.bases)

    @classmethod
    def generate(cls, count: int, label: bytes = DEFAULT_LABEL) -> "PedersenBases":
        return cls(tuple(hash_to_g1(label, "pedersen:g1", i) for i in range(count)))

    def to_dict(self) -> Dict[str, Any]:
        return {"bases": [G1_GROUP.encode(p) for p in self.bases]}

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "PedersenBases":
        return cls(_g1_list(d, "bases", path))


@dataclass(frozen=True)
class PedersenBasesG2:
    """
    Ordered G2 commitment bases. There is no public hash-to-G2 here, so
    `generate` samples discrete logs from the caller's rng; the generating
    party must not keep them.
    """

    bases: Tuple[Any, ...]

    PARAM_KIND: ClassVar[SetupParamKind] = SetupParamKind.PEDERSEN_BASES_G2

    def __post_init__(self) -> None:
        bases = tuple(check_g2(q, f"bases[{i}]") for i, q in enumerate(self.bases))
        if not bases:
            raise MalformedSpec("pedersen bases must not be empty")
        _set(self, "bases", bases)

    def __len__(self) -> int:
        return len(self.bases)

    @classmethod
    def generate(cls, count: int, rng: Any) -> "PedersenBasesG2":
        g2 = g2_generator()
        return cls(tuple(G2_GROUP.norm(G2_GROUP.mul(g2, random_scalar(rng))) for _ in range(count)))

    def to_dict(self) -> Dict[str, Any]:
        return {"bases": [G2_GROUP.encode(q) for q in self.bases]}

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "PedersenBasesG2":
        return cls(_g2_list(d, "bases", path))


# ---------------------------------------------------------------------------
# Encryption / range
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EncryptionKey:
    """Exponential-ElGamal public key: generator g and pk = sk * g."""

    g: Any
    pk: Any

    PARAM_KIND: ClassVar[SetupParamKind] = SetupParamKind.ENCRYPTION_KEY

    def __post_init__(self) -> None:
        _set(self, "g", check_g1(self.g, "g"))
        _set(self, "pk", check_g1(self.pk, "pk"))

    def to_dict(self) -> Dict[str, Any]:
        return {"g": G1_GROUP.encode(self.g), "pk": G1_GROUP.encode(self.pk)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "EncryptionKey":
        return cls(g=_g1(d, "g", path), pk=_g1(d, "pk", path))


@dataclass(frozen=True)
class RangeKey:
    """Independent generators G, H for bit-commitment range arguments."""

    g: Any
    h: Any

    PARAM_KIND: ClassVar[SetupParamKind] = SetupParamKind.RANGE_KEY

    def __post_init__(self) -> None:
        _set(self, "g", check_g1(self.g, "g"))
        _set(self, "h", check_g1(self.h, "h"))

    @classmethod
    def generate(cls, label: bytes = DEFAULT_LABEL) -> "RangeKey":
        return cls(g=hash_to_g1(label, "range:g"), h=hash_to_g1(label, "range:h"))

    def to_dict(self) -> Dict[str, Any]:
        return {"g": G1_GROUP.encode(self.g), "h": G1_GROUP.encode(self.h)}

    @classmethod
    def from_dict(cls, d: Dict[str, Any], path: str = "$") -> "RangeKey":
        return cls(g=_g1(d, "g", path), h=_g1(d, "h", path))


SetupParam = Union[
    SignatureParams,
    SignaturePublicKey,
    AccumulatorParams,
    AccumulatorPublicKey,
    AccumulatorProvingKey,
    PedersenBases,
    PedersenBasesG2,
    EncryptionKey,
    RangeKey,
]

PARAM_TYPES: Dict[SetupParamKind, Type[Any]] = {
    cls.PARAM_KIND: cls
    for cls in (
        SignatureParams,
        SignaturePublicKey,
        AccumulatorParams,
        AccumulatorPublicKey,
        AccumulatorProvingKey,
        PedersenBases,
        PedersenBasesG2,
        EncryptionKey,
        RangeKey,
    )
}


@dataclass(frozen=True)
class ParamRef:
    """Handle into the setup parameter table."""

    index: int

    def __post_init__(self) -> None:
        if isinstance(self.index, bool) or not isinstance(self.index, int) or self.index < 0:
            raise MalformedSpec("setup param reference must be a non-negative int")


def encode_param(param: SetupParam) -> Dict[str, Any]:
    return {"kind": int(param.PARAM_KIND), "body": param.to_dict()}


def decode_param(d: Any, path: str = "$") -> SetupParam:
    kind_raw = field(d, "kind", "int", path)
    try:
        kind = SetupParamKind(kind_raw)
    except ValueError as e:
        raise DecodeError(f"unknown setup param kind {kind_raw}", path=f"{path}.kind") from e
    body = field(d, "body", "map", path)
    try:
        return PARAM_TYPES[kind].from_dict(body, f"{path}.body")
    except MalformedSpec as e:
        raise DecodeError(e.msg, path=f"{path}.body", cause=e) from e


def encode_param_field(value: Union[SetupParam, ParamRef]) -> Dict[str, Any]:
    if isinstance(value, ParamRef):
        return {"ref": value.index}
    return {"val": value.to_dict()}


def decode_param_field(d: Any, cls: Type[Any], path: str) -> Union[SetupParam, ParamRef]:
    if isinstance(d, dict) and "ref" in d:
        return ParamRef(field(d, "ref", "int", path))
    body = field(d, "val", "map", path)
    try:
        return cls.from_dict(body, f"{path}.val")
    except MalformedSpec as e:
        raise DecodeError(e.msg, path=f"{path}.val", cause=e) from e


def param_digest_key(param: SetupParam) -> bytes:
    return dumps_canonical(encode_param(param))


class SetupParamArena:
    """
    Ordered, deduplicated table of setup parameters.

        arena = SetupParamArena()
        ref = arena.add(SignatureParams.generate(5))
        arena.add(SignatureParams.generate(5)) == ref   # same content, same handle
    """

    def __init__(self, entries: Iterable[SetupParam] = ()) -> None:
        self._entries: List[SetupParam] = []
        self._index: Dict[bytes, int] = {}
        for e in entries:
            self.add(e)

    def add(self, param: SetupParam) -> ParamRef:
        if type(param) not in PARAM_TYPES.values():
            raise MalformedSpec(f"not a setup parameter: {type(param).__name__}")
        key = param_digest_key(param)
        idx = self._index.get(key)
        if idx is None:
            idx = len(self._entries)
            self._entries.append(param)
            self._index[key] = idx
        return ParamRef(idx)

    @property
    def entries(self) -> Tuple[SetupParam, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, ref: Union[int, ParamRef]) -> SetupParam:
        return self._entries[ref.index if isinstance(ref, ParamRef) else ref]


def resolve_param(
    value: Union[SetupParam, ParamRef],
    expected: Type[Any],
    table: Sequence[SetupParam],
    *,
    field_name: str,
    statement_index: Optional[int] = None,
) -> SetupParam:
    """
    Return the parameter object behind `value`, checking bounds and kind.
    A ref to a parameter of another kind is a MalformedSpec.
    """
    ctx: Dict[str, Any] = {"field": field_name}
    if statement_index is not None:
        ctx["statement"] = statement_index
    if isinstance(value, ParamRef):
        if value.index >= len(table):
            raise MalformedSpec(
                f"setup param reference {value.index} out of range (table has {len(table)})",
                ctx={**ctx, "ref": value.index},
            )
        ctx["ref"] = value.index
        value = table[value.index]
    if not isinstance(value, expected):
        raise MalformedSpec(
            f"{field_name}: expected {expected.__name__}, got {type(value).__name__}",
            ctx=ctx,
        )
    return value


__all__ = [
    "DEFAULT_LABEL",
    "SetupParamKind",
    "SignatureParams",
    "SignaturePublicKey",
    "AccumulatorParams",
    "AccumulatorPublicKey",
    "AccumulatorProvingKey",
    "PedersenBases",
    "PedersenBasesG2",
    "EncryptionKey",
    "RangeKey",
    "SetupParam",
    "PARAM_TYPES",
    "ParamRef",
    "SetupParamArena",
    "encode_param",
    "decode_param",
    "encode_param_field",
    "decode_param_field",
    "resolve_param",
    "check_g1",
    "check_g2",
]
