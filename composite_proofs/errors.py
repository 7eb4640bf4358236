"""
Typed exceptions for composite_proofs.

Design goals
- Structured: machine-readable code + human message + contextual fields.
- Composable: wrap lower-level exceptions with preserved causes.
- Stable across processes: to_dict()/from_dict() round-trip.

Taxonomy
  - ProofSystemError (base)
  - MalformedSpec          spec assembly / statement-witness variant mismatch
  - WitnessCountMismatch   witness table length != statement table length
  - ProofShapeMismatch     proof length != statement table length
  - StatementProvingError  one statement's sub-protocol failed (carries index)
  - VerificationFailed     per-statement or equality-group check failed
  - DecodeError            CBOR / point / scalar decoding failure
  - ConfigError            invalid configuration values

Construction-time errors abort the call. The verifier never raises them;
it reports them inside a VerificationResult instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class ErrorCode(str, Enum):
    """Canonical error codes."""

    UNKNOWN = "UNKNOWN"

    MALFORMED_SPEC = "MALFORMED_SPEC"
    WITNESS_COUNT_MISMATCH = "WITNESS_COUNT_MISMATCH"
    PROOF_SHAPE_MISMATCH = "PROOF_SHAPE_MISMATCH"
    STATEMENT_PROVING = "STATEMENT_PROVING"
    VERIFICATION_FAILED = "VERIFICATION_FAILED"
    DECODE = "DECODE"
    CONFIG = "CONFIG"


@dataclass
class ProofSystemError(Exception):
    """
    Base structured error.

    Fields:
      code:  stable machine code (ErrorCode | str)
      msg:   human-readable summary
      ctx:   small dict of contextual fields (indices, kinds, hex strings)
      cause: optional underlying exception (not serialized)
    """

    code: ErrorCode | str = ErrorCode.UNKNOWN
    msg: str = "proof system error"
    ctx: Dict[str, Any] = field(default_factory=dict)
    cause: Optional[BaseException] = None

    def __post_init__(self) -> None:
        if not isinstance(self.ctx, dict):
            self.ctx = {"_ctx_type_error": str(type(self.ctx)), "repr": repr(self.ctx)}

    def __str__(self) -> str:
        parts = [f"[{_code_str(self.code)}] {self.msg}"]
        if self.ctx:
            parts.append(f"ctx={self.ctx}")
        if self.cause:
            parts.append(f"cause={self.cause!r}")
        return " ".join(parts)

    def with_context(self, **extra: Any) -> "ProofSystemError":
        """Return a shallow copy with merged context."""
        merged = dict(self.ctx)
        merged.update(extra)
        return ProofSystemError(code=self.code, msg=self.msg, ctx=merged, cause=self.cause)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": _code_str(self.code), "msg": self.msg, "ctx": dict(self.ctx)}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "ProofSystemError":
        code_raw = d.get("code", ErrorCode.UNKNOWN)
        try:
            code: ErrorCode | str = ErrorCode(code_raw)
        except ValueError:
            code = str(code_raw)
        return ProofSystemError(
            code=code, msg=str(d.get("msg", "proof system error")), ctx=dict(d.get("ctx", {}))
        )


def _code_str(code: ErrorCode | str) -> str:
    return code.value if isinstance(code, ErrorCode) else str(code)


class MalformedSpec(ProofSystemError):
    """Index out of range, parameter kind mismatch, or statement/witness variant mismatch."""

    def __init__(
        self,
        msg: str = "malformed proof specification",
        *,
        ctx: Optional[Mapping[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(code=ErrorCode.MALFORMED_SPEC, msg=msg, ctx=dict(ctx or {}), cause=cause)


class WitnessCountMismatch(ProofSystemError):
    def __init__(self, expected: int, got: int) -> None:
        self.expected = expected
        self.got = got
        super().__init__(
            code=ErrorCode.WITNESS_COUNT_MISMATCH,
            msg=f"expected {expected} witnesses, got {got}",
            ctx={"expected": expected, "got": got},
        )


class ProofShapeMismatch(ProofSystemError):
    def __init__(self, expected: int, got: int) -> None:
        self.expected = expected
        self.got = got
        super().__init__(
            code=ErrorCode.PROOF_SHAPE_MISMATCH,
            msg=f"expected {expected} statement proofs, got {got}",
            ctx={"expected": expected, "got": got},
        )


class StatementProvingError(ProofSystemError):
    """A specific statement could not be proven; `index` names it."""

    def __init__(self, index: int, cause: BaseException, *, kind: Optional[str] = None) -> None:
        self.index = index
        ctx: Dict[str, Any] = {"index": index}
        if kind is not None:
            ctx["kind"] = kind
        super().__init__(
            code=ErrorCode.STATEMENT_PROVING,
            msg=f"statement {index} could not be proven: {cause}",
            ctx=ctx,
            cause=cause,
        )


class VerificationFailed(ProofSystemError):
    """
    A verification check failed.

    Attributes:
      reason: short stable reason string (e.g. 'schnorr', 'pairing', 'equality')
      index:  statement index for per-statement failures
      group:  equality group (tuple of (statement, slot)) for equality failures
    """

    def __init__(
        self,
        reason: str,
        *,
        detail: Optional[str] = None,
        index: Optional[int] = None,
        group: Optional[Tuple[Tuple[int, int], ...]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.reason = reason
        self.index = index
        self.group = group
        ctx: Dict[str, Any] = {"reason": reason}
        if index is not None:
            ctx["index"] = index
        if group is not None:
            ctx["group"] = [list(r) for r in group]
        super().__init__(
            code=ErrorCode.VERIFICATION_FAILED,
            msg=detail or reason,
            ctx=ctx,
            cause=cause,
        )

    def at(self, index: int) -> "VerificationFailed":
        """Return a copy attributed to statement `index`."""
        return VerificationFailed(
            self.reason, detail=self.msg, index=index, group=self.group, cause=self.cause
        )


class DecodeError(ProofSystemError):
    """Bytes/CBOR/point decoding failure."""

    def __init__(
        self,
        msg: str = "decode failed",
        *,
        path: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        ctx: Dict[str, Any] = {}
        if path is not None:
            ctx["path"] = path
        super().__init__(code=ErrorCode.DECODE, msg=msg, ctx=ctx, cause=cause)


class ConfigError(ProofSystemError):
    def __init__(self, msg: str, *, key: Optional[str] = None) -> None:
        super().__init__(code=ErrorCode.CONFIG, msg=msg, ctx={"key": key} if key else {})


def ensure(cond: bool, reason: str, detail: Optional[str] = None) -> None:
    """Raise VerificationFailed(reason) unless cond holds. Used inside providers."""
    if not cond:
        raise VerificationFailed(reason, detail=detail)


def require(cond: bool, msg: str, **ctx: Any) -> None:
    """Raise MalformedSpec(msg) unless cond holds. Used during assembly."""
    if not cond:
        raise MalformedSpec(msg, ctx=ctx)


__all__ = [
    "ErrorCode",
    "ProofSystemError",
    "MalformedSpec",
    "WitnessCountMismatch",
    "ProofShapeMismatch",
    "StatementProvingError",
    "VerificationFailed",
    "DecodeError",
    "ConfigError",
    "ensure",
    "require",
]
