"""
composite_proofs.spec

ProofSpec: the public, hashable aggregate both sides agree on.

    ProofSpec(statements, setup_params, equalities, context)

- statements     ordered; index-significant
- setup_params   ordered; statements point into it with ParamRef(index)
- equalities     canonicalised equality groups (order-insignificant)
- context        opaque bytes bound into the challenge

Construction validates everything up front (MalformedSpec on any violation)
and caches the *resolved* statements, i.e. with each ParamRef replaced by
the parameter object it names, so the prover and verifier never touch an
unchecked handle. No randomness is used; identical inputs give identical
bytes.

Canonical encoding (CBOR, text keys):

    {"version": 1,
     "statements":   [{"kind", "body"}, ...],
     "setup_params": [{"kind", "body"}, ...],
     "equalities":   [[[s, slot], ...], ...],
     "context":      bytes}
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence, Tuple

from .cbor import dumps_canonical, field as cbor_field, loads
from .config import DEFAULT, ProofSystemConfig
from .equality import EqualityGroup, canonical_groups, decode_groups, encode_groups
from .errors import DecodeError, MalformedSpec, ProofSystemError
from .params import PARAM_TYPES, SetupParam, SetupParamArena, decode_param, encode_param, resolve_param
from .providers.registry import get_provider
from .statements import Statement, decode_statement, encode_statement, is_statement
from .utils.hash import DOM_SPEC, sha3_256_tag
from .version import WIRE_VERSION

log = logging.getLogger(__name__)


def _resolve_all(
    statements: Sequence[Statement],
    table: Sequence[SetupParam],
    groups: Sequence[EqualityGroup],
) -> Tuple[Statement, ...]:
    resolved = []
    for i, st in enumerate(statements):
        if not is_statement(st):
            raise MalformedSpec(f"statement {i} is not a statement ({type(st).__name__})", ctx={"index": i})
        updates = {
            name: resolve_param(
                getattr(st, name), expected, table, field_name=name, statement_index=i
            )
            for name, expected in st.PARAM_FIELDS.items()
        }
        rst = dataclasses.replace(st, **updates)
        try:
            get_provider(rst.KIND).validate(rst)
        except MalformedSpec as e:
            raise MalformedSpec(e.msg, ctx={**e.ctx, "index": i}, cause=e) from e
        resolved.append(rst)

    for g in groups:
        for ref in g:
            if ref.statement >= len(resolved):
                raise MalformedSpec(
                    f"equality group references statement {ref.statement}, spec has {len(resolved)}",
                    ctx={"statement": ref.statement, "slot": ref.slot},
                )
            slots = get_provider(resolved[ref.statement].KIND).slots(resolved[ref.statement])
            if ref.slot not in slots:
                raise MalformedSpec(
                    f"statement {ref.statement} has no witness slot {ref.slot}",
                    ctx={"statement": ref.statement, "slot": ref.slot},
                )
    return tuple(resolved)


@dataclass(frozen=True)
class ProofSpec:
    statements: Tuple[Statement, ...]
    setup_params: Tuple[SetupParam, ...] = ()
    equalities: Tuple[EqualityGroup, ...] = ()
    context: bytes = b""

    _resolved: Tuple[Statement, ...] = field(default=(), init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        params = self.setup_params
        if isinstance(params, SetupParamArena):
            params = params.entries
        params = tuple(params)
        for i, p in enumerate(params):
            if type(p) not in PARAM_TYPES.values():
                raise MalformedSpec(f"setup param {i} is not a setup parameter", ctx={"param": i})
        if not isinstance(self.context, (bytes, bytearray)):
            raise MalformedSpec("context must be bytes")
        object.__setattr__(self, "statements", tuple(self.statements))
        object.__setattr__(self, "setup_params", params)
        object.__setattr__(self, "equalities", canonical_groups(self.equalities))
        object.__setattr__(self, "context", bytes(self.context))
        object.__setattr__(
            self, "_resolved", _resolve_all(self.statements, self.setup_params, self.equalities)
        )

    # -------------------------
    # Construction
    # -------------------------

    @classmethod
    def build(
        cls,
        statements: Iterable[Statement],
        setup_params: Iterable[SetupParam] = (),
        equalities: Iterable[Iterable[Any]] = (),
        context: bytes = b"",
        *,
        config: Optional[ProofSystemConfig] = None,
    ) -> "ProofSpec":
        """Assemble and validate a spec, enforcing the configured size limits."""
        cfg = config or DEFAULT
        statements = tuple(statements)
        if len(statements) > cfg.max_statements:
            raise MalformedSpec(
                f"too many statements ({len(statements)} > {cfg.max_statements})",
                ctx={"count": len(statements), "limit": cfg.max_statements},
            )
        if isinstance(context, (bytes, bytearray)) and len(context) > cfg.max_context_bytes:
            raise MalformedSpec(
                f"context too large ({len(context)} > {cfg.max_context_bytes} bytes)",
                ctx={"size": len(context), "limit": cfg.max_context_bytes},
            )
        spec = cls(
            statements=statements,
            setup_params=setup_params,
            equalities=tuple(equalities),
            context=context,
        )
        log.debug(
            "proof spec built",
            extra={"statements": len(spec.statements), "groups": len(spec.equalities)},
        )
        return spec

    # -------------------------
    # Accessors
    # -------------------------

    def __len__(self) -> int:
        return len(self.statements)

    def resolved(self, index: int) -> Statement:
        """Statement `index` with every setup-param handle replaced by its object."""
        return self._resolved[index]

    @property
    def resolved_statements(self) -> Tuple[Statement, ...]:
        return self._resolved

    def is_valid(self) -> bool:
        try:
            _resolve_all(self.statements, self.setup_params, self.equalities)
        except ProofSystemError:
            return False
        return True

    # -------------------------
    # Encoding
    # -------------------------

    def to_dict(self) -> dict:
        return {
            "version": WIRE_VERSION,
            "statements": [encode_statement(s) for s in self.statements],
            "setup_params": [encode_param(p) for p in self.setup_params],
            "equalities": encode_groups(self.equalities),
            "context": self.context,
        }

    def to_bytes(self) -> bytes:
        return dumps_canonical(self.to_dict())

    @classmethod
    def from_dict(cls, d: Any, *, config: Optional[ProofSystemConfig] = None) -> "ProofSpec":
        version = cbor_field(d, "version", "int")
        if version != WIRE_VERSION:
            raise DecodeError(f"unsupported spec wire version {version}", path="$.version")
        statements = [
            decode_statement(x, f"$.statements[{i}]")
            for i, x in enumerate(cbor_field(d, "statements", "list"))
        ]
        params = [
            decode_param(x, f"$.setup_params[{i}]")
            for i, x in enumerate(cbor_field(d, "setup_params", "list"))
        ]
        groups = decode_groups(cbor_field(d, "equalities", "list"))
        context = cbor_field(d, "context", "bytes")
        return cls.build(statements, params, groups, context, config=config)

    @classmethod
    def from_bytes(cls, data: bytes, *, config: Optional[ProofSystemConfig] = None) -> "ProofSpec":
        return cls.from_dict(loads(data), config=config)

    def digest(self) -> bytes:
        """SHA3-256 over the canonical encoding; a stable identifier for logs."""
        return sha3_256_tag(DOM_SPEC, self.to_bytes())


__all__ = ["ProofSpec"]
