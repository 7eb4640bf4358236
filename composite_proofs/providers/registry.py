"""
composite_proofs.providers.registry

Maps StatementKind -> Provider instance.

Built-in providers are imported lazily on first lookup; each provider
module exposes a top-level `PROVIDERS` tuple of instances. Adding a
statement kind is one new module plus one line in _LAZY_MODULES.
"""

from __future__ import annotations

import importlib
from typing import Dict, Tuple

from ..errors import MalformedSpec
from ..statements import StatementKind
from .base import Provider

_PROVIDERS: Dict[StatementKind, Provider] = {}
_LAZY_MODULES: Dict[StatementKind, str] = {
    StatementKind.SIGNATURE_KNOWLEDGE: "composite_proofs.providers.bbs_plus",
    StatementKind.ACCUMULATOR_MEMBERSHIP: "composite_proofs.providers.accumulator",
    StatementKind.ACCUMULATOR_NON_MEMBERSHIP: "composite_proofs.providers.accumulator",
    StatementKind.PEDERSEN_OPENING: "composite_proofs.providers.pedersen",
    StatementKind.PEDERSEN_OPENING_G2: "composite_proofs.providers.pedersen",
    StatementKind.VERIFIABLE_ENCRYPTION: "composite_proofs.providers.encryption",
    StatementKind.BOUNDED_VALUE: "composite_proofs.providers.bounds",
}


def register(provider: Provider) -> None:
    """Register or replace the provider for provider.kind."""
    _PROVIDERS[provider.kind] = provider


def is_registered(kind: StatementKind) -> bool:
    return kind in _PROVIDERS


def _lazy_load(kind: StatementKind) -> None:
    mod_name = _LAZY_MODULES.get(kind)
    if not mod_name:
        return
    mod = importlib.import_module(mod_name)
    for provider in getattr(mod, "PROVIDERS", ()):
        if not is_registered(provider.kind):
            register(provider)


def get_provider(kind: StatementKind) -> Provider:
    if kind not in _PROVIDERS:
        _lazy_load(kind)
    try:
        return _PROVIDERS[kind]
    except KeyError:
        raise MalformedSpec(f"no provider registered for statement kind {int(kind)}") from None


def registered_kinds() -> Tuple[StatementKind, ...]:
    for kind in _LAZY_MODULES:
        if kind not in _PROVIDERS:
            _lazy_load(kind)
    return tuple(sorted(_PROVIDERS))


__all__ = ["register", "is_registered", "get_provider", "registered_kinds"]
