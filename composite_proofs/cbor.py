"""
composite_proofs.cbor

Canonical CBOR encode/decode for ProofSpec and Proof bodies.

Canonical ordering
------------------
CBOR canonical ordering (RFC 8949 §4.2.1) sorts map keys by their encoded
bytewise representation. All maps produced by this package use ASCII text
keys only, so sorting by (len(utf8(key)), utf8(key)) is the exact rule; we
pre-sort and additionally ask cbor2 for canonical output.

Public API
----------
- dumps_canonical(obj) -> bytes
- loads(data) -> Any
- field(d, key, kind, path) typed accessor used by the decoders
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import asdict, is_dataclass
from io import BytesIO
from typing import Any, Iterable, Mapping, Tuple

import cbor2

from .errors import DecodeError


def _utf8(k: str) -> bytes:
    return k.encode("utf-8")


def _canon_sort_items(items: Iterable[Tuple[Any, Any]]) -> Iterable[Tuple[Any, Any]]:
    return sorted(items, key=lambda kv: (len(_utf8(kv[0])), _utf8(kv[0])))


def _canon_obj(obj: Any) -> Any:
    """
    Recursively produce a structure where all dicts are OrderedDicts with
    canonical key order and tuples become lists.
    """
    if is_dataclass(obj) and not isinstance(obj, type):
        obj = asdict(obj)

    if isinstance(obj, Mapping):
        for k in obj.keys():
            if not isinstance(k, str):
                raise DecodeError(f"non-text map key (type={type(k).__name__}); keys must be str")
        return OrderedDict((k, _canon_obj(v)) for k, v in _canon_sort_items(obj.items()))

    if isinstance(obj, (list, tuple)):
        return [_canon_obj(x) for x in obj]

    if isinstance(obj, bytearray):
        return bytes(obj)

    return obj


def dumps_canonical(obj: Any) -> bytes:
    """Deterministic CBOR: canonical map ordering, minimal integer/length heads."""
    bio = BytesIO()
    cbor2.CBOREncoder(bio, canonical=True).encode(_canon_obj(obj))
    return bio.getvalue()


def loads(data: bytes) -> Any:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise DecodeError("CBOR input must be bytes")
    try:
        return cbor2.loads(bytes(data))
    except (cbor2.CBORDecodeError, ValueError, TypeError, EOFError) as e:
        raise DecodeError(f"invalid CBOR: {e}", cause=e) from e


_KINDS = {
    "int": int,
    "bytes": bytes,
    "list": list,
    "map": dict,
    "str": str,
}


def field(d: Any, key: str, kind: str, path: str = "$") -> Any:
    """
    Fetch d[key] and check its CBOR major type. Raises DecodeError with a
    JSON-path-like location on any mismatch.
    """
    where = f"{path}.{key}"
    if not isinstance(d, dict):
        raise DecodeError("expected a map", path=path)
    if key not in d:
        raise DecodeError(f"missing field {key!r}", path=where)
    val = d[key]
    want = _KINDS[kind]
    if want is int and (isinstance(val, bool) or not isinstance(val, int)):
        raise DecodeError("expected an integer", path=where)
    if not isinstance(val, want):
        raise DecodeError(f"expected {kind}", path=where)
    return val


def optional_field(d: Any, key: str, kind: str, path: str = "$") -> Any:
    if isinstance(d, dict) and d.get(key) is None:
        return None
    return field(d, key, kind, path)


__all__ = ["dumps_canonical", "loads", "field", "optional_field"]
