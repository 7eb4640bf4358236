"""
composite_proofs.utils.hash

Domain-separated hashing helpers:
- Canonical "CompositeProofs|<name>" domain tags
- Length-prefix concatenation to avoid ambiguity in multi-part hashing
- Tagged SHA3-256/512
- hash_to_scalar: SHA3-512 output reduced modulo the group order (bias < 2^-250)

Design rules
- Never concatenate raw variable-length fields without length-prefix.
- Always domain-separate bytes with a canonical ASCII tag.
"""

from __future__ import annotations

import hashlib
from typing import Iterable, Union

BytesLike = Union[bytes, bytearray, memoryview]
Part = Union[bytes, bytearray, memoryview, str, int]

_PREFIX = b"CompositeProofs|"

# Domains used across the package.
DOM_CHALLENGE = "composite:challenge"
DOM_NONCE = "composite:nonce"
DOM_SPEC = "composite:spec"
DOM_CONTRIBUTION = "composite:contribution"
DOM_HASH_TO_G1 = "ec:hash-to-g1"
DOM_HASH_TO_SCALAR = "ec:hash-to-scalar"


def domain_tag(name: str) -> bytes:
    """
    Return the canonical domain tag bytes for an ASCII name.
    Example: "composite:challenge" -> b"CompositeProofs|composite:challenge"
    """
    try:
        name_bytes = name.encode("ascii")
    except UnicodeEncodeError as e:
        raise ValueError("domain name must be ASCII") from e
    return _PREFIX + name_bytes


def _to_bytes(x: Part) -> bytes:
    """
    Normalize an input part into bytes:
    - bytes-like: copied
    - str: UTF-8
    - int: big-endian unsigned, minimal length (0 => b'')
    """
    if isinstance(x, (bytes, bytearray, memoryview)):
        return bytes(x)
    if isinstance(x, str):
        return x.encode("utf-8")
    if isinstance(x, int):
        if x < 0:
            raise ValueError("negative int not supported")
        if x == 0:
            return b""
        return x.to_bytes((x.bit_length() + 7) // 8, "big")
    raise TypeError(f"unsupported type for hashing: {type(x)!r}")


def _lp(part: Part) -> bytes:
    """Length-prefix a single part with a u64 big-endian length."""
    b = _to_bytes(part)
    return len(b).to_bytes(8, "big") + b


def concat_lp(parts: Iterable[Part]) -> bytes:
    out = bytearray()
    for p in parts:
        out += _lp(p)
    return bytes(out)


def tag_bytes(tag: Union[str, bytes], *parts: Part) -> bytes:
    """
    data = domain_tag(tag) || 0x00 || LP(part1) || LP(part2) || ...
    """
    if isinstance(tag, str):
        t = domain_tag(tag)
    elif isinstance(tag, (bytes, bytearray, memoryview)):
        t = bytes(tag)
    else:
        raise TypeError("tag must be str or bytes")
    return t + b"\x00" + concat_lp(parts)


def sha3_256(data: Part) -> bytes:
    return hashlib.sha3_256(_to_bytes(data)).digest()


def sha3_256_tag(tag: Union[str, bytes], *parts: Part) -> bytes:
    return hashlib.sha3_256(tag_bytes(tag, *parts)).digest()


def sha3_512_tag(tag: Union[str, bytes], *parts: Part) -> bytes:
    return hashlib.sha3_512(tag_bytes(tag, *parts)).digest()


def hash_to_scalar(tag: Union[str, bytes], *parts: Part, order: int) -> int:
    """Hash parts to an integer in [0, order)."""
    return int.from_bytes(sha3_512_tag(tag, *parts), "big") % order


def to_hex(data: BytesLike, prefix: str = "0x") -> str:
    return prefix + bytes(data).hex()


__all__ = [
    "DOM_CHALLENGE",
    "DOM_NONCE",
    "DOM_SPEC",
    "DOM_CONTRIBUTION",
    "DOM_HASH_TO_G1",
    "DOM_HASH_TO_SCALAR",
    "domain_tag",
    "concat_lp",
    "tag_bytes",
    "sha3_256",
    "sha3_256_tag",
    "sha3_512_tag",
    "hash_to_scalar",
    "to_hex",
]
