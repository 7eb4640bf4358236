"""
Capability providers: one Sigma-protocol implementation per statement kind.

- base       Provider contract, ProverState, StatementProof
- registry   StatementKind -> Provider lookup (lazy)
- bbs_plus   SignatureKnowledge (BBS+ proof of knowledge)
- accumulator  AccumulatorMembership / AccumulatorNonMembership
- pedersen   PedersenOpening (G1) / PedersenOpeningG2
- encryption VerifiableEncryption (chunked ElGamal + bit range argument)
- bounds     BoundedValue (bit-decomposition range argument)
"""

from .base import Provider, ProverState, StatementProof
from .registry import get_provider, is_registered, register, registered_kinds

__all__ = [
    "Provider",
    "ProverState",
    "StatementProof",
    "get_provider",
    "is_registered",
    "register",
    "registered_kinds",
]
