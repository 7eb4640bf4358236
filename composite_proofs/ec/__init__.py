"""
composite_proofs.ec

Curve backend for the reference providers. Everything is BN254 through
py_ecc; see `composite_proofs.ec.bn254` for the encodings.
"""

from .bn254 import G1_GROUP, G2_GROUP, ORDER, Group

__all__ = ["G1_GROUP", "G2_GROUP", "ORDER", "Group"]
