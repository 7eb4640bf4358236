"""
composite_proofs.utils

Small helpers shared by the engine and the providers. Submodules are not
imported here; use `from composite_proofs.utils.hash import sha3_256_tag`.

    • hash: domain tags, length-prefixed tagged SHA3, hash_to_scalar
"""

__all__ = ["hash"]
