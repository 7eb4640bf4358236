"""
composite_proofs: composite Sigma-protocol proofs over BN254.

One ProofSpec lists heterogeneous statements (BBS+ signature knowledge,
accumulator (non-)membership, Pedersen openings in G1/G2, verifiable
encryption, bounded values) plus equality groups linking witness slots
across them. One challenge binds every statement, the spec context and an
optional nonce, so the result is a single atomic Proof.

Public surface:
- ProofSpec                         assemble and encode the public statement set
- create_proof / verify_proof       prove and verify
- Proof / VerificationResult        the proof object and the verdict
- statements / witnesses / params   the variant types
"""

from .config import ProofSystemConfig
from .equality import WitnessRef, equality_from_pairs
from .errors import (
    DecodeError,
    MalformedSpec,
    ProofShapeMismatch,
    ProofSystemError,
    StatementProvingError,
    VerificationFailed,
    WitnessCountMismatch,
)
from .params import ParamRef, SetupParamArena
from .proof import Proof, ciphertext_from_proof, decrypt
from .prover import create_proof, create_proof_from_parts
from .spec import ProofSpec
from .statements import StatementKind
from .verifier import VerificationResult, verify_from_parts, verify_proof, verify_proof_bytes
from .version import __version__
from .witnesses import WitnessTable

__all__ = [
    "__version__",
    "ProofSystemConfig",
    "ProofSpec",
    "Proof",
    "VerificationResult",
    "StatementKind",
    "ParamRef",
    "SetupParamArena",
    "WitnessRef",
    "WitnessTable",
    "equality_from_pairs",
    "create_proof",
    "create_proof_from_parts",
    "verify_proof",
    "verify_proof_bytes",
    "verify_from_parts",
    "ciphertext_from_proof",
    "decrypt",
    "ProofSystemError",
    "MalformedSpec",
    "WitnessCountMismatch",
    "ProofShapeMismatch",
    "StatementProvingError",
    "VerificationFailed",
    "DecodeError",
]
