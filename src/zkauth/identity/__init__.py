"""Identity binding: claims, wallet address derivation, proof gateway.

- ClaimExtractor: identity token -> validated IdentityClaims
- AddressBinder: (subject_id, salt) -> wallet address via a DerivationOracle
- ProverClient: ephemeral material -> zero-knowledge proof (opaque)
"""

from zkauth.identity.address import (
    AddressBinder,
    DerivationOracle,
    HttpDerivationOracle,
    normalize_address,
)
from zkauth.identity.claims import ClaimExtractor, IdentityClaims
from zkauth.identity.prover import ProofRequest, ProverClient

__all__ = [
    "AddressBinder",
    "ClaimExtractor",
    "DerivationOracle",
    "HttpDerivationOracle",
    "IdentityClaims",
    "ProofRequest",
    "ProverClient",
    "normalize_address",
]
