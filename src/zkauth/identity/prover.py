"""Client for the proof acquisition gateway.

Given ephemeral session material, the gateway returns a zero-knowledge proof
that the client later uses off-band to sign blockchain transactions. This
module only forwards the request and reports success or failure; the proof is
opaque here.
"""

from __future__ import annotations

__all__ = [
    "ProofRequest",
    "ProverClient",
]

from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from zkauth.constants import DEFAULT_KEY_CLAIM_NAME, DEFAULT_ORACLE_TIMEOUT_SECONDS
from zkauth.exceptions import ProofUnavailable


class ProofRequest(BaseModel):
    """Ephemeral material sent to the proof gateway (wire names preserved)."""

    model_config = ConfigDict(populate_by_name=True)

    jwt: str = Field(min_length=1)
    extended_ephemeral_public_key: str = Field(alias="extendedEphemeralPublicKey", min_length=1)
    max_epoch: int = Field(alias="maxEpoch", gt=0)
    jwt_randomness: str = Field(alias="jwtRandomness", min_length=1)
    # Omitted by clients that let the server supply the account salt
    salt: str | None = Field(default=None, min_length=1)
    key_claim_name: str = Field(default=DEFAULT_KEY_CLAIM_NAME, alias="keyClaimName")


class ProverClient:
    """Request proofs from the gateway over HTTP.

    Usage:
        prover = ProverClient("https://prover.example.com/v1")
        proof = await prover.request_proof(ProofRequest(...))
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_ORACLE_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize prover client.

        Args:
            url: Gateway endpoint.
            timeout: Request timeout in seconds. Proof generation is slow,
                callers usually configure more than the default.
            http_client: Optional httpx client (for testing).
        """
        self._url = url
        self._timeout = timeout
        self._client = http_client

    async def request_proof(self, request: ProofRequest) -> dict[str, Any]:
        """Forward ephemeral material and return the gateway's proof.

        Raises:
            ProofUnavailable: On transport errors, non-2xx, or a non-object body.
        """
        payload = request.model_dump(by_alias=True)
        try:
            if self._client is not None:
                response = await self._client.post(self._url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._url, json=payload)
            response.raise_for_status()
            proof = response.json()
        except httpx.HTTPStatusError as e:
            raise ProofUnavailable(f"Proof gateway returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ProofUnavailable(f"Cannot reach proof gateway: {type(e).__name__}") from e
        except ValueError as e:
            raise ProofUnavailable("Proof gateway returned invalid JSON") from e

        if not isinstance(proof, dict):
            raise ProofUnavailable("Proof gateway returned an unexpected body")
        return proof
