"""Wallet address binding.

The address derivation function is an external deterministic oracle:
derive(subject_id, salt) -> address. The binder adds no randomness and
memoizes nothing. It is used at account creation (address computed once and
stored) and at every later login (address recomputed and compared, never
written back).
"""

from __future__ import annotations

__all__ = [
    "AddressBinder",
    "DerivationOracle",
    "HttpDerivationOracle",
    "normalize_address",
]

from typing import Protocol, runtime_checkable

import httpx

from zkauth.constants import DEFAULT_ORACLE_TIMEOUT_SECONDS
from zkauth.exceptions import AddressMismatchError, OracleUnavailable


def normalize_address(address: str) -> str:
    """Canonical form for comparing hex wallet addresses."""
    return address.strip().lower()


@runtime_checkable
class DerivationOracle(Protocol):
    """Deterministic address derivation: same inputs, same address."""

    async def derive(self, subject_id: str, salt: str) -> str:
        """Return the wallet address for (subject_id, salt)."""
        ...


class HttpDerivationOracle:
    """Derivation oracle reached over HTTP.

    POSTs {"subjectId", "salt", "issuer"} and expects {"address": "0x..."}.
    """

    def __init__(
        self,
        url: str,
        issuer: str,
        timeout: float = DEFAULT_ORACLE_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize HTTP derivation oracle.

        Args:
            url: Derivation endpoint.
            issuer: Identity provider issuer, part of the address seed.
            timeout: Request timeout in seconds.
            http_client: Optional httpx client (for testing).
        """
        self._url = url
        self._issuer = issuer
        self._timeout = timeout
        self._client = http_client

    async def derive(self, subject_id: str, salt: str) -> str:
        """Ask the oracle for the address.

        Raises:
            OracleUnavailable: On transport errors, non-2xx, or a bad body.
        """
        payload = {"subjectId": subject_id, "salt": salt, "issuer": self._issuer}
        try:
            if self._client is not None:
                response = await self._client.post(self._url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise OracleUnavailable(
                f"Derivation oracle returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise OracleUnavailable(f"Cannot reach derivation oracle: {type(e).__name__}") from e
        except ValueError as e:
            raise OracleUnavailable("Derivation oracle returned invalid JSON") from e

        address = body.get("address") if isinstance(body, dict) else None
        if not isinstance(address, str) or not address:
            raise OracleUnavailable("Derivation oracle response has no address")
        return address


class AddressBinder:
    """Bind (subject_id, salt) to a wallet address through the oracle.

    Usage:
        binder = AddressBinder(oracle)
        address = await binder.bind("sub-1", "salt-1")
        await binder.verify("sub-1", "salt-1", account.wallet_address)
    """

    def __init__(self, oracle: DerivationOracle) -> None:
        self._oracle = oracle

    async def bind(self, subject_id: str, salt: str) -> str:
        """Derive the address for a subject and salt.

        Raises:
            OracleUnavailable: If the oracle cannot answer.
        """
        return await self._oracle.derive(subject_id, salt)

    @staticmethod
    def ensure_matches(derived: str, stored_address: str) -> None:
        """Compare a recomputed address with the one stored at creation.

        Raises:
            AddressMismatchError: If the addresses differ.
        """
        if normalize_address(derived) != normalize_address(stored_address):
            raise AddressMismatchError()

    async def verify(self, subject_id: str, salt: str, stored_address: str) -> str:
        """Recompute the address and compare it with the stored value.

        Args:
            subject_id: Account subject.
            salt: Account salt.
            stored_address: Address persisted at account creation.

        Returns:
            The recomputed address (equal to stored_address).

        Raises:
            AddressMismatchError: If the recomputed address differs.
            OracleUnavailable: If the oracle cannot answer.
        """
        derived = await self.bind(subject_id, salt)
        self.ensure_matches(derived, stored_address)
        return derived
