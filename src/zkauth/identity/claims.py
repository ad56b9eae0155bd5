"""Identity token claim extraction.

Parses an OIDC identity token into an explicit IdentityClaims structure and
enforces required fields and the trusted issuer at the boundary.

Trust boundary: the identity token's signature is NOT verified here. Signature
trust is established upstream by the identity provider's redirect channel and
by the zero-knowledge proof, which cannot be produced for a forged token. This
module must not be used to accept tokens from any other channel.
"""

from __future__ import annotations

__all__ = [
    "ClaimExtractor",
    "IdentityClaims",
]

from dataclasses import dataclass, field
from typing import Any

import jwt

from zkauth.exceptions import (
    MalformedTokenError,
    MissingClaimsError,
    UntrustedIssuerError,
)

_REQUIRED_CLAIMS = ("sub", "email", "iss")


@dataclass(frozen=True)
class IdentityClaims:
    """Validated claim set from an identity token.

    Attributes:
        subject_id: The 'sub' claim - provider-scoped user identifier.
        email: The 'email' claim, trimmed and lowercased.
        issuer: The 'iss' claim (always the trusted issuer).
        audience: The 'aud' claim normalized to a list.
        name: Display name, if the provider included one.
        picture: Avatar URL, if the provider included one.
        claims: All decoded claims for extensibility.
    """

    subject_id: str
    email: str
    issuer: str
    audience: list[str]
    name: str | None = None
    picture: str | None = None
    claims: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def primary_audience(self) -> str | None:
        """First audience entry, or None if the token had none."""
        return self.audience[0] if self.audience else None


class ClaimExtractor:
    """Decode identity tokens and validate their shape and issuer.

    Usage:
        extractor = ClaimExtractor(trusted_issuer="https://accounts.google.com")
        claims = extractor.extract(id_token)
    """

    def __init__(self, trusted_issuer: str) -> None:
        """Initialize claim extractor.

        Args:
            trusted_issuer: The only accepted 'iss' value.
        """
        self._trusted_issuer = trusted_issuer

    @property
    def trusted_issuer(self) -> str:
        """The configured trusted issuer."""
        return self._trusted_issuer

    def extract(self, token: str) -> IdentityClaims:
        """Extract and validate claims from an identity token.

        Args:
            token: Raw identity token (compact JWT).

        Returns:
            IdentityClaims with required fields present.

        Raises:
            MalformedTokenError: Token cannot be decoded into a claim mapping.
            MissingClaimsError: sub, email, or iss is absent or empty.
            UntrustedIssuerError: iss is not the trusted issuer.
        """
        raw = self._decode(token)

        missing = [name for name in _REQUIRED_CLAIMS if not _non_empty_str(raw.get(name))]
        if missing:
            raise MissingClaimsError(details={"missing": missing})

        issuer = raw["iss"]
        if issuer != self._trusted_issuer:
            raise UntrustedIssuerError(details={"issuer": issuer})

        return IdentityClaims(
            subject_id=raw["sub"],
            email=raw["email"].strip().lower(),
            issuer=issuer,
            audience=_normalize_audience(raw.get("aud")),
            name=raw.get("name") if _non_empty_str(raw.get("name")) else None,
            picture=raw.get("picture") if _non_empty_str(raw.get("picture")) else None,
            claims=raw,
        )

    def _decode(self, token: str) -> dict[str, Any]:
        if not isinstance(token, str) or not token.strip():
            raise MalformedTokenError()
        try:
            # Signature is verified upstream (see module docstring)
            claims: dict[str, Any] = jwt.decode(token.strip(), options={"verify_signature": False})
        except jwt.DecodeError as e:
            raise MalformedTokenError(details={"error": str(e)}) from e
        return claims


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _normalize_audience(aud: Any) -> list[str]:
    """Normalize the 'aud' claim (string, list, or absent) to a list."""
    if aud is None:
        return []
    if isinstance(aud, str):
        return [aud]
    if isinstance(aud, (list, tuple)):
        return [a for a in aud if isinstance(a, str)]
    raise MalformedTokenError("Audience claim has an unexpected type")
