"""Custom exceptions for zkauth.

Exceptions are organized into three categories:

Rejections (caller gets a typed reason, nothing was persisted):
    - SessionRejected: Base for every validation rejection. Each subclass
      carries a RejectedReason and an HTTP status hint.

Transient failures (safe to retry, never a rejection):
    - RepositoryUnavailable: Account storage could not be reached or written
    - OracleUnavailable: Derivation oracle or proof gateway unreachable

Configuration failures:
    - ConfigurationError: Config file missing or invalid

Usage:
    from zkauth.exceptions import RefreshTokenRevokedError, SessionRejected
"""

from __future__ import annotations

__all__ = [
    "AccountInactiveOrMissingError",
    "AddressMismatchError",
    "ConfigurationError",
    "ConflictingIdentityError",
    "EmailTakenError",
    "ExpiredTokenError",
    "InvalidTokenError",
    "MalformedTokenError",
    "MissingClaimsError",
    "OracleUnavailable",
    "ProofUnavailable",
    "RefreshTokenRevokedError",
    "RejectedReason",
    "RepositoryUnavailable",
    "SessionRejected",
    "UntrustedIssuerError",
    "WalletAddressMismatchError",
    "WalletTakenError",
]

from enum import Enum
from typing import Any


class RejectedReason(str, Enum):
    """Typed reasons a session operation was rejected.

    Values are stable strings used in API error codes and audit logs.
    """

    MALFORMED_TOKEN = "MalformedToken"
    MISSING_CLAIMS = "MissingClaims"
    UNTRUSTED_ISSUER = "UntrustedIssuer"
    ADDRESS_MISMATCH = "AddressMismatch"
    WALLET_ADDRESS_MISMATCH = "WalletAddressMismatch"
    EMAIL_TAKEN = "EmailTaken"
    WALLET_TAKEN = "WalletTaken"
    CONFLICTING_IDENTITY = "ConflictingIdentity"
    INVALID_TOKEN = "InvalidToken"
    EXPIRED_TOKEN = "ExpiredToken"
    REFRESH_TOKEN_REVOKED = "RefreshTokenRevoked"
    ACCOUNT_INACTIVE_OR_MISSING = "AccountInactiveOrMissing"


# =============================================================================
# Rejections (locally detected, no persistent side effects)
# =============================================================================


class SessionRejected(Exception):
    """Base exception for a rejected session operation.

    A rejection is never retried blindly: the same inputs produce the same
    rejection. Subclasses set `reason` and `status_code`.

    Attributes:
        reason: Typed rejection reason.
        status_code: HTTP status the API layer responds with.
        message: Human-readable description.
        details: Optional structured context (never secrets).
    """

    reason: RejectedReason
    status_code: int = 400
    default_message: str = "Session rejected"

    def __init__(self, message: str | None = None, *, details: dict[str, Any] | None = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(reason={self.reason.value!r}, message={self.message!r})"


class MalformedTokenError(SessionRejected):
    """Identity token could not be decoded into a claim set."""

    reason = RejectedReason.MALFORMED_TOKEN
    default_message = "Invalid JWT token format"


class MissingClaimsError(SessionRejected):
    """Identity token lacks sub, email, or iss."""

    reason = RejectedReason.MISSING_CLAIMS
    default_message = "Missing required JWT claims"


class UntrustedIssuerError(SessionRejected):
    """Identity token was issued by someone other than the trusted issuer."""

    reason = RejectedReason.UNTRUSTED_ISSUER
    default_message = "Invalid JWT issuer"


class AddressMismatchError(SessionRejected):
    """Recomputed wallet address differs from the stored one.

    Signals salt or subject corruption. Session issuance is aborted.
    """

    reason = RejectedReason.ADDRESS_MISMATCH
    default_message = "Derived wallet address does not match the account"


class WalletAddressMismatchError(SessionRejected):
    """Caller-supplied wallet address differs from the account's address."""

    reason = RejectedReason.WALLET_ADDRESS_MISMATCH
    default_message = "Wallet address mismatch"


class EmailTakenError(SessionRejected):
    """Email is already bound to a different subject."""

    reason = RejectedReason.EMAIL_TAKEN
    status_code = 409
    default_message = "Email already registered"


class WalletTakenError(SessionRejected):
    """Wallet address is already bound to a different subject."""

    reason = RejectedReason.WALLET_TAKEN
    status_code = 409
    default_message = "Wallet address already registered"


class ConflictingIdentityError(SessionRejected):
    """A concurrent or prior record conflicts with this identity binding."""

    reason = RejectedReason.CONFLICTING_IDENTITY
    status_code = 409
    default_message = "Identity conflicts with an existing account"


class InvalidTokenError(SessionRejected):
    """Session token has a bad signature, shape, or type."""

    reason = RejectedReason.INVALID_TOKEN
    status_code = 401
    default_message = "Invalid token"


class ExpiredTokenError(SessionRejected):
    """Session token is past its expiry."""

    reason = RejectedReason.EXPIRED_TOKEN
    status_code = 401
    default_message = "Token expired"


class RefreshTokenRevokedError(SessionRejected):
    """Refresh token is not in the account's current token list."""

    reason = RejectedReason.REFRESH_TOKEN_REVOKED
    status_code = 401
    default_message = "Invalid refresh token"


class AccountInactiveOrMissingError(SessionRejected):
    """Account behind a token is deactivated or does not exist."""

    reason = RejectedReason.ACCOUNT_INACTIVE_OR_MISSING
    status_code = 401
    default_message = "Invalid token or user not found"


# =============================================================================
# Transient failures (safe to retry)
# =============================================================================


class RepositoryUnavailable(Exception):
    """Account storage is unreachable or a write could not be committed.

    Never conflated with a rejection: the caller may retry the same request.
    """


class OracleUnavailable(Exception):
    """An external oracle (derivation or proof gateway) failed or timed out."""


class ProofUnavailable(OracleUnavailable):
    """Proof acquisition gateway did not return a usable proof."""


# =============================================================================
# Configuration
# =============================================================================


class ConfigurationError(Exception):
    """Configuration is invalid or incomplete.

    Raised when:
    - Config file does not exist
    - Config file contains invalid JSON
    - Config file fails Pydantic validation
    - Signing secret is missing or too short
    """
