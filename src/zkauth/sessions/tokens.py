"""Session token encoding and decoding.

The application's own credentials are HMAC-signed JWTs:

    access:  {accountId, email, type="access"}              15 min, stateless
    refresh: {accountId, email, type="refresh", jti=uuid4}   7 days, also needs
                                                             list membership

Both carry iss/aud/iat/exp. Decoding checks signature, issuer, audience,
expiry, and the expected type; list membership is the verifier's job.
"""

from __future__ import annotations

__all__ = [
    "DecodedSessionToken",
    "IssuedToken",
    "SessionTokenCodec",
]

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Literal

import jwt

from zkauth.constants import (
    ACCESS_TOKEN_TTL_SECONDS,
    DEFAULT_SIGNING_ALGORITHM,
    DEFAULT_TOKEN_AUDIENCE,
    DEFAULT_TOKEN_ISSUER,
    REFRESH_TOKEN_TTL_SECONDS,
    TOKEN_TYPE_ACCESS,
    TOKEN_TYPE_REFRESH,
)
from zkauth.exceptions import ExpiredTokenError, InvalidTokenError

if TYPE_CHECKING:
    from zkauth.config import SessionConfig
    from zkauth.storage.models import Account

TokenType = Literal["access", "refresh"]

_REQUIRED_CLAIMS = ["exp", "iat", "iss", "aud", "accountId", "type"]


@dataclass(frozen=True)
class IssuedToken:
    """A freshly encoded session token.

    Attributes:
        token: Encoded JWT.
        token_type: "access" or "refresh".
        issued_at: 'iat' as datetime.
        expires_at: 'exp' as datetime.
        jti: Unique id (refresh tokens only).
    """

    token: str
    token_type: TokenType
    issued_at: datetime
    expires_at: datetime
    jti: str | None = None

    @property
    def expires_in(self) -> int:
        """Lifetime in whole seconds."""
        return int((self.expires_at - self.issued_at).total_seconds())


@dataclass(frozen=True)
class DecodedSessionToken:
    """Claims of a verified session token."""

    account_id: str
    email: str | None
    token_type: TokenType
    issued_at: datetime
    expires_at: datetime
    jti: str | None = None
    claims: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


class SessionTokenCodec:
    """Encode and verify access/refresh tokens.

    Usage:
        codec = SessionTokenCodec(secret)
        access = codec.encode_access(account)
        decoded = codec.decode(access.token, "access")
    """

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = DEFAULT_SIGNING_ALGORITHM,
        issuer: str = DEFAULT_TOKEN_ISSUER,
        audience: str = DEFAULT_TOKEN_AUDIENCE,
        access_ttl_seconds: int = ACCESS_TOKEN_TTL_SECONDS,
        refresh_ttl_seconds: int = REFRESH_TOKEN_TTL_SECONDS,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._issuer = issuer
        self._audience = audience
        self._access_ttl = timedelta(seconds=access_ttl_seconds)
        self._refresh_ttl = timedelta(seconds=refresh_ttl_seconds)

    @classmethod
    def from_config(cls, config: "SessionConfig") -> "SessionTokenCodec":
        """Build a codec from session config.

        Raises:
            ConfigurationError: If the signing secret is missing or too short.
        """
        return cls(
            config.resolve_secret(),
            algorithm=config.algorithm,
            issuer=config.token_issuer,
            audience=config.token_audience,
            access_ttl_seconds=config.access_ttl_seconds,
            refresh_ttl_seconds=config.refresh_ttl_seconds,
        )

    # =========================================================================
    # Encoding
    # =========================================================================

    def _encode(self, account: "Account", token_type: TokenType, ttl: timedelta) -> IssuedToken:
        issued_at = datetime.now(timezone.utc).replace(microsecond=0)
        expires_at = issued_at + ttl
        jti = uuid.uuid4().hex if token_type == TOKEN_TYPE_REFRESH else None
        payload: dict[str, Any] = {
            "accountId": account.id,
            "email": account.email,
            "type": token_type,
            "iss": self._issuer,
            "aud": self._audience,
            "iat": issued_at,
            "exp": expires_at,
        }
        if jti is not None:
            payload["jti"] = jti
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return IssuedToken(
            token=token,
            token_type=token_type,
            issued_at=issued_at,
            expires_at=expires_at,
            jti=jti,
        )

    def encode_access(self, account: "Account") -> IssuedToken:
        """Encode a short-lived access token for account."""
        return self._encode(account, TOKEN_TYPE_ACCESS, self._access_ttl)

    def encode_refresh(self, account: "Account") -> IssuedToken:
        """Encode a refresh token with a unique jti for account."""
        return self._encode(account, TOKEN_TYPE_REFRESH, self._refresh_ttl)

    # =========================================================================
    # Decoding
    # =========================================================================

    def decode(
        self,
        token: str,
        expected_type: TokenType,
        *,
        verify_exp: bool = True,
    ) -> DecodedSessionToken:
        """Verify a session token and return its claims.

        Args:
            token: Encoded JWT.
            expected_type: Required 'type' claim.
            verify_exp: Set False to accept expired tokens (logout only).

        Returns:
            DecodedSessionToken with verified claims.

        Raises:
            ExpiredTokenError: Token is past its expiry.
            InvalidTokenError: Bad signature, issuer, audience, shape, or type.
        """
        if not isinstance(token, str) or not token:
            raise InvalidTokenError()

        try:
            claims: dict[str, Any] = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                audience=self._audience,
                options={"require": _REQUIRED_CLAIMS, "verify_exp": verify_exp},
            )
        except jwt.ExpiredSignatureError as e:
            raise ExpiredTokenError() from e
        except jwt.InvalidIssuerError as e:
            raise InvalidTokenError("Token issuer mismatch") from e
        except jwt.InvalidAudienceError as e:
            raise InvalidTokenError("Token audience mismatch") from e
        except jwt.PyJWTError as e:
            raise InvalidTokenError() from e

        if claims.get("type") != expected_type:
            raise InvalidTokenError("Invalid token type")
        account_id = claims.get("accountId")
        if not isinstance(account_id, str) or not account_id:
            raise InvalidTokenError()
        jti = claims.get("jti")
        if expected_type == TOKEN_TYPE_REFRESH and not jti:
            raise InvalidTokenError()

        return DecodedSessionToken(
            account_id=account_id,
            email=claims.get("email"),
            token_type=expected_type,
            issued_at=datetime.fromtimestamp(claims["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
            jti=jti,
            claims=claims,
        )
