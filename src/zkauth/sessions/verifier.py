"""Session token verification.

Access tokens are verified statelessly (signature, claims, type) plus an
account lookup. Refresh tokens additionally require membership in the
account's current refresh token list, so removal from the list revokes them
immediately.
"""

from __future__ import annotations

__all__ = [
    "SessionVerifier",
]

from collections.abc import Callable
from datetime import datetime, timezone

from zkauth.constants import TOKEN_TYPE_ACCESS, TOKEN_TYPE_REFRESH
from zkauth.exceptions import AccountInactiveOrMissingError, RefreshTokenRevokedError
from zkauth.sessions.tokens import DecodedSessionToken, SessionTokenCodec
from zkauth.storage.models import Account
from zkauth.storage.repository import AccountRepository


class SessionVerifier:
    """Verify access and refresh tokens against the account repository.

    Usage:
        verifier = SessionVerifier(codec, repository)
        account = await verifier.verify_access(access_token)
    """

    def __init__(
        self,
        codec: SessionTokenCodec,
        repository: AccountRepository,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._codec = codec
        self._repository = repository
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def _load_account(self, decoded: DecodedSessionToken) -> Account:
        account = await self._repository.find_by_id(decoded.account_id)
        if account is None:
            raise AccountInactiveOrMissingError()
        return account

    async def verify_access(self, token: str) -> Account:
        """Verify an access token and return its active account.

        Raises:
            InvalidTokenError: Bad signature, shape, issuer, audience, or type.
            ExpiredTokenError: Token is past its expiry.
            AccountInactiveOrMissingError: Account deactivated or gone.
        """
        decoded = self._codec.decode(token, TOKEN_TYPE_ACCESS)
        return await self._load_account(decoded)

    async def verify_refresh(self, token: str) -> tuple[Account, DecodedSessionToken]:
        """Verify a refresh token, including list membership.

        Returns:
            (account, decoded token).

        Raises:
            InvalidTokenError: Bad signature, shape, issuer, audience, or type.
            ExpiredTokenError: Token is past its expiry.
            AccountInactiveOrMissingError: Account deactivated or gone.
            RefreshTokenRevokedError: Token is not in the current list, or its
                list entry has passed its own expiry.
        """
        decoded = self._codec.decode(token, TOKEN_TYPE_REFRESH)
        account = await self._load_account(decoded)
        if not account.has_refresh_token(token, self._clock()):
            raise RefreshTokenRevokedError()
        return account, decoded
