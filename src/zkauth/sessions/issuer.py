"""Session issuance: identity token -> bound account -> session pair.

State machine for one issuance attempt:

    unauthenticated -> claims_validated -> address_bound
                    -> account_resolved -> session_issued

Any failure moves to `rejected` with a typed reason. Claim extraction and
address derivation run before any repository access, so a rejection in those
steps has no side effects. For an existing account, the address and wallet
checks run first; the login counters and the new refresh token are then
committed together, so a failed push never leaves the counters bumped.
"""

from __future__ import annotations

__all__ = [
    "IssuanceState",
    "SessionIssuer",
    "SessionResult",
]

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from zkauth.exceptions import (
    AccountInactiveOrMissingError,
    RefreshTokenRevokedError,
    SessionRejected,
    WalletAddressMismatchError,
)
from zkauth.identity.address import AddressBinder, normalize_address
from zkauth.identity.claims import ClaimExtractor, IdentityClaims
from zkauth.sessions.tokens import IssuedToken, SessionTokenCodec
from zkauth.sessions.verifier import SessionVerifier
from zkauth.storage.models import Account, AccountCandidate, RefreshTokenEntry
from zkauth.storage.repository import AccountRepository
from zkauth.telemetry.system.system_logger import get_system_logger

_logger = get_system_logger()


class IssuanceState(str, Enum):
    """Progress of one issuance attempt."""

    UNAUTHENTICATED = "unauthenticated"
    CLAIMS_VALIDATED = "claims_validated"
    ADDRESS_BOUND = "address_bound"
    ACCOUNT_RESOLVED = "account_resolved"
    SESSION_ISSUED = "session_issued"
    REJECTED = "rejected"


@dataclass(frozen=True)
class SessionResult:
    """Outcome of a successful issuance or refresh.

    Attributes:
        account: Account state after the refresh token was committed.
        access: Access token with its timestamps.
        refresh: Refresh token with its timestamps.
        created: True only when this call created the account.
    """

    account: Account
    access: IssuedToken
    refresh: IssuedToken
    created: bool = False

    @property
    def access_token(self) -> str:
        return self.access.token

    @property
    def refresh_token(self) -> str:
        return self.refresh.token


class SessionIssuer:
    """Issue and rotate sessions.

    Usage:
        issuer = SessionIssuer(extractor, binder, repository, codec, verifier)
        result = await issuer.issue(id_token, wallet_address, salt)
        result = await issuer.refresh(result.refresh_token)
    """

    def __init__(
        self,
        extractor: ClaimExtractor,
        binder: AddressBinder,
        repository: AccountRepository,
        codec: SessionTokenCodec,
        verifier: SessionVerifier,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._extractor = extractor
        self._binder = binder
        self._repository = repository
        self._codec = codec
        self._verifier = verifier
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # =========================================================================
    # Issuance
    # =========================================================================

    async def issue(
        self,
        identity_token: str,
        wallet_address: str,
        salt: str,
        audience: str | None = None,
    ) -> SessionResult:
        """Run the issuance state machine.

        Args:
            identity_token: Provider-issued identity token (signature trusted upstream).
            wallet_address: Address the client believes belongs to it.
            salt: Secret salt used to derive the address.
            audience: Optional audience override recorded on new accounts.

        Returns:
            SessionResult for the resolved account.

        Raises:
            SessionRejected: Typed rejection (see RejectedReason).
            OracleUnavailable: Derivation oracle failed.
            RepositoryUnavailable: Storage failed; safe to retry.
        """
        state = IssuanceState.UNAUTHENTICATED
        try:
            claims = self._extractor.extract(identity_token)
            state = IssuanceState.CLAIMS_VALIDATED

            derived = await self._binder.bind(claims.subject_id, salt)
            state = IssuanceState.ADDRESS_BOUND

            account, created = await self._resolve_account(claims, derived, wallet_address, salt, audience)
            state = IssuanceState.ACCOUNT_RESOLVED

            access, refresh, account = await self._issue_pair(account, created)
            state = IssuanceState.SESSION_ISSUED
        except SessionRejected as e:
            _logger.debug(
                {
                    "event": "issuance_rejected",
                    "message": f"Issuance rejected after {state.value}: {e.reason.value}",
                    "state": state.value,
                    "reason": e.reason.value,
                }
            )
            raise

        return SessionResult(account=account, access=access, refresh=refresh, created=created)

    async def _resolve_account(
        self,
        claims: IdentityClaims,
        derived: str,
        wallet_address: str,
        salt: str,
        audience: str | None,
    ) -> tuple[Account, bool]:
        existing = await self._repository.find_by_subject(claims.subject_id, include_inactive=True)
        if existing is not None:
            self._check_login(existing, derived, wallet_address)
            return existing, False

        if normalize_address(wallet_address) != normalize_address(derived):
            raise WalletAddressMismatchError()

        candidate = AccountCandidate(
            subject_id=claims.subject_id,
            email=claims.email,
            wallet_address=derived,
            salt=salt,
            name=claims.name or claims.email,
            picture=claims.picture,
            issuer=claims.issuer,
            audience=audience or claims.primary_audience,
        )
        account, created = await self._repository.create_if_absent(candidate)
        if not created:
            # Lost a creation race to an identical binding: this call is a login
            self._check_login(account, derived, wallet_address)
        return account, created

    @staticmethod
    def _check_login(account: Account, derived: str, wallet_address: str) -> None:
        if not account.active:
            raise AccountInactiveOrMissingError()
        AddressBinder.ensure_matches(derived, account.wallet_address)
        if normalize_address(wallet_address) != normalize_address(account.wallet_address):
            raise WalletAddressMismatchError()

    async def _issue_pair(self, account: Account, created: bool) -> tuple[IssuedToken, IssuedToken, Account]:
        access = self._codec.encode_access(account)
        refresh = self._codec.encode_refresh(account)
        entry = self._entry(refresh)
        if created:
            # Creation already counted the first login
            account = await self._repository.push_refresh_token(account.id, entry)
        else:
            account = await self._repository.record_login(account.id, self._clock(), entry)
        return access, refresh, account

    @staticmethod
    def _entry(refresh: IssuedToken) -> RefreshTokenEntry:
        return RefreshTokenEntry(
            token=refresh.token,
            jti=refresh.jti or "",
            issued_at=refresh.issued_at,
            expires_at=refresh.expires_at,
        )

    # =========================================================================
    # Rotation
    # =========================================================================

    async def refresh(self, refresh_token: str) -> SessionResult:
        """Exchange a listed refresh token for a new pair.

        The presented token is removed and the new one pushed in one atomic
        repository step. Of concurrent replays of one token exactly one wins.

        Raises:
            InvalidTokenError: Bad signature, shape, or type.
            ExpiredTokenError: Token is past its expiry.
            AccountInactiveOrMissingError: Account deactivated or gone.
            RefreshTokenRevokedError: Token not listed (rotated, revoked, evicted).
            RepositoryUnavailable: Storage failed; safe to retry.
        """
        account, _ = await self._verifier.verify_refresh(refresh_token)

        access = self._codec.encode_access(account)
        refresh = self._codec.encode_refresh(account)
        rotated = await self._repository.rotate_refresh_token(
            account.id, refresh_token, self._entry(refresh)
        )
        if not rotated:
            raise RefreshTokenRevokedError()

        current = await self._repository.find_by_id(account.id)
        if current is None:
            raise AccountInactiveOrMissingError()
        return SessionResult(account=current, access=access, refresh=refresh, created=False)
