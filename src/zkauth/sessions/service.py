"""Session service: the application-facing entry point.

Wraps the issuer and verifier with audit logging and adds the account
operations the HTTP API and CLI need (profile, stats, wallet lookup, proof
acquisition, administrative revocation).
"""

from __future__ import annotations

__all__ = [
    "SessionService",
    "create_session_service",
]

import hmac
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import httpx

from zkauth.config import AppConfig
from zkauth.constants import TOKEN_TYPE_REFRESH
from zkauth.exceptions import (
    AccountInactiveOrMissingError,
    AddressMismatchError,
    ConfigurationError,
    InvalidTokenError,
    ProofUnavailable,
    SessionRejected,
    WalletAddressMismatchError,
)
from zkauth.identity.address import AddressBinder, DerivationOracle, HttpDerivationOracle, normalize_address
from zkauth.identity.claims import ClaimExtractor
from zkauth.identity.prover import ProofRequest, ProverClient
from zkauth.sessions.issuer import SessionIssuer, SessionResult
from zkauth.sessions.tokens import SessionTokenCodec
from zkauth.sessions.verifier import SessionVerifier
from zkauth.storage import AccountRepository, create_repository
from zkauth.storage.models import Account, Preferences
from zkauth.telemetry.audit.auth_logger import AuthLogger, create_auth_logger
from zkauth.telemetry.system.system_logger import get_system_logger

_logger = get_system_logger()


class SessionService:
    """Issue, refresh, revoke, and verify sessions with audit logging.

    Usage:
        service = create_session_service(config)
        result = await service.issue_session(id_token, wallet_address, salt)
        account = await service.verify_access(result.access_token)
    """

    def __init__(
        self,
        *,
        extractor: ClaimExtractor,
        binder: AddressBinder,
        repository: AccountRepository,
        codec: SessionTokenCodec,
        auth_logger: AuthLogger,
        prover: ProverClient | None = None,
    ) -> None:
        self._extractor = extractor
        self._binder = binder
        self._repository = repository
        self._codec = codec
        self._auth_logger = auth_logger
        self._prover = prover
        self._verifier = SessionVerifier(codec, repository)
        self._issuer = SessionIssuer(extractor, binder, repository, codec, self._verifier)

    @property
    def repository(self) -> AccountRepository:
        """Underlying account repository."""
        return self._repository

    # =========================================================================
    # Session lifecycle
    # =========================================================================

    async def issue_session(
        self,
        identity_token: str,
        wallet_address: str,
        salt: str,
        audience: str | None = None,
    ) -> SessionResult:
        """Authenticate an identity token and issue a session pair.

        Raises:
            SessionRejected: Typed rejection, audited.
            OracleUnavailable: Derivation oracle failed.
            RepositoryUnavailable: Storage failed; safe to retry.
        """
        try:
            result = await self._issuer.issue(identity_token, wallet_address, salt, audience)
        except SessionRejected as e:
            self._auth_logger.log_session_rejected(e, subject_id=self._peek_subject(identity_token))
            raise

        self._auth_logger.log_session_issued(
            account_id=result.account.id,
            subject_id=result.account.subject_id,
            created=result.created,
        )
        return result

    async def refresh_session(self, refresh_token: str) -> SessionResult:
        """Rotate a refresh token into a new session pair.

        Raises:
            SessionRejected: InvalidToken, ExpiredToken, RefreshTokenRevoked,
                or AccountInactiveOrMissing (audited).
            RepositoryUnavailable: Storage failed; safe to retry.
        """
        try:
            result = await self._issuer.refresh(refresh_token)
        except SessionRejected as e:
            self._auth_logger.log_token_invalid(e, message="Refresh token rejected")
            raise

        self._auth_logger.log_session_refreshed(account_id=result.account.id)
        return result

    async def revoke_session(
        self,
        refresh_token: str,
        revoke_all: bool = False,
        *,
        account_id: str | None = None,
    ) -> None:
        """Log out one device, or every device of the token's account.

        Idempotent: revoking an already removed token succeeds. Expired refresh
        tokens are accepted so a client can always log out. Outstanding access
        tokens stay valid until their own short expiry.

        Args:
            refresh_token: Refresh token identifying the device and account.
            revoke_all: Clear the whole refresh token list.
            account_id: When set, the token must belong to this account.

        Raises:
            InvalidTokenError: Token is not a genuine refresh token, or
                belongs to another account.
            RepositoryUnavailable: Storage failed; safe to retry.
        """
        decoded = self._codec.decode(refresh_token, TOKEN_TYPE_REFRESH, verify_exp=False)
        if account_id is not None and decoded.account_id != account_id:
            error = InvalidTokenError("Refresh token belongs to another account")
            self._auth_logger.log_token_invalid(error, account_id=account_id)
            raise error

        if revoke_all:
            count = await self._repository.clear_refresh_tokens(decoded.account_id)
        else:
            removed = await self._repository.remove_refresh_token(decoded.account_id, refresh_token)
            count = int(removed)

        self._auth_logger.log_session_revoked(
            account_id=decoded.account_id, revoke_all=revoke_all, revoked_count=count
        )

    async def revoke_all_sessions(self, account_id: str) -> int:
        """Clear every refresh token of an account. Returns how many were listed."""
        count = await self._repository.clear_refresh_tokens(account_id)
        self._auth_logger.log_session_revoked(account_id=account_id, revoke_all=True, revoked_count=count)
        return count

    async def verify_access(self, access_token: str) -> Account:
        """Verify an access token and return the active account.

        Raises:
            InvalidTokenError, ExpiredTokenError, AccountInactiveOrMissingError.
        """
        try:
            return await self._verifier.verify_access(access_token)
        except SessionRejected as e:
            self._auth_logger.log_token_invalid(e)
            raise

    # =========================================================================
    # Account operations
    # =========================================================================

    async def lookup_wallet(self, identity_token: str) -> Account | None:
        """Find the active account bound to an identity token's subject.

        Lets a returning client recover its wallet address and salt.

        Raises:
            MalformedTokenError, MissingClaimsError, UntrustedIssuerError.
        """
        claims = self._extractor.extract(identity_token)
        return await self._repository.find_by_subject(claims.subject_id)

    async def find_by_wallet(self, wallet_address: str) -> Account | None:
        """Find an active account by wallet address."""
        return await self._repository.find_by_wallet(wallet_address)

    async def update_profile(
        self,
        account_id: str,
        *,
        name: str | None = None,
        preferences: Preferences | dict[str, Any] | None = None,
    ) -> Account:
        """Update name and preferences of an active account."""
        return await self._repository.update_profile(account_id, name=name, preferences=preferences)

    def verify_wallet(self, account: Account, wallet_address: str) -> None:
        """Check that wallet_address is the account's bound address.

        Raises:
            WalletAddressMismatchError: If it is not.
        """
        supplied = normalize_address(wallet_address).encode()
        stored = normalize_address(account.wallet_address).encode()
        if not hmac.compare_digest(supplied, stored):
            raise WalletAddressMismatchError()

    async def verify_binding(self, account_id: str) -> str:
        """Recompute an account's address from its subject and salt.

        Returns:
            The recomputed address (equal to the stored one).

        Raises:
            AccountInactiveOrMissingError: No such account.
            AddressMismatchError: Stored binding is corrupt.
            OracleUnavailable: Derivation oracle failed.
        """
        account = await self._repository.find_by_id(account_id, include_inactive=True)
        if account is None:
            raise AccountInactiveOrMissingError()
        return await self._binder.verify(account.subject_id, account.salt, account.wallet_address)

    @staticmethod
    def account_stats(account: Account, now: datetime | None = None) -> dict[str, Any]:
        """Summarize login activity for an account."""
        now = now or datetime.now(timezone.utc)
        return {
            "login_count": account.login_count,
            "last_login_at": account.last_login_at,
            "account_age_days": (now - account.created_at).days,
            "active_sessions": sum(1 for e in account.refresh_tokens if not e.is_expired(now)),
            "verified": account.verified,
            "wallet_address": account.wallet_address,
            "created_at": account.created_at,
        }

    async def request_proof(self, request: ProofRequest, account: Account) -> dict[str, Any]:
        """Obtain a zero-knowledge proof for account from the configured gateway.

        The proof binds to the address derived from the salt, so the salt
        must be the account's own. An omitted salt is filled in from the
        account before forwarding.

        Raises:
            AddressMismatchError: The supplied salt is not the account's salt.
            ProofUnavailable: No gateway configured, or the gateway failed.
        """
        if request.salt is None:
            request = request.model_copy(update={"salt": account.salt})
        elif not hmac.compare_digest(request.salt.encode("utf-8"), account.salt.encode("utf-8")):
            error = AddressMismatchError("Proof salt does not match the account")
            self._auth_logger.log_session_rejected(error, account_id=account.id)
            raise error

        if self._prover is None:
            raise ProofUnavailable("No proof gateway configured")
        return await self._prover.request_proof(request)

    def _peek_subject(self, identity_token: str) -> str | None:
        try:
            return self._extractor.extract(identity_token).subject_id
        except SessionRejected:
            return None


def create_session_service(
    config: AppConfig,
    *,
    oracle: DerivationOracle | None = None,
    repository: AccountRepository | None = None,
    auth_log_path: Path | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> SessionService:
    """Wire a SessionService from configuration.

    Args:
        config: Application configuration.
        oracle: Derivation oracle; defaults to HttpDerivationOracle at
            config.oracles.derivation_url.
        repository: Account repository; defaults to the configured backend.
        auth_log_path: auth.jsonl location; None disables the audit file.
        http_client: Shared httpx client for the oracles (for testing).

    Raises:
        ConfigurationError: Missing signing secret or derivation endpoint.
        RepositoryUnavailable: File backend cannot read its snapshot.
    """
    codec = SessionTokenCodec.from_config(config.session)

    if oracle is None:
        if not config.oracles.derivation_url:
            raise ConfigurationError(
                "No derivation oracle configured. Set oracles.derivation_url in the config file."
            )
        oracle = HttpDerivationOracle(
            config.oracles.derivation_url,
            issuer=config.identity.trusted_issuer,
            timeout=config.oracles.timeout_seconds,
            http_client=http_client,
        )

    prover = None
    if config.oracles.prover_url:
        prover = ProverClient(
            config.oracles.prover_url,
            timeout=config.oracles.timeout_seconds,
            http_client=http_client,
        )

    if repository is None:
        repository = create_repository(config)

    _logger.info(
        {
            "event": "session_service_created",
            "message": f"Session service ready (storage={type(repository).__name__})",
        }
    )

    return SessionService(
        extractor=ClaimExtractor(config.identity.trusted_issuer),
        binder=AddressBinder(oracle),
        repository=repository,
        codec=codec,
        auth_logger=create_auth_logger(auth_log_path),
        prover=prover,
    )
