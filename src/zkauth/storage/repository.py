"""Account repository interface.

Every mutating operation is a single atomic step against one account. The
uniqueness of subject, email, wallet address, and salt is enforced at
creation; the duplicate-key outcome is then resolved here, once, for every
backend:

    same subject, same email and wallet  -> existing account (created=False)
    same subject, different email/wallet -> ConflictingIdentityError
    email owned by another subject       -> EmailTakenError
    wallet owned by another subject      -> WalletTakenError
    salt owned by another subject        -> ConflictingIdentityError
"""

from __future__ import annotations

__all__ = [
    "AccountRepository",
    "DuplicateKeyError",
    "UNIQUE_FIELDS",
]

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from zkauth.constants import ACCOUNT_SEARCH_LIMIT, RECENT_LOGIN_WINDOW, RECENT_SIGNUP_WINDOW
from zkauth.exceptions import (
    ConflictingIdentityError,
    EmailTakenError,
    WalletTakenError,
)
from zkauth.identity.address import normalize_address
from zkauth.storage.models import (
    Account,
    AccountCandidate,
    AccountStats,
    Preferences,
    RefreshTokenEntry,
)

# Checked in this order; the first collision wins
UNIQUE_FIELDS = ("subject_id", "email", "wallet_address", "salt")


class DuplicateKeyError(Exception):
    """Raised by a backend insert when a unique field is already taken.

    Attributes:
        field: Name of the colliding unique field.
        existing_id: Id of the account that owns the value.
    """

    def __init__(self, field: str, existing_id: str) -> None:
        self.field = field
        self.existing_id = existing_id
        super().__init__(f"Duplicate value for unique field '{field}'")


class AccountRepository(ABC):
    """Abstract base class for account storage backends.

    Lookups return copies; mutating a returned Account never changes
    stored state. Lookups used for authentication skip inactive accounts
    unless include_inactive=True.
    """

    # =========================================================================
    # Lookups
    # =========================================================================

    @abstractmethod
    async def find_by_id(self, account_id: str, *, include_inactive: bool = False) -> Account | None:
        """Find an account by its persistent id."""

    @abstractmethod
    async def find_by_subject(
        self, subject_id: str, *, include_inactive: bool = False
    ) -> Account | None:
        """Find an account by identity provider subject."""

    @abstractmethod
    async def find_by_wallet(
        self, wallet_address: str, *, include_inactive: bool = False
    ) -> Account | None:
        """Find an account by wallet address (case-insensitive)."""

    @abstractmethod
    async def find_by_email(self, email: str, *, include_inactive: bool = False) -> Account | None:
        """Find an account by email (case-insensitive)."""

    @abstractmethod
    async def list_accounts(self, *, include_inactive: bool = True) -> list[Account]:
        """Return all accounts, oldest first."""

    async def search(self, query: str, *, limit: int = ACCOUNT_SEARCH_LIMIT) -> list[Account]:
        """Find active accounts by name or email fragment, or exact wallet.

        Name and email match case-insensitive substrings; the wallet must
        match in full. Results are oldest first, at most limit of them.
        """
        needle = query.strip().lower()
        if not needle or limit <= 0:
            return []
        wallet = normalize_address(query)
        matches = [
            account
            for account in await self.list_accounts(include_inactive=False)
            if needle in account.email
            or needle in (account.name or "").lower()
            or normalize_address(account.wallet_address) == wallet
        ]
        return matches[:limit]

    async def activity_stats(self, now: datetime) -> AccountStats:
        """Count active and inactive accounts and recent activity as of now."""
        stats = AccountStats()
        signup_cutoff = now - RECENT_SIGNUP_WINDOW
        login_cutoff = now - RECENT_LOGIN_WINDOW
        for account in await self.list_accounts(include_inactive=True):
            if not account.active:
                stats.total_inactive += 1
                continue
            stats.total_active += 1
            if account.created_at >= signup_cutoff:
                stats.recent_signups += 1
            if account.last_login_at >= login_cutoff:
                stats.recent_logins += 1
        return stats

    # =========================================================================
    # Creation
    # =========================================================================

    @abstractmethod
    async def _insert(self, account: Account) -> Account:
        """Insert a new account, atomically with respect to uniqueness.

        Raises:
            DuplicateKeyError: If any of UNIQUE_FIELDS is already taken.
            RepositoryUnavailable: If the insert cannot be committed.
        """

    async def create_if_absent(self, candidate: AccountCandidate) -> tuple[Account, bool]:
        """Create an account unless one already exists for the subject.

        Args:
            candidate: Identity binding and profile for the new account.

        Returns:
            (account, created). created is False when a concurrent or prior
            creation for the same subject with the same email and wallet won.

        Raises:
            ConflictingIdentityError: Subject bound with different email or
                wallet, or salt reused by another subject.
            EmailTakenError: Email bound to another subject.
            WalletTakenError: Wallet bound to another subject.
            RepositoryUnavailable: If storage fails.
        """
        try:
            account = await self._insert(Account.from_candidate(candidate))
            return account, True
        except DuplicateKeyError as dup:
            return await self._resolve_duplicate(candidate, dup), False

    async def _resolve_duplicate(self, candidate: AccountCandidate, dup: DuplicateKeyError) -> Account:
        if dup.field == "email":
            raise EmailTakenError()
        if dup.field == "wallet_address":
            raise WalletTakenError()
        if dup.field != "subject_id":
            raise ConflictingIdentityError(details={"field": dup.field})

        existing = await self.find_by_id(dup.existing_id, include_inactive=True)
        if existing is None:
            raise ConflictingIdentityError()
        same_email = existing.email == candidate.email
        same_wallet = normalize_address(existing.wallet_address) == normalize_address(
            candidate.wallet_address
        )
        if not (same_email and same_wallet):
            raise ConflictingIdentityError()
        return existing

    # =========================================================================
    # Mutations (each one atomic per account)
    # =========================================================================

    @abstractmethod
    async def record_login(
        self, account_id: str, at: datetime, entry: RefreshTokenEntry | None = None
    ) -> Account:
        """Increment login_count and set last_login_at.

        With entry, the refresh token list is pruned, extended, and bounded
        in the same mutation, so counters and token commit together or not
        at all.

        Raises:
            AccountInactiveOrMissingError: If the account is missing or inactive.
        """

    @abstractmethod
    async def push_refresh_token(self, account_id: str, entry: RefreshTokenEntry) -> Account:
        """Prune expired entries, append entry, keep the newest N.

        Raises:
            AccountInactiveOrMissingError: If the account is missing or inactive.
        """

    @abstractmethod
    async def remove_refresh_token(self, account_id: str, token: str) -> bool:
        """Remove one refresh token. Idempotent; returns whether it was listed."""

    @abstractmethod
    async def rotate_refresh_token(
        self, account_id: str, old_token: str, new_entry: RefreshTokenEntry
    ) -> bool:
        """Replace old_token with new_entry, only if old_token is listed.

        Returns:
            True if old_token was present (and is now replaced), else False
            with no change made.
        """

    @abstractmethod
    async def clear_refresh_tokens(self, account_id: str) -> int:
        """Remove every refresh token. Idempotent; returns how many were listed."""

    @abstractmethod
    async def update_profile(
        self,
        account_id: str,
        *,
        name: str | None = None,
        picture: str | None = None,
        preferences: Preferences | dict[str, Any] | None = None,
    ) -> Account:
        """Update mutable profile fields. Identity fields never change.

        Raises:
            AccountInactiveOrMissingError: If the account is missing or inactive.
        """

    @abstractmethod
    async def deactivate(self, account_id: str) -> bool:
        """Soft-delete the account and drop its refresh tokens.

        Returns:
            False if no such account exists.
        """

    @abstractmethod
    async def reactivate(self, account_id: str) -> bool:
        """Re-enable a deactivated account.

        Returns:
            False if no such account exists.
        """
