"""Process-local account repository.

Mutations are serialized per account id with an asyncio.Lock; creation is
serialized by one lock over the uniqueness indexes. Each mutation works on a
deep copy and is committed with a single dict assignment, so a failure or
cancellation before the commit leaves stored state untouched.
"""

from __future__ import annotations

__all__ = [
    "InMemoryAccountRepository",
]

import asyncio
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any

from zkauth.constants import MAX_REFRESH_TOKENS
from zkauth.exceptions import AccountInactiveOrMissingError
from zkauth.identity.address import normalize_address
from zkauth.storage.models import Account, Preferences, RefreshTokenEntry
from zkauth.storage.repository import UNIQUE_FIELDS, AccountRepository, DuplicateKeyError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _index_key(field: str, value: str) -> str:
    if field == "email":
        return value.strip().lower()
    if field == "wallet_address":
        return normalize_address(value)
    return value


class InMemoryAccountRepository(AccountRepository):
    """Account repository backed by a dict.

    Usage:
        repo = InMemoryAccountRepository()
        account, created = await repo.create_if_absent(candidate)
    """

    def __init__(
        self,
        max_refresh_tokens: int = MAX_REFRESH_TOKENS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize repository.

        Args:
            max_refresh_tokens: Bound on each account's refresh token list.
            clock: Returns the current UTC time (for testing expiry).
        """
        self._max_refresh_tokens = max_refresh_tokens
        self._clock = clock or _utcnow
        self._accounts: dict[str, Account] = {}
        self._indexes: dict[str, dict[str, str]] = {name: {} for name in UNIQUE_FIELDS}
        self._create_lock = asyncio.Lock()
        self._locks: dict[str, asyncio.Lock] = {}

    def _load(self, accounts: Iterable[Account]) -> None:
        """Replace stored state and rebuild indexes."""
        self._accounts = {}
        self._indexes = {name: {} for name in UNIQUE_FIELDS}
        for account in accounts:
            self._accounts[account.id] = account
            self._index(account)

    def _index(self, account: Account) -> None:
        for name in UNIQUE_FIELDS:
            self._indexes[name][_index_key(name, getattr(account, name))] = account.id

    def _lock_for(self, account_id: str) -> asyncio.Lock:
        lock = self._locks.get(account_id)
        if lock is None:
            lock = self._locks[account_id] = asyncio.Lock()
        return lock

    def _persist(self, accounts: dict[str, Account]) -> None:
        """Durably store a full snapshot. No-op for the in-memory backend.

        Raises:
            RepositoryUnavailable: If the snapshot cannot be written.
        """

    def _commit(self, account: Account) -> None:
        snapshot = dict(self._accounts)
        snapshot[account.id] = account
        self._persist(snapshot)
        self._accounts = snapshot

    # =========================================================================
    # Lookups
    # =========================================================================

    def _visible(self, account_id: str | None, include_inactive: bool) -> Account | None:
        if account_id is None:
            return None
        account = self._accounts.get(account_id)
        if account is None or (not account.active and not include_inactive):
            return None
        return account.model_copy(deep=True)

    async def find_by_id(self, account_id: str, *, include_inactive: bool = False) -> Account | None:
        return self._visible(account_id, include_inactive)

    async def find_by_subject(
        self, subject_id: str, *, include_inactive: bool = False
    ) -> Account | None:
        return self._visible(self._indexes["subject_id"].get(subject_id), include_inactive)

    async def find_by_wallet(
        self, wallet_address: str, *, include_inactive: bool = False
    ) -> Account | None:
        key = _index_key("wallet_address", wallet_address)
        return self._visible(self._indexes["wallet_address"].get(key), include_inactive)

    async def find_by_email(self, email: str, *, include_inactive: bool = False) -> Account | None:
        key = _index_key("email", email)
        return self._visible(self._indexes["email"].get(key), include_inactive)

    async def list_accounts(self, *, include_inactive: bool = True) -> list[Account]:
        accounts = [
            a.model_copy(deep=True)
            for a in self._accounts.values()
            if a.active or include_inactive
        ]
        return sorted(accounts, key=lambda a: a.created_at)

    # =========================================================================
    # Creation
    # =========================================================================

    async def _insert(self, account: Account) -> Account:
        async with self._create_lock:
            for name in UNIQUE_FIELDS:
                existing_id = self._indexes[name].get(_index_key(name, getattr(account, name)))
                if existing_id is not None:
                    raise DuplicateKeyError(name, existing_id)
            self._commit(account)
            self._index(account)
        return account.model_copy(deep=True)

    # =========================================================================
    # Mutations
    # =========================================================================

    def _require_active(self, account_id: str) -> Account:
        current = self._accounts.get(account_id)
        if current is None or not current.active:
            raise AccountInactiveOrMissingError()
        return current.model_copy(deep=True)

    def _trim(self, tokens: list[RefreshTokenEntry], now: datetime) -> list[RefreshTokenEntry]:
        live = [entry for entry in tokens if not entry.is_expired(now)]
        return live[-self._max_refresh_tokens :]

    async def record_login(
        self, account_id: str, at: datetime, entry: RefreshTokenEntry | None = None
    ) -> Account:
        async with self._lock_for(account_id):
            account = self._require_active(account_id)
            now = self._clock()
            account.login_count += 1
            account.last_login_at = at
            if entry is not None:
                account.refresh_tokens = self._trim([*account.refresh_tokens, entry], now)
            account.updated_at = now
            self._commit(account)
        return account.model_copy(deep=True)

    async def push_refresh_token(self, account_id: str, entry: RefreshTokenEntry) -> Account:
        async with self._lock_for(account_id):
            account = self._require_active(account_id)
            now = self._clock()
            account.refresh_tokens = self._trim([*account.refresh_tokens, entry], now)
            account.updated_at = now
            self._commit(account)
        return account.model_copy(deep=True)

    async def remove_refresh_token(self, account_id: str, token: str) -> bool:
        async with self._lock_for(account_id):
            current = self._accounts.get(account_id)
            if current is None or not any(e.token == token for e in current.refresh_tokens):
                return False
            account = current.model_copy(deep=True)
            account.refresh_tokens = [e for e in account.refresh_tokens if e.token != token]
            account.updated_at = self._clock()
            self._commit(account)
        return True

    async def rotate_refresh_token(
        self, account_id: str, old_token: str, new_entry: RefreshTokenEntry
    ) -> bool:
        async with self._lock_for(account_id):
            current = self._accounts.get(account_id)
            now = self._clock()
            if current is None or not current.active or not current.has_refresh_token(old_token, now):
                return False
            account = current.model_copy(deep=True)
            remaining = [e for e in account.refresh_tokens if e.token != old_token]
            account.refresh_tokens = self._trim([*remaining, new_entry], now)
            account.updated_at = now
            self._commit(account)
        return True

    async def clear_refresh_tokens(self, account_id: str) -> int:
        async with self._lock_for(account_id):
            current = self._accounts.get(account_id)
            if current is None or not current.refresh_tokens:
                return 0
            account = current.model_copy(deep=True)
            removed = len(account.refresh_tokens)
            account.refresh_tokens = []
            account.updated_at = self._clock()
            self._commit(account)
        return removed

    async def update_profile(
        self,
        account_id: str,
        *,
        name: str | None = None,
        picture: str | None = None,
        preferences: Preferences | dict[str, Any] | None = None,
    ) -> Account:
        async with self._lock_for(account_id):
            account = self._require_active(account_id)
            if name is not None:
                account.name = name.strip() or account.name
            if picture is not None:
                account.picture = picture
            if isinstance(preferences, Preferences):
                account.preferences = preferences
            elif preferences is not None:
                merged = account.preferences.model_dump()
                for key, value in preferences.items():
                    if isinstance(value, dict) and isinstance(merged.get(key), dict):
                        merged[key] = {**merged[key], **value}
                    else:
                        merged[key] = value
                account.preferences = Preferences.model_validate(merged)
            account.updated_at = self._clock()
            self._commit(account)
        return account.model_copy(deep=True)

    async def _set_active(self, account_id: str, active: bool) -> bool:
        async with self._lock_for(account_id):
            current = self._accounts.get(account_id)
            if current is None:
                return False
            account = current.model_copy(deep=True)
            account.active = active
            if not active:
                account.refresh_tokens = []
            account.updated_at = self._clock()
            self._commit(account)
        return True

    async def deactivate(self, account_id: str) -> bool:
        return await self._set_active(account_id, False)

    async def reactivate(self, account_id: str) -> bool:
        return await self._set_active(account_id, True)
