"""Account storage.

- Account, RefreshTokenEntry: persisted state
- AccountRepository: atomic operations on accounts
- InMemoryAccountRepository / JsonFileAccountRepository: backends
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from zkauth.storage.file import AccountSnapshot, JsonFileAccountRepository
from zkauth.storage.memory import InMemoryAccountRepository
from zkauth.storage.models import (
    Account,
    AccountCandidate,
    AccountStats,
    NotificationPreferences,
    Preferences,
    RefreshTokenEntry,
)
from zkauth.storage.repository import AccountRepository, DuplicateKeyError

if TYPE_CHECKING:
    from zkauth.config import AppConfig

__all__ = [
    "Account",
    "AccountCandidate",
    "AccountStats",
    "AccountRepository",
    "AccountSnapshot",
    "DuplicateKeyError",
    "InMemoryAccountRepository",
    "JsonFileAccountRepository",
    "NotificationPreferences",
    "Preferences",
    "RefreshTokenEntry",
    "create_repository",
]


def create_repository(config: "AppConfig") -> AccountRepository:
    """Create the configured repository backend.

    Args:
        config: Application configuration.

    Returns:
        JsonFileAccountRepository for backend "file", else in-memory.

    Raises:
        RepositoryUnavailable: If the file backend cannot read its snapshot.
    """
    max_tokens = config.session.max_refresh_tokens
    if config.storage.backend == "file":
        return JsonFileAccountRepository(
            config.storage.resolved_path(), max_refresh_tokens=max_tokens
        )
    return InMemoryAccountRepository(max_refresh_tokens=max_tokens)
