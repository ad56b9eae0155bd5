"""JSON-file account repository.

Same semantics as InMemoryAccountRepository. After every committed mutation
the full account set is written to a JSON snapshot with an atomic replace.
If the write fails the mutation is not applied in memory either.
"""

from __future__ import annotations

__all__ = [
    "AccountSnapshot",
    "JsonFileAccountRepository",
]

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

from zkauth.constants import MAX_REFRESH_TOKENS
from zkauth.exceptions import RepositoryUnavailable
from zkauth.storage.memory import InMemoryAccountRepository
from zkauth.storage.models import Account
from zkauth.utils.file_helpers import atomic_write_json, load_validated_json

SNAPSHOT_VERSION = 1


class AccountSnapshot(BaseModel):
    """On-disk format of the account file."""

    version: int = SNAPSHOT_VERSION
    accounts: list[Account] = Field(default_factory=list)


class JsonFileAccountRepository(InMemoryAccountRepository):
    """Account repository persisted to a JSON file.

    Usage:
        repo = JsonFileAccountRepository(Path("~/.config/zkauth/accounts.json"))
    """

    def __init__(
        self,
        path: Path,
        max_refresh_tokens: int = MAX_REFRESH_TOKENS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize repository and load the existing snapshot, if any.

        Args:
            path: Snapshot file location. Created on first write.
            max_refresh_tokens: Bound on each account's refresh token list.
            clock: Returns the current UTC time (for testing expiry).

        Raises:
            RepositoryUnavailable: If an existing snapshot cannot be read.
        """
        super().__init__(max_refresh_tokens=max_refresh_tokens, clock=clock)
        self._path = path
        if path.exists():
            try:
                snapshot = load_validated_json(
                    path,
                    AccountSnapshot,
                    file_type="account store",
                    recovery_hint="Restore the file from a backup or move it aside.",
                )
            except ValueError as e:
                raise RepositoryUnavailable(str(e)) from e
            self._load(snapshot.accounts)

    @property
    def path(self) -> Path:
        """Snapshot file location."""
        return self._path

    def _persist(self, accounts: dict[str, Account]) -> None:
        snapshot = AccountSnapshot(accounts=list(accounts.values()))
        try:
            atomic_write_json(self._path, snapshot.model_dump(mode="json"))
        except OSError as e:
            raise RepositoryUnavailable(f"Failed to write account store {self._path}: {e}") from e
