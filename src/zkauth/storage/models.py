"""Pydantic models for persisted account state.

Account is the single persisted entity. Refresh tokens live embedded in the
account as a small bounded list; access tokens are never stored.
"""

from __future__ import annotations

__all__ = [
    "Account",
    "AccountCandidate",
    "AccountStats",
    "NotificationPreferences",
    "Preferences",
    "RefreshTokenEntry",
]

import uuid
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_account_id() -> str:
    return uuid.uuid4().hex


def _normalize_email(value: str) -> str:
    return value.strip().lower()


class RefreshTokenEntry(BaseModel):
    """One refresh token held in an account's bounded list.

    Attributes:
        token: The encoded refresh token.
        jti: Unique token identifier (from the token's 'jti' claim).
        issued_at: When the token was issued (UTC).
        expires_at: Individual expiry, independent of list position.
    """

    token: str
    jti: str
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if this entry is past its own expiry."""
        return (now or _utcnow()) >= self.expires_at


class NotificationPreferences(BaseModel):
    """Notification channel opt-ins."""

    email: bool = True
    push: bool = True


class Preferences(BaseModel):
    """User-editable preferences."""

    theme: Literal["light", "dark", "system"] = "system"
    language: str = Field(default="en", min_length=2, max_length=10)
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)


class AccountCandidate(BaseModel):
    """Input for creating an account on first identity binding."""

    subject_id: str = Field(min_length=1)
    email: str = Field(min_length=3)
    wallet_address: str = Field(min_length=1)
    salt: str = Field(min_length=1)
    name: str
    picture: str | None = None
    issuer: str
    audience: str | None = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)


class Account(BaseModel):
    """Persistent account bound to one external identity.

    Attributes:
        id: Opaque persistent identifier, assigned at creation.
        subject_id: Identity provider subject. Unique, immutable.
        email: Unique, lowercase-normalized.
        wallet_address: Unique, immutable; equals derive(subject_id, salt).
        salt: Unique, immutable secret input to address derivation.
        active: False means soft-deleted; excluded from authentication.
        login_count: Successful session issuances (1 after creation).
        last_login_at: Time of the latest successful issuance.
        refresh_tokens: Bounded list of currently valid refresh tokens.
    """

    id: str = Field(default_factory=_new_account_id)
    subject_id: str
    email: str
    wallet_address: str
    salt: str

    name: str
    picture: str | None = None
    issuer: str
    audience: str | None = None

    active: bool = True
    verified: bool = True  # Provider-authenticated accounts are pre-verified
    login_count: int = 1
    last_login_at: datetime = Field(default_factory=_utcnow)
    refresh_tokens: list[RefreshTokenEntry] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)

    @classmethod
    def from_candidate(cls, candidate: AccountCandidate) -> "Account":
        """Build a new account from a creation candidate."""
        return cls(**candidate.model_dump())

    @property
    def display_name(self) -> str:
        """Name, falling back to the email's local part."""
        return self.name or self.email.split("@")[0]

    def has_refresh_token(self, token: str, now: datetime | None = None) -> bool:
        """Check list membership of an unexpired refresh token entry."""
        return any(entry.token == token and not entry.is_expired(now) for entry in self.refresh_tokens)

    def to_public_dict(self) -> dict[str, Any]:
        """Serialize without secrets (salt, refresh tokens)."""
        data = self.model_dump(mode="json", exclude={"salt", "refresh_tokens"})
        data["display_name"] = self.display_name
        return data


class AccountStats(BaseModel):
    """Activity summary over all stored accounts.

    Attributes:
        total_active: Accounts that can sign in.
        total_inactive: Deactivated accounts.
        recent_signups: Active accounts created within the signup window.
        recent_logins: Active accounts that signed in within the login window.
    """

    total_active: int = 0
    total_inactive: int = 0
    recent_signups: int = 0
    recent_logins: int = 0
