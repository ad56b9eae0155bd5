"""Authentication API schemas.

Wire names are camelCase (walletAddress, userSalt, refreshToken); Python
attributes stay snake_case through the alias generator.
"""

from __future__ import annotations

__all__ = [
    "ApiModel",
    "HealthResponse",
    "LoginResponse",
    "LogoutRequest",
    "MessageResponse",
    "NotificationsUpdate",
    "PreferencesUpdate",
    "ProfileUpdateRequest",
    "ProofResponse",
    "RefreshRequest",
    "RefreshResponse",
    "StatsResponse",
    "TokensResponse",
    "UserResponse",
    "VerifyWalletRequest",
    "VerifyWalletResponse",
    "WalletAddressRequest",
    "WalletAddressResponse",
    "ZkLoginRequest",
]

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from zkauth.constants import WALLET_ADDRESS_PATTERN
from zkauth.sessions.issuer import SessionResult
from zkauth.storage.models import Account


class ApiModel(BaseModel):
    """Base for API models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Requests
# =============================================================================


class ZkLoginRequest(ApiModel):
    """Identity token plus wallet binding material."""

    jwt: str = Field(min_length=1)
    wallet_address: str = Field(pattern=WALLET_ADDRESS_PATTERN)
    user_salt: str = Field(min_length=1)
    max_epoch: int | None = Field(default=None, ge=0)
    aud: str | None = None


class WalletAddressRequest(ApiModel):
    """Identity token of a returning user."""

    jwt: str = Field(min_length=1)


class RefreshRequest(ApiModel):
    refresh_token: str = Field(min_length=1)


class LogoutRequest(ApiModel):
    """Logout: one device (refreshToken) or all devices (logoutAll)."""

    refresh_token: str | None = None
    logout_all: bool = False


class NotificationsUpdate(ApiModel):
    email: bool | None = None
    push: bool | None = None


class PreferencesUpdate(ApiModel):
    """Partial preferences; omitted fields keep their current value."""

    theme: Literal["light", "dark", "system"] | None = None
    language: str | None = Field(default=None, min_length=2, max_length=10)
    notifications: NotificationsUpdate | None = None


class ProfileUpdateRequest(ApiModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    preferences: PreferencesUpdate | None = None


class VerifyWalletRequest(ApiModel):
    wallet_address: str = Field(pattern=WALLET_ADDRESS_PATTERN)


# =============================================================================
# Responses
# =============================================================================


class UserResponse(ApiModel):
    """Public account view. Never includes the salt or refresh tokens."""

    id: str
    email: str
    name: str
    display_name: str
    picture: str | None = None
    wallet_address: str
    verified: bool
    login_count: int
    last_login_at: datetime
    preferences: dict[str, Any]
    created_at: datetime

    @classmethod
    def from_account(cls, account: Account) -> "UserResponse":
        return cls(
            id=account.id,
            email=account.email,
            name=account.name,
            display_name=account.display_name,
            picture=account.picture,
            wallet_address=account.wallet_address,
            verified=account.verified,
            login_count=account.login_count,
            last_login_at=account.last_login_at,
            preferences=account.preferences.model_dump(),
            created_at=account.created_at,
        )


class TokensResponse(ApiModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int

    @classmethod
    def from_result(cls, result: SessionResult) -> "TokensResponse":
        return cls(
            access_token=result.access_token,
            refresh_token=result.refresh_token,
            expires_in=result.access.expires_in,
        )


class LoginResponse(ApiModel):
    message: str
    created: bool
    user: UserResponse
    tokens: TokensResponse


class RefreshResponse(ApiModel):
    message: str
    tokens: TokensResponse


class WalletAddressResponse(ApiModel):
    wallet_address: str
    user_salt: str


class MessageResponse(ApiModel):
    message: str


class StatsResponse(ApiModel):
    login_count: int
    last_login_at: datetime
    account_age_days: int
    active_sessions: int
    verified: bool
    wallet_address: str
    created_at: datetime


class VerifyWalletResponse(ApiModel):
    verified: bool
    wallet_address: str
    message: str


class ProofResponse(ApiModel):
    proof: dict[str, Any]


class HealthResponse(ApiModel):
    status: str
    service: str
    version: str
    timestamp: datetime
