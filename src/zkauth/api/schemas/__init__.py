"""API schemas (Pydantic models) for request/response validation.

Centralized schemas for all API routes.
"""

from __future__ import annotations

# Auth schemas
from zkauth.api.schemas.auth import (
    ApiModel,
    HealthResponse,
    LoginResponse,
    LogoutRequest,
    MessageResponse,
    NotificationsUpdate,
    PreferencesUpdate,
    ProfileUpdateRequest,
    ProofResponse,
    RefreshRequest,
    RefreshResponse,
    StatsResponse,
    TokensResponse,
    UserResponse,
    VerifyWalletRequest,
    VerifyWalletResponse,
    WalletAddressRequest,
    WalletAddressResponse,
    ZkLoginRequest,
)

# User schemas
from zkauth.api.schemas.users import PublicWalletResponse

__all__ = [
    # Auth
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
    # Users
    "PublicWalletResponse",
]
