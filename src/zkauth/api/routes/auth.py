"""Authentication API endpoints.

- POST /api/auth/zklogin - Issue a session from an identity token + wallet binding
- POST /api/auth/wallet-address - Recover wallet address and salt for a returning user
- POST /api/auth/refresh - Rotate a refresh token into a new pair
- POST /api/auth/logout - Revoke one device or all devices (Bearer)
- GET /api/auth/profile - Current user's public profile (Bearer)
- PUT /api/auth/profile - Update name and preferences (Bearer)
- POST /api/auth/verify-wallet - Check a wallet address against the account (Bearer)
- GET /api/auth/stats - Login statistics (Bearer)
- POST /api/auth/proof - Obtain a zero-knowledge proof via the gateway (Bearer)
- GET /api/auth/health - Liveness

Routes mounted at: /api/auth
"""

from __future__ import annotations

__all__ = ["router"]

from datetime import datetime, timezone

from fastapi import APIRouter

from zkauth import __version__
from zkauth.api.deps import CurrentAccountDep, ServiceDep
from zkauth.api.errors import APIError, ErrorCode
from zkauth.api.schemas import (
    HealthResponse,
    LoginResponse,
    LogoutRequest,
    MessageResponse,
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
from zkauth.constants import APP_NAME
from zkauth.identity.prover import ProofRequest

router = APIRouter()


# =============================================================================
# Session lifecycle
# =============================================================================


@router.post("/zklogin")
async def zklogin(body: ZkLoginRequest, service: ServiceDep) -> LoginResponse:
    """Authenticate with an identity token and bound wallet address."""
    result = await service.issue_session(
        body.jwt,
        body.wallet_address,
        body.user_salt,
        audience=body.aud,
    )
    return LoginResponse(
        message="Account created successfully" if result.created else "Login successful",
        created=result.created,
        user=UserResponse.from_account(result.account),
        tokens=TokensResponse.from_result(result),
    )


@router.post("/wallet-address")
async def wallet_address(body: WalletAddressRequest, service: ServiceDep) -> WalletAddressResponse:
    """Return the stored wallet address and salt for the token's subject."""
    account = await service.lookup_wallet(body.jwt)
    if account is None:
        raise APIError(
            status_code=404,
            code=ErrorCode.ACCOUNT_NOT_FOUND,
            message="User not found",
        )
    return WalletAddressResponse(wallet_address=account.wallet_address, user_salt=account.salt)


@router.post("/refresh")
async def refresh(body: RefreshRequest, service: ServiceDep) -> RefreshResponse:
    """Exchange a refresh token for a new access/refresh pair."""
    result = await service.refresh_session(body.refresh_token)
    return RefreshResponse(
        message="Token refreshed successfully",
        tokens=TokensResponse.from_result(result),
    )


@router.post("/logout")
async def logout(
    account: CurrentAccountDep,
    service: ServiceDep,
    body: LogoutRequest | None = None,
) -> MessageResponse:
    """Revoke the presented refresh token, or all of the account's tokens.

    Outstanding access tokens stay valid until their own expiry.
    """
    body = body or LogoutRequest()
    if body.logout_all:
        if body.refresh_token:
            await service.revoke_session(body.refresh_token, revoke_all=True, account_id=account.id)
        else:
            await service.revoke_all_sessions(account.id)
        return MessageResponse(message="Logged out from all devices")

    if body.refresh_token:
        await service.revoke_session(body.refresh_token, account_id=account.id)
    return MessageResponse(message="Logged out successfully")


# =============================================================================
# Profile
# =============================================================================


@router.get("/profile")
async def get_profile(account: CurrentAccountDep) -> UserResponse:
    """Current user's public profile."""
    return UserResponse.from_account(account)


@router.put("/profile")
async def update_profile(
    body: ProfileUpdateRequest,
    account: CurrentAccountDep,
    service: ServiceDep,
) -> UserResponse:
    """Update name and/or preferences. Identity fields are immutable."""
    preferences = body.preferences.model_dump(exclude_none=True) if body.preferences else None
    updated = await service.update_profile(account.id, name=body.name, preferences=preferences)
    return UserResponse.from_account(updated)


@router.post("/verify-wallet")
async def verify_wallet(
    body: VerifyWalletRequest,
    account: CurrentAccountDep,
    service: ServiceDep,
) -> VerifyWalletResponse:
    """Confirm that a wallet address belongs to the current account."""
    service.verify_wallet(account, body.wallet_address)
    return VerifyWalletResponse(
        verified=True,
        wallet_address=account.wallet_address,
        message="Wallet address verified successfully",
    )


@router.get("/stats")
async def stats(account: CurrentAccountDep, service: ServiceDep) -> StatsResponse:
    """Login statistics for the current account."""
    return StatsResponse(**service.account_stats(account))


@router.post("/proof")
async def request_proof(
    body: ProofRequest,
    account: CurrentAccountDep,
    service: ServiceDep,
) -> ProofResponse:
    """Forward ephemeral session material to the proof gateway."""
    proof = await service.request_proof(body, account)
    return ProofResponse(proof=proof)


# =============================================================================
# Health
# =============================================================================


@router.get("/health")
async def health() -> HealthResponse:
    """Liveness check."""
    return HealthResponse(
        status="ok",
        service=APP_NAME,
        version=__version__,
        timestamp=datetime.now(timezone.utc),
    )
