"""Public user lookup endpoints.

- GET /api/users/wallet/{wallet_address} - Minimal public info for a wallet

Routes mounted at: /api/users
"""

from __future__ import annotations

__all__ = ["router"]

import re

from fastapi import APIRouter

from zkauth.api.deps import ServiceDep
from zkauth.api.errors import APIError, ErrorCode
from zkauth.api.schemas import PublicWalletResponse
from zkauth.constants import WALLET_ADDRESS_PATTERN

router = APIRouter()

_WALLET_RE = re.compile(WALLET_ADDRESS_PATTERN)


@router.get("/wallet/{wallet_address}")
async def get_by_wallet(wallet_address: str, service: ServiceDep) -> PublicWalletResponse:
    """Look up the active account owning a wallet address."""
    if not _WALLET_RE.match(wallet_address):
        raise APIError(
            status_code=400,
            code=ErrorCode.VALIDATION_ERROR,
            message="Invalid wallet address format",
        )
    account = await service.find_by_wallet(wallet_address)
    if account is None:
        raise APIError(
            status_code=404,
            code=ErrorCode.ACCOUNT_NOT_FOUND,
            message="User not found",
        )
    return PublicWalletResponse.from_account(account)
