"""User lookup API schemas."""

from __future__ import annotations

__all__ = ["PublicWalletResponse"]

from datetime import datetime

from zkauth.api.schemas.auth import ApiModel
from zkauth.storage.models import Account


class PublicWalletResponse(ApiModel):
    """Minimal public info about a wallet's owner."""

    wallet_address: str
    name: str
    picture: str | None = None
    verified: bool
    created_at: datetime

    @classmethod
    def from_account(cls, account: Account) -> "PublicWalletResponse":
        return cls(
            wallet_address=account.wallet_address,
            name=account.display_name,
            picture=account.picture,
            verified=account.verified,
            created_at=account.created_at,
        )
