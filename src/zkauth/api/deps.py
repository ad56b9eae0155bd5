"""Request dependencies shared by the zkauth routers.

Routes take dependencies through the Annotated aliases at the bottom of
this module instead of calling app.state directly:

    @router.get("/profile")
    async def get_profile(account: CurrentAccountDep) -> UserResponse:
        ...
"""

from __future__ import annotations

__all__ = [
    "get_bearer_token",
    "get_config",
    "get_current_account",
    "get_session_service",
    "BearerTokenDep",
    "ConfigDep",
    "CurrentAccountDep",
    "ServiceDep",
]

from typing import Annotated, Any, Callable

from fastapi import Depends, Request

from zkauth.api.errors import APIError, ErrorCode
from zkauth.config import AppConfig
from zkauth.sessions.service import SessionService
from zkauth.storage.models import Account


# =============================================================================
# app.state accessors
# =============================================================================


def _state_getter(attr_name: str) -> Callable[[Request], Any]:
    """Build a dependency returning ``request.app.state.<attr_name>``.

    A missing attribute means create_app has not finished wiring the app;
    the request gets 503 SERVICE_UNAVAILABLE.
    """

    def getter(request: Request) -> Any:
        value = getattr(request.app.state, attr_name, None)
        if value is None:
            raise APIError(
                status_code=503,
                code=ErrorCode.SERVICE_UNAVAILABLE,
                message=f"{attr_name} not available. Server may still be starting.",
            )
        return value

    getter.__name__ = f"get_{attr_name}"
    return getter


get_config: Callable[[Request], AppConfig] = _state_getter("config")
get_session_service: Callable[[Request], SessionService] = _state_getter("session_service")


# =============================================================================
# Authentication
# =============================================================================


def get_bearer_token(request: Request) -> str:
    """Extract the access token from 'Authorization: Bearer <token>'.

    Raises:
        APIError: 401 AUTH_REQUIRED if the header is missing or malformed.
    """
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise APIError(
            status_code=401,
            code=ErrorCode.AUTH_REQUIRED,
            message="Access token required",
        )
    return token.strip()


async def get_current_account(
    token: Annotated[str, Depends(get_bearer_token)],
    service: Annotated[SessionService, Depends(get_session_service)],
) -> Account:
    """Verify the bearer access token and return its active account.

    Rejections (invalid, expired, inactive) propagate to the
    SessionRejected handler and become 401 responses.
    """
    return await service.verify_access(token)


# =============================================================================
# Annotated aliases
# =============================================================================

ConfigDep = Annotated[AppConfig, Depends(get_config)]
ServiceDep = Annotated[SessionService, Depends(get_session_service)]
BearerTokenDep = Annotated[str, Depends(get_bearer_token)]
CurrentAccountDep = Annotated[Account, Depends(get_current_account)]
