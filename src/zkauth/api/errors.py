"""Error responses for the zkauth HTTP API.

Every non-2xx body has the same shape so clients can switch on ``code``::

    {"detail": {"code": "WALLET_ADDRESS_MISMATCH", "message": "...", "details": {...}}}

Domain exceptions are not caught in routes. Handlers registered here map
them by type: SessionRejected carries its own status, storage and oracle
failures become 503, request validation becomes 400.
"""

from __future__ import annotations

__all__ = [
    "APIError",
    "ErrorCode",
    "register_exception_handlers",
]

from enum import Enum
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from zkauth.exceptions import (
    OracleUnavailable,
    ProofUnavailable,
    RejectedReason,
    RepositoryUnavailable,
    SessionRejected,
)
from zkauth.telemetry.system.system_logger import get_system_logger

_logger = get_system_logger()


class ErrorCode(str, Enum):
    """Machine-readable error codes.

    The first block has one member per RejectedReason, same name.
    """

    MALFORMED_TOKEN = "MALFORMED_TOKEN"
    MISSING_CLAIMS = "MISSING_CLAIMS"
    UNTRUSTED_ISSUER = "UNTRUSTED_ISSUER"
    ADDRESS_MISMATCH = "ADDRESS_MISMATCH"
    WALLET_ADDRESS_MISMATCH = "WALLET_ADDRESS_MISMATCH"
    EMAIL_TAKEN = "EMAIL_TAKEN"
    WALLET_TAKEN = "WALLET_TAKEN"
    CONFLICTING_IDENTITY = "CONFLICTING_IDENTITY"
    INVALID_TOKEN = "INVALID_TOKEN"
    EXPIRED_TOKEN = "EXPIRED_TOKEN"
    REFRESH_TOKEN_REVOKED = "REFRESH_TOKEN_REVOKED"
    ACCOUNT_INACTIVE_OR_MISSING = "ACCOUNT_INACTIVE_OR_MISSING"

    AUTH_REQUIRED = "AUTH_REQUIRED"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Retryable (503)
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"
    ORACLE_UNAVAILABLE = "ORACLE_UNAVAILABLE"
    PROOF_UNAVAILABLE = "PROOF_UNAVAILABLE"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    INTERNAL_ERROR = "INTERNAL_ERROR"

    @classmethod
    def from_reason(cls, reason: RejectedReason) -> "ErrorCode":
        return cls[reason.name]


# Fallback codes for bare HTTPExceptions raised by the framework
_STATUS_CODES: dict[int, ErrorCode] = {
    400: ErrorCode.VALIDATION_ERROR,
    401: ErrorCode.AUTH_REQUIRED,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.METHOD_NOT_ALLOWED,
    503: ErrorCode.SERVICE_UNAVAILABLE,
}


class APIError(HTTPException):
    """HTTPException whose detail is the structured error body.

    401 responses carry ``WWW-Authenticate: Bearer``.

    Example:
        raise APIError(404, ErrorCode.ACCOUNT_NOT_FOUND, "User not found")
    """

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
        validation_errors: list[dict[str, Any]] | None = None,
    ) -> None:
        self.code = code
        self.error_message = message

        detail: dict[str, Any] = {"code": code.value, "message": message}
        if details:
            detail["details"] = details
        if validation_errors:
            detail["validation_errors"] = validation_errors

        headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
        super().__init__(status_code=status_code, detail=detail, headers=headers)

    @classmethod
    def from_rejection(cls, exc: SessionRejected) -> "APIError":
        return cls(exc.status_code, ErrorCode.from_reason(exc.reason), exc.message, details=exc.details)

    @classmethod
    def from_validation(cls, exc: RequestValidationError) -> "APIError":
        """400 with one entry per failing field; body prefixes are dropped from names."""
        errors = [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
            for e in exc.errors()
        ]
        if len(errors) == 1:
            field = ".".join(str(part) for part in errors[0]["loc"] if part != "body")
            message = f"{field}: {errors[0]['msg']}" if field else errors[0]["msg"]
        else:
            message = f"{len(errors)} validation errors"
        return cls(400, ErrorCode.VALIDATION_ERROR, message, validation_errors=errors)

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content={"detail": self.detail}, headers=self.headers)


# =============================================================================
# Handlers
# =============================================================================


async def _on_api_error(request: Request, exc: APIError) -> JSONResponse:
    return exc.to_response()


async def _on_session_rejected(request: Request, exc: SessionRejected) -> JSONResponse:
    return APIError.from_rejection(exc).to_response()


async def _on_repository_unavailable(request: Request, exc: RepositoryUnavailable) -> JSONResponse:
    _logger.error(
        {
            "event": "repository_unavailable",
            "message": f"Account storage unavailable: {exc}",
            "path": request.url.path,
        }
    )
    return APIError(
        503, ErrorCode.STORAGE_UNAVAILABLE, "Account storage temporarily unavailable. Please retry."
    ).to_response()


async def _on_oracle_unavailable(request: Request, exc: OracleUnavailable) -> JSONResponse:
    # ProofUnavailable subclasses OracleUnavailable
    if isinstance(exc, ProofUnavailable):
        event, code = "proof_unavailable", ErrorCode.PROOF_UNAVAILABLE
    else:
        event, code = "oracle_unavailable", ErrorCode.ORACLE_UNAVAILABLE
    _logger.warning({"event": event, "message": str(exc), "path": request.url.path})
    return APIError(503, code, str(exc) or "External service unavailable").to_response()


async def _on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return APIError.from_validation(exc).to_response()


async def _on_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    headers = getattr(exc, "headers", None)
    if isinstance(exc.detail, dict) and "code" in exc.detail:
        detail = exc.detail
    else:
        code = _STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
        detail = {"code": code.value, "message": str(exc.detail or f"HTTP {exc.status_code}")}
    return JSONResponse(status_code=exc.status_code, content={"detail": detail}, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers above on app."""
    handlers: list[tuple[type[Exception], Any]] = [
        (APIError, _on_api_error),
        (SessionRejected, _on_session_rejected),
        (RepositoryUnavailable, _on_repository_unavailable),
        (OracleUnavailable, _on_oracle_unavailable),
        (RequestValidationError, _on_validation_error),
        (StarletteHTTPException, _on_http_exception),
    ]
    for exc_class, handler in handlers:
        app.add_exception_handler(exc_class, handler)
