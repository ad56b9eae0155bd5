"""FastAPI server for the authentication API.

Implements:
- Auth API (/api/auth) - session lifecycle, profile, proof gateway
- Users API (/api/users) - public wallet lookups

Usage:
    app = create_app(config)                      # wires SessionService from config
    app = create_app(config, service=service)     # explicit service (tests)

    For standalone development:
        uvicorn zkauth.api.server:create_app_from_env --factory --port 5000
"""

from __future__ import annotations

__all__ = ["create_app", "create_app_from_env"]

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from zkauth import __version__
from zkauth.api.errors import register_exception_handlers
from zkauth.api.routes import auth, users
from zkauth.config import AppConfig, get_config_path
from zkauth.sessions.service import SessionService, create_session_service
from zkauth.telemetry.system.system_logger import (
    configure_system_logger_file,
    set_system_log_level,
)


def create_app(config: AppConfig, service: SessionService | None = None) -> FastAPI:
    """Create the FastAPI application with all routes.

    Args:
        config: Application configuration.
        service: Session service. When None, one is wired from config with
            the audit log at <log_dir>/zkauth/audit/auth.jsonl.

    Returns:
        Configured FastAPI application.

    Raises:
        ConfigurationError: If the service cannot be wired from config.
    """
    if service is None:
        log_dir = config.logging.resolved_dir()
        configure_system_logger_file(log_dir / "system" / "system.jsonl")
        set_system_log_level(config.logging.log_level)
        service = create_session_service(config, auth_log_path=log_dir / "audit" / "auth.jsonl")

    app = FastAPI(
        title="zkauth API",
        description="Identity-to-session authentication for zkLogin wallets",
        version=__version__,
    )

    app.state.config = config
    app.state.session_service = service

    if config.api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.api.cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization"],
            max_age=3600,  # Cache preflight for 1 hour
        )

    register_exception_handlers(app)

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])

    return app


def create_app_from_env() -> FastAPI:
    """Load config from ZKAUTH_CONFIG (or the app dir) and build the app."""
    return create_app(AppConfig.load_from_file(get_config_path()))
