"""Application configuration for zkauth.

Defines configuration models for the identity provider, session tokens,
account storage, external oracles, logging, and the HTTP API. Config is
stored as JSON at the OS-appropriate location (via click.get_app_dir) or at
the path given by ZKAUTH_CONFIG.

Example usage:
    # Load from config file
    config = AppConfig.load_from_file(config_path)

    # Save new configuration
    config.save_to_file(config_path)
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_LOG_DIR",
    "ApiConfig",
    "AppConfig",
    "IdentityConfig",
    "LoggingConfig",
    "OracleConfig",
    "SessionConfig",
    "StorageConfig",
    "get_config_path",
]

import os
import sys
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from zkauth.constants import (
    ACCESS_TOKEN_TTL_SECONDS,
    CONFIG_PATH_ENV_VAR,
    DEFAULT_API_HOST,
    DEFAULT_API_PORT,
    DEFAULT_KEY_CLAIM_NAME,
    DEFAULT_ORACLE_TIMEOUT_SECONDS,
    DEFAULT_SIGNING_ALGORITHM,
    DEFAULT_TOKEN_AUDIENCE,
    DEFAULT_TOKEN_ISSUER,
    DEFAULT_TRUSTED_ISSUER,
    MAX_REFRESH_TOKENS,
    MIN_SIGNING_SECRET_LENGTH,
    REFRESH_TOKEN_TTL_SECONDS,
    SIGNING_SECRET_ENV_VAR,
)
from zkauth.exceptions import ConfigurationError
from zkauth.utils.file_helpers import atomic_write_json, get_app_dir, load_validated_json


def _get_platform_log_dir() -> str:
    """Get platform-appropriate base log directory following OS conventions.

    Platform conventions:
        - macOS: ~/Library/Logs
        - Linux: $XDG_STATE_HOME or ~/.local/state
        - Windows: ~/AppData/Local
    """
    if sys.platform == "darwin":
        return "~/Library/Logs"
    elif sys.platform == "win32":
        return "~/AppData/Local"
    else:
        return os.environ.get("XDG_STATE_HOME", "~/.local/state")


DEFAULT_LOG_DIR = _get_platform_log_dir()


def get_config_path() -> Path:
    """Return the config file path (ZKAUTH_CONFIG overrides the app dir)."""
    override = os.environ.get(CONFIG_PATH_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return get_app_dir() / "config.json"


# =============================================================================
# Identity provider
# =============================================================================


class IdentityConfig(BaseModel):
    """Identity provider settings.

    Attributes:
        trusted_issuer: The single accepted 'iss' value for identity tokens.
        client_id: OAuth client ID the identity tokens are minted for. Used as
            the default audience when the caller supplies none.
    """

    trusted_issuer: str = Field(default=DEFAULT_TRUSTED_ISSUER, min_length=1)
    client_id: str | None = None


# =============================================================================
# Session tokens
# =============================================================================


class SessionConfig(BaseModel):
    """Settings for the access/refresh token pair.

    Attributes:
        signing_secret: HMAC secret for session tokens. Overridden by the
            ZKAUTH_SIGNING_SECRET environment variable when set.
        algorithm: JWT signing algorithm.
        token_issuer: 'iss' claim on issued tokens.
        token_audience: 'aud' claim on issued tokens.
        access_ttl_seconds: Access token lifetime.
        refresh_ttl_seconds: Refresh token lifetime (also list entry expiry).
        max_refresh_tokens: Bound on simultaneously valid refresh tokens.
    """

    signing_secret: str | None = None
    algorithm: Literal["HS256", "HS384", "HS512"] = DEFAULT_SIGNING_ALGORITHM
    token_issuer: str = DEFAULT_TOKEN_ISSUER
    token_audience: str = DEFAULT_TOKEN_AUDIENCE
    access_ttl_seconds: int = Field(default=ACCESS_TOKEN_TTL_SECONDS, gt=0)
    refresh_ttl_seconds: int = Field(default=REFRESH_TOKEN_TTL_SECONDS, gt=0)
    max_refresh_tokens: int = Field(default=MAX_REFRESH_TOKENS, ge=1)

    def resolve_secret(self) -> str:
        """Return the effective signing secret.

        Raises:
            ConfigurationError: If no secret is configured or it is too short.
        """
        secret = os.environ.get(SIGNING_SECRET_ENV_VAR) or self.signing_secret
        if not secret:
            raise ConfigurationError(
                f"No session signing secret configured. Set {SIGNING_SECRET_ENV_VAR} "
                "or session.signing_secret in the config file."
            )
        if len(secret) < MIN_SIGNING_SECRET_LENGTH:
            raise ConfigurationError(
                f"Session signing secret must be at least {MIN_SIGNING_SECRET_LENGTH} characters"
            )
        return secret


# =============================================================================
# Storage
# =============================================================================


class StorageConfig(BaseModel):
    """Account storage backend.

    Attributes:
        backend: "memory" (process-local) or "file" (JSON snapshot on disk).
        path: Snapshot file for the file backend. Defaults to
            <app_dir>/accounts.json.
    """

    backend: Literal["memory", "file"] = "file"
    path: str | None = None

    def resolved_path(self) -> Path:
        """Return the snapshot path for the file backend."""
        if self.path:
            return Path(self.path).expanduser()
        return get_app_dir() / "accounts.json"


# =============================================================================
# External oracles
# =============================================================================


class OracleConfig(BaseModel):
    """Endpoints of the address derivation oracle and proof gateway.

    Attributes:
        derivation_url: POST endpoint returning {"address": ...} for
            {"subjectId", "salt", "issuer"}.
        prover_url: Proof acquisition gateway endpoint.
        key_claim_name: Claim the prover derives the address seed from.
        timeout_seconds: HTTP timeout for both oracles.
    """

    derivation_url: str | None = None
    prover_url: str | None = None
    key_claim_name: str = DEFAULT_KEY_CLAIM_NAME
    timeout_seconds: float = Field(default=DEFAULT_ORACLE_TIMEOUT_SECONDS, gt=0)


# =============================================================================
# Logging / API
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        log_dir: Base directory; logs go to <log_dir>/zkauth/.
        log_level: Level for the system logger.
    """

    log_dir: str = DEFAULT_LOG_DIR
    log_level: Literal["DEBUG", "INFO", "WARNING"] = "INFO"

    def resolved_dir(self) -> Path:
        """Return the expanded zkauth log directory."""
        return Path(self.log_dir).expanduser() / "zkauth"


class ApiConfig(BaseModel):
    """HTTP API server configuration."""

    host: str = DEFAULT_API_HOST
    port: int = Field(default=DEFAULT_API_PORT, ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=list)


class AppConfig(BaseModel):
    """Main application configuration for zkauth.

    Attributes:
        identity: Identity provider settings (trusted issuer).
        session: Session token settings (secret, TTLs, rotation bound).
        storage: Account storage backend.
        oracles: Derivation oracle and proof gateway endpoints.
        logging: Log directory and level.
        api: HTTP API server settings.
    """

    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    oracles: OracleConfig = Field(default_factory=OracleConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    model_config = {"extra": "ignore"}  # Ignore unknown fields for forward compat

    def save_to_file(self, config_path: Path) -> None:
        """Write configuration as JSON (0600; the file may hold the signing secret).

        Args:
            config_path: Destination; parent directories are created.
        """
        atomic_write_json(config_path, self.model_dump(mode="json"))

    @classmethod
    def load_from_file(cls, config_path: Path) -> "AppConfig":
        """Load configuration from JSON file.

        Args:
            config_path: Path to the config JSON file.

        Returns:
            AppConfig instance with loaded configuration.

        Raises:
            ConfigurationError: If the file is missing, not JSON, or invalid.
        """
        try:
            return load_validated_json(
                config_path,
                cls,
                file_type="config",
                recovery_hint="Run 'zkauth config init' to reconfigure.",
            )
        except (FileNotFoundError, ValueError) as e:
            raise ConfigurationError(str(e)) from e
