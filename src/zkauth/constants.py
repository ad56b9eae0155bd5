"""Application-wide constants for zkauth.

Constants that define application behavior.
For user-configurable settings per deployment, see config.py.
"""

__all__ = [
    # Application identity
    "APP_NAME",
    # Identity provider
    "DEFAULT_TRUSTED_ISSUER",
    "DEFAULT_KEY_CLAIM_NAME",
    # Session tokens
    "DEFAULT_TOKEN_ISSUER",
    "DEFAULT_TOKEN_AUDIENCE",
    "DEFAULT_SIGNING_ALGORITHM",
    "ACCESS_TOKEN_TTL_SECONDS",
    "REFRESH_TOKEN_TTL_SECONDS",
    "MAX_REFRESH_TOKENS",
    "MIN_SIGNING_SECRET_LENGTH",
    "TOKEN_TYPE_ACCESS",
    "TOKEN_TYPE_REFRESH",
    # External oracles
    "DEFAULT_ORACLE_TIMEOUT_SECONDS",
    # API server
    "DEFAULT_API_HOST",
    "DEFAULT_API_PORT",
    # Environment
    "SIGNING_SECRET_ENV_VAR",
    "CONFIG_PATH_ENV_VAR",
    # Wallet address format
    "WALLET_ADDRESS_PATTERN",
    # Account administration
    "ACCOUNT_SEARCH_LIMIT",
    "RECENT_SIGNUP_WINDOW",
    "RECENT_LOGIN_WINDOW",
]

from datetime import timedelta

# =============================================================================
# Application identity
# =============================================================================

APP_NAME = "zkauth"

# =============================================================================
# Identity provider
# =============================================================================

# The single issuer whose identity tokens are accepted
DEFAULT_TRUSTED_ISSUER = "https://accounts.google.com"

# Claim the prover uses to derive the address seed
DEFAULT_KEY_CLAIM_NAME = "sub"

# =============================================================================
# Session tokens
# =============================================================================

DEFAULT_TOKEN_ISSUER = "zklogin-backend"
DEFAULT_TOKEN_AUDIENCE = "zklogin-frontend"
DEFAULT_SIGNING_ALGORITHM = "HS256"

ACCESS_TOKEN_TTL_SECONDS = 15 * 60  # 15 minutes
REFRESH_TOKEN_TTL_SECONDS = 7 * 24 * 60 * 60  # 7 days

# Bounded rotation: oldest refresh token is evicted past this count
MAX_REFRESH_TOKENS = 5

# HS256 secrets shorter than the digest size are rejected at config load
MIN_SIGNING_SECRET_LENGTH = 32

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"

# =============================================================================
# External oracles (address derivation, proof acquisition)
# =============================================================================

DEFAULT_ORACLE_TIMEOUT_SECONDS = 10

# =============================================================================
# API server
# =============================================================================

DEFAULT_API_HOST = "127.0.0.1"
DEFAULT_API_PORT = 5000

# =============================================================================
# Environment
# =============================================================================

SIGNING_SECRET_ENV_VAR = "ZKAUTH_SIGNING_SECRET"
CONFIG_PATH_ENV_VAR = "ZKAUTH_CONFIG"

# Sui addresses: 0x followed by 32 bytes hex
WALLET_ADDRESS_PATTERN = r"^0x[a-fA-F0-9]{64}$"

# =============================================================================
# Account administration
# =============================================================================

ACCOUNT_SEARCH_LIMIT = 20
RECENT_SIGNUP_WINDOW = timedelta(days=30)
RECENT_LOGIN_WINDOW = timedelta(days=7)
