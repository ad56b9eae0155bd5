"""Shared fixtures for zkauth tests.

Provides:
- A deterministic fake derivation oracle
- Identity token minting (unsigned-trust tokens, as the provider would send)
- Wired repository, codec, issuer, and service instances
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import jwt
import pytest

from zkauth.identity.address import AddressBinder
from zkauth.identity.claims import ClaimExtractor
from zkauth.sessions.issuer import SessionIssuer
from zkauth.sessions.service import SessionService
from zkauth.sessions.tokens import SessionTokenCodec
from zkauth.sessions.verifier import SessionVerifier
from zkauth.storage.memory import InMemoryAccountRepository
from zkauth.telemetry.audit.auth_logger import create_auth_logger

TRUSTED_ISSUER = "https://accounts.google.com"
SIGNING_SECRET = "test-signing-secret-that-is-long-enough-0123456789"
PROVIDER_KEY = "provider-key-not-checked-by-zkauth"


class FakeDerivationOracle:
    """Deterministic oracle: address = 0x + sha256(subject:salt).

    Records every call so tests can assert derivation happened (or not).
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.overrides: dict[tuple[str, str], str] = {}

    @staticmethod
    def address_for(subject_id: str, salt: str) -> str:
        return "0x" + hashlib.sha256(f"{subject_id}:{salt}".encode()).hexdigest()

    async def derive(self, subject_id: str, salt: str) -> str:
        self.calls.append((subject_id, salt))
        return self.overrides.get((subject_id, salt), self.address_for(subject_id, salt))


@pytest.fixture(autouse=True)
def _no_secret_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's ZKAUTH_* environment out of tests."""
    monkeypatch.delenv("ZKAUTH_SIGNING_SECRET", raising=False)
    monkeypatch.delenv("ZKAUTH_CONFIG", raising=False)


@pytest.fixture
def oracle() -> FakeDerivationOracle:
    return FakeDerivationOracle()


@pytest.fixture
def make_id_token() -> Callable[..., str]:
    """Factory for identity tokens as issued by the provider."""

    def _make(
        sub: str | None = "u1",
        email: str | None = "user@example.com",
        iss: str | None = TRUSTED_ISSUER,
        aud: Any = "client-1",
        **extra: Any,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(hours=1)).timestamp()),
        }
        for name, value in (("sub", sub), ("email", email), ("iss", iss), ("aud", aud)):
            if value is not None:
                payload[name] = value
        payload.update(extra)
        return jwt.encode(payload, PROVIDER_KEY, algorithm="HS256")

    return _make


@pytest.fixture
def repository() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def codec() -> SessionTokenCodec:
    return SessionTokenCodec(SIGNING_SECRET)


@pytest.fixture
def verifier(codec: SessionTokenCodec, repository: InMemoryAccountRepository) -> SessionVerifier:
    return SessionVerifier(codec, repository)


@pytest.fixture
def issuer(
    oracle: FakeDerivationOracle,
    repository: InMemoryAccountRepository,
    codec: SessionTokenCodec,
    verifier: SessionVerifier,
) -> SessionIssuer:
    return SessionIssuer(
        ClaimExtractor(TRUSTED_ISSUER),
        AddressBinder(oracle),
        repository,
        codec,
        verifier,
    )


@pytest.fixture
def service(
    oracle: FakeDerivationOracle,
    repository: InMemoryAccountRepository,
    codec: SessionTokenCodec,
) -> SessionService:
    return SessionService(
        extractor=ClaimExtractor(TRUSTED_ISSUER),
        binder=AddressBinder(oracle),
        repository=repository,
        codec=codec,
        auth_logger=create_auth_logger(None),
    )


@pytest.fixture
def wallet_for() -> Callable[[str, str], str]:
    """Expected wallet address for (subject, salt) under the fake oracle."""
    return FakeDerivationOracle.address_for
