"""Tests for the /api/auth and /api/users endpoints.

Exercises the full app (routes, dependencies, exception handlers) with an
in-memory repository and the fake derivation oracle via FastAPI TestClient.
"""

from __future__ import annotations

from typing import Any, Callable
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from zkauth.api.server import create_app
from zkauth.config import AppConfig, StorageConfig
from zkauth.exceptions import OracleUnavailable, RepositoryUnavailable
from zkauth.sessions.service import SessionService

OTHER_WALLET = "0x" + "0" * 64


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def app(service: SessionService) -> FastAPI:
    """Create the full app around the shared test service."""
    return create_app(AppConfig(storage=StorageConfig(backend="memory")), service=service)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create a test client."""
    return TestClient(app)


@pytest.fixture
def login_body(
    make_id_token: Callable[..., str], wallet_for: Callable[[str, str], str]
) -> Callable[..., dict[str, Any]]:
    def _body(sub: str = "u1", salt: str = "s1", **token_claims: Any) -> dict[str, Any]:
        return {
            "jwt": make_id_token(sub=sub, **token_claims),
            "walletAddress": wallet_for(sub, salt),
            "userSalt": salt,
        }

    return _body


@pytest.fixture
def session(client: TestClient, login_body) -> dict[str, Any]:
    """Log in once and return the response JSON."""
    response = client.post("/api/auth/zklogin", json=login_body())
    assert response.status_code == 200
    return response.json()


def _auth(session: dict[str, Any]) -> dict[str, str]:
    return {"Authorization": f"Bearer {session['tokens']['accessToken']}"}


# =============================================================================
# POST /api/auth/zklogin
# =============================================================================


class TestZkLogin:
    """Tests for POST /api/auth/zklogin."""

    def test_first_login_creates_account(self, client: TestClient, login_body) -> None:
        # Act
        response = client.post("/api/auth/zklogin", json=login_body())

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["created"] is True
        assert data["message"] == "Account created successfully"
        assert data["user"]["loginCount"] == 1
        assert data["user"]["email"] == "user@example.com"
        assert "salt" not in data["user"]
        assert "userSalt" not in data["user"]
        assert data["tokens"]["tokenType"] == "Bearer"
        assert data["tokens"]["expiresIn"] == 15 * 60

    def test_second_login(self, client: TestClient, login_body, session: dict[str, Any]) -> None:
        response = client.post("/api/auth/zklogin", json=login_body())

        data = response.json()
        assert data["created"] is False
        assert data["message"] == "Login successful"
        assert data["user"]["loginCount"] == 2
        assert data["user"]["id"] == session["user"]["id"]

    def test_wallet_mismatch_is_400(self, client: TestClient, login_body) -> None:
        body = login_body()
        body["walletAddress"] = OTHER_WALLET

        response = client.post("/api/auth/zklogin", json=body)

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "WALLET_ADDRESS_MISMATCH"

    def test_untrusted_issuer_is_400(self, client: TestClient, login_body) -> None:
        response = client.post(
            "/api/auth/zklogin", json=login_body(iss="https://evil.example.com")
        )

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "UNTRUSTED_ISSUER"

    def test_email_taken_is_409(self, client: TestClient, login_body, session: dict[str, Any]) -> None:
        response = client.post("/api/auth/zklogin", json=login_body(sub="u2", salt="s2"))

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "EMAIL_TAKEN"

    def test_bad_wallet_format_is_validation_error(self, client: TestClient, login_body) -> None:
        body = login_body()
        body["walletAddress"] = "not-an-address"

        response = client.post("/api/auth/zklogin", json=body)

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["code"] == "VALIDATION_ERROR"
        assert "walletAddress" in detail["message"]

    def test_missing_fields(self, client: TestClient) -> None:
        response = client.post("/api/auth/zklogin", json={})

        assert response.status_code == 400
        assert len(response.json()["detail"]["validation_errors"]) == 3

    def test_oracle_failure_is_503(self, client: TestClient, login_body, oracle) -> None:
        with patch.object(oracle, "derive", AsyncMock(side_effect=OracleUnavailable("down"))):
            response = client.post("/api/auth/zklogin", json=login_body())

        assert response.status_code == 503
        assert response.json()["detail"]["code"] == "ORACLE_UNAVAILABLE"

    def test_storage_failure_is_503(self, client: TestClient, login_body, repository) -> None:
        with patch.object(
            repository, "push_refresh_token", AsyncMock(side_effect=RepositoryUnavailable("io"))
        ):
            response = client.post("/api/auth/zklogin", json=login_body())

        assert response.status_code == 503
        assert response.json()["detail"]["code"] == "STORAGE_UNAVAILABLE"

    def test_storage_failure_on_returning_login_keeps_count(
        self, client: TestClient, login_body, repository, session: dict[str, Any]
    ) -> None:
        # Arrange
        def failing_persist(accounts) -> None:
            raise RepositoryUnavailable("io")

        # Act
        with patch.object(repository, "_persist", failing_persist):
            response = client.post("/api/auth/zklogin", json=login_body())
        profile = client.get("/api/auth/profile", headers=_auth(session))

        # Assert
        assert response.status_code == 503
        assert profile.json()["loginCount"] == 1
        assert profile.json()["lastLoginAt"] == session["user"]["lastLoginAt"]


# =============================================================================
# POST /api/auth/wallet-address
# =============================================================================


class TestWalletAddress:
    def test_returns_address_and_salt(
        self, client: TestClient, make_id_token, session: dict[str, Any]
    ) -> None:
        response = client.post("/api/auth/wallet-address", json={"jwt": make_id_token()})

        assert response.status_code == 200
        data = response.json()
        assert data["walletAddress"] == session["user"]["walletAddress"]
        assert data["userSalt"] == "s1"

    def test_unknown_user_is_404(self, client: TestClient, make_id_token) -> None:
        response = client.post("/api/auth/wallet-address", json={"jwt": make_id_token()})

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "ACCOUNT_NOT_FOUND"


# =============================================================================
# POST /api/auth/refresh and /api/auth/logout
# =============================================================================


class TestRefreshAndLogout:
    """Rotation, replay, and revocation over HTTP."""

    def test_refresh_rotates(self, client: TestClient, session: dict[str, Any]) -> None:
        refresh_token = session["tokens"]["refreshToken"]

        first = client.post("/api/auth/refresh", json={"refreshToken": refresh_token})
        replay = client.post("/api/auth/refresh", json={"refreshToken": refresh_token})

        assert first.status_code == 200
        assert first.json()["message"] == "Token refreshed successfully"
        assert first.json()["tokens"]["refreshToken"] != refresh_token
        assert replay.status_code == 401
        assert replay.json()["detail"]["code"] == "REFRESH_TOKEN_REVOKED"
        assert replay.headers["www-authenticate"] == "Bearer"

    def test_refresh_with_garbage(self, client: TestClient) -> None:
        response = client.post("/api/auth/refresh", json={"refreshToken": "garbage"})

        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "INVALID_TOKEN"

    def test_logout_single_device(self, client: TestClient, session: dict[str, Any]) -> None:
        refresh_token = session["tokens"]["refreshToken"]

        response = client.post(
            "/api/auth/logout", json={"refreshToken": refresh_token}, headers=_auth(session)
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Logged out successfully"
        refreshed = client.post("/api/auth/refresh", json={"refreshToken": refresh_token})
        assert refreshed.status_code == 401

    def test_logout_all_keeps_access_token_valid(
        self, client: TestClient, login_body, session: dict[str, Any]
    ) -> None:
        other = client.post("/api/auth/zklogin", json=login_body()).json()

        response = client.post("/api/auth/logout", json={"logoutAll": True}, headers=_auth(session))

        assert response.json()["message"] == "Logged out from all devices"
        for s in (session, other):
            refreshed = client.post("/api/auth/refresh", json={"refreshToken": s["tokens"]["refreshToken"]})
            assert refreshed.status_code == 401
        assert client.get("/api/auth/profile", headers=_auth(session)).status_code == 200

    def test_logout_without_body(self, client: TestClient, session: dict[str, Any]) -> None:
        response = client.post("/api/auth/logout", headers=_auth(session))

        assert response.status_code == 200

    def test_logout_requires_bearer(self, client: TestClient) -> None:
        response = client.post("/api/auth/logout", json={})

        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "AUTH_REQUIRED"


# =============================================================================
# Profile, verify-wallet, stats
# =============================================================================


class TestProfile:
    def test_get_profile(self, client: TestClient, session: dict[str, Any]) -> None:
        response = client.get("/api/auth/profile", headers=_auth(session))

        assert response.status_code == 200
        assert response.json()["id"] == session["user"]["id"]

    def test_invalid_bearer(self, client: TestClient) -> None:
        response = client.get("/api/auth/profile", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "INVALID_TOKEN"

    def test_update_profile(self, client: TestClient, session: dict[str, Any]) -> None:
        response = client.put(
            "/api/auth/profile",
            json={"name": "Ada", "preferences": {"theme": "dark", "notifications": {"push": False}}},
            headers=_auth(session),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Ada"
        assert data["preferences"]["theme"] == "dark"
        assert data["preferences"]["notifications"] == {"email": True, "push": False}
        assert data["walletAddress"] == session["user"]["walletAddress"]

    def test_update_profile_rejects_long_name(self, client: TestClient, session: dict[str, Any]) -> None:
        response = client.put("/api/auth/profile", json={"name": "x" * 101}, headers=_auth(session))

        assert response.status_code == 400

    def test_verify_wallet(self, client: TestClient, session: dict[str, Any]) -> None:
        wallet = session["user"]["walletAddress"]

        ok = client.post("/api/auth/verify-wallet", json={"walletAddress": wallet}, headers=_auth(session))
        bad = client.post(
            "/api/auth/verify-wallet", json={"walletAddress": OTHER_WALLET}, headers=_auth(session)
        )

        assert ok.status_code == 200
        assert ok.json()["verified"] is True
        assert bad.status_code == 400
        assert bad.json()["detail"]["code"] == "WALLET_ADDRESS_MISMATCH"

    def test_stats(self, client: TestClient, session: dict[str, Any]) -> None:
        response = client.get("/api/auth/stats", headers=_auth(session))

        data = response.json()
        assert data["loginCount"] == 1
        assert data["activeSessions"] == 1
        assert data["accountAgeDays"] == 0

    def test_proof_without_gateway_is_503(self, client: TestClient, session: dict[str, Any]) -> None:
        body = {
            "jwt": "t",
            "extendedEphemeralPublicKey": "epk",
            "maxEpoch": 10,
            "jwtRandomness": "r",
            "salt": "s1",
        }

        response = client.post("/api/auth/proof", json=body, headers=_auth(session))

        assert response.status_code == 503
        assert response.json()["detail"]["code"] == "PROOF_UNAVAILABLE"

    def test_proof_with_foreign_salt_is_400(self, client: TestClient, session: dict[str, Any]) -> None:
        body = {
            "jwt": "t",
            "extendedEphemeralPublicKey": "epk",
            "maxEpoch": 10,
            "jwtRandomness": "r",
            "salt": "not-my-salt",
        }

        response = client.post("/api/auth/proof", json=body, headers=_auth(session))

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "ADDRESS_MISMATCH"


# =============================================================================
# /api/users and health
# =============================================================================


class TestUsersAndHealth:
    def test_wallet_lookup(self, client: TestClient, session: dict[str, Any]) -> None:
        wallet = session["user"]["walletAddress"]

        response = client.get(f"/api/users/wallet/{wallet}")

        assert response.status_code == 200
        data = response.json()
        assert data["walletAddress"] == wallet
        assert "email" not in data

    def test_wallet_lookup_unknown(self, client: TestClient) -> None:
        response = client.get(f"/api/users/wallet/{OTHER_WALLET}")

        assert response.status_code == 404

    def test_wallet_lookup_bad_format(self, client: TestClient) -> None:
        response = client.get("/api/users/wallet/0x123")

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    def test_health(self, client: TestClient) -> None:
        response = client.get("/api/auth/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["service"] == "zkauth"
