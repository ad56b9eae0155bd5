"""Tests for session issuance.

Tests cover:
- First login creates the account, later logins increment counters
- Concurrent first logins create exactly one account
- Counters and refresh token commit together on login
- Bounded refresh token list (oldest evicted)
- Rejections leave no side effects
- Address and wallet checks for returning accounts
"""

from __future__ import annotations

import asyncio
from typing import Callable

import pytest

from zkauth.exceptions import (
    AccountInactiveOrMissingError,
    AddressMismatchError,
    EmailTakenError,
    MalformedTokenError,
    OracleUnavailable,
    RefreshTokenRevokedError,
    RepositoryUnavailable,
    UntrustedIssuerError,
    WalletAddressMismatchError,
)
from zkauth.sessions.issuer import SessionIssuer
from zkauth.sessions.verifier import SessionVerifier
from zkauth.storage.memory import InMemoryAccountRepository


class TestFirstAndReturningLogin:
    """Tests for account creation and login counters."""

    @pytest.mark.asyncio
    async def test_first_login_creates_account(
        self,
        issuer: SessionIssuer,
        make_id_token: Callable[..., str],
        wallet_for: Callable[[str, str], str],
    ) -> None:
        # Act
        result = await issuer.issue(make_id_token(), wallet_for("u1", "s1"), "s1")

        # Assert
        assert result.created is True
        assert result.account.login_count == 1
        assert result.account.wallet_address == wallet_for("u1", "s1")
        assert result.account.audience == "client-1"
        assert len(result.account.refresh_tokens) == 1
        assert result.account.refresh_tokens[0].token == result.refresh_token

    @pytest.mark.asyncio
    async def test_second_login_increments_count(
        self,
        issuer: SessionIssuer,
        make_id_token: Callable[..., str],
        wallet_for: Callable[[str, str], str],
    ) -> None:
        wallet = wallet_for("u1", "s1")
        first = await issuer.issue(make_id_token(), wallet, "s1")

        second = await issuer.issue(make_id_token(), wallet, "s1")

        assert second.created is False
        assert second.account.id == first.account.id
        assert second.account.login_count == 2
        assert second.account.last_login_at >= first.account.last_login_at

    @pytest.mark.asyncio
    async def test_wallet_case_is_ignored(
        self,
        issuer: SessionIssuer,
        make_id_token: Callable[..., str],
        wallet_for: Callable[[str, str], str],
    ) -> None:
        wallet = wallet_for("u1", "s1")
        await issuer.issue(make_id_token(), wallet, "s1")

        result = await issuer.issue(make_id_token(), "0x" + wallet[2:].upper(), "s1")

        assert result.account.login_count == 2

    @pytest.mark.asyncio
    async def test_name_defaults_to_email(
        self,
        issuer: SessionIssuer,
        make_id_token: Callable[..., str],
        wallet_for: Callable[[str, str], str],
    ) -> None:
        result = await issuer.issue(make_id_token(), wallet_for("u1", "s1"), "s1")

        assert result.account.name == "user@example.com"

    @pytest.mark.asyncio
    async def test_profile_claims_and_audience_override(
        self,
        issuer: SessionIssuer,
        make_id_token: Callable[..., str],
        wallet_for: Callable[[str, str], str],
    ) -> None:
        token = make_id_token(name="Ada", picture="https://img.example.com/a.png")

        result = await issuer.issue(token, wallet_for("u1", "s1"), "s1", audience="mobile")

        assert result.account.name == "Ada"
        assert result.account.picture == "https://img.example.com/a.png"
        assert result.account.audience == "mobile"

    @pytest.mark.asyncio
    async def test_concurrent_first_logins_create_one_account(
        self,
        issuer: SessionIssuer,
        repository: InMemoryAccountRepository,
        make_id_token: Callable[..., str],
        wallet_for: Callable[[str, str], str],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Every racer misses the subject lookup, then all contend on creation."""
        # Arrange
        wallet = wallet_for("u1", "s1")
        create_if_absent = repository.create_if_absent
        creation_attempts: list[str] = []

        async def contended_create(candidate):
            creation_attempts.append(candidate.subject_id)
            await asyncio.sleep(0)
            return await create_if_absent(candidate)

        monkeypatch.setattr(repository, "create_if_absent", contended_create)

        # Act
        results = await asyncio.gather(*(issuer.issue(make_id_token(), wallet, "s1") for _ in range(5)))

        # Assert
        assert len(creation_attempts) == 5
        assert sum(r.created for r in results) == 1
        assert len({r.account.id for r in results}) == 1
        accounts = await repository.list_accounts()
        assert len(accounts) == 1
        assert accounts[0].login_count == 5
        assert len(accounts[0].refresh_tokens) == 5
        assert {e.token for e in accounts[0].refresh_tokens} == {r.refresh_token for r in results}

    @pytest.mark.asyncio
    async def test_failed_token_commit_leaves_login_counters(
        self,
        issuer: SessionIssuer,
        repository: InMemoryAccountRepository,
        make_id_token: Callable[..., str],
        wallet_for: Callable[[str, str], str],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A returning login whose storage write fails changes nothing."""
        # Arrange
        wallet = wallet_for("u1", "s1")
        first = await issuer.issue(make_id_token(), wallet, "s1")

        def failing_persist(accounts) -> None:
            raise RepositoryUnavailable("disk full")

        monkeypatch.setattr(repository, "_persist", failing_persist)

        # Act
        with pytest.raises(RepositoryUnavailable):
            await issuer.issue(make_id_token(), wallet, "s1")

        # Assert
        stored = await repository.find_by_id(first.account.id)
        assert stored.login_count == 1
        assert stored.last_login_at == first.account.last_login_at
        assert [e.token for e in stored.refresh_tokens] == [first.refresh_token]

    @pytest.mark.asyncio
    async def test_deactivation_before_commit_leaves_login_counters(
        self,
        issuer: SessionIssuer,
        repository: InMemoryAccountRepository,
        make_id_token: Callable[..., str],
        wallet_for: Callable[[str, str], str],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Account deactivated between the lookup and the login commit."""
        wallet = wallet_for("u1", "s1")
        first = await issuer.issue(make_id_token(), wallet, "s1")
        record_login = repository.record_login

        async def deactivate_first(account_id, at, entry=None):
            await repository.deactivate(account_id)
            return await record_login(account_id, at, entry)

        monkeypatch.setattr(repository, "record_login", deactivate_first)

        with pytest.raises(AccountInactiveOrMissingError):
            await issuer.issue(make_id_token(), wallet, "s1")

        stored = await repository.find_by_id(first.account.id, include_inactive=True)
        assert stored.login_count == 1
        assert stored.refresh_tokens == []


class TestRefreshTokenBound:
    @pytest.mark.asyncio
    async def test_sixth_login_evicts_oldest_refresh_token(
        self,
        issuer: SessionIssuer,
        verifier: SessionVerifier,
        make_id_token: Callable[..., str],
        wallet_for: Callable[[str, str], str],
    ) -> None:
        """Six logins keep five refresh tokens; the first one is revoked."""
        wallet = wallet_for("u1", "s1")
        results = [await issuer.issue(make_id_token(), wallet, "s1") for _ in range(6)]

        assert len(results[-1].account.refresh_tokens) == 5
        with pytest.raises(RefreshTokenRevokedError):
            await verifier.verify_refresh(results[0].refresh_token)
        for result in results[1:]:
            account, _ = await verifier.verify_refresh(result.refresh_token)
            assert account.id == results[0].account.id


class TestRejectionsHaveNoSideEffects:
    """Rejected issuance never creates or mutates an account."""

    @pytest.mark.asyncio
    async def test_malformed_token_skips_oracle_and_storage(
        self,
        issuer: SessionIssuer,
        oracle,
        repository: InMemoryAccountRepository,
    ) -> None:
        with pytest.raises(MalformedTokenError):
            await issuer.issue("not-a-token", "0xabc", "s1")

        assert oracle.calls == []
        assert await repository.list_accounts() == []

    @pytest.mark.asyncio
    async def test_untrusted_issuer(
        self,
        issuer: SessionIssuer,
        repository: InMemoryAccountRepository,
        make_id_token: Callable[..., str],
    ) -> None:
        with pytest.raises(UntrustedIssuerError):
            await issuer.issue(make_id_token(iss="https://evil.example.com"), "0xabc", "s1")

        assert await repository.list_accounts() == []

    @pytest.mark.asyncio
    async def test_new_account_with_wrong_wallet(
        self,
        issuer: SessionIssuer,
        repository: InMemoryAccountRepository,
        make_id_token: Callable[..., str],
    ) -> None:
        with pytest.raises(WalletAddressMismatchError):
            await issuer.issue(make_id_token(), "0x" + "0" * 64, "s1")

        assert await repository.list_accounts() == []

    @pytest.mark.asyncio
    async def test_returning_account_with_wrong_wallet(
        self,
        issuer: SessionIssuer,
        repository: InMemoryAccountRepository,
        make_id_token: Callable[..., str],
        wallet_for: Callable[[str, str], str],
    ) -> None:
        # Arrange
        first = await issuer.issue(make_id_token(), wallet_for("u1", "s1"), "s1")

        # Act
        with pytest.raises(WalletAddressMismatchError):
            await issuer.issue(make_id_token(), "0x" + "0" * 64, "s1")

        # Assert
        stored = await repository.find_by_id(first.account.id)
        assert stored.login_count == 1
        assert len(stored.refresh_tokens) == 1
        assert stored.last_login_at == first.account.last_login_at

    @pytest.mark.asyncio
    async def test_returning_account_with_wrong_salt(
        self,
        issuer: SessionIssuer,
        repository: InMemoryAccountRepository,
        make_id_token: Callable[..., str],
        wallet_for: Callable[[str, str], str],
    ) -> None:
        """A different salt derives a different address than the stored one."""
        wallet = wallet_for("u1", "s1")
        first = await issuer.issue(make_id_token(), wallet, "s1")

        with pytest.raises(AddressMismatchError):
            await issuer.issue(make_id_token(), wallet, "other-salt")

        stored = await repository.find_by_id(first.account.id)
        assert stored.login_count == 1
        assert stored.salt == "s1"

    @pytest.mark.asyncio
    async def test_email_taken_by_other_subject(
        self,
        issuer: SessionIssuer,
        repository: InMemoryAccountRepository,
        make_id_token: Callable[..., str],
        wallet_for: Callable[[str, str], str],
    ) -> None:
        await issuer.issue(make_id_token(sub="u1"), wallet_for("u1", "s1"), "s1")

        with pytest.raises(EmailTakenError):
            await issuer.issue(make_id_token(sub="u2"), wallet_for("u2", "s2"), "s2")

        assert len(await repository.list_accounts()) == 1

    @pytest.mark.asyncio
    async def test_deactivated_account_cannot_log_in(
        self,
        issuer: SessionIssuer,
        repository: InMemoryAccountRepository,
        make_id_token: Callable[..., str],
        wallet_for: Callable[[str, str], str],
    ) -> None:
        wallet = wallet_for("u1", "s1")
        first = await issuer.issue(make_id_token(), wallet, "s1")
        await repository.deactivate(first.account.id)

        with pytest.raises(AccountInactiveOrMissingError):
            await issuer.issue(make_id_token(), wallet, "s1")

        stored = await repository.find_by_id(first.account.id, include_inactive=True)
        assert stored.login_count == 1

    @pytest.mark.asyncio
    async def test_oracle_failure_propagates(
        self,
        issuer: SessionIssuer,
        oracle,
        repository: InMemoryAccountRepository,
        make_id_token: Callable[..., str],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        async def broken(subject_id: str, salt: str) -> str:
            raise OracleUnavailable("down")

        monkeypatch.setattr(oracle, "derive", broken)

        with pytest.raises(OracleUnavailable):
            await issuer.issue(make_id_token(), "0xabc", "s1")

        assert await repository.list_accounts() == []
