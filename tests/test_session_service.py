"""Tests for session issuance and resolution."""

import asyncio
import re

import pytest

from pi_paywall.adapters.memory_store import InMemoryStore
from pi_paywall.domain.errors import AuthError
from pi_paywall.services.sessions import SessionService, generate_id
from pi_paywall.services.verification import (
    PseudonymousAuthVerifier,
    pseudonymous_user_id,
)


@pytest.fixture
def service(store: InMemoryStore) -> SessionService:
    return SessionService(store=store, auth_verifier=PseudonymousAuthVerifier())


def test_login_persists_session_for_verified_user(
    service: SessionService, store: InMemoryStore
) -> None:
    session_id = asyncio.run(service.login("tok-1"))

    assert re.fullmatch(r"sess_[0-9a-f]{32}", session_id)
    assert store.sessions[session_id].user_id == pseudonymous_user_id("tok-1")
    assert service.resolve(session_id) == pseudonymous_user_id("tok-1")


def test_each_login_opens_a_new_session(service: SessionService) -> None:
    first = asyncio.run(service.login("tok-1"))
    second = asyncio.run(service.login("tok-1"))

    assert first != second
    assert service.resolve(first) == service.resolve(second)


def test_login_rejects_empty_token(
    service: SessionService, store: InMemoryStore
) -> None:
    with pytest.raises(AuthError) as excinfo:
        asyncio.run(service.login(""))

    assert excinfo.value.message == "Invalid token"
    assert store.sessions == {}


@pytest.mark.parametrize("session_id", [None, "", "sess_unknown"])
def test_resolve_rejects_unknown_sessions(
    service: SessionService, session_id: str | None
) -> None:
    with pytest.raises(AuthError) as excinfo:
        service.resolve(session_id)

    assert excinfo.value.status_code == 401
    assert excinfo.value.message == "Invalid session"


def test_generate_id_uses_prefix_and_random_hex() -> None:
    ids = {generate_id("pay") for _ in range(50)}

    assert len(ids) == 50
    assert all(re.fullmatch(r"pay_[0-9a-f]{32}", value) for value in ids)
