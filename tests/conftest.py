"""Shared test fixtures."""

from dataclasses import dataclass, field

import httpx
import pytest

from pi_paywall.adapters.memory_store import InMemoryStore
from pi_paywall.adapters.pi_platform_client import PiPlatformClient
from pi_paywall.config import Settings
from pi_paywall.containers import AppContainer
from pi_paywall.domain.models import PaymentVerification
from pi_paywall.services.admin import AdminService
from pi_paywall.services.payments import PaymentLifecycle
from pi_paywall.services.persistence import PersistenceAdapter
from pi_paywall.services.sessions import SessionService
from pi_paywall.services.verification import (
    PaymentVerifier,
    build_auth_verifier,
    build_payment_verifier,
)
from pi_paywall.services.webhooks import WebhookAuthenticator

_PLATFORM_URL = "https://pi.test"


@dataclass
class FakePlatformClient(PiPlatformClient):
    """Fake Pi platform with in-memory users and payments."""

    users: dict[str, str] = field(default_factory=dict)
    payments: dict[str, str] = field(default_factory=dict)
    unavailable: bool = False
    payment_calls: list[str] = field(default_factory=list)

    async def verify_auth_token(self, id_token: str) -> dict[str, object]:
        if self.unavailable:
            raise httpx.ConnectTimeout("timed out")
        if id_token not in self.users:
            raise _status_error("POST", "/auth/verify", 401)
        return {"userId": self.users[id_token]}

    async def get_payment(self, payment_id: str) -> dict[str, object]:
        self.payment_calls.append(payment_id)
        if self.unavailable:
            raise httpx.ReadTimeout("timed out")
        if payment_id not in self.payments:
            raise _status_error("GET", f"/payments/{payment_id}", 404)
        return {"identifier": payment_id, "status": self.payments[payment_id]}


@dataclass
class ScriptedPaymentVerifier(PaymentVerifier):
    """Payment verifier returning a fixed decision."""

    approved: bool | None = True
    calls: list[str] = field(default_factory=list)

    async def verify(self, payment_id: str) -> PaymentVerification | None:
        self.calls.append(payment_id)
        if self.approved is None:
            return None
        return PaymentVerification(payment_id=payment_id, approved=self.approved)


def _status_error(method: str, path: str, status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request(method, f"{_PLATFORM_URL}{path}")
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError("platform error", request=request, response=response)


def build_test_container(
    settings: Settings,
    store: PersistenceAdapter,
    platform_client: PiPlatformClient | None = None,
    payment_verifier: PaymentVerifier | None = None,
) -> AppContainer:
    """Wire services the way build_container does, around test doubles."""
    session_service = SessionService(
        store=store,
        auth_verifier=build_auth_verifier(settings, platform_client),
    )
    payment_lifecycle = PaymentLifecycle(
        store=store,
        session_service=session_service,
        payment_verifier=payment_verifier
        or build_payment_verifier(settings, platform_client),
        one_shot_confirm=settings.confirm_one_shot,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        store=store,
        session_service=session_service,
        payment_lifecycle=payment_lifecycle,
        webhook_authenticator=WebhookAuthenticator(settings.webhook_secret),
        admin_service=AdminService(store),
        close_resources=close_resources,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        pi_strict_verify=False,
        pi_api_base="",
        pi_api_secret="",
        webhook_secret="whsec-test",
        admin_user="admin",
        admin_pass="s3cret",
        store_backend="memory",
        environment="test",
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def platform_client() -> FakePlatformClient:
    return FakePlatformClient()


@pytest.fixture
def container(settings: Settings, store: InMemoryStore) -> AppContainer:
    return build_test_container(settings, store)
