"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from pi_paywall.adapters.pi_platform_client import HttpxPiPlatformClient
from pi_paywall.adapters.store_factory import build_store
from pi_paywall.config import Settings
from pi_paywall.services.admin import AdminService
from pi_paywall.services.payments import PaymentLifecycle
from pi_paywall.services.persistence import PersistenceAdapter
from pi_paywall.services.sessions import SessionService
from pi_paywall.services.verification import (
    build_auth_verifier,
    build_payment_verifier,
)
from pi_paywall.services.webhooks import WebhookAuthenticator


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    store: PersistenceAdapter
    session_service: SessionService
    payment_lifecycle: PaymentLifecycle
    webhook_authenticator: WebhookAuthenticator
    admin_service: AdminService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    store = build_store(resolved_settings)
    platform_client = (
        HttpxPiPlatformClient.create(
            base_url=resolved_settings.pi_api_base,
            api_secret=resolved_settings.pi_api_secret,
        )
        if resolved_settings.platform_configured
        else None
    )
    session_service = SessionService(
        store=store,
        auth_verifier=build_auth_verifier(resolved_settings, platform_client),
    )
    payment_lifecycle = PaymentLifecycle(
        store=store,
        session_service=session_service,
        payment_verifier=build_payment_verifier(resolved_settings, platform_client),
        one_shot_confirm=resolved_settings.confirm_one_shot,
    )
    webhook_authenticator = WebhookAuthenticator(resolved_settings.webhook_secret)
    admin_service = AdminService(store)

    async def close_resources() -> None:
        if platform_client is not None:
            await platform_client.close()
        store.close()

    return AppContainer(
        settings=resolved_settings,
        store=store,
        session_service=session_service,
        payment_lifecycle=payment_lifecycle,
        webhook_authenticator=webhook_authenticator,
        admin_service=admin_service,
        close_resources=close_resources,
    )
