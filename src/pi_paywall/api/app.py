"""FastAPI application factory."""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from pi_paywall.api.admin import router as admin_router
from pi_paywall.api.errors import register_error_handlers
from pi_paywall.api.models import (
    ConfirmPaymentRequest,
    CreatePaymentRequest,
    LoginRequest,
    SessionRequest,
)
from pi_paywall.app_logging import configure_logging
from pi_paywall.containers import AppContainer
from pi_paywall.domain.errors import AuthError
from pi_paywall.domain.models import serialize_receipt


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    register_error_handlers(app)
    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, bool]:
        """Simple health check endpoint."""
        return {"ok": True}

    @app.post("/api/auth/login")
    async def login(body: LoginRequest, request: Request) -> dict[str, str]:
        """Exchange an identity token for a session id."""
        state_container: AppContainer = request.app.state.container
        session_id = await state_container.session_service.login(body.id_token or "")
        return {"sessionId": session_id}

    @app.post("/api/payments/create")
    async def create_payment(
        body: CreatePaymentRequest, request: Request
    ) -> dict[str, object]:
        """Create a payment receipt, idempotent per key."""
        state_container: AppContainer = request.app.state.container
        receipt = state_container.payment_lifecycle.create(
            session_id=body.session_id,
            amount=body.amount,
            idempotency_key=body.idempotency_key,
        )
        return serialize_receipt(receipt)

    @app.post("/api/payments/confirm")
    async def confirm_payment(
        body: ConfirmPaymentRequest, request: Request
    ) -> dict[str, object]:
        """Confirm a payment with the processor."""
        state_container: AppContainer = request.app.state.container
        receipt = await state_container.payment_lifecycle.confirm(
            session_id=body.session_id,
            payment_id=body.payment_id,
            idempotency_key=body.idempotency_key,
        )
        return serialize_receipt(receipt)

    @app.post("/api/webhooks/pi")
    async def payment_webhook(request: Request) -> dict[str, bool]:
        """Accept signed notifications from the payment processor."""
        state_container: AppContainer = request.app.state.container
        raw_body = await request.body()
        signature = request.headers.get("x-signature")
        if not state_container.webhook_authenticator.verify(raw_body, signature):
            logger.warning("Rejected webhook with invalid signature")
            raise AuthError("Invalid signature")
        logger.info("Webhook received", extra={"event": _event_type(raw_body)})
        return {"ok": True}

    @app.post("/api/me/receipts")
    async def my_receipts(
        body: SessionRequest, request: Request
    ) -> list[dict[str, object]]:
        """Return the caller's receipts, newest first."""
        state_container: AppContainer = request.app.state.container
        receipts = state_container.payment_lifecycle.list_mine(body.session_id)
        return [serialize_receipt(receipt) for receipt in receipts]

    @app.post("/api/protected")
    async def protected(body: SessionRequest, request: Request) -> dict[str, str]:
        """Return content reserved for users with an approved payment."""
        state_container: AppContainer = request.app.state.container
        return state_container.payment_lifecycle.protected_content(body.session_id)

    if container.settings.environment == "local":

        @app.get("/_debug/env")
        async def debug_env(request: Request) -> dict[str, object]:
            """Expose runtime flags for local debugging; never secrets."""
            state_container: AppContainer = request.app.state.container
            settings = state_container.settings
            return {
                "strictVerify": settings.pi_strict_verify,
                "piApiBaseSet": bool(settings.pi_api_base),
                "piApiSecretSet": bool(settings.pi_api_secret),
                "storeBackend": type(state_container.store).__name__,
                "sqlitePath": settings.sqlite_path,
                "confirmOneShot": settings.confirm_one_shot,
            }

    return app


def _event_type(raw_body: bytes) -> str | None:
    """Return the notification's event type, if the body names one."""
    try:
        payload = json.loads(raw_body or b"{}")
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    event = payload.get("type") or payload.get("event")
    return str(event) if event is not None else None
