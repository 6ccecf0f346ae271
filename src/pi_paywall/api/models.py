"""Pydantic models for JSON request bodies.

Fields are optional so the services decide between 401 and 400 in the
documented order: session first, then required fields.
"""

from pydantic import BaseModel, ConfigDict, Field


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class LoginRequest(_Body):
    """Body of ``/api/auth/login``."""

    id_token: str | None = Field(default=None, alias="idToken")


class SessionRequest(_Body):
    """Body of endpoints that only carry a session."""

    session_id: str | None = Field(default=None, alias="sessionId")


class CreatePaymentRequest(SessionRequest):
    """Body of ``/api/payments/create``."""

    amount: float | None = None
    idempotency_key: str | None = Field(default=None, alias="idempotencyKey")


class ConfirmPaymentRequest(SessionRequest):
    """Body of ``/api/payments/confirm``."""

    payment_id: str | None = Field(default=None, alias="paymentId")
    idempotency_key: str | None = Field(default=None, alias="idempotencyKey")
