"""Identity and payment verification strategies.

Each verifier turns an external call into a plain decision. Provider errors
and timeouts never escape: they are logged and resolved to a reject, or to the
configured permissive fallback.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from pi_paywall.adapters.pi_platform_client import PiPlatformClient
from pi_paywall.config import Settings
from pi_paywall.domain.models import PaymentVerification, ReceiptStatus

_logger = logging.getLogger(__name__)

PSEUDONYM_LENGTH = 16


class AuthVerifier(Protocol):
    """Turns an identity token into a stable user id."""

    async def verify(self, token: str) -> str | None:
        """Return the user id, or None to reject."""


class PaymentVerifier(Protocol):
    """Turns a payment id into an approval decision."""

    async def verify(self, payment_id: str) -> PaymentVerification | None:
        """Return the verification outcome, or None to reject."""


@dataclass
class PseudonymousAuthVerifier(AuthVerifier):
    """Derive a deterministic pseudonymous id from the token itself.

    No trust assertion is made; the same token always maps to the same id.
    """

    async def verify(self, token: str) -> str | None:
        """Hash the token into a truncated hex id."""
        if not token or not isinstance(token, str):
            return None
        return pseudonymous_user_id(token)


@dataclass
class PlatformAuthVerifier(AuthVerifier):
    """Verify identity tokens against the Pi platform."""

    client: PiPlatformClient | None
    fallback: AuthVerifier | None = None

    async def verify(self, token: str) -> str | None:
        """Return the platform's user id, falling back when unavailable."""
        if not token or not isinstance(token, str):
            return None
        if self.client is not None:
            try:
                payload = await self.client.verify_auth_token(token)
            except (httpx.HTTPError, ValueError) as exc:
                _logger.warning(
                    "Identity verification failed (status=%s): %s",
                    _status_code_from_exception(exc),
                    type(exc).__name__,
                )
            else:
                user_id = payload.get("userId") if isinstance(payload, dict) else None
                if isinstance(user_id, str) and user_id:
                    return user_id
                _logger.warning("Identity verification returned no userId")
        if self.fallback is None:
            return None
        return await self.fallback.verify(token)


@dataclass
class DemoPaymentVerifier(PaymentVerifier):
    """Approve every payment. For demonstrations without a platform only."""

    async def verify(self, payment_id: str) -> PaymentVerification | None:
        """Return a synthetic approval."""
        if not payment_id:
            return None
        return PaymentVerification(payment_id=payment_id, approved=True)


@dataclass
class PlatformPaymentVerifier(PaymentVerifier):
    """Verify payments against the Pi platform."""

    client: PiPlatformClient | None
    fallback: PaymentVerifier | None = None

    async def verify(self, payment_id: str) -> PaymentVerification | None:
        """Return the platform's decision, falling back when unavailable."""
        if not payment_id:
            return None
        if self.client is not None:
            try:
                payload = await self.client.get_payment(payment_id)
            except (httpx.HTTPError, ValueError) as exc:
                _logger.warning(
                    "Payment verification failed (payment_id=%s, status=%s): %s",
                    payment_id,
                    _status_code_from_exception(exc),
                    type(exc).__name__,
                )
            else:
                status = payload.get("status") if isinstance(payload, dict) else None
                return PaymentVerification(
                    payment_id=payment_id,
                    approved=status == ReceiptStatus.APPROVED.value,
                )
        if self.fallback is None:
            return None
        return await self.fallback.verify(payment_id)


def pseudonymous_user_id(token: str) -> str:
    """Return the truncated SHA-256 hex digest of a token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:PSEUDONYM_LENGTH]


def build_auth_verifier(
    settings: Settings, client: PiPlatformClient | None
) -> AuthVerifier:
    """Select the identity verification strategy from configuration."""
    if settings.pi_strict_verify:
        return PlatformAuthVerifier(client=client)
    _logger.warning("Permissive identity verification enabled; do not use in prod")
    return PlatformAuthVerifier(client=client, fallback=PseudonymousAuthVerifier())


def build_payment_verifier(
    settings: Settings, client: PiPlatformClient | None
) -> PaymentVerifier:
    """Select the payment verification strategy from configuration."""
    if settings.pi_strict_verify:
        return PlatformPaymentVerifier(client=client)
    _logger.warning("Permissive payment verification enabled; do not use in prod")
    return PlatformPaymentVerifier(client=client, fallback=DemoPaymentVerifier())


def _status_code_from_exception(exc: Exception) -> str:
    """Extract HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"
