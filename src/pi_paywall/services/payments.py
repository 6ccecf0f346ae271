"""Payment receipt lifecycle: create, confirm, and query.

A receipt moves from CREATED to APPROVED or REJECTED. Creation is idempotent
per key; the stored row wins over any new request data. Confirmation is
re-entrant unless ``one_shot_confirm`` is set, in which case a receipt that
already has an outcome cannot be confirmed again.
"""

import logging
import math
from dataclasses import dataclass

from pi_paywall.domain.errors import (
    ConflictError,
    NotFoundError,
    PaymentRequiredError,
    ValidationError,
)
from pi_paywall.domain.models import Receipt, ReceiptStatus
from pi_paywall.services.persistence import PersistenceAdapter
from pi_paywall.services.sessions import SessionService, generate_id
from pi_paywall.services.verification import PaymentVerifier

_logger = logging.getLogger(__name__)

MY_RECEIPTS_LIMIT = 100
PROTECTED_CONTENT = "This is protected content. Thanks for your payment!"


@dataclass
class PaymentLifecycle:
    """Service for payment receipts."""

    store: PersistenceAdapter
    session_service: SessionService
    payment_verifier: PaymentVerifier
    one_shot_confirm: bool = False

    def create(
        self, session_id: str | None, amount: float | None, idempotency_key: str | None
    ) -> Receipt:
        """Create a receipt for the key, or return the one that already exists."""
        user_id = self.session_service.resolve(session_id)
        if not idempotency_key:
            raise ValidationError("Missing idempotencyKey")
        if amount is None:
            raise ValidationError("Missing amount")
        if not math.isfinite(amount):
            raise ValidationError("Invalid amount")
        receipt = self.store.create_receipt_if_absent(
            idempotency_key=idempotency_key,
            payment_id=generate_id("pay"),
            amount=amount,
            user_id=user_id,
        )
        _logger.info(
            "Receipt ready",
            extra={"idempotency_key": idempotency_key, "status": receipt.status},
        )
        return receipt

    async def confirm(
        self,
        session_id: str | None,
        payment_id: str | None,
        idempotency_key: str | None,
    ) -> Receipt:
        """Verify a payment with the processor and record the outcome."""
        self.session_service.resolve(session_id)
        if not idempotency_key:
            raise ValidationError("Missing idempotencyKey")
        current = self.store.get_receipt(idempotency_key)
        if current is None or current.payment_id != payment_id:
            raise NotFoundError()
        if self.one_shot_confirm and current.is_terminal:
            raise ConflictError()

        verification = await self.payment_verifier.verify(current.payment_id)
        if verification is None or not verification.approved:
            self._transition(idempotency_key, ReceiptStatus.REJECTED)
            raise PaymentRequiredError("Payment not approved")
        updated = self._transition(idempotency_key, ReceiptStatus.APPROVED)
        if updated is None:
            raise NotFoundError()
        return updated

    def list_mine(
        self, session_id: str | None, limit: int = MY_RECEIPTS_LIMIT
    ) -> list[Receipt]:
        """Return the caller's receipts, newest first."""
        user_id = self.session_service.resolve(session_id)
        return self.store.list_receipts_by_user(user_id, limit)

    def has_approved(self, session_id: str | None) -> bool:
        """Return true once the caller owns any approved receipt."""
        user_id = self.session_service.resolve(session_id)
        return self.store.has_approved_receipt(user_id)

    def protected_content(self, session_id: str | None) -> dict[str, str]:
        """Return the gated content for callers with an approved payment."""
        user_id = self.session_service.resolve(session_id)
        if not self.store.has_approved_receipt(user_id):
            raise PaymentRequiredError()
        return {"content": PROTECTED_CONTENT, "userId": user_id}

    def _transition(
        self, idempotency_key: str, status: ReceiptStatus
    ) -> Receipt | None:
        updated = self.store.update_receipt_status(idempotency_key, status)
        _logger.info(
            "Receipt transitioned",
            extra={"idempotency_key": idempotency_key, "status": status.value},
        )
        return updated
