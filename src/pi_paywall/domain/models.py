"""Domain models for sessions and payment receipts."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class ReceiptStatus(StrEnum):
    """Lifecycle states of a payment receipt."""

    CREATED = "CREATED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class SessionRecord:
    """Represents a persisted login session."""

    session_id: str
    user_id: str
    created_at: datetime


@dataclass(frozen=True)
class Receipt:
    """Durable record of a payment intent and its outcome."""

    idempotency_key: str
    payment_id: str
    amount: float
    user_id: str
    status: ReceiptStatus
    created_at: datetime
    updated_at: datetime

    @property
    def is_terminal(self) -> bool:
        """Return true once confirmation has produced an outcome."""
        return self.status is not ReceiptStatus.CREATED


@dataclass(frozen=True)
class ListFilter:
    """Admin listing filters."""

    q: str = ""
    status: str = ""
    start: datetime | None = None
    end: datetime | None = None


@dataclass(frozen=True)
class PaymentVerification:
    """Outcome reported by a payment verifier."""

    payment_id: str
    approved: bool


def serialize_session(session: SessionRecord) -> dict[str, object]:
    """Return the wire representation of a session."""
    return {
        "session_id": session.session_id,
        "user_id": session.user_id,
        "created_at": session.created_at.isoformat(),
    }


def serialize_receipt(receipt: Receipt) -> dict[str, object]:
    """Return the wire representation of a receipt."""
    return {
        "idempotency_key": receipt.idempotency_key,
        "payment_id": receipt.payment_id,
        "amount": receipt.amount,
        "user_id": receipt.user_id,
        "status": receipt.status.value,
        "created_at": receipt.created_at.isoformat(),
        "updated_at": receipt.updated_at.isoformat(),
    }
