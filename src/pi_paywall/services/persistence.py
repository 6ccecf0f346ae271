"""Storage interface shared by every backend."""

from typing import Protocol

from pi_paywall.domain.models import (
    ListFilter,
    Receipt,
    ReceiptStatus,
    SessionRecord,
)

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 500


class PersistenceAdapter(Protocol):
    """Key-based storage for sessions and receipts."""

    def initialize(self) -> None:
        """Prepare the backend, raising if it is unusable."""

    def create_session(self, session_id: str, user_id: str) -> None:
        """Insert a session, ignoring duplicate ids."""

    def get_session(self, session_id: str) -> SessionRecord | None:
        """Return a session by id, if present."""

    def create_receipt_if_absent(  # noqa: PLR0913
        self,
        idempotency_key: str,
        payment_id: str,
        amount: float,
        user_id: str,
        status: ReceiptStatus = ReceiptStatus.CREATED,
    ) -> Receipt:
        """Insert a receipt unless the key exists, returning the stored row."""

    def get_receipt(self, idempotency_key: str) -> Receipt | None:
        """Return a receipt by idempotency key, if present."""

    def update_receipt_status(
        self, idempotency_key: str, status: ReceiptStatus
    ) -> Receipt | None:
        """Set status and updated_at; return None when the key is unknown."""

    def list_receipts_by_user(
        self, user_id: str, limit: int = DEFAULT_LIST_LIMIT
    ) -> list[Receipt]:
        """Return a user's receipts, newest first."""

    def has_approved_receipt(self, user_id: str) -> bool:
        """Return true when the user owns at least one approved receipt."""

    def list_sessions(
        self, filters: ListFilter, limit: int = DEFAULT_LIST_LIMIT
    ) -> list[SessionRecord]:
        """Return sessions matching admin filters, newest first."""

    def list_receipts(
        self, filters: ListFilter, limit: int = DEFAULT_LIST_LIMIT
    ) -> list[Receipt]:
        """Return receipts matching admin filters, newest first."""

    def close(self) -> None:
        """Release backend resources."""


def clamp_limit(limit: int | None) -> int:
    """Bound a requested page size to the supported range."""
    if limit is None or limit <= 0:
        return DEFAULT_LIST_LIMIT
    return min(limit, MAX_LIST_LIMIT)


def matches_query(query: str, *values: str) -> bool:
    """Case-insensitive substring match used by the admin filters."""
    if not query:
        return True
    needle = query.lower()
    return any(needle in value.lower() for value in values)
