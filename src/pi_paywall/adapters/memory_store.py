"""In-memory storage backend."""

import threading
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import TypeVar

from pi_paywall.domain.models import (
    ListFilter,
    Receipt,
    ReceiptStatus,
    SessionRecord,
)
from pi_paywall.services.persistence import (
    DEFAULT_LIST_LIMIT,
    PersistenceAdapter,
    clamp_limit,
    matches_query,
)

_Row = TypeVar("_Row", SessionRecord, Receipt)


@dataclass
class InMemoryStore(PersistenceAdapter):
    """Process-local store; contents are lost on restart."""

    sessions: dict[str, SessionRecord] = field(default_factory=dict)
    receipts: dict[str, Receipt] = field(default_factory=dict)
    _sessions_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _receipts_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def initialize(self) -> None:
        """Nothing to prepare."""

    def create_session(self, session_id: str, user_id: str) -> None:
        """Insert a session unless the id is taken."""
        with self._sessions_lock:
            if session_id in self.sessions:
                return
            self.sessions[session_id] = SessionRecord(
                session_id=session_id,
                user_id=user_id,
                created_at=datetime.now(tz=UTC),
            )

    def get_session(self, session_id: str) -> SessionRecord | None:
        """Return a session by id, if present."""
        return self.sessions.get(session_id)

    def create_receipt_if_absent(  # noqa: PLR0913
        self,
        idempotency_key: str,
        payment_id: str,
        amount: float,
        user_id: str,
        status: ReceiptStatus = ReceiptStatus.CREATED,
    ) -> Receipt:
        """Insert a receipt unless the key exists, returning the stored row."""
        with self._receipts_lock:
            existing = self.receipts.get(idempotency_key)
            if existing is not None:
                return existing
            now = datetime.now(tz=UTC)
            receipt = Receipt(
                idempotency_key=idempotency_key,
                payment_id=payment_id,
                amount=amount,
                user_id=user_id,
                status=status,
                created_at=now,
                updated_at=now,
            )
            self.receipts[idempotency_key] = receipt
            return receipt

    def get_receipt(self, idempotency_key: str) -> Receipt | None:
        """Return a receipt by idempotency key, if present."""
        return self.receipts.get(idempotency_key)

    def update_receipt_status(
        self, idempotency_key: str, status: ReceiptStatus
    ) -> Receipt | None:
        """Replace the stored receipt with one carrying the new status."""
        with self._receipts_lock:
            current = self.receipts.get(idempotency_key)
            if current is None:
                return None
            updated = replace(current, status=status, updated_at=datetime.now(tz=UTC))
            self.receipts[idempotency_key] = updated
            return updated

    def list_receipts_by_user(
        self, user_id: str, limit: int = DEFAULT_LIST_LIMIT
    ) -> list[Receipt]:
        """Return a user's receipts, newest first."""
        rows = [r for r in self._receipts_snapshot() if r.user_id == user_id]
        return _newest_first(rows)[: clamp_limit(limit)]

    def has_approved_receipt(self, user_id: str) -> bool:
        """Return true when the user owns an approved receipt."""
        return any(
            r.user_id == user_id and r.status is ReceiptStatus.APPROVED
            for r in self._receipts_snapshot()
        )

    def list_sessions(
        self, filters: ListFilter, limit: int = DEFAULT_LIST_LIMIT
    ) -> list[SessionRecord]:
        """Return sessions matching admin filters, newest first."""
        with self._sessions_lock:
            sessions = list(self.sessions.values())
        rows = [
            s
            for s in sessions
            if matches_query(filters.q, s.session_id, s.user_id)
            and _within(s.created_at, filters)
        ]
        return _newest_first(rows)[: clamp_limit(limit)]

    def list_receipts(
        self, filters: ListFilter, limit: int = DEFAULT_LIST_LIMIT
    ) -> list[Receipt]:
        """Return receipts matching admin filters, newest first."""
        rows = [
            r
            for r in self._receipts_snapshot()
            if matches_query(filters.q, r.idempotency_key, r.payment_id, r.user_id)
            and (not filters.status or r.status.value == filters.status)
            and _within(r.created_at, filters)
        ]
        return _newest_first(rows)[: clamp_limit(limit)]

    def close(self) -> None:
        """Nothing to release."""

    def _receipts_snapshot(self) -> list[Receipt]:
        with self._receipts_lock:
            return list(self.receipts.values())


def _newest_first(rows: list[_Row]) -> list[_Row]:
    # Stable sort over reversed insertion order keeps later inserts first on ties.
    return sorted(reversed(rows), key=lambda row: row.created_at, reverse=True)


def _within(created_at: datetime, filters: ListFilter) -> bool:
    if filters.start is not None and created_at < filters.start:
        return False
    return filters.end is None or created_at <= filters.end
