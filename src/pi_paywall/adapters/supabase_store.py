"""Supabase-backed storage for sessions and receipts."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

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
)

# Both tables carry an identity column, ``seq``, that breaks created_at ties.
_SESSION_COLUMNS = "session_id, user_id, created_at"
_RECEIPT_COLUMNS = (
    "idempotency_key, payment_id, amount, user_id, status, created_at, updated_at"
)


@dataclass
class SupabaseStore(PersistenceAdapter):
    """Supabase implementation relying on primary keys for uniqueness."""

    client: Client

    def initialize(self) -> None:
        """Probe both tables so a missing schema fails at startup."""
        self.client.table("sessions").select("session_id").limit(1).execute()
        self.client.table("receipts").select("idempotency_key").limit(1).execute()

    def create_session(self, session_id: str, user_id: str) -> None:
        """Insert a session, ignoring duplicate ids."""
        self.client.table("sessions").upsert(
            {
                "session_id": session_id,
                "user_id": user_id,
                "created_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="session_id",
            ignore_duplicates=True,
        ).execute()

    def get_session(self, session_id: str) -> SessionRecord | None:
        """Return a session by id, if present."""
        response = (
            self.client.table("sessions")
            .select(_SESSION_COLUMNS)
            .eq("session_id", session_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _to_session(response.data[0])

    def create_receipt_if_absent(  # noqa: PLR0913
        self,
        idempotency_key: str,
        payment_id: str,
        amount: float,
        user_id: str,
        status: ReceiptStatus = ReceiptStatus.CREATED,
    ) -> Receipt:
        """Insert a receipt unless the key exists, returning the stored row."""
        now = datetime.now(tz=UTC).isoformat()
        self.client.table("receipts").upsert(
            {
                "idempotency_key": idempotency_key,
                "payment_id": payment_id,
                "amount": amount,
                "user_id": user_id,
                "status": status.value,
                "created_at": now,
                "updated_at": now,
            },
            on_conflict="idempotency_key",
            ignore_duplicates=True,
        ).execute()
        stored = self.get_receipt(idempotency_key)
        if stored is None:
            raise RuntimeError("Failed to create receipt")
        return stored

    def get_receipt(self, idempotency_key: str) -> Receipt | None:
        """Return a receipt by idempotency key, if present."""
        response = (
            self.client.table("receipts")
            .select(_RECEIPT_COLUMNS)
            .eq("idempotency_key", idempotency_key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _to_receipt(response.data[0])

    def update_receipt_status(
        self, idempotency_key: str, status: ReceiptStatus
    ) -> Receipt | None:
        """Set status and updated_at; return None when the key is unknown."""
        response = (
            self.client.table("receipts")
            .update(
                {
                    "status": status.value,
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                }
            )
            .eq("idempotency_key", idempotency_key)
            .execute()
        )
        if not response.data:
            return None
        return _to_receipt(response.data[0])

    def list_receipts_by_user(
        self, user_id: str, limit: int = DEFAULT_LIST_LIMIT
    ) -> list[Receipt]:
        """Return a user's receipts, newest first."""
        response = (
            self.client.table("receipts")
            .select(_RECEIPT_COLUMNS)
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .order("seq", desc=True)
            .limit(clamp_limit(limit))
            .execute()
        )
        return [_to_receipt(row) for row in response.data or []]

    def has_approved_receipt(self, user_id: str) -> bool:
        """Return true when the user owns an approved receipt."""
        response = (
            self.client.table("receipts")
            .select("idempotency_key")
            .eq("user_id", user_id)
            .eq("status", ReceiptStatus.APPROVED.value)
            .limit(1)
            .execute()
        )
        return bool(response.data)

    def list_sessions(
        self, filters: ListFilter, limit: int = DEFAULT_LIST_LIMIT
    ) -> list[SessionRecord]:
        """Return sessions matching admin filters, newest first."""
        query = self.client.table("sessions").select(_SESSION_COLUMNS)
        if filters.q:
            query = query.or_(_ilike_any(filters.q, "session_id", "user_id"))
        query = _apply_range(query, filters)
        response = (
            query.order("created_at", desc=True)
            .order("seq", desc=True)
            .limit(clamp_limit(limit))
            .execute()
        )
        return [_to_session(row) for row in response.data or []]

    def list_receipts(
        self, filters: ListFilter, limit: int = DEFAULT_LIST_LIMIT
    ) -> list[Receipt]:
        """Return receipts matching admin filters, newest first."""
        query = self.client.table("receipts").select(_RECEIPT_COLUMNS)
        if filters.q:
            query = query.or_(
                _ilike_any(filters.q, "idempotency_key", "payment_id", "user_id")
            )
        if filters.status:
            query = query.eq("status", filters.status)
        query = _apply_range(query, filters)
        response = (
            query.order("created_at", desc=True)
            .order("seq", desc=True)
            .limit(clamp_limit(limit))
            .execute()
        )
        return [_to_receipt(row) for row in response.data or []]

    def close(self) -> None:
        """The Supabase client holds no resources that need closing."""


def _ilike_any(query: str, *columns: str) -> str:
    # PostgREST "or" filters are comma-separated; strip characters that would
    # break the filter grammar.
    needle = "".join(ch for ch in query if ch not in ",()*%")
    return ",".join(f"{column}.ilike.*{needle}*" for column in columns)


def _apply_range(query, filters: ListFilter):  # type: ignore[no-untyped-def]
    if filters.start is not None:
        query = query.gte("created_at", filters.start.isoformat())
    if filters.end is not None:
        query = query.lte("created_at", filters.end.isoformat())
    return query


def _parse_timestamp(value: object) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _to_session(row: dict[str, object]) -> SessionRecord:
    return SessionRecord(
        session_id=str(row["session_id"]),
        user_id=str(row["user_id"]),
        created_at=_parse_timestamp(row["created_at"]),
    )


def _to_receipt(row: dict[str, object]) -> Receipt:
    return Receipt(
        idempotency_key=str(row["idempotency_key"]),
        payment_id=str(row["payment_id"]),
        amount=float(row["amount"]),  # type: ignore[arg-type]
        user_id=str(row["user_id"]),
        status=ReceiptStatus(row["status"]),
        created_at=_parse_timestamp(row["created_at"]),
        updated_at=_parse_timestamp(row["updated_at"]),
    )
