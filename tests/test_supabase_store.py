"""Tests for the Supabase store backend."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

import pytest

from pi_paywall.adapters.supabase_store import SupabaseStore
from pi_paywall.domain.models import ListFilter, ReceiptStatus


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {"select": [], "upsert": [], "update": []}
    )
    last_payload: object | None = None
    last_upsert_options: dict[str, object] = field(default_factory=dict)
    last_filters: list[tuple[str, str, object]] = field(default_factory=list)
    orders: list[tuple[str, bool]] = field(default_factory=list)
    last_limit: int | None = None

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "select"
        return self

    def upsert(self, payload, **options) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "upsert"
        self.last_payload = payload
        self.last_upsert_options = options
        return self

    def update(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "update"
        self.last_payload = payload
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("eq", column, value))
        return self

    def or_(self, value: str) -> "FakeTable":
        self.last_filters.append(("or", "", value))
        return self

    def gte(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("gte", column, value))
        return self

    def lte(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("lte", column, value))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeTable":
        self.orders.append((column, desc))
        return self

    def limit(self, count: int) -> "FakeTable":
        self.last_limit = count
        return self

    def execute(self) -> FakeResponse:
        action = getattr(self, "_action", "select")
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data)


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


def _receipt_row(key: str = "k1", status: str = "CREATED") -> dict[str, object]:
    return {
        "idempotency_key": key,
        "payment_id": "pay_1",
        "amount": "5",
        "user_id": "user-a",
        "status": status,
        "created_at": "2024-05-01T10:00:00+00:00",
        "updated_at": "2024-05-01T10:05:00",
    }


def test_create_session_upserts_ignoring_duplicates() -> None:
    client = FakeSupabaseClient()
    store = SupabaseStore(client)  # type: ignore[arg-type]

    store.create_session("sess_1", "user-a")

    sessions = client.tables["sessions"]
    assert isinstance(sessions.last_payload, dict)
    assert sessions.last_payload["session_id"] == "sess_1"
    assert sessions.last_upsert_options == {
        "on_conflict": "session_id",
        "ignore_duplicates": True,
    }


def test_get_session_parses_row() -> None:
    client = FakeSupabaseClient()
    client.table("sessions").queue(
        "select",
        [
            {
                "session_id": "sess_1",
                "user_id": "user-a",
                "created_at": "2024-05-01T10:00:00+00:00",
            }
        ],
    )
    store = SupabaseStore(client)  # type: ignore[arg-type]

    session = store.get_session("sess_1")

    assert session is not None
    assert session.user_id == "user-a"
    assert session.created_at == datetime(2024, 5, 1, 10, tzinfo=UTC)
    assert store.get_session("sess_missing") is None


def test_create_receipt_if_absent_returns_stored_row() -> None:
    client = FakeSupabaseClient()
    receipts = client.table("receipts")
    receipts.queue("select", [_receipt_row(status="APPROVED")])
    store = SupabaseStore(client)  # type: ignore[arg-type]

    receipt = store.create_receipt_if_absent("k1", "pay_other", 9, "user-b")

    assert receipts.last_upsert_options == {
        "on_conflict": "idempotency_key",
        "ignore_duplicates": True,
    }
    assert receipt.payment_id == "pay_1"
    assert receipt.amount == 5.0
    assert receipt.status is ReceiptStatus.APPROVED
    assert receipt.updated_at.tzinfo is UTC


def test_create_receipt_if_absent_raises_when_row_missing() -> None:
    store = SupabaseStore(FakeSupabaseClient())  # type: ignore[arg-type]

    with pytest.raises(RuntimeError):
        store.create_receipt_if_absent("k1", "pay_1", 5, "user-a")


def test_update_receipt_status_returns_none_for_unknown_key() -> None:
    client = FakeSupabaseClient()
    client.table("receipts").queue("update", [_receipt_row(status="REJECTED")])
    store = SupabaseStore(client)  # type: ignore[arg-type]

    updated = store.update_receipt_status("k1", ReceiptStatus.REJECTED)
    missing = store.update_receipt_status("nope", ReceiptStatus.REJECTED)

    assert updated is not None
    assert updated.status is ReceiptStatus.REJECTED
    payload = client.tables["receipts"].last_payload
    assert isinstance(payload, dict)
    assert payload["status"] == "REJECTED"
    assert missing is None


def test_list_receipts_by_user_orders_and_clamps() -> None:
    client = FakeSupabaseClient()
    receipts = client.table("receipts")
    receipts.queue("select", [_receipt_row("k2"), _receipt_row("k1")])
    store = SupabaseStore(client)  # type: ignore[arg-type]

    rows = store.list_receipts_by_user("user-a", limit=10_000)

    assert [r.idempotency_key for r in rows] == ["k2", "k1"]
    assert ("eq", "user_id", "user-a") in receipts.last_filters
    assert receipts.orders == [("created_at", True), ("seq", True)]
    assert receipts.last_limit == 500


def test_has_approved_receipt_filters_on_status() -> None:
    client = FakeSupabaseClient()
    receipts = client.table("receipts")
    receipts.queue("select", [{"idempotency_key": "k1"}])
    store = SupabaseStore(client)  # type: ignore[arg-type]

    assert store.has_approved_receipt("user-a") is True
    assert ("eq", "status", "APPROVED") in receipts.last_filters
    assert store.has_approved_receipt("user-a") is False


def test_list_receipts_applies_admin_filters() -> None:
    client = FakeSupabaseClient()
    receipts = client.table("receipts")
    store = SupabaseStore(client)  # type: ignore[arg-type]
    start = datetime(2024, 5, 1, tzinfo=UTC)
    end = datetime(2024, 5, 2, tzinfo=UTC)

    store.list_receipts(
        ListFilter(q="a,b(c)", status="APPROVED", start=start, end=end), limit=0
    )

    assert receipts.last_filters == [
        (
            "or",
            "",
            "idempotency_key.ilike.*abc*,payment_id.ilike.*abc*,user_id.ilike.*abc*",
        ),
        ("eq", "status", "APPROVED"),
        ("gte", "created_at", start.isoformat()),
        ("lte", "created_at", end.isoformat()),
    ]
    assert receipts.orders == [("created_at", True), ("seq", True)]
    assert receipts.last_limit == 50


def test_list_sessions_without_filters() -> None:
    client = FakeSupabaseClient()
    sessions = client.table("sessions")
    store = SupabaseStore(client)  # type: ignore[arg-type]

    assert store.list_sessions(ListFilter()) == []
    assert sessions.last_filters == []
    assert sessions.orders == [("created_at", True), ("seq", True)]
