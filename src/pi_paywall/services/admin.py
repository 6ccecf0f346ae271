"""Admin service for read-only inspection and exports."""

import csv
import io
from dataclasses import dataclass
from datetime import UTC, date, datetime, time

from pi_paywall.domain.errors import ValidationError
from pi_paywall.domain.models import (
    ListFilter,
    serialize_receipt,
    serialize_session,
)
from pi_paywall.services.persistence import (
    DEFAULT_LIST_LIMIT,
    PersistenceAdapter,
    clamp_limit,
)


@dataclass
class AdminService:
    """Service for admin dashboards."""

    store: PersistenceAdapter

    def list_sessions(
        self, filters: ListFilter, limit: int = DEFAULT_LIST_LIMIT
    ) -> list[dict[str, object]]:
        """Return sessions matching the filters."""
        return [
            serialize_session(session)
            for session in self.store.list_sessions(filters, clamp_limit(limit))
        ]

    def list_receipts(
        self, filters: ListFilter, limit: int = DEFAULT_LIST_LIMIT
    ) -> list[dict[str, object]]:
        """Return receipts matching the filters."""
        return [
            serialize_receipt(receipt)
            for receipt in self.store.list_receipts(filters, clamp_limit(limit))
        ]


def parse_list_params(
    q: str | None = None,
    status: str | None = None,
    start: str | None = None,
    end: str | None = None,
    limit: str | None = None,
) -> tuple[ListFilter, int]:
    """Normalize raw admin query parameters."""
    filters = ListFilter(
        q=(q or "").strip(),
        status=(status or "").strip(),
        start=_parse_bound(start, "start", end_of_day=False),
        end=_parse_bound(end, "end", end_of_day=True),
    )
    return filters, clamp_limit(_parse_limit(limit))


def to_csv(rows: list[dict[str, object]]) -> str:
    """Render rows as CSV using the first row's keys as the header."""
    if not rows:
        return ""
    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer, fieldnames=list(rows[0].keys()), lineterminator="\n"
    )
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue().rstrip("\n")


def _parse_limit(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def _parse_bound(raw: str | None, name: str, *, end_of_day: bool) -> datetime | None:
    """Parse an ISO date or timestamp; bare dates cover the whole day."""
    value = (raw or "").strip()
    if not value:
        return None
    try:
        day = date.fromisoformat(value)
    except ValueError:
        day = None
    if day is not None:
        return datetime.combine(day, time.max if end_of_day else time.min, UTC)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid {name} date") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
