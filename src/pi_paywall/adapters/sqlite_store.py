"""SQLite-backed storage using SQLAlchemy Core."""

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime

from sqlalchemy import (
    Column,
    DateTime,
    Engine,
    Float,
    MetaData,
    Row,
    Select,
    String,
    Table,
    create_engine,
    literal_column,
    or_,
    select,
    update,
)
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.pool import StaticPool

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

metadata = MetaData()

sessions_table = Table(
    "sessions",
    metadata,
    Column("session_id", String, primary_key=True),
    Column("user_id", String, nullable=False),
    Column("created_at", DateTime, nullable=False),
)

receipts_table = Table(
    "receipts",
    metadata,
    Column("idempotency_key", String, primary_key=True),
    Column("payment_id", String, nullable=False),
    Column("amount", Float, nullable=False),
    Column("user_id", String, nullable=False, index=True),
    Column("status", String, nullable=False),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

_ROWID = literal_column("rowid")


@dataclass
class SqliteStore(PersistenceAdapter):
    """Embedded file store; ``:memory:`` keeps the database in-process."""

    engine: Engine
    _receipts_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def create(cls, path: str) -> "SqliteStore":
        """Create a store for a SQLite file path."""
        if path == ":memory:":
            engine = create_engine(
                "sqlite://",
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            engine = create_engine(
                f"sqlite:///{path}", connect_args={"check_same_thread": False}
            )
        return cls(engine=engine)

    def initialize(self) -> None:
        """Create tables if they do not exist."""
        metadata.create_all(self.engine)

    def create_session(self, session_id: str, user_id: str) -> None:
        """Insert a session, ignoring duplicate ids."""
        statement = (
            sqlite_insert(sessions_table)
            .values(
                session_id=session_id,
                user_id=user_id,
                created_at=_now(),
            )
            .on_conflict_do_nothing(index_elements=["session_id"])
        )
        with self.engine.begin() as conn:
            conn.execute(statement)

    def get_session(self, session_id: str) -> SessionRecord | None:
        """Return a session by id, if present."""
        statement = select(sessions_table).where(
            sessions_table.c.session_id == session_id
        )
        with self.engine.connect() as conn:
            row = conn.execute(statement).first()
        return _to_session(row) if row else None

    def create_receipt_if_absent(  # noqa: PLR0913
        self,
        idempotency_key: str,
        payment_id: str,
        amount: float,
        user_id: str,
        status: ReceiptStatus = ReceiptStatus.CREATED,
    ) -> Receipt:
        """Insert a receipt unless the key exists, returning the stored row."""
        now = _now()
        statement = (
            sqlite_insert(receipts_table)
            .values(
                idempotency_key=idempotency_key,
                payment_id=payment_id,
                amount=amount,
                user_id=user_id,
                status=status.value,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=["idempotency_key"])
        )
        with self._receipts_lock, self.engine.begin() as conn:
            conn.execute(statement)
            row = conn.execute(
                select(receipts_table).where(
                    receipts_table.c.idempotency_key == idempotency_key
                )
            ).one()
        return _to_receipt(row)

    def get_receipt(self, idempotency_key: str) -> Receipt | None:
        """Return a receipt by idempotency key, if present."""
        statement = select(receipts_table).where(
            receipts_table.c.idempotency_key == idempotency_key
        )
        with self.engine.connect() as conn:
            row = conn.execute(statement).first()
        return _to_receipt(row) if row else None

    def update_receipt_status(
        self, idempotency_key: str, status: ReceiptStatus
    ) -> Receipt | None:
        """Set status and updated_at; return None when the key is unknown."""
        statement = (
            update(receipts_table)
            .where(receipts_table.c.idempotency_key == idempotency_key)
            .values(status=status.value, updated_at=_now())
        )
        with self._receipts_lock, self.engine.begin() as conn:
            result = conn.execute(statement)
            if result.rowcount == 0:
                return None
            row = conn.execute(
                select(receipts_table).where(
                    receipts_table.c.idempotency_key == idempotency_key
                )
            ).one()
        return _to_receipt(row)

    def list_receipts_by_user(
        self, user_id: str, limit: int = DEFAULT_LIST_LIMIT
    ) -> list[Receipt]:
        """Return a user's receipts, newest first."""
        statement = (
            select(receipts_table)
            .where(receipts_table.c.user_id == user_id)
            .order_by(receipts_table.c.created_at.desc(), _ROWID.desc())
            .limit(clamp_limit(limit))
        )
        with self.engine.connect() as conn:
            rows = conn.execute(statement).all()
        return [_to_receipt(row) for row in rows]

    def has_approved_receipt(self, user_id: str) -> bool:
        """Return true when the user owns an approved receipt."""
        statement = (
            select(receipts_table.c.idempotency_key)
            .where(receipts_table.c.user_id == user_id)
            .where(receipts_table.c.status == ReceiptStatus.APPROVED.value)
            .limit(1)
        )
        with self.engine.connect() as conn:
            return conn.execute(statement).first() is not None

    def list_sessions(
        self, filters: ListFilter, limit: int = DEFAULT_LIST_LIMIT
    ) -> list[SessionRecord]:
        """Return sessions matching admin filters, newest first."""
        table = sessions_table
        statement = select(table)
        if filters.q:
            statement = statement.where(
                or_(
                    table.c.session_id.icontains(filters.q, autoescape=True),
                    table.c.user_id.icontains(filters.q, autoescape=True),
                )
            )
        statement = _apply_range(statement, table, filters)
        statement = statement.order_by(table.c.created_at.desc(), _ROWID.desc()).limit(
            clamp_limit(limit)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(statement).all()
        return [_to_session(row) for row in rows]

    def list_receipts(
        self, filters: ListFilter, limit: int = DEFAULT_LIST_LIMIT
    ) -> list[Receipt]:
        """Return receipts matching admin filters, newest first."""
        table = receipts_table
        statement = select(table)
        if filters.q:
            statement = statement.where(
                or_(
                    table.c.idempotency_key.icontains(filters.q, autoescape=True),
                    table.c.payment_id.icontains(filters.q, autoescape=True),
                    table.c.user_id.icontains(filters.q, autoescape=True),
                )
            )
        if filters.status:
            statement = statement.where(table.c.status == filters.status)
        statement = _apply_range(statement, table, filters)
        statement = statement.order_by(table.c.created_at.desc(), _ROWID.desc()).limit(
            clamp_limit(limit)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(statement).all()
        return [_to_receipt(row) for row in rows]

    def close(self) -> None:
        """Dispose of pooled connections."""
        self.engine.dispose()


def _now() -> datetime:
    # SQLite has no timezone type; values are stored as naive UTC.
    return datetime.now(tz=UTC).replace(tzinfo=None)


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def _naive_utc(value: datetime) -> datetime:
    return value.astimezone(UTC).replace(tzinfo=None)


def _apply_range(statement: Select, table: Table, filters: ListFilter) -> Select:
    if filters.start is not None:
        statement = statement.where(table.c.created_at >= _naive_utc(filters.start))
    if filters.end is not None:
        statement = statement.where(table.c.created_at <= _naive_utc(filters.end))
    return statement


def _to_session(row: Row) -> SessionRecord:
    return SessionRecord(
        session_id=row.session_id,
        user_id=row.user_id,
        created_at=_as_utc(row.created_at),
    )


def _to_receipt(row: Row) -> Receipt:
    return Receipt(
        idempotency_key=row.idempotency_key,
        payment_id=row.payment_id,
        amount=row.amount,
        user_id=row.user_id,
        status=ReceiptStatus(row.status),
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )
