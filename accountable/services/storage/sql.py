"""
SQL Storage Implementation

DESIGN DECISION: A relational store (SQLAlchemy) backs both the audit
trail and the ledger records because:
1. The integrity token needs a real UNIQUE constraint
2. Filtering, counting and paging belong in the database, not in Python
3. SQLite works for a single user, any SQLAlchemy URL works for more

TRADEOFFS:
- Every call opens its own short session; there is no transaction that
  spans lookup + mark + audit (the verification workflow accepts this)
- Public methods are async for interface compatibility but run the
  (synchronous) SQLAlchemy calls inline

The implementation follows the abstract interfaces, so another backend
can replace it without changing the audit services.
"""

from contextlib import contextmanager
from typing import Callable, Iterator, Optional

import structlog
from sqlalchemy import create_engine, func, or_, select, text, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from accountable.config import DatabaseSettings, get_settings
from accountable.models.audit import AuditEntry, AuditFilters
from accountable.models.ledger import LedgerRecord, VerificationStatus
from accountable.services.storage.interface import (
    AuditStorageInterface,
    DatabaseConnectionError,
    DuplicateError,
    LedgerLookupInterface,
    StorageError,
)
from accountable.services.storage.schema import AuditTrailRow, Base, LedgerRecordRow
from accountable.time_utils import utcnow


logger = structlog.get_logger(__name__)


class DatabaseClient:
    """
    Low-level database client wrapper.

    Owns the engine and session factory and provides retry logic for
    connecting and creating the schema.
    """

    def __init__(
        self,
        settings: Optional[DatabaseSettings] = None,
        url: Optional[str] = None,
    ):
        self._settings = settings or get_settings().database
        self._url = url or self._settings.url
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def url(self) -> str:
        return self._url

    def _engine_options(self) -> dict:
        options = {
            "echo": self._settings.echo,
            "pool_pre_ping": self._settings.pool_pre_ping,
        }
        if self._url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every session sees an empty database.
            options["poolclass"] = StaticPool
            options["connect_args"] = {"check_same_thread": False}
        return options

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(DatabaseConnectionError),
        reraise=True,
    )
    def connect(self) -> Engine:
        """
        Establish the engine and verify the database answers.
        """
        if self._engine is None:
            try:
                engine = create_engine(self._url, **self._engine_options())
                with engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
            except SQLAlchemyError as e:
                raise DatabaseConnectionError(f"Failed to connect to database: {e}") from e

            self._engine = engine
            self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
            logger.info("database_connected", url=engine.url.render_as_string(hide_password=True))

        return self._engine

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(DatabaseConnectionError),
        reraise=True,
    )
    def create_schema(self) -> None:
        """Create the audit and ledger tables if they do not exist."""
        engine = self.connect()
        try:
            Base.metadata.create_all(engine)
        except SQLAlchemyError as e:
            raise DatabaseConnectionError(f"Failed to create schema: {e}") from e

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        One unit of work: commits on success, rolls back on any error.
        """
        self.connect()
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def check_connection(self) -> bool:
        """Check if the database answers."""
        try:
            with self.connect().connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, StorageError) as e:
            logger.error("database_connection_check_failed", error=str(e))
            return False

    def dispose(self) -> None:
        """Close pooled connections."""
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None


def _audit_filter_clauses(owner: str, filters: AuditFilters) -> list:
    """
    Build the WHERE clauses for an audit listing.

    Used for both the page and the total so the two can never disagree
    about which entries match.
    """
    clauses = [AuditTrailRow.owner == owner]

    if filters.search_term:
        term = filters.search_term
        clauses.append(
            or_(
                AuditTrailRow.title.icontains(term, autoescape=True),
                AuditTrailRow.description.icontains(term, autoescape=True),
                AuditTrailRow.integrity_token.icontains(term, autoescape=True),
            )
        )
    if filters.category:
        clauses.append(AuditTrailRow.category == filters.category)
    if filters.status:
        clauses.append(AuditTrailRow.status == filters.status)

    return clauses


class SqlAuditStorage(AuditStorageInterface):
    """
    SQL implementation of audit trail storage.

    Audit entries are append-only; the schema additionally refuses ORM
    updates and deletes of audit rows.
    """

    def __init__(
        self,
        client: Optional[DatabaseClient] = None,
        clock: Callable = utcnow,
    ):
        self._client = client or DatabaseClient()
        self._clock = clock

    async def append_entry(self, entry: AuditEntry) -> AuditEntry:
        """Insert an audit entry, stamping it with the store's clock."""
        row = AuditTrailRow.from_model(entry, timestamp=self._clock())
        try:
            with self._client.session() as session:
                session.add(row)
                session.flush()
                stored = row.to_model()
        except IntegrityError as e:
            if entry.integrity_token:
                raise DuplicateError(
                    f"Integrity token already recorded: {entry.integrity_token}"
                ) from e
            raise StorageError(f"Failed to append audit entry: {e}") from e
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to append audit entry: {e}") from e

        return stored

    async def query_entries(
        self,
        owner: str,
        filters: AuditFilters,
        limit: int,
        offset: int = 0,
    ) -> tuple[list[AuditEntry], int]:
        """Filtered listing, newest first, plus the unpaginated total."""
        clauses = _audit_filter_clauses(owner, filters)
        offset = max(offset, 0)

        count_stmt = select(func.count()).select_from(AuditTrailRow).where(*clauses)
        page_stmt = (
            select(AuditTrailRow)
            .where(*clauses)
            .order_by(AuditTrailRow.timestamp.desc(), AuditTrailRow.id.desc())
            .limit(limit)
            .offset(offset)
        )

        try:
            with self._client.session() as session:
                total = session.scalar(count_stmt) or 0
                entries = [row.to_model() for row in session.scalars(page_stmt)]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to query audit entries: {e}") from e

        return entries, total

    async def get_entry(self, owner: str, entry_id: int) -> Optional[AuditEntry]:
        """Retrieve one entry by id, scoped to its owner."""
        stmt = select(AuditTrailRow).where(
            AuditTrailRow.id == entry_id,
            AuditTrailRow.owner == owner,
        )
        try:
            with self._client.session() as session:
                row = session.scalars(stmt).first()
                return row.to_model() if row else None
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to get audit entry: {e}") from e


class SqlLedgerStorage(LedgerLookupInterface):
    """
    SQL implementation of the ledger lookup contract.

    Also exposes `add_record`, the minimal creation path the bookkeeping
    layer (and the tests) use to put token-bearing records in place.
    """

    def __init__(self, client: Optional[DatabaseClient] = None):
        self._client = client or DatabaseClient()

    async def add_record(self, record: LedgerRecord) -> LedgerRecord:
        """Insert a ledger record; a reused integrity token is rejected."""
        row = LedgerRecordRow.from_model(record)
        try:
            with self._client.session() as session:
                session.add(row)
                session.flush()
                stored = row.to_model()
        except IntegrityError as e:
            raise DuplicateError(
                f"Integrity token already assigned: {record.integrity_token}"
            ) from e
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to add ledger record: {e}") from e

        return stored

    async def find_by_token(
        self,
        owner: str,
        token: str,
    ) -> Optional[LedgerRecord]:
        """Exact token match within the owner's records."""
        stmt = select(LedgerRecordRow).where(
            LedgerRecordRow.owner == owner,
            LedgerRecordRow.integrity_token == token,
        )
        try:
            with self._client.session() as session:
                row = session.scalars(stmt).first()
                return row.to_model() if row else None
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to look up ledger token: {e}") from e

    async def mark_verified(self, record: LedgerRecord, token: str) -> bool:
        """Move the record to VERIFIED. Never raises."""
        if record.id is None:
            return False

        stmt = (
            update(LedgerRecordRow)
            .where(
                LedgerRecordRow.id == record.id,
                LedgerRecordRow.owner == record.owner,
                LedgerRecordRow.integrity_token == token,
            )
            .values(verification_status=VerificationStatus.VERIFIED.value)
        )
        try:
            with self._client.session() as session:
                updated = session.execute(stmt).rowcount == 1
        except SQLAlchemyError as e:
            logger.error(
                "ledger_mark_verified_failed",
                record_id=record.id,
                owner=record.owner,
                error=str(e),
            )
            return False

        if not updated:
            logger.warning(
                "ledger_mark_verified_no_match",
                record_id=record.id,
                owner=record.owner,
            )
        return updated

    async def list_tokened_records(
        self,
        owner: str,
        limit: int = 10,
    ) -> list[LedgerRecord]:
        """Most recent token-bearing records."""
        stmt = (
            select(LedgerRecordRow)
            .where(
                LedgerRecordRow.owner == owner,
                LedgerRecordRow.integrity_token.is_not(None),
            )
            .order_by(
                LedgerRecordRow.record_date.desc(),
                LedgerRecordRow.created_at.desc(),
                LedgerRecordRow.id.desc(),
            )
            .limit(limit)
        )
        try:
            with self._client.session() as session:
                return [row.to_model() for row in session.scalars(stmt)]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list ledger records: {e}") from e

    async def count_records(self, owner: str) -> int:
        """Number of records the owner has."""
        stmt = select(func.count()).select_from(LedgerRecordRow).where(
            LedgerRecordRow.owner == owner
        )
        try:
            with self._client.session() as session:
                return session.scalar(stmt) or 0
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to count ledger records: {e}") from e
