"""Database connection manager for State Store."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from groupbuy.state_store.models import Base

if TYPE_CHECKING:
    from sqlalchemy import Connection, Engine

# Seconds a writer waits on another connection's write lock before failing
BUSY_TIMEOUT_SECONDS = 30

# Connection execution option asking do_begin for BEGIN IMMEDIATE
IMMEDIATE_OPTION = "groupbuy_begin_immediate"


class Database:
    """Database connection manager.

    Manages SQLite database connections with WAL mode and foreign keys enabled.
    """

    def __init__(self, db_path: str = "groupbuy.db") -> None:
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. Use ":memory:" for in-memory DB.
        """
        self.db_path = db_path
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @property
    def is_memory(self) -> bool:
        """Whether this database lives in memory only."""
        return self.db_path == ":memory:"

    @property
    def engine(self) -> Engine:
        """Get or create the database engine."""
        if self._engine is None:
            if not self.is_memory:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            # In-memory databases share one connection across threads (TestClient)
            if self.is_memory:
                self._engine = create_engine(
                    "sqlite:///:memory:",
                    echo=False,
                    future=True,
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                )
            else:
                self._engine = create_engine(
                    f"sqlite:///{self.db_path}",
                    echo=False,
                    future=True,
                    connect_args={"timeout": BUSY_TIMEOUT_SECONDS, "check_same_thread": False},
                )

            @event.listens_for(self._engine, "connect")
            def set_sqlite_pragma(dbapi_connection: object, _connection_record: object) -> None:
                cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()
                if not self.is_memory:
                    # Let SQLAlchemy emit BEGIN itself (see do_begin)
                    dbapi_connection.isolation_level = None  # type: ignore[attr-defined]

            if not self.is_memory:

                @event.listens_for(self._engine, "begin")
                def do_begin(conn: Connection) -> None:
                    # Writers take the write lock up front so they queue on the
                    # busy timeout instead of failing a read-to-write upgrade.
                    # Readers stay deferred and read the last committed snapshot.
                    if conn.get_execution_options().get(IMMEDIATE_OPTION):
                        conn.exec_driver_sql("BEGIN IMMEDIATE")
                    else:
                        conn.exec_driver_sql("BEGIN")

        return self._engine

    @property
    def session_factory(self) -> sessionmaker[Session]:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                expire_on_commit=False,
            )
        return self._session_factory

    def create_tables(self) -> None:
        """Create all tables if they don't exist."""
        Base.metadata.create_all(self.engine)

    def get_session(self, immediate: bool = False) -> Session:
        """Get a new database session.

        Args:
            immediate: Begin a write transaction right away, holding the
                database write lock until commit or rollback.

        Returns:
            A new SQLAlchemy session.
        """
        session = self.session_factory()
        if immediate and not self.is_memory:
            try:
                session.connection(execution_options={IMMEDIATE_OPTION: True})
            except Exception:
                session.close()
                raise
        return session

    def is_wal_mode(self) -> bool:
        """Check if WAL mode is enabled.

        Returns:
            True if WAL mode is enabled.
        """
        with self.engine.connect() as conn:
            result = conn.execute(text("PRAGMA journal_mode"))
            mode = result.scalar()
            return mode == "wal"

    def close(self) -> None:
        """Close the database connection."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
