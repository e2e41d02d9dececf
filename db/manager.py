"""Database manager for SQLite connections, transactions and path management."""

import sqlite3
from contextlib import contextmanager
from config import Config, get_migrations_dir
from services.errors import ConcurrentModificationError

_BUSY_CODES = (sqlite3.SQLITE_BUSY, sqlite3.SQLITE_LOCKED)


def configure_connection(conn: sqlite3.Connection) -> sqlite3.Connection:
    """Apply per-connection settings every taxonomy connection needs.

    SQLite enforces foreign keys only when asked to, per connection.
    """
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def is_busy_error(error: sqlite3.Error) -> bool:
    """Return True if the error is lock contention rather than a real failure."""
    code = getattr(error, "sqlite_errorcode", None)
    if code is None:
        return False
    # Extended result codes keep the primary code in the low byte
    return (code & 0xFF) in _BUSY_CODES


def _rollback(conn: sqlite3.Connection) -> None:
    if conn.in_transaction:
        conn.execute("ROLLBACK")


@contextmanager
def write_transaction(conn: sqlite3.Connection):
    """Run a block inside a ``BEGIN IMMEDIATE`` transaction.

    BEGIN IMMEDIATE takes SQLite's database-wide write lock up front, so
    only one read-check-write sequence runs at a time and the rows it reads
    cannot change before it commits. The transaction commits when the block
    exits normally and rolls back on any exception.

    Args:
        conn: Connection opened with ``isolation_level=None``.

    Yields:
        sqlite3.Connection: The same connection, inside the transaction.

    Raises:
        ConcurrentModificationError: If the lock cannot be acquired within the
            connection's busy timeout, or SQLite reports contention mid-way.
    """
    try:
        conn.execute("BEGIN IMMEDIATE")
    except sqlite3.OperationalError as e:
        if is_busy_error(e):
            raise ConcurrentModificationError(
                "Taxonomy is locked by another writer; retry the operation"
            ) from e
        raise

    try:
        yield conn
        conn.execute("COMMIT")
    except sqlite3.OperationalError as e:
        _rollback(conn)
        if is_busy_error(e):
            raise ConcurrentModificationError(
                "Transaction was interrupted by a concurrent writer; retry the operation"
            ) from e
        raise
    except BaseException:
        _rollback(conn)
        raise


class DatabaseManager:
    """Manages database connections and paths.

    Args:
        config: Application configuration object.
    """

    def __init__(self, config: Config):
        """Initialize the database manager.

        Args:
            config: Config object containing database configuration.
        """
        self.config = config

    @contextmanager
    def connect(self):
        """Get a database connection with automatic cleanup.

        Connections are in autocommit mode; writes go through transaction().
        File databases use WAL so readers see a committed snapshot and never
        wait on the writer.

        Yields:
            sqlite3.Connection: Database connection.
        """
        db_path = self.config.db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(
            db_path, timeout=self.config.busy_timeout, isolation_level=None
        )
        try:
            configure_connection(conn)
            # WAL is persistent; switching needs an exclusive lock, so only do it once
            if conn.execute("PRAGMA journal_mode").fetchone()[0] != "wal":
                conn.execute("PRAGMA journal_mode = WAL")
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self):
        """Open a connection and hold the taxonomy write lock for the block.

        Yields:
            sqlite3.Connection: Connection inside a write transaction.

        Raises:
            ConcurrentModificationError: On lock timeout or contention.
        """
        with self.connect() as conn:
            with write_transaction(conn):
                yield conn

    def get_db_path(self):
        """Get the current database path.

        Returns:
            Path: Path to the database file.
        """
        return self.config.db_path

    def get_migrations_dir(self):
        """Get the migrations directory path.

        Returns:
            Path: Path to the migrations directory.
        """
        return get_migrations_dir()
