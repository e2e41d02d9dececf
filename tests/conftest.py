"""Shared pytest fixtures for all tests."""

import sqlite3
from contextlib import contextmanager

import pytest

from config import Config, get_default_seed_file, get_migrations_dir
from db.manager import DatabaseManager, configure_connection
from services.base import Services
from tests.helpers import run_migrations


@pytest.fixture
def test_db():
    """Create an in-memory SQLite database for testing.

    Yields:
        sqlite3.Connection: Connection to in-memory database.
    """
    conn = configure_connection(sqlite3.connect(":memory:", isolation_level=None))
    yield conn
    conn.close()


@pytest.fixture
def test_config(tmp_path):
    """Create a test configuration pointing to a temporary database.

    Args:
        tmp_path: pytest tmp_path fixture for temporary directory.

    Returns:
        Config: Test configuration object.
    """
    return Config(
        base_dir=tmp_path / "catalog",
        db_data_dir=tmp_path / "catalog" / "db",
        db_filename="test.db",
        busy_timeout=5.0,
        log_level="DEBUG",
        log_dir=tmp_path / "catalog" / "logs",
        list_page_size=100,
        seed_file=get_default_seed_file(),
    )


@pytest.fixture
def db_manager_with_schema(test_config, test_db):
    """Create a DatabaseManager with schema already set up.

    This fixture provides a DatabaseManager that uses an in-memory database
    with all migrations already applied. Transactions still go through the
    real write_transaction path.

    Args:
        test_config: Test configuration fixture.
        test_db: In-memory database connection fixture.

    Returns:
        DatabaseManager: Database manager with schema ready.
    """
    run_migrations(test_db, get_migrations_dir())

    class TestDatabaseManager(DatabaseManager):
        """Test database manager that reuses the in-memory connection."""

        def __init__(self, config, conn):
            super().__init__(config)
            self.conn = conn

        @contextmanager
        def connect(self):
            # Don't close the connection - let the fixture handle it
            yield self.conn

    return TestDatabaseManager(test_config, test_db)


@pytest.fixture
def services(test_config, db_manager_with_schema):
    """Create a Services container with test database.

    This fixture provides access to all services with a clean test database.

    Args:
        test_config: Test configuration fixture.
        db_manager_with_schema: Database manager with schema set up.

    Returns:
        Services: Services container for testing.
    """
    return Services(test_config, db_manager=db_manager_with_schema)


@pytest.fixture
def file_services(test_config):
    """Create a Services container backed by a real database file.

    Each operation opens its own connection, as in production, so threads
    contend for the write lock for real.
    """
    db_manager = DatabaseManager(test_config)
    with db_manager.connect() as conn:
        run_migrations(conn, get_migrations_dir())
    return Services(test_config, db_manager=db_manager)
