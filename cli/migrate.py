#!/usr/bin/env python3
"""Schema migrations: numbered .sql files under db/migrations, applied in
name order and recorded in the schema_migrations table."""

from logger import get_logger

logger = get_logger()

_CREATE_LEDGER = """
    CREATE TABLE IF NOT EXISTS schema_migrations (
        migration_file TEXT PRIMARY KEY,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
"""


def migration_status(conn, db_manager):
    """Return [(migration_file, applied)] for every migration on disk, in order."""
    conn.execute(_CREATE_LEDGER)
    applied = {
        row[0] for row in conn.execute("SELECT migration_file FROM schema_migrations")
    }

    migrations_dir = db_manager.get_migrations_dir()
    if not migrations_dir.exists():
        return []
    return [
        (path.name, path.name in applied)
        for path in sorted(migrations_dir.glob("*.sql"))
    ]


def pending_migrations(conn, db_manager):
    return [name for name, applied in migration_status(conn, db_manager) if not applied]


def apply_migration(conn, migration_file, db_manager):
    """Run one migration script and record it in the same transaction.

    Connections are in autocommit mode, so the script is prefixed with its
    own BEGIN and the ledger insert lands before the COMMIT.
    """
    sql = (db_manager.get_migrations_dir() / migration_file).read_text()

    try:
        conn.executescript(f"BEGIN;\n{sql}\n")
        conn.execute(
            "INSERT INTO schema_migrations (migration_file) VALUES (?)",
            (migration_file,),
        )
        conn.execute("COMMIT")
    except Exception as e:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        logger.error(f"Migration {migration_file} failed and was rolled back: {e}")
        raise

    logger.info(f"Applied migration: {migration_file}")


def cmd_status(args, db_manager):
    """Show which migrations are applied and which are pending."""
    if not db_manager.get_db_path().exists():
        logger.info(
            "Database does not exist. Run 'python -m cli migrate apply' to create it."
        )
        return

    with db_manager.connect() as conn:
        status = migration_status(conn, db_manager)

    if not status:
        logger.info("No migrations found.")
        return

    logger.info("Migration Status:")
    logger.info("================")
    for name, applied in status:
        logger.info(f"{name}: {'APPLIED' if applied else 'PENDING'}")

    pending = sum(1 for _, applied in status if not applied)
    logger.info(f"\nTotal migrations: {len(status)}")
    logger.info(f"Applied: {len(status) - pending}")
    logger.info(f"Pending: {pending}")


def cmd_apply(args, db_manager):
    """Apply pending migrations, stopping at the first failure."""
    with db_manager.connect() as conn:
        pending = pending_migrations(conn, db_manager)
        if not pending:
            logger.info("No pending migrations.")
            return

        logger.info(f"Applying {len(pending)} migration(s)...")
        for migration in pending:
            apply_migration(conn, migration, db_manager)

    logger.info(f"Successfully applied {len(pending)} migration(s).")


def setup_parser(subparsers):
    """Setup migrate subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "migrate",
        help="Database migrations",
        description="Manage database schema migrations",
    )

    migrate_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available migration commands",
        dest="subcommand",
        required=True,
    )

    status_parser = migrate_subparsers.add_parser(
        "status", help="Show migration status"
    )
    status_parser.set_defaults(func=cmd_status)

    apply_parser = migrate_subparsers.add_parser(
        "apply", help="Apply pending migrations"
    )
    apply_parser.set_defaults(func=cmd_apply)
