#!/usr/bin/env python3
"""
Catalog CLI - Administrative command-line interface for the category taxonomy.

Usage:
    python -m cli <command> <subcommand> [options]

Commands:
    categories   Manage the category tree
    parts        Manage parts and their category tags
    migrate      Database migrations

Examples:
    python -m cli migrate apply
    python -m cli categories seed
    python -m cli categories create Turbochargers --parent 1
    python -m cli categories move 7 --parent 3
    python -m cli parts tag 12 7
"""

import sys
import argparse
from cli import categories, parts, migrate
from cli.exit_codes import EXIT_FAILURE, exit_code_for
from config import load_config
from services.base import Services
from services.errors import TaxonomyError
from db.manager import DatabaseManager
from logger import setup_logging


def main():
    """Main CLI entry point with subcommands."""
    parser = argparse.ArgumentParser(
        prog="cli",
        description="Catalog - category taxonomy administration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
        required=True,
    )

    categories.setup_parser(subparsers)
    parts.setup_parser(subparsers)
    migrate.setup_parser(subparsers)

    args = parser.parse_args()

    if hasattr(args, "func"):
        try:
            config = load_config()
            setup_logging(config)

            if args.command in ("categories", "parts"):
                args.func(args, Services(config))
            elif args.command == "migrate":
                # Migrate commands need db_manager for raw database operations
                args.func(args, DatabaseManager(config))
            else:
                args.func(args)
        except TaxonomyError as e:
            print(f"Error [{e.kind}]: {e}")
            if e.retryable:
                print("The taxonomy is busy with another change; try again.")
            sys.exit(exit_code_for(e))
        except Exception as e:
            print(f"Error: {e}")
            sys.exit(EXIT_FAILURE)
    else:
        parser.print_help()
        sys.exit(EXIT_FAILURE)


if __name__ == "__main__":
    main()
