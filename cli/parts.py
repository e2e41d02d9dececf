#!/usr/bin/env python3

import sys
from logger import get_logger
from cli.exit_codes import EXIT_FAILURE, exit_code_for
from services.errors import TaxonomyError

logger = get_logger()


def cmd_list(args, services):
    """List all parts with their categories."""
    parts = services.parts.find_all()

    if not parts:
        logger.info("No parts found.")
        return

    logger.info("\nParts:")
    logger.info("=" * 80)
    for part in parts:
        logger.info(f"ID: {part.id}")
        logger.info(f"Name: {part.name}")
        if part.part_number:
            logger.info(f"Part number: {part.part_number}")
        categories = services.parts.categories_for(part.id)
        if categories:
            names = ", ".join(f"{c.name} ({c.id})" for c in categories)
            logger.info(f"Categories: {names}")
        logger.info("-" * 80)

    logger.info(f"\nTotal parts: {len(parts)}")


def cmd_create(args, services):
    """Create a new part."""
    try:
        part = services.parts.create(args.name, args.part_number)
    except TaxonomyError as e:
        logger.error(f"Error creating part: {e}")
        sys.exit(EXIT_FAILURE)

    logger.info(f"✓ Part created successfully with ID: {part.id}")


def cmd_tag(args, services):
    """Tag a part with a category."""
    try:
        services.parts.tag(args.part_id, args.category_id)
    except TaxonomyError as e:
        logger.error(f"Error tagging part: {e}")
        sys.exit(exit_code_for(e))

    logger.info(f"✓ Part {args.part_id} tagged with category {args.category_id}.")


def cmd_untag(args, services):
    """Remove a category tag from a part."""
    if services.parts.untag(args.part_id, args.category_id):
        logger.info(f"✓ Removed category {args.category_id} from part {args.part_id}.")
    else:
        logger.info(f"Part {args.part_id} was not tagged with category {args.category_id}.")


def setup_parser(subparsers):
    """Setup parts subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "parts",
        help="Manage parts",
        description="Create parts and tag them with categories",
    )

    parts_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available part commands",
        dest="subcommand",
        required=True,
    )

    # parts list
    list_parser = parts_subparsers.add_parser("list", help="List all parts")
    list_parser.set_defaults(func=cmd_list)

    # parts create
    create_parser = parts_subparsers.add_parser("create", help="Create a new part")
    create_parser.add_argument("name", help="Part name")
    create_parser.add_argument("--part-number", help="Manufacturer part number")
    create_parser.set_defaults(func=cmd_create)

    # parts tag
    tag_parser = parts_subparsers.add_parser("tag", help="Tag a part with a category")
    tag_parser.add_argument("part_id", type=int, help="ID of the part")
    tag_parser.add_argument("category_id", type=int, help="ID of the category")
    tag_parser.set_defaults(func=cmd_tag)

    # parts untag
    untag_parser = parts_subparsers.add_parser(
        "untag", help="Remove a category tag from a part"
    )
    untag_parser.add_argument("part_id", type=int, help="ID of the part")
    untag_parser.add_argument("category_id", type=int, help="ID of the category")
    untag_parser.set_defaults(func=cmd_untag)
