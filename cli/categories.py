#!/usr/bin/env python3

import sys
import json
from pathlib import Path
from logger import get_logger
from cli.exit_codes import EXIT_FAILURE, exit_code_for
from services.errors import TaxonomyError

logger = get_logger()

# What the administrator can do about each rejection
_HINTS = {
    "validation": "Check the values you entered.",
    "not_found": "Run 'categories list' to see existing IDs.",
    "parent_not_found": "Run 'categories list' to pick an existing parent.",
    "circular_reference": "A category cannot be moved under itself or its own subcategories.",
    "has_children": "Move or delete its subcategories first.",
    "in_use": "Untag the parts using this category first ('parts untag').",
    "structural_corruption": (
        "The stored tree is broken. Run 'categories verify', move the listed "
        "categories to root with 'categories move <id>', then 'categories resume'."
    ),
    "concurrent_modification": "Another change was in progress; run the command again.",
}


def _report(error: TaxonomyError):
    """Log a taxonomy rejection with a hint and exit."""
    if error.kind == "structural_corruption":
        logger.critical(f"{error}")
    else:
        logger.error(f"{error}")
    hint = _HINTS.get(error.kind)
    if hint:
        logger.info(hint)
    sys.exit(exit_code_for(error))


def _print_category(category, parent_name=None):
    logger.info(f"ID: {category.id}")
    logger.info(f"Name: {category.name}")
    if not category.is_root:
        logger.info(f"Parent: {parent_name or 'Unknown'} (ID: {category.parent_id})")
    logger.info("-" * 80)


def cmd_list(args, services):
    """List categories with their parent names."""
    filters = {}
    if args.roots:
        filters["parent_id"] = None
    elif args.parent is not None:
        filters["parent_id"] = args.parent

    try:
        page = services.categories.list(
            search=args.search,
            sort_by=args.sort,
            sort_order="desc" if args.desc else "asc",
            limit=args.limit,
            cursor=args.cursor,
            **filters,
        )
    except TaxonomyError as e:
        _report(e)

    if not page.items:
        logger.info("No categories found.")
        return

    logger.info("\nCategories:")
    logger.info("=" * 80)
    for category in page.items:
        _print_category(category, category.parent_name)

    logger.info(f"\nShown: {len(page.items)}")
    if page.next_cursor is not None:
        logger.info(f"More results: rerun with --cursor {page.next_cursor}")


def cmd_parents(args, services):
    """List categories that have subcategories."""
    parents = services.categories.list_parents_only()
    if not parents:
        logger.info("No parent categories found.")
        return

    for category in parents:
        logger.info(f"{category.id}\t{category.name}")


def _print_tree(nodes, depth=0):
    for node in nodes:
        logger.info(f"{'  ' * depth}{node.name} (ID: {node.id})")
        _print_tree(node.children, depth + 1)


def cmd_tree(args, services):
    """Print the category tree."""
    roots = services.categories.tree()
    if not roots:
        logger.info("No categories found.")
        return
    _print_tree(roots)


def cmd_create(args, services):
    """Create a new category."""
    try:
        category = services.categories.create(args.name, args.parent)
    except TaxonomyError as e:
        _report(e)

    logger.info(f"\n✓ Category created successfully with ID: {category.id}")
    logger.info(f"  Name: {category.name}")
    if category.parent_id:
        logger.info(f"  Parent ID: {category.parent_id}")


def cmd_rename(args, services):
    """Rename a category."""
    try:
        category = services.categories.rename(args.category_id, args.name)
    except TaxonomyError as e:
        _report(e)

    logger.info(f"✓ Category {category.id} renamed to '{category.name}'.")


def cmd_move(args, services):
    """Move a category under a new parent, or to root when no parent is given."""
    try:
        category = services.categories.reparent(args.category_id, args.parent)
    except TaxonomyError as e:
        _report(e)

    if category.is_root:
        logger.info(f"✓ Category '{category.name}' is now a top-level category.")
    else:
        logger.info(f"✓ Category '{category.name}' moved under ID {category.parent_id}.")


def cmd_delete(args, services):
    """Delete a category by ID."""
    category_id = args.category_id

    category = services.categories.find(category_id)
    if not category:
        logger.error(f"Category with ID {category_id} not found.")
        sys.exit(EXIT_FAILURE)

    logger.info("\nCategory to delete:")
    logger.info(f"  ID: {category.id}")
    logger.info(f"  Name: {category.name}")

    if not args.yes:
        confirm = (
            input("\nAre you sure you want to delete this category? (yes/no): ")
            .strip()
            .lower()
        )
        if confirm != "yes":
            logger.info("Deletion cancelled.")
            return

    try:
        services.categories.delete(category_id)
    except TaxonomyError as e:
        _report(e)

    logger.info(f"✓ Category '{category.name}' deleted successfully.")


def cmd_seed(args, services):
    """Seed categories from a JSON file."""
    seed_file = args.file or services.config.seed_file

    if not seed_file.exists():
        logger.error(f"Seed file not found: {seed_file}")
        sys.exit(EXIT_FAILURE)

    try:
        with open(seed_file, "r") as f:
            entries = json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Error parsing JSON file: {e}")
        sys.exit(EXIT_FAILURE)

    logger.info(f"\nSeeding categories from {seed_file}")
    logger.info("=" * 80)

    try:
        created, skipped = services.categories.seed(entries)
    except TaxonomyError as e:
        _report(e)

    logger.info("\nSeeding complete!")
    logger.info(f"Created: {created}")
    logger.info(f"Skipped: {skipped}")
    logger.info(f"Total: {created + skipped}")


def cmd_verify(args, services):
    """Check every category's ancestor chain."""
    corrupt = services.categories.verify()
    halt = services.categories.halted()

    if halt:
        logger.warning(f"Structural edits halted since {halt.halted_at}: {halt.reason}")

    if not corrupt:
        logger.info("✓ Category tree is a valid forest.")
        return

    logger.critical(f"Broken ancestor chains at category IDs: {corrupt}")
    logger.info(_HINTS["structural_corruption"])
    sys.exit(EXIT_FAILURE)


def cmd_resume(args, services):
    """Lift an integrity halt after the tree has been repaired."""
    if services.categories.halted() is None:
        logger.info("Structural edits are not halted.")
        return

    try:
        services.categories.resume()
    except TaxonomyError as e:
        _report(e)

    logger.info("✓ Structural edits resumed.")


def setup_parser(subparsers):
    """Setup categories subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "categories",
        help="Manage categories",
        description="Create, move, list, and delete catalog categories",
    )

    categories_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available category commands",
        dest="subcommand",
        required=True,
    )

    # categories list
    list_parser = categories_subparsers.add_parser(
        "list", help="List categories with parent names"
    )
    list_parser.add_argument("--search", help="Case-insensitive name filter")
    list_parser.add_argument("--parent", type=int, help="Only children of this ID")
    list_parser.add_argument(
        "--roots", action="store_true", help="Only top-level categories"
    )
    list_parser.add_argument(
        "--sort",
        default="name",
        choices=["name", "parent_name", "id", "created_at"],
        help="Sort key (default: name)",
    )
    list_parser.add_argument("--desc", action="store_true", help="Sort descending")
    list_parser.add_argument("--limit", type=int, help="Page size (1-1000)")
    list_parser.add_argument("--cursor", type=int, help="Start of page to show")
    list_parser.set_defaults(func=cmd_list)

    # categories parents
    parents_parser = categories_subparsers.add_parser(
        "parents", help="List categories that have subcategories"
    )
    parents_parser.set_defaults(func=cmd_parents)

    # categories tree
    tree_parser = categories_subparsers.add_parser("tree", help="Print the tree")
    tree_parser.set_defaults(func=cmd_tree)

    # categories create
    create_parser = categories_subparsers.add_parser(
        "create", help="Create a new category"
    )
    create_parser.add_argument("name", help="Category name")
    create_parser.add_argument("--parent", type=int, help="Parent category ID")
    create_parser.set_defaults(func=cmd_create)

    # categories rename
    rename_parser = categories_subparsers.add_parser(
        "rename", help="Rename a category"
    )
    rename_parser.add_argument("category_id", type=int, help="ID of the category")
    rename_parser.add_argument("name", help="New name")
    rename_parser.set_defaults(func=cmd_rename)

    # categories move
    move_parser = categories_subparsers.add_parser(
        "move", help="Move a category under a new parent (or to root)"
    )
    move_parser.add_argument("category_id", type=int, help="ID of the category")
    move_parser.add_argument(
        "--parent", type=int, help="New parent ID; omit to make it top-level"
    )
    move_parser.set_defaults(func=cmd_move)

    # categories delete
    delete_parser = categories_subparsers.add_parser(
        "delete", help="Delete a category by ID"
    )
    delete_parser.add_argument(
        "category_id",
        type=int,
        help="ID of the category to delete",
    )
    delete_parser.add_argument(
        "--yes", action="store_true", help="Skip the confirmation prompt"
    )
    delete_parser.set_defaults(func=cmd_delete)

    # categories seed
    seed_parser = categories_subparsers.add_parser(
        "seed", help="Seed categories from JSON file"
    )
    seed_parser.add_argument(
        "--file", type=Path, help="Seed file (default: taxonomy.seed_file)"
    )
    seed_parser.set_defaults(func=cmd_seed)

    # categories verify
    verify_parser = categories_subparsers.add_parser(
        "verify", help="Check the tree for cycles and dangling parents"
    )
    verify_parser.set_defaults(func=cmd_verify)

    # categories resume
    resume_parser = categories_subparsers.add_parser(
        "resume", help="Resume structural edits after repairing the tree"
    )
    resume_parser.set_defaults(func=cmd_resume)
