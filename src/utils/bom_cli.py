"""
BOM Command-Line Utility

Command-line interface for maintaining and querying Bills of Materials.
No UI required - designed for scripting and testing use.

Usage Examples:
    # Create tables in the configured database
    python -m src.utils.bom_cli init

    # Register parts in project 1
    python -m src.utils.bom_cli add-part 1 ASM-100 "Chassis assembly"
    python -m src.utils.bom_cli add-part 1 SCR-010 "M3 screw" --category Fastener

    # Put 4 screws in the chassis
    python -m src.utils.bom_cli add-item 1 2 4 --unit EA

    # Show the indented tree, the flat list, or where a part is used
    python -m src.utils.bom_cli tree 1
    python -m src.utils.bom_cli flat 1 --status active
    python -m src.utils.bom_cli where-used 2

    # Export the flat BOM and check stored data
    python -m src.utils.bom_cli export-csv 1 chassis_bom.csv
    python -m src.utils.bom_cli check 1

    # Use another database
    python -m src.utils.bom_cli --db-url sqlite:///scratch.db tree 1
"""

import argparse
import os
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from src.services import bom_export_service, bom_service, part_service
from src.services.bom_tree import BomTreeNode, filter_flat_items
from src.services.database import close_connections, initialize_app_database
from src.services.exceptions import ServiceError
from src.utils.config import ENV_VAR_DATABASE_URL, reset_config
from src.utils.logging_config import configure_logging

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _print_tree(tree: BomTreeNode) -> None:
    for node in tree.iter_nodes():
        indent = "  " * node.level
        if node.level == 0:
            print(f"{node.part.part_number}  {node.part.name}")
        else:
            print(
                f"{indent}{node.part.part_number}  {node.part.name}  "
                f"x{node.quantity_at_level} {node.unit}  (total {node.total_quantity})"
            )


def init_cmd():
    """Create the database tables."""
    print("Database ready.")
    return 0


def add_part_cmd(project_id, part_number, name, category=None, status="draft"):
    """Register a part."""
    part = part_service.create_part(
        project_id, part_number, name, category=category, status=status
    )
    print(f"Created part {part.part_number} (id {part.id})")
    return 0


def add_item_cmd(parent_id, child_id, quantity, unit, position=None, notes=None):
    """Add a BOM line."""
    edge = bom_service.add_edge(
        parent_id, child_id, quantity, unit=unit, position=position, notes=notes
    )
    print(
        f"Added {edge.child_part.part_number} x{edge.quantity} {edge.unit} "
        f"to {edge.parent_part.part_number} (item id {edge.id})"
    )
    return 0


def remove_item_cmd(edge_id):
    """Remove a BOM line."""
    bom_service.remove_edge(edge_id)
    print(f"Removed BOM item {edge_id}")
    return 0


def tree_cmd(part_id, max_depth=None):
    """Print the indented BOM tree of a part."""
    result = bom_service.get_tree(part_id, max_depth=max_depth)
    _print_tree(result.tree)
    print(f"\n{result.total_parts} distinct parts, {result.max_level} levels")
    return 0


def flat_cmd(part_id, query=None, statuses=None, categories=None):
    """Print the flat BOM of a part."""
    result = bom_service.get_tree(part_id)
    items = filter_flat_items(result.flat_list, query, statuses, categories)
    for item in items:
        print(
            f"{item.level}\t{item.part_number}\t{item.name}\t"
            f"{item.quantity}\t{item.unit}\t{item.total_quantity}\t{item.path}"
        )
    print(f"\n{len(items)} of {len(result.flat_list)} rows")
    return 0


def where_used_cmd(part_id):
    """Print every assembly that uses a part."""
    result = bom_service.where_used(part_id)
    if not result.parents:
        print(f"{result.part.part_number} is not used in any assembly")
        return 0

    print(f"{result.part.part_number} is used in:")
    for entry in result.parents:
        print(f"  L{entry.level}  {entry.part_number}  x{entry.quantity} {entry.unit}  {entry.path}")
    return 0


def export_csv_cmd(part_id, output_file):
    """Export the flat BOM of a part to CSV."""
    print(f"Exporting BOM of part {part_id} to {output_file}...")
    result = bom_export_service.export_bom_csv(part_id, output_file)
    print(f"Exported {result.record_count} rows of {result.part_number} to {result.output_path}")
    return 0


def check_cmd(part_id):
    """Check the stored BOM below a part."""
    report = bom_service.check_bom_integrity(part_id)
    if report["is_valid"]:
        print(f"BOM is valid ({report['edges_checked']} items, {report['max_level']} levels)")
        return 0

    print(f"Found {report['issues_count']} issue(s):")
    for issue in report["issues"]:
        print(f"  - {issue}")
    return 1


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all BOM commands."""
    parser = argparse.ArgumentParser(
        prog="plm-bom",
        description="Bill of Materials utility for the PLM BOM engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Build a BOM:
    plm-bom add-part 1 ASM-100 "Chassis assembly"
    plm-bom add-part 1 SCR-010 "M3 screw"
    plm-bom add-item 1 2 4

  Query it:
    plm-bom tree 1
    plm-bom where-used 2
    plm-bom export-csv 1 chassis_bom.csv
""",
    )
    parser.add_argument(
        "--db-url",
        dest="db_url",
        help=f"Database URL (default: ${ENV_VAR_DATABASE_URL} or the configured database)",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        type=str.upper,
        choices=LOG_LEVELS,
        default="WARNING",
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("init", help="Create database tables")

    part_parser = subparsers.add_parser("add-part", help="Register a part")
    part_parser.add_argument("project_id", type=int, help="Project ID")
    part_parser.add_argument("part_number", help="Part number (unique per project)")
    part_parser.add_argument("name", help="Part name")
    part_parser.add_argument("--category", help="Part category")
    part_parser.add_argument(
        "--status",
        choices=["draft", "active", "obsolete"],
        default="draft",
        help="Part status (default: draft)",
    )

    item_parser = subparsers.add_parser("add-item", help="Add a child part to a parent's BOM")
    item_parser.add_argument("parent_id", type=int, help="Parent part ID")
    item_parser.add_argument("child_id", type=int, help="Child part ID")
    item_parser.add_argument("quantity", help="Quantity per parent (e.g. 2, 0.5)")
    item_parser.add_argument("--unit", default="EA", help="Unit of measure (default: EA)")
    item_parser.add_argument("--position", type=int, help="Sibling position")
    item_parser.add_argument("--notes", help="Line notes")

    remove_parser = subparsers.add_parser("remove-item", help="Remove a BOM line")
    remove_parser.add_argument("edge_id", type=int, help="BOM item ID")

    tree_parser = subparsers.add_parser("tree", help="Show the multi-level BOM of a part")
    tree_parser.add_argument("part_id", type=int, help="Root part ID")
    tree_parser.add_argument("--max-depth", dest="max_depth", type=int, help="Depth bound")

    flat_parser = subparsers.add_parser("flat", help="Show the flat BOM of a part")
    flat_parser.add_argument("part_id", type=int, help="Root part ID")
    flat_parser.add_argument("--query", help="Filter by part number or name")
    flat_parser.add_argument(
        "--status", dest="statuses", action="append", help="Filter by status (repeatable)"
    )
    flat_parser.add_argument(
        "--category", dest="categories", action="append", help="Filter by category (repeatable)"
    )

    used_parser = subparsers.add_parser("where-used", help="Show where a part is used")
    used_parser.add_argument("part_id", type=int, help="Part ID")

    export_parser = subparsers.add_parser("export-csv", help="Export the flat BOM to CSV")
    export_parser.add_argument("part_id", type=int, help="Root part ID")
    export_parser.add_argument("file", help="CSV file path")

    check_parser = subparsers.add_parser("check", help="Check stored BOM data below a part")
    check_parser.add_argument("part_id", type=int, help="Root part ID")

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    configure_logging(args.log_level)

    if args.db_url:
        os.environ[ENV_VAR_DATABASE_URL] = args.db_url
        reset_config()
        close_connections()

    # Initialize database (required for all operations)
    initialize_app_database()

    try:
        if args.command == "init":
            return init_cmd()
        elif args.command == "add-part":
            return add_part_cmd(
                args.project_id, args.part_number, args.name, args.category, args.status
            )
        elif args.command == "add-item":
            return add_item_cmd(
                args.parent_id, args.child_id, args.quantity, args.unit, args.position, args.notes
            )
        elif args.command == "remove-item":
            return remove_item_cmd(args.edge_id)
        elif args.command == "tree":
            return tree_cmd(args.part_id, args.max_depth)
        elif args.command == "flat":
            return flat_cmd(args.part_id, args.query, args.statuses, args.categories)
        elif args.command == "where-used":
            return where_used_cmd(args.part_id)
        elif args.command == "export-csv":
            return export_csv_cmd(args.part_id, args.file)
        elif args.command == "check":
            return check_cmd(args.part_id)
        else:
            print(f"Unknown command: {args.command}")
            return 1
    except ServiceError as e:
        print(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
