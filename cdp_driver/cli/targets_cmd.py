"""
Targets subcommand for target discovery and listing.

Implements 'targets list' command to discover and filter Chrome targets.
"""

import argparse
import json

from ..exceptions import CDPError
from .common import create_discovery, report_error


def targets_list_handler(args: argparse.Namespace) -> int:
    """
    Handle 'targets list' command.

    Lists Chrome targets with optional filtering by type and URL pattern.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    try:
        targets = create_discovery(args).list_targets(
            target_type=getattr(args, "type", None),
            url_pattern=getattr(args, "url", None),
        )
    except CDPError as e:
        return report_error(args, e)

    if args.format == "json":
        print(json.dumps([target.to_dict() for target in targets], indent=2))
    else:
        for target in targets:
            print(f"{target.id}\t{target.type}\t{target.url}\t{target.title}")
    return 0


def register_subcommand(
    subparsers: argparse._SubParsersAction, parent: argparse.ArgumentParser
) -> None:
    """
    Register 'targets' subcommand.

    Args:
        subparsers: Subparsers from main parser
        parent: Parent parser with global options
    """
    targets_parser = subparsers.add_parser(
        "targets",
        parents=[parent],
        help="List Chrome targets",
        description="Discover and filter Chrome targets via CDP HTTP endpoint",
        epilog="""
Examples:
  # List all targets
  cdp-driver targets list

  # List only page targets matching a URL
  cdp-driver targets list --type page --url example.com
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    targets_parser.add_argument(
        "action",
        choices=["list"],
        help="Action to perform (currently only 'list' is supported)",
    )
    targets_parser.add_argument(
        "--type",
        choices=["page", "iframe", "worker", "service_worker", "browser"],
        help="Filter targets by type",
    )
    targets_parser.add_argument(
        "--url",
        help="Filter targets by URL pattern (case-insensitive substring match)",
    )

    targets_parser.set_defaults(func=targets_list_handler)
