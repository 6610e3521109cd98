"""
Navigate and lifecycle subcommands.

'navigate' loads a URL in a page and waits for a lifecycle event of the new
document. 'lifecycle' prints the lifecycle events of the current document.
"""

import argparse
import json
import logging

from ..exceptions import CDPError
from ..logging_setup import get_logger, log_with_context
from ..page import Page
from .common import add_target_arguments, get_config, open_page, report_error

logger = get_logger(__name__)


def navigate_handler(args: argparse.Namespace) -> int:
    """
    Handle 'navigate' command.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    timeout = args.wait_timeout or get_config(args).navigation_timeout
    try:
        session, page = open_page(args)
        with session:
            navigation = page.navigate(args.destination)
            if not args.no_wait:
                navigation.wait_for_navigation(args.wait_event, timeout)
            log_with_context(
                logger, logging.INFO, "Navigation finished",
                url=navigation.url, loader_id=navigation.loader_id,
            )
            result = {
                "url": navigation.url,
                "loaderId": navigation.loader_id,
                "previousLoaderId": navigation.previous_loader_id,
                "lifecycle": page.get_current_lifecycle(),
            }
    except CDPError as e:
        return report_error(args, e)

    if args.format == "json":
        print(json.dumps(result, indent=2))
    else:
        print(f"{result['url']}\t{result['loaderId']}")
    return 0


def lifecycle_handler(args: argparse.Namespace) -> int:
    """
    Handle 'lifecycle' command.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    try:
        session, page = open_page(args)
        with session:
            frame = page.frame_manager.get_main_frame()
            result = {
                "frameId": frame.frame_id,
                "url": frame.url,
                "loaderId": frame.get_latest_loader_id(),
                "lifecycle": page.get_current_lifecycle(),
            }
    except CDPError as e:
        return report_error(args, e)

    if args.format == "json":
        print(json.dumps(result, indent=2))
    else:
        for name, timestamp in sorted(result["lifecycle"].items(), key=lambda item: item[1]):
            print(f"{timestamp:.3f}\t{name}")
    return 0


def register_subcommand(
    subparsers: argparse._SubParsersAction, parent: argparse.ArgumentParser
) -> None:
    """
    Register 'navigate' and 'lifecycle' subcommands.

    Args:
        subparsers: Subparsers from main parser
        parent: Parent parser with global options
    """
    navigate_parser = subparsers.add_parser(
        "navigate",
        parents=[parent],
        help="Load a URL in a page",
        description="Navigate a page with Page.navigate and wait for the new document",
        epilog="""
Examples:
  # Navigate the first page and wait for "load"
  cdp-driver navigate https://example.com

  # Wait for DOMContentLoaded only
  cdp-driver navigate --wait-event DOMContentLoaded https://example.com

  # Navigate the page currently showing localhost
  cdp-driver navigate --url localhost https://example.com
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    add_target_arguments(navigate_parser)
    navigate_parser.add_argument("destination", help="URL to load")
    navigate_parser.add_argument(
        "--wait-event",
        default=Page.LOAD,
        help=f"Lifecycle event to wait for (default: {Page.LOAD})",
    )
    navigate_parser.add_argument(
        "--wait-timeout",
        type=int,
        help="Navigation wait in milliseconds (default: configured navigation_timeout)",
    )
    navigate_parser.add_argument(
        "--no-wait",
        action="store_true",
        help="Return as soon as Chrome accepted the navigation",
    )
    navigate_parser.set_defaults(func=navigate_handler)

    lifecycle_parser = subparsers.add_parser(
        "lifecycle",
        parents=[parent],
        help="Show lifecycle events of a page",
        description="Print the lifecycle events observed for the current document",
    )
    add_target_arguments(lifecycle_parser)
    lifecycle_parser.set_defaults(func=lifecycle_handler)
