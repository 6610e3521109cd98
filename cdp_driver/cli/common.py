"""
Helpers shared by page subcommands: target selection and error reporting.
"""

import argparse
import sys
from typing import Tuple

from ..config import Configuration
from ..exceptions import CDPError, CDPTargetNotFoundError
from ..page import Page
from ..session import CDPSession, TargetDiscovery


def get_config(args: argparse.Namespace) -> Configuration:
    """Configuration attached by main(), defaults when a handler is called directly."""
    config = getattr(args, "config", None)
    return config if config is not None else Configuration()


def create_discovery(args: argparse.Namespace) -> TargetDiscovery:
    config = get_config(args)
    return TargetDiscovery(
        chrome_host=config.chrome_host,
        chrome_port=config.chrome_port,
        send_sync_timeout=config.timeout,
        max_size=config.max_size,
    )


def open_page(args: argparse.Namespace) -> Tuple[CDPSession, Page]:
    """
    Open a session on the selected page target and set up a Page on it.

    Target selection: --target ID, else first page matching --url, else first page.

    Raises:
        CDPTargetNotFoundError: If no target matches
    """
    discovery = create_discovery(args)

    target_id = getattr(args, "target", None)
    if target_id:
        target = discovery.get_target_by_id(target_id)
        if not target:
            raise CDPTargetNotFoundError(
                f"Target not found: {target_id}", target_id=target_id
            )
        session = discovery.connect_to_target(target)
    else:
        session = discovery.connect_to_first_page(getattr(args, "url", None))

    try:
        page = Page.create(session, get_config(args).timeout)
    except CDPError:
        session.close()
        raise
    return session, page


def add_target_arguments(parser: argparse.ArgumentParser) -> None:
    """Add --target / --url target selection to a subcommand parser."""
    target_group = parser.add_mutually_exclusive_group()
    target_group.add_argument("--target", help="Target ID to attach to")
    target_group.add_argument(
        "--url", help="URL pattern to match a page target (uses first match)"
    )


def report_error(args: argparse.Namespace, error: CDPError) -> int:
    """Print a CDPError for the user and return the exit code."""
    if get_config(args).log_level.upper() == "DEBUG":
        raise error
    print(f"Error: {error}", file=sys.stderr)
    if error.details.get("recovery"):
        print(f"Recovery hint: {error.details['recovery']}", file=sys.stderr)
    return 1
