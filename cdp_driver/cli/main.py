"""
Main CLI entry point for the cdp-driver tool.

Provides unified command-line interface with subcommands for page operations.

Usage:
    python -m cdp_driver.cli.main <subcommand> [options]

Subcommands:
    targets     - List Chrome targets
    navigate    - Load a URL and wait for the new document
    lifecycle   - Show lifecycle events of the current document
    eval        - Execute JavaScript in a page
    screenshot  - Capture a page screenshot
"""

import argparse
import sys
from typing import List, Optional

from ..config import Configuration
from ..logging_setup import setup_logging


def create_parent_parser() -> argparse.ArgumentParser:
    """
    Create parent parser with global options shared across all subcommands.

    Options default to None so that unset flags do not override the
    environment or the config file.

    Returns:
        ArgumentParser with global options
    """
    parent = argparse.ArgumentParser(add_help=False)

    # Connection options
    parent.add_argument(
        "--chrome-host",
        help="Chrome host (default: localhost)",
    )
    parent.add_argument(
        "--chrome-port",
        type=int,
        help="Chrome debugging port (default: 9222)",
    )
    parent.add_argument(
        "--timeout",
        type=int,
        help="Command timeout in milliseconds (default: 5000)",
    )

    # Output format
    parent.add_argument(
        "--format",
        choices=["json", "text"],
        default="json",
        help="Output format (default: json)",
    )

    # Logging options
    parent.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )
    parent.add_argument(
        "--log-format",
        choices=["json", "text"],
        help="Log record format on stderr (default: text)",
    )

    # Mutual exclusion group for verbosity
    verbosity_group = parent.add_mutually_exclusive_group()
    verbosity_group.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress non-essential output (only show results)",
    )
    verbosity_group.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose debug output",
    )

    return parent


def create_main_parser(parent: argparse.ArgumentParser) -> argparse.ArgumentParser:
    """
    Create main parser with all subcommands.

    Args:
        parent: Parent parser with global options

    Returns:
        Main ArgumentParser with subcommands configured
    """
    parser = argparse.ArgumentParser(
        prog="cdp-driver",
        description="Drive Chrome pages over the Chrome DevTools Protocol (CDP)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List all page targets
  cdp-driver targets list --type page

  # Load a page and wait for DOMContentLoaded
  cdp-driver navigate --wait-event DOMContentLoaded https://example.com

  # Execute JavaScript
  cdp-driver eval --url example.com "document.title"

  # Screenshot
  cdp-driver screenshot --image-format jpeg --quality 70 page.jpg

For more information on subcommands, run: cdp-driver <subcommand> --help
        """,
    )

    subparsers = parser.add_subparsers(
        dest="subcommand",
        title="subcommands",
        description="Available page operations",
        required=True,
    )

    from . import eval_cmd, navigate_cmd, screenshot_cmd, targets_cmd

    targets_cmd.register_subcommand(subparsers, parent)
    navigate_cmd.register_subcommand(subparsers, parent)
    eval_cmd.register_subcommand(subparsers, parent)
    screenshot_cmd.register_subcommand(subparsers, parent)

    return parser


def build_configuration(args: argparse.Namespace) -> Configuration:
    """
    Load configuration with precedence: CLI > env > file > defaults.
    """
    config = Configuration()
    config.load_from_file("~/.cdprc")
    config.load_from_env()

    config.merge(
        chrome_host=getattr(args, "chrome_host", None),
        chrome_port=getattr(args, "chrome_port", None),
        timeout=getattr(args, "timeout", None),
        log_level=getattr(args, "log_level", None),
        log_format=getattr(args, "log_format", None),
    )

    # Verbosity flags override log level
    if getattr(args, "quiet", False):
        config.log_level = "ERROR"
    elif getattr(args, "verbose", False):
        config.log_level = "DEBUG"

    return config


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for CLI.

    Args:
        argv: Command-line arguments (default: sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parent = create_parent_parser()
    parser = create_main_parser(parent)
    args = parser.parse_args(argv)

    config = build_configuration(args)
    setup_logging(
        format_type=config.log_format,
        level=config.log_level.upper() if isinstance(config.log_level, str) else "INFO",
        quiet=getattr(args, "quiet", False),
        verbose=getattr(args, "verbose", False),
    )

    # Attach config to args for subcommands to access
    args.config = config

    if hasattr(args, "func"):
        try:
            return args.func(args)
        except KeyboardInterrupt:
            print("\nInterrupted by user", file=sys.stderr)
            return 130  # Standard exit code for SIGINT
        except Exception as e:
            if config.log_level.upper() == "DEBUG":
                raise
            print(f"Error: {e}", file=sys.stderr)
            return 1
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
