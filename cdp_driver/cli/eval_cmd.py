"""
Eval subcommand for executing JavaScript in Chrome pages.

Implements 'eval' command to execute JavaScript expressions via Runtime.evaluate.
"""

import argparse
import json

from ..exceptions import CDPError
from .common import add_target_arguments, get_config, open_page, report_error


def eval_handler(args: argparse.Namespace) -> int:
    """
    Handle 'eval' command.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    try:
        session, page = open_page(args)
        with session:
            evaluation = page.evaluate(args.expression)
            value = evaluation.get_return_value(
                allow_navigation=args.allow_navigation
            )
            if args.wait_reload:
                evaluation.wait_for_page_reload(
                    timeout=get_config(args).navigation_timeout
                )
    except CDPError as e:
        return report_error(args, e)

    if args.format == "json":
        print(json.dumps({"value": value, "navigated": evaluation.navigated}, indent=2))
    else:
        print(value)
    return 0


def register_subcommand(
    subparsers: argparse._SubParsersAction, parent: argparse.ArgumentParser
) -> None:
    """
    Register 'eval' subcommand.

    Args:
        subparsers: Subparsers from main parser
        parent: Parent parser with global options
    """
    eval_parser = subparsers.add_parser(
        "eval",
        parents=[parent],
        help="Execute JavaScript in a page",
        description="Execute JavaScript expression via Runtime.evaluate (promises are awaited)",
        epilog="""
Examples:
  # Evaluate in first page
  cdp-driver eval "document.title"

  # Evaluate in target matching URL
  cdp-driver eval --url example.com "document.querySelector('h1').textContent"

  # Click a link and wait for the page it opens
  cdp-driver eval --allow-navigation --wait-reload "document.querySelector('a').click()"
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    add_target_arguments(eval_parser)
    eval_parser.add_argument(
        "expression",
        help="JavaScript expression to evaluate",
    )
    eval_parser.add_argument(
        "--allow-navigation",
        action="store_true",
        help="Accept the value even if the page navigated during evaluation",
    )
    eval_parser.add_argument(
        "--wait-reload",
        action="store_true",
        help="Wait for the page to load a new document after evaluating",
    )

    eval_parser.set_defaults(func=eval_handler)
