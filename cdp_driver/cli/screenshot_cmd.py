"""
Screenshot subcommand.

Implements 'screenshot' command capturing a page via Page.captureScreenshot.
"""

import argparse
import json
from typing import Any, Dict

from ..exceptions import CDPError, InvalidArgumentError
from ..page_utils import Clip, ScreenshotOptions
from .common import add_target_arguments, open_page, report_error


def parse_clip(value: str) -> Clip:
    """Parse "x,y,width,height[,scale]"."""
    parts = value.split(",")
    if len(parts) not in (4, 5):
        raise InvalidArgumentError(
            f'Invalid clip "{value}". Expected x,y,width,height[,scale].'
        )
    try:
        numbers = [float(part) for part in parts]
    except ValueError as e:
        raise InvalidArgumentError(f'Invalid clip "{value}": {e}') from e
    return Clip(*numbers)


def build_options(args: argparse.Namespace) -> ScreenshotOptions:
    options: Dict[str, Any] = {"format": args.image_format}
    if args.quality is not None:
        options["quality"] = args.quality
    if args.clip:
        options["clip"] = parse_clip(args.clip)
    return ScreenshotOptions.from_mapping(options)


def screenshot_handler(args: argparse.Namespace) -> int:
    """
    Handle 'screenshot' command.

    Options are validated before connecting to Chrome.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    try:
        options = build_options(args)
        session, page = open_page(args)
        with session:
            path = page.screenshot(options).save_to_file(args.output)
    except CDPError as e:
        return report_error(args, e)

    if args.format == "json":
        print(json.dumps({"path": str(path), **options.to_params()}, indent=2))
    else:
        print(path)
    return 0


def register_subcommand(
    subparsers: argparse._SubParsersAction, parent: argparse.ArgumentParser
) -> None:
    """
    Register 'screenshot' subcommand.

    Args:
        subparsers: Subparsers from main parser
        parent: Parent parser with global options
    """
    screenshot_parser = subparsers.add_parser(
        "screenshot",
        parents=[parent],
        help="Capture a page screenshot",
        description="Capture a screenshot with Page.captureScreenshot and save it to a file",
        epilog="""
Examples:
  # PNG of the first page
  cdp-driver screenshot page.png

  # JPEG at quality 80 of a region
  cdp-driver screenshot --image-format jpeg --quality 80 --clip 0,0,800,600 page.jpg
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    add_target_arguments(screenshot_parser)
    screenshot_parser.add_argument("output", help="File to write the image to")
    screenshot_parser.add_argument(
        "--image-format",
        choices=["png", "jpeg"],
        default="png",
        help="Image format (default: png)",
    )
    screenshot_parser.add_argument(
        "--quality",
        type=int,
        help="JPEG quality 0-100 (jpeg only)",
    )
    screenshot_parser.add_argument(
        "--clip",
        help="Capture area as x,y,width,height[,scale]",
    )

    screenshot_parser.set_defaults(func=screenshot_handler)
