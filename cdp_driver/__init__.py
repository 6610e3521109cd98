"""Synchronous Chrome DevTools Protocol driver.

This package provides:
- CDPConnection: WebSocket connection with command/response correlation
- CDPSession / TargetDiscovery: Sessions on Chrome targets
- Page: Navigation, evaluation, lifecycle waits and screenshots
- CLI: Command-line interface for page debugging workflows
"""

from .connection import CDPConnection, ResponseReader
from .message import Message, Response
from .page import Page
from .page_utils import Clip, PageEvaluation, PageNavigation, PageScreenshot, ScreenshotOptions
from .session import CDPSession, Target, TargetDiscovery

__version__ = "0.1.0"

__all__ = [
    "CDPConnection",
    "ResponseReader",
    "Message",
    "Response",
    "Page",
    "PageNavigation",
    "PageEvaluation",
    "PageScreenshot",
    "ScreenshotOptions",
    "Clip",
    "CDPSession",
    "Target",
    "TargetDiscovery",
    "__version__",
]
