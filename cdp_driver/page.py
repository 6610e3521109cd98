"""Page-level operations on a CDP session.

Usage:
    with discovery.connect_to_first_page() as session:
        page = Page.create(session)
        page.navigate("https://example.com").wait_for_navigation()
        title = page.evaluate("document.title").get_return_value()
        page.screenshot({"format": "jpeg", "quality": 80}).save_to_file("shot.jpg")
"""

import logging
from typing import Any, Dict, Mapping, Optional, Union

from .exceptions import ResponseHasError
from .frame_manager import FrameManager
from .logging_setup import log_with_context
from .message import Message
from .page_utils import (
    DOM_CONTENT_LOADED,
    LOAD,
    PageEvaluation,
    PageNavigation,
    PageScreenshot,
    ScreenshotOptions,
    wait_for_reload,
)
from .session import CDPSession

logger = logging.getLogger(__name__)


class Page:
    """
    Façade over one page target: navigation, evaluation, lifecycle and screenshots.

    Attributes:
        frame_manager: Frame state kept up to date from Page domain events
    """

    DOM_CONTENT_LOADED = DOM_CONTENT_LOADED
    LOAD = LOAD

    def __init__(self, session: CDPSession, frame_tree: Dict[str, Any]):
        """
        Args:
            session: Session attached to the page target
            frame_tree: The "frameTree" member of a Page.getFrameTree result
        """
        self._session = session
        self.frame_manager = FrameManager(session.get_connection(), frame_tree)

    @classmethod
    def create(cls, session: CDPSession, timeout: Optional[int] = None) -> "Page":
        """
        Enable the Page domain with lifecycle events and build a Page.

        Args:
            session: Open session on a page target
            timeout: Wait for each setup command, in milliseconds

        Raises:
            ResponseHasError: If Chrome rejects a setup command
            NoResponseAvailableError: If Chrome does not answer in time
        """
        for message in (
            Message("Page.enable"),
            Message("Page.setLifecycleEventsEnabled", {"enabled": True}),
        ):
            _ensure_success(session.send_message_sync(message, timeout), message)

        message = Message("Page.getFrameTree")
        response = _ensure_success(session.send_message_sync(message, timeout), message)
        return cls(session, response.get_result_data("frameTree"))

    def get_session(self) -> CDPSession:
        return self._session

    def navigate(self, url: str) -> PageNavigation:
        """
        Start navigating the main frame to `url`.

        Raises:
            ResponseHasError: If Chrome cannot load the URL
            NoResponseAvailableError: If Chrome does not answer in time
        """
        connection = self._session.get_connection()

        # Apply any loader change that already arrived before taking the snapshot
        connection.read_data()
        frame = self.frame_manager.get_main_frame()
        previous_loader_id = frame.get_latest_loader_id()

        response = self._session.send_message_sync(Message("Page.navigate", {"url": url}))

        if not response.is_successful():
            reason = response.error_message
        else:
            # Network failures come back as a successful reply carrying errorText
            reason = response.get_result_data("errorText")
        if reason:
            raise ResponseHasError(
                f'Cannot load page for url: "{url}". Reason: {reason}',
                method="Page.navigate",
                error_code=response.error_code,
                details={"url": url},
            )

        loader_id = response.get_result_data("loaderId")
        log_with_context(
            logger, logging.DEBUG, "Navigation started",
            url=url, previous_loader_id=previous_loader_id, loader_id=loader_id,
        )
        return PageNavigation(url, previous_loader_id, loader_id, frame, connection)

    def evaluate(self, expression: str) -> PageEvaluation:
        """
        Evaluate `expression` in the page, awaiting promises and returning by value.

        Example:
            evaluation = page.evaluate('document.querySelector("title").innerHTML')
            title = evaluation.get_return_value()
        """
        frame = self.frame_manager.get_main_frame()
        loader_id = frame.get_latest_loader_id()
        reader = self._session.send_message(
            Message(
                "Runtime.evaluate",
                {
                    "awaitPromise": True,
                    "returnByValue": True,
                    "expression": expression,
                },
            )
        )
        return PageEvaluation(reader, loader_id, frame)

    def get_current_lifecycle(self) -> Dict[str, float]:
        """
        Pump the connection, then return the main frame lifecycle.

        Events come as a mapping of event name to the time they occurred at.

        Raises:
            CannotReadResponseError: If the connection cannot be read
            InvalidResponseError: If a malformed frame arrives
        """
        self._session.get_connection().read_data()
        return self.frame_manager.get_main_frame().get_lifecycle()

    def has_lifecycle_event(self, event_name: str) -> bool:
        """
        Check if the lifecycle event was reached.

        Example:
            page.has_lifecycle_event(Page.DOM_CONTENT_LOADED)
        """
        return event_name in self.get_current_lifecycle()

    def wait_for_reload(
        self,
        event_name: str = LOAD,
        timeout: int = 30000,
        loader_id: Optional[str] = None,
    ) -> "Page":
        """
        Wait for the main frame to load a new document.

        Args:
            event_name: Lifecycle event the new document must reach
            timeout: Budget in milliseconds
            loader_id: Loader to wait to leave (default: the current one)

        Raises:
            OperationTimedOutError: If the budget is exhausted
            CommunicationError: If the transport fails while waiting
        """
        wait_for_reload(
            self.frame_manager.get_main_frame(),
            self._session.get_connection(),
            event_name,
            timeout,
            loader_id,
        )
        return self

    def screenshot(
        self, options: Union[ScreenshotOptions, Mapping[str, Any], None] = None
    ) -> PageScreenshot:
        """
        Request a screenshot of the page.

        Example:
            page.screenshot().save_to_file("/tmp/page.png")

        Raises:
            InvalidArgumentError: If options are invalid (nothing is sent)
            CommunicationError: If the command cannot be sent
        """
        if not isinstance(options, ScreenshotOptions):
            options = ScreenshotOptions.from_mapping(options)

        reader = self._session.send_message(
            Message("Page.captureScreenshot", options.to_params())
        )
        return PageScreenshot(reader)

    def close(self) -> None:
        """Stop tracking frames. The session stays open."""
        self.frame_manager.close()


def _ensure_success(response, message: Message):
    if not response.is_successful():
        raise ResponseHasError(
            f"{message.method} failed: {response.error_message}",
            method=message.method,
            error_code=response.error_code,
        )
    return response
