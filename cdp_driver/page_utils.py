"""Result handles returned by Page operations, and their wait conditions.

Handles keep a snapshot of the main frame's loader id taken when the
command was issued, plus the connection and frame needed to resolve
themselves. They never hold the Page.
"""

import base64
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .connection import CDPConnection, ResponseReader
from .exceptions import (
    EvaluationFailedError,
    InvalidArgumentError,
    NavigationExpiredError,
    ResponseHasError,
    ScreenshotFailedError,
)
from .frame_manager import Frame
from .message import Response
from .utils import Done, PollCondition, Wait, try_with_timeout

logger = logging.getLogger(__name__)

LOAD = "load"
DOM_CONTENT_LOADED = "DOMContentLoaded"

NAVIGATION_POLL_DELAY = 500  # ms


# Wait conditions _________________________________________________________________________________


class ReloadCondition(PollCondition):
    """Done once the frame left `loader_id` and reached `event_name` on the new loader."""

    def __init__(
        self,
        frame: Frame,
        connection: CDPConnection,
        event_name: str,
        loader_id: Optional[str],
        delay: int = NAVIGATION_POLL_DELAY,
    ):
        self.frame = frame
        self.connection = connection
        self.event_name = event_name
        self.loader_id = loader_id
        self.delay = delay
        self._waited = False

    def step(self):
        if self._waited:
            self.connection.read_data()

        if self.frame.get_latest_loader_id() != self.loader_id:
            if self.frame.has_lifecycle_event(self.event_name):
                return Done(True)

        self._waited = True
        return Wait(self.delay)

    def describe(self) -> str:
        return f"reload past loader {self.loader_id} until {self.event_name!r}"


class NavigationCondition(PollCondition):
    """Done once the navigation's own loader reached `event_name`.

    Raises NavigationExpiredError when the frame moves to a loader that is
    neither the previous one nor the navigation's.
    """

    def __init__(
        self,
        navigation: "PageNavigation",
        event_name: str,
        delay: int = NAVIGATION_POLL_DELAY,
    ):
        self.navigation = navigation
        self.event_name = event_name
        self.delay = delay
        self._waited = False

    def step(self):
        nav = self.navigation
        if self._waited:
            nav.connection.read_data()
        self._waited = True

        current = nav.frame.get_latest_loader_id()
        if current == nav.loader_id:
            if nav.frame.has_lifecycle_event(self.event_name):
                return Done(nav)
            return Wait(self.delay)
        if current == nav.previous_loader_id:
            return Wait(self.delay)

        raise NavigationExpiredError(
            "The page has navigated to another page and this navigation expired",
            expected_loader_id=nav.loader_id,
            current_loader_id=current,
            details={"url": nav.url},
        )

    def describe(self) -> str:
        return f"navigation to {self.navigation.url} until {self.event_name!r}"


def wait_for_reload(
    frame: Frame,
    connection: CDPConnection,
    event_name: str = LOAD,
    timeout: int = 30000,
    loader_id: Optional[str] = None,
) -> None:
    """Wait until `frame` loads a new document and reaches `event_name`.

    Args:
        frame: Frame to watch
        connection: Connection delivering the frame's events
        event_name: Lifecycle event to wait for
        timeout: Budget in milliseconds
        loader_id: Loader to wait to leave (default: the frame's current one)

    Raises:
        OperationTimedOutError: If the budget is exhausted
        CommunicationError: If the transport fails while waiting
    """
    if not loader_id:
        loader_id = frame.get_latest_loader_id()
    try_with_timeout(
        ReloadCondition(frame, connection, event_name, loader_id), timeout
    )


# Result handles __________________________________________________________________________________


@dataclass(frozen=True)
class PageNavigation:
    """
    A navigation started by Page.navigate.

    Attributes:
        url: Requested URL
        previous_loader_id: Main frame loader before the navigation was sent
        loader_id: Loader created by the navigation, None for same-document navigations
    """

    url: str
    previous_loader_id: Optional[str]
    loader_id: Optional[str]
    frame: Frame = field(repr=False, compare=False)
    connection: CDPConnection = field(repr=False, compare=False)

    def wait_for_navigation(
        self, event_name: str = LOAD, timeout: int = 30000
    ) -> "PageNavigation":
        """Wait until this navigation's document reaches `event_name`.

        Raises:
            NavigationExpiredError: If another navigation replaced this one
            OperationTimedOutError: If the budget is exhausted
        """
        if self.loader_id is None:
            return self
        return try_with_timeout(NavigationCondition(self, event_name), timeout)


class PageEvaluation:
    """
    A pending Runtime.evaluate.

    Usage:
        evaluation = page.evaluate("document.title")
        title = evaluation.get_return_value()
    """

    def __init__(self, reader: ResponseReader, loader_id: Optional[str], frame: Frame):
        self.reader = reader
        self.loader_id = loader_id
        self.frame = frame
        self._resolved = False
        self._resolved_loader_id: Optional[str] = None

    def wait_for_response(self, timeout: Optional[int] = None) -> "PageEvaluation":
        self.reader.wait_for_response(timeout)
        if not self._resolved:
            self._resolved = True
            self._resolved_loader_id = self.frame.get_latest_loader_id()
        return self

    @property
    def resolved_loader_id(self) -> Optional[str]:
        """Main frame loader when the response was read, None before that."""
        return self._resolved_loader_id

    @property
    def navigated(self) -> bool:
        """Whether the main frame changed loader between sending and resolving."""
        return self._resolved and self._resolved_loader_id != self.loader_id

    def get_response(self, timeout: Optional[int] = None) -> Response:
        return self.wait_for_response(timeout).reader.get_response()

    def get_return_value(
        self, timeout: Optional[int] = None, allow_navigation: bool = False
    ) -> Any:
        """Return the evaluated value.

        Args:
            timeout: Response wait in milliseconds (default: connection default)
            allow_navigation: Accept a value even if the page navigated meanwhile

        Raises:
            ResponseHasError: If the protocol rejected the evaluation
            EvaluationFailedError: If the expression threw
            NavigationExpiredError: If the page navigated before the value was read
        """
        response = self.get_response(timeout)

        if not response.is_successful():
            raise ResponseHasError(
                f"Cannot evaluate expression: {response.error_message}",
                method="Runtime.evaluate",
                error_code=response.error_code,
            )

        exception = response.get_result_data("exceptionDetails")
        if exception:
            raise EvaluationFailedError(
                _exception_message(exception),
                details={"line": exception.get("lineNumber"), "column": exception.get("columnNumber")},
            )

        if self.navigated and not allow_navigation:
            raise NavigationExpiredError(
                "The page navigated while the expression was evaluated",
                expected_loader_id=self.loader_id,
                current_loader_id=self._resolved_loader_id,
            )

        return response.get_result_data("result", {}).get("value")

    def wait_for_page_reload(
        self, event_name: str = LOAD, timeout: int = 30000
    ) -> "PageEvaluation":
        """Wait for the reload the expression triggered, starting from its send-time loader."""
        wait_for_reload(
            self.frame, self.reader.connection, event_name, timeout, self.loader_id
        )
        return self

    def __repr__(self):
        return f"PageEvaluation(loader={self.loader_id!r}, reader={self.reader!r})"


def _exception_message(details: Dict[str, Any]) -> str:
    exception = details.get("exception") or {}
    return exception.get("description") or details.get("text") or "Evaluation failed"


class PageScreenshot:
    """A pending Page.captureScreenshot."""

    def __init__(self, reader: ResponseReader):
        self.reader = reader

    def get_base64(self, timeout: Optional[int] = None) -> str:
        """
        Raises:
            ScreenshotFailedError: If Chrome returned an error or no image
        """
        response = self.reader.wait_for_response(timeout)

        if not response.is_successful():
            raise ScreenshotFailedError(
                f"Cannot make a screenshot. Reason: {response.error_message}"
            )

        data = response.get_result_data("data")
        if not data:
            raise ScreenshotFailedError("Cannot make a screenshot. Response has no image data")
        return data

    def save_to_file(self, path: Union[str, Path], timeout: Optional[int] = None) -> Path:
        """Write the decoded image to `path`, creating parent directories."""
        path = Path(path).expanduser()
        image = base64.b64decode(self.get_base64(timeout))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(image)
        logger.info(f"Screenshot saved to {path}")
        return path


# Screenshot options ______________________________________________________________________________


SCREENSHOT_FORMATS = ("png", "jpeg")


@dataclass(frozen=True)
class Clip:
    """Capture area, in CSS pixels."""

    x: float
    y: float
    width: float
    height: float
    scale: float = 1

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Clip":
        missing = [key for key in ("x", "y", "width", "height") if key not in data]
        if missing:
            raise InvalidArgumentError(
                f'Invalid options "clip" for page screenshot. Missing {", ".join(missing)}.'
            )
        unknown = set(data) - {"x", "y", "width", "height", "scale"}
        if unknown:
            raise InvalidArgumentError(
                f'Invalid options "clip" for page screenshot. Unknown keys: {", ".join(sorted(unknown))}.'
            )
        return cls(**data)

    def __post_init__(self):
        for name in ("x", "y", "width", "height", "scale"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidArgumentError(
                    f'Invalid options "clip" for page screenshot. "{name}" must be a number.'
                )
        if self.width <= 0 or self.height <= 0 or self.scale <= 0:
            raise InvalidArgumentError(
                'Invalid options "clip" for page screenshot. Width, height and scale must be positive.'
            )

    def to_params(self) -> Dict[str, float]:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "scale": self.scale,
        }


@dataclass(frozen=True)
class ScreenshotOptions:
    """
    Validated Page.captureScreenshot parameters.

    Attributes:
        format: "png" or "jpeg"
        quality: Compression quality 0-100, jpeg only
        clip: Area to capture, whole viewport when None
    """

    format: str = "png"
    quality: Optional[int] = None
    clip: Optional[Clip] = None

    def __post_init__(self):
        if self.format not in SCREENSHOT_FORMATS:
            raise InvalidArgumentError(
                'Invalid options "format" for page screenshot. Format must be "png" or "jpeg".'
            )

        if self.quality is not None:
            if self.format != "jpeg":
                raise InvalidArgumentError(
                    'Invalid options "quality" for page screenshot. '
                    'Quality requires the image format to be "jpeg".'
                )
            if isinstance(self.quality, bool) or not isinstance(self.quality, int):
                raise InvalidArgumentError(
                    'Invalid options "quality" for page screenshot. Quality must be an integer value.'
                )
            if not 0 <= self.quality <= 100:
                raise InvalidArgumentError(
                    'Invalid options "quality" for page screenshot. '
                    "Quality must be comprised between 0 and 100."
                )

        if self.clip is not None and not isinstance(self.clip, Clip):
            raise InvalidArgumentError(
                f'Invalid options "clip" for page screenshot, it must be a {Clip.__name__} instance.'
            )

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, Any]] = None) -> "ScreenshotOptions":
        """Build options from a plain mapping.

        Raises:
            InvalidArgumentError: On unknown keys or invalid values
        """
        options = dict(options or {})

        unknown = set(options) - {"format", "quality", "clip"}
        if unknown:
            raise InvalidArgumentError(
                f'Unknown options for page screenshot: {", ".join(sorted(unknown))}.'
            )

        clip = options.get("clip")
        if isinstance(clip, Mapping):
            clip = Clip.from_mapping(clip)

        return cls(
            format=options.get("format", "png"),
            quality=options.get("quality"),
            clip=clip,
        )

    def to_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {"format": self.format}
        if self.quality is not None:
            params["quality"] = self.quality
        if self.clip is not None:
            params["clip"] = self.clip.to_params()
        return params
