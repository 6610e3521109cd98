"""Exception hierarchy for CDP operations.

All driver exceptions inherit from CDPError base class.
Transport and protocol failures are CommunicationError subclasses; waiting,
validation and page-level failures sit directly under CDPError.
"""

from typing import Optional


class CDPError(Exception):
    """Base exception for all CDP-related errors.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional error context
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class CommunicationError(CDPError):
    """Transport or protocol level failure.

    Raised by whatever operation triggered the transport pump. Never retried
    by the driver.
    """

    pass


class ConnectionFailedError(CommunicationError):
    """Initial connection failed.

    Raised when WebSocket connection cannot be established.
    Common causes: wrong port, Chrome not running, network issues.
    """

    pass


class ConnectionClosedError(CommunicationError):
    """Connection is not open.

    Raised when sending on a closed connection, or when waiting on a command
    that was still pending when the connection was closed.
    """

    pass


class CannotReadResponseError(CommunicationError):
    """The transport could not be read.

    Common causes: Chrome crash, target closed, network interruption.
    """

    pass


class InvalidResponseError(CommunicationError):
    """A frame received from the transport is malformed.

    Example: not JSON, not an object, or neither a response nor an event.
    """

    pass


class NoResponseAvailableError(CommunicationError):
    """No response is available for a command.

    Raised by a synchronous send when the reply did not arrive in time, and
    by ResponseReader.get_response() before the reader is resolved.
    """

    pass


class ResponseHasError(CommunicationError):
    """The protocol accepted the command but reported a failure.

    Example: Page.navigate rejected with "Cannot navigate to invalid URL".
    """

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        error_code: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.method = method
        self.error_code = error_code


class OperationTimedOutError(CDPError):
    """A timeout-bounded wait exhausted its budget.

    Attributes:
        timeout: Budget that was exhausted, in milliseconds
    """

    def __init__(
        self,
        message: str,
        timeout: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.timeout = timeout

    def __str__(self):
        if self.timeout is not None:
            return f"{self.message} (timed out after {self.timeout}ms)"
        return super().__str__()


class InvalidArgumentError(CDPError, ValueError):
    """Local input validation failed before anything was sent.

    Example: screenshot quality given for a png capture.
    """

    pass


class NavigationExpiredError(CDPError):
    """The page started another navigation.

    Raised when waiting on a navigation that a newer one superseded, and when
    reading an evaluation whose document was replaced before it resolved.
    """

    def __init__(
        self,
        message: str,
        expected_loader_id: Optional[str] = None,
        current_loader_id: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.expected_loader_id = expected_loader_id
        self.current_loader_id = current_loader_id


class EvaluationFailedError(CDPError):
    """JavaScript evaluation threw an exception in the page."""

    pass


class ScreenshotFailedError(CDPError):
    """Chrome could not produce the requested screenshot."""

    pass


class CDPTargetNotFoundError(CDPError):
    """Target discovery failures.

    Raised when requested Chrome target cannot be found.
    Example: no page target matching URL filter, invalid target ID.
    """

    def __init__(
        self,
        message: str,
        target_id: Optional[str] = None,
        url_pattern: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.target_id = target_id
        self.url_pattern = url_pattern

    def __str__(self):
        if self.target_id:
            return f"Target not found: {self.target_id}"
        if self.url_pattern:
            return f"No target matching URL pattern: {self.url_pattern}"
        return self.message
