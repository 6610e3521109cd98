"""Timeout-bounded polling.

Every wait in the driver is cooperative: a condition object is stepped,
and between steps the caller sleeps for a bounded quantum. Nothing waits
on a callback or a background thread.

All durations in the public API are milliseconds. MILLISECONDS_PER_SECOND
is the only unit conversion, applied where the sleep primitive is called.

Usage:
    class PageLoaded(PollCondition):
        def step(self):
            if page.has_lifecycle_event("load"):
                return Done(True)
            return Wait(500)

    try_with_timeout(PageLoaded(), timeout=30000)
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from .exceptions import OperationTimedOutError
from .logging_setup import log_with_context

logger = logging.getLogger(__name__)

MILLISECONDS_PER_SECOND = 1000


@dataclass(frozen=True)
class Done:
    """The condition is satisfied; value is returned to the caller."""

    value: Any = True


@dataclass(frozen=True)
class Wait:
    """The condition is not satisfied yet; wait about `delay` milliseconds."""

    delay: int

    def __post_init__(self):
        if self.delay <= 0:
            raise ValueError(f"Wait delay must be positive, got {self.delay}")


StepOutcome = Union[Done, Wait]


class PollCondition:
    """One waitable condition, advanced one step at a time.

    Subclasses keep whatever state they need between steps on the instance.
    Exceptions raised by step() abort the wait and propagate unchanged.
    """

    def step(self) -> StepOutcome:
        raise NotImplementedError

    def describe(self) -> str:
        return type(self).__name__


def try_with_timeout(
    condition: PollCondition,
    timeout: int,
    sleep: Optional[Callable[[float], None]] = None,
) -> Any:
    """Step `condition` until it is done or `timeout` milliseconds of sleep are spent.

    The budget is consumed by the sleeps themselves: each sleep lasts the
    requested delay truncated to what remains, so total sleep never exceeds
    `timeout`. A condition already satisfied on its first step returns
    without sleeping.

    Args:
        condition: Condition to poll
        timeout: Budget in milliseconds
        sleep: Sleep primitive taking seconds (default: time.sleep)

    Returns:
        The value carried by the condition's Done outcome

    Raises:
        OperationTimedOutError: If the budget is exhausted first
    """
    if sleep is None:
        sleep = time.sleep
    remaining = timeout

    while True:
        outcome = condition.step()
        if isinstance(outcome, Done):
            return outcome.value

        if remaining <= 0:
            log_with_context(
                logger, logging.DEBUG, f"Gave up on {condition.describe()}", timeout=timeout
            )
            raise OperationTimedOutError(
                f"Operation timed out waiting for {condition.describe()}",
                timeout=timeout,
            )

        quantum = min(outcome.delay, remaining)
        sleep(quantum / MILLISECONDS_PER_SECOND)
        remaining -= quantum
