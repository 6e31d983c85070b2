"""Bounded polling loop shared by every wait in the orchestrator."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger

T = TypeVar("T")


class PollTimeout(Exception):
    """Raised by ``poll_until`` when the deadline passes without success."""

    def __init__(
        self,
        description: str,
        timeout: float,
        last_value: object = None,
        last_error: BaseException | None = None,
    ):
        self.description = description
        self.timeout = timeout
        self.last_value = last_value
        self.last_error = last_error
        super().__init__(f"Timed out after {timeout:g}s waiting for {description}")

    @property
    def last_observed(self) -> str | None:
        """Human readable summary of the last poll outcome."""
        if self.last_error is not None:
            return f"error: {self.last_error}"
        if self.last_value is not None:
            return str(self.last_value)
        return None


async def poll_until(
    query: Callable[[], Awaitable[T]],
    condition: Callable[[T], bool],
    *,
    timeout: float,
    interval: float,
    description: str,
    transient: tuple[type[BaseException], ...] = (),
    fatal: tuple[type[BaseException], ...] = (),
) -> T:
    """Call ``query`` every ``interval`` seconds until ``condition`` holds.

    The first query runs immediately. Exceptions listed in ``transient`` are
    logged and retried until the deadline, unless they are also instances of
    ``fatal``; anything else propagates.

    Args:
        query: Async callable producing the observed value
        condition: Predicate over the observed value
        timeout: Deadline in seconds, measured from the first call
        interval: Delay between two queries
        description: What is being waited for (used in logs and errors)
        transient: Exception types to swallow while polling
        fatal: Subclasses of ``transient`` that must propagate immediately

    Returns:
        The first observed value satisfying ``condition``

    Raises:
        PollTimeout: If the deadline passes first
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    last_value: T | None = None
    last_error: BaseException | None = None
    attempt = 0

    while True:
        attempt += 1
        try:
            value = await query()
        except transient as e:
            if isinstance(e, fatal):
                raise
            last_error = e
            logger.debug(f"Polling {description} (attempt {attempt}) failed: {e}")
        else:
            last_error = None
            last_value = value
            if condition(value):
                logger.debug(f"Polling {description} succeeded after {attempt} attempt(s)")
                return value
            logger.debug(f"Polling {description} (attempt {attempt}): {value}")

        remaining = deadline - loop.time()
        if remaining <= 0:
            raise PollTimeout(description, timeout, last_value, last_error)
        await asyncio.sleep(min(interval, remaining))
