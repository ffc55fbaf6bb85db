"""Bounded polling used for every wait during UI automation."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, TypeVar

LOGGER = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.25

T = TypeVar("T")


class ConditionPoller:
    """Evaluate a condition until it holds or a timeout elapses.

    Errors raised by the condition count as "not ready yet": the page
    re-renders underneath automation and transient lookups fail.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.clock = clock
        self.sleep = sleep
        self.interval = interval

    def wait_for(
        self,
        condition: Callable[[], Optional[T]],
        timeout: float,
        *,
        interval: Optional[float] = None,
    ) -> Optional[T]:
        """Return the first truthy result of ``condition`` or ``None``."""

        step = self.interval if interval is None else interval
        deadline = self.clock() + max(0.0, timeout)
        while True:
            try:
                result = condition()
            except Exception as exc:  # noqa: BLE001
                LOGGER.debug("Poll condition not ready: %s", exc)
                result = None
            if result:
                return result

            remaining = deadline - self.clock()
            if remaining <= 0:
                return None
            self.sleep(min(step, remaining))


__all__ = ["DEFAULT_POLL_INTERVAL", "ConditionPoller"]
