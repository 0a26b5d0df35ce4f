"""Single-slot debounced callback on the asyncio event loop."""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class DebouncedCall:
    """Coalesce repeated triggers into one deferred call.

    ``schedule()`` cancels any pending timer and starts a new one, so at most
    one call is ever pending. When no event loop is running the call stays
    pending until ``flush()``.

    Attributes:
        delay: Quiet period in seconds before the callback fires.
    """

    def __init__(self, callback: Callable[[], None], delay: float = 1.0) -> None:
        self.delay = delay
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._pending = False

    @property
    def pending(self) -> bool:
        """Return True if a call is scheduled but has not run yet."""
        return self._pending

    def schedule(self) -> None:
        """(Re)start the timer."""
        self.cancel()
        self._pending = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; deferring call until flush")
            return
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        """Drop the pending call without running it."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._pending = False

    def flush(self) -> None:
        """Run the pending call now, if there is one."""
        if self._pending:
            self.cancel()
            self._callback()

    def _fire(self) -> None:
        self._handle = None
        self._pending = False
        self._callback()
