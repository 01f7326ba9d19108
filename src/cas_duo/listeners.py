"""Status listeners notified while a Duo push is being polled.

Listeners run synchronously on the polling thread, so a slow listener
delays the next poll.
"""

import logging
from typing import Callable

from .models import PollResult

logger = logging.getLogger(__name__)

StatusCallback = Callable[[PollResult], None]


class DuoStatusListener:
    """Receives push status events. Both hooks are no-ops by default."""

    def on_pushed(self, result: PollResult) -> None:
        """Called once per poll while the push is still waiting for approval."""

    def on_allowed(self, result: PollResult) -> None:
        """Called once when the push has been approved."""


class CallbackListener(DuoStatusListener):
    """Adapt plain callables to the listener interface."""

    def __init__(
        self,
        on_pushed: StatusCallback | None = None,
        on_allowed: StatusCallback | None = None,
    ):
        self._on_pushed = on_pushed
        self._on_allowed = on_allowed

    def on_pushed(self, result: PollResult) -> None:
        if self._on_pushed is not None:
            self._on_pushed(result)

    def on_allowed(self, result: PollResult) -> None:
        if self._on_allowed is not None:
            self._on_allowed(result)


class LoggingListener(DuoStatusListener):
    """Log push status events."""

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    def on_pushed(self, result: PollResult) -> None:
        self.log.info("Pushed a request to device, waiting for approval: %s", result.message or result.status_code)

    def on_allowed(self, result: PollResult) -> None:
        self.log.info("Request approved, logging in")
