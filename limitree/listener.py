"""Notification sinks for permit consumption.

A listener sees every node-level attempt: ``on_consumed`` after each attempt
and ``on_rejected`` in addition when it was denied. Listeners are called on
the requesting thread and must be thread-safe and quick.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


class UsageListener:
    """Base listener; every hook is a no-op."""

    def on_consumed(self, request: Any, resource_id: Any, permits: int, limit: Any) -> None:
        pass

    def on_rejected(self, request: Any, resource_id: Any, permits: int, limit: Any) -> None:
        pass

    def and_then(self, after: UsageListener) -> UsageListener:
        """A listener that notifies this one, then ``after``."""
        if after is NO_OP_LISTENER:
            return self
        if self is NO_OP_LISTENER:
            return after
        return _ChainedListener(self, after)


class _ChainedListener(UsageListener):
    def __init__(self, first: UsageListener, second: UsageListener):
        self._first = first
        self._second = second

    def on_consumed(self, request: Any, resource_id: Any, permits: int, limit: Any) -> None:
        self._first.on_consumed(request, resource_id, permits, limit)
        self._second.on_consumed(request, resource_id, permits, limit)

    def on_rejected(self, request: Any, resource_id: Any, permits: int, limit: Any) -> None:
        self._first.on_rejected(request, resource_id, permits, limit)
        self._second.on_rejected(request, resource_id, permits, limit)


NO_OP_LISTENER = UsageListener()


class LoggingUsageListener(UsageListener):
    """Logs consumption at DEBUG and rejections at INFO."""

    def __init__(self, log: logging.Logger | None = None):
        self._log = log or logger

    def on_consumed(self, request: Any, resource_id: Any, permits: int, limit: Any) -> None:
        self._log.debug("Consumed %d permit(s) of %s for %r, limit: %s", permits, resource_id, request, limit)

    def on_rejected(self, request: Any, resource_id: Any, permits: int, limit: Any) -> None:
        self._log.info("Rejected %d permit(s) of %s for %r, limit: %s", permits, resource_id, request, limit)
