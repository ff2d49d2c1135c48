"""In-process event fan-out.

Channels are plain strings: the topic kinds (``"POSITIONS"``, ...),
``"UNKNOWN"``, the wildcard ``"message"`` and the lifecycle channels
``"connected"``, ``"disconnected"``, ``"reconnecting"`` and ``"error"``.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from functools import partial
from typing import Any

from pyrtls.models.events import ErrorEvent

_logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Any]

CONNECTED = "connected"
DISCONNECTED = "disconnected"
RECONNECTING = "reconnecting"
ERROR = "error"
MESSAGE = "message"


@dataclass(slots=True, eq=False)
class _HandlerEntry:
    """One registration. Compared by identity so duplicates stay distinct."""

    handler: EventHandler
    once: bool = False


class EventEmitter:
    """Ordered, per-channel handler registry.

    Handlers run synchronously in registration order. A handler that raises
    is logged and reported on the ``"error"`` channel; the remaining handlers
    still run. A handler returning an awaitable is scheduled on the running
    loop and not awaited.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[_HandlerEntry]] = {}
        self._tasks: set[asyncio.Future[Any]] = set()

    def on(self, event: str, handler: EventHandler) -> Callable[[], None]:
        """Register *handler* for *event*. Returns an unsubscribe callable."""
        return self._add(event, _HandlerEntry(handler))

    def once(self, event: str, handler: EventHandler) -> Callable[[], None]:
        """Register *handler* to run on the next *event* only."""
        return self._add(event, _HandlerEntry(handler, once=True))

    def off(self, event: str, handler: EventHandler) -> None:
        """Remove every registration of *handler* for *event*."""
        entries = self._handlers.get(event)
        if not entries:
            return
        remaining = [entry for entry in entries if entry.handler != handler]
        if remaining:
            self._handlers[event] = remaining
        else:
            self._handlers.pop(event, None)

    def remove_all_listeners(self, event: str | None = None) -> None:
        if event is None:
            self._handlers.clear()
        else:
            self._handlers.pop(event, None)

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, ()))

    def has_listeners(self, event: str) -> bool:
        return self.listener_count(event) > 0

    def event_names(self) -> list[str]:
        return list(self._handlers)

    def emit(self, event: str, data: Any) -> int:
        """Deliver *data* to the handlers of *event*.

        Returns the number of handlers invoked.
        """
        entries = list(self._handlers.get(event, ()))
        invoked = 0
        for entry in entries:
            # A once-handler may already have been consumed by a re-entrant emit.
            if entry.once and not self._remove(event, entry):
                continue
            invoked += 1
            self._invoke(event, entry.handler, data)
        return invoked

    def _add(self, event: str, entry: _HandlerEntry) -> Callable[[], None]:
        self._handlers.setdefault(event, []).append(entry)

        def unsubscribe() -> None:
            self._remove(event, entry)

        return unsubscribe

    def _remove(self, event: str, entry: _HandlerEntry) -> bool:
        entries = self._handlers.get(event)
        if not entries:
            return False
        for index, candidate in enumerate(entries):
            if candidate is entry:
                del entries[index]
                if not entries:
                    self._handlers.pop(event, None)
                return True
        return False

    def _invoke(self, event: str, handler: EventHandler, data: Any) -> None:
        try:
            result = handler(data)
        except Exception as exc:
            self._report(event, exc)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(partial(self._task_done, event))

    def _task_done(self, event: str, task: asyncio.Future[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if isinstance(exc, Exception):
            self._report(event, exc)

    def _report(self, event: str, exc: Exception) -> None:
        _logger.debug("Handler for %r failed", event, exc_info=exc)
        if event == ERROR:
            # Reporting an error handler's fault on "error" would recurse.
            _logger.warning("Error handler raised: %s", exc)
            return
        self.emit(ERROR, ErrorEvent(error=exc, event=event))
