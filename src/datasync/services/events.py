"""Priority-ordered reload listeners.

Listeners are plain callables kept in an explicit ordered list. Dispatch runs
them lowest priority value first; listeners with equal priority run in the
order they were added.
"""

import itertools
import threading
from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

from datasync.models.enums import ListenerPriority
from datasync.models.events import ReloadCompleted

ReloadListener = Callable[[ReloadCompleted], None]


@dataclass(frozen=True, order=True)
class _Registration:
    priority: int
    sequence: int
    callback: ReloadListener = field(compare=False)


class ReloadListeners:
    """Dispatches reload-completed notifications to subscribed callbacks.

    A listener that raises is logged and skipped; it never interrupts the
    reload that produced the notification or the listeners after it.
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self._lock = threading.Lock()
        self._sequence = itertools.count()
        self._registrations: tuple[_Registration, ...] = ()
        self._logger = logger or structlog.get_logger(__name__)

    def add(self, callback: ReloadListener, priority: int = ListenerPriority.NORMAL) -> ReloadListener:
        """Subscribe ``callback`` and return it unchanged."""
        registration = _Registration(int(priority), next(self._sequence), callback)
        with self._lock:
            self._registrations = tuple(sorted((*self._registrations, registration)))
        return callback

    def remove(self, callback: ReloadListener) -> bool:
        with self._lock:
            remaining = tuple(r for r in self._registrations if r.callback is not callback)
            removed = len(remaining) != len(self._registrations)
            self._registrations = remaining
        return removed

    def listener(self, priority: int = ListenerPriority.NORMAL) -> Callable[[ReloadListener], ReloadListener]:
        def decorator(callback: ReloadListener) -> ReloadListener:
            return self.add(callback, priority)

        return decorator

    def notify(self, event: ReloadCompleted) -> None:
        for registration in self._registrations:
            try:
                registration.callback(event)
            except Exception as e:
                self._logger.error(
                    "reload_listener_failed",
                    dataset_type=event.dataset_type,
                    listener=getattr(registration.callback, "__qualname__", repr(registration.callback)),
                    priority=registration.priority,
                    error=str(e),
                    exc_info=True,
                )

    def __len__(self) -> int:
        return len(self._registrations)
