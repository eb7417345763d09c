"""Delayed task execution on daemon timer threads."""

import threading
from collections.abc import Callable
from typing import Any

import structlog


class DelayedTaskScheduler:
    """Runs callables after a delay; pending tasks are cancelled on shutdown."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self._logger = logger or structlog.get_logger(__name__)
        self._lock = threading.Lock()
        self._pending: set[threading.Timer] = set()
        self._shutdown = False

    def schedule(self, delay: float, task: Callable[..., Any], *args: Any) -> bool:
        """Run ``task(*args)`` after ``delay`` seconds.

        Returns:
            False if the scheduler was already shut down and the task was dropped.
        """
        timer: threading.Timer

        def run() -> None:
            try:
                task(*args)
            except Exception as e:
                self._logger.error(
                    "delayed_task_failed",
                    task=getattr(task, "__qualname__", repr(task)),
                    error=str(e),
                    exc_info=True,
                )
            finally:
                with self._lock:
                    self._pending.discard(timer)

        timer = threading.Timer(max(delay, 0.0), run)
        timer.daemon = True
        with self._lock:
            if self._shutdown:
                self._logger.warning("delayed_task_rejected", reason="scheduler is shut down")
                return False
            self._pending.add(timer)
        timer.start()
        return True

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def shutdown(self) -> None:
        with self._lock:
            self._shutdown = True
            pending = list(self._pending)
            self._pending.clear()
        for timer in pending:
            timer.cancel()
        self._logger.info("scheduler_shutdown", cancelled=len(pending))
