from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Any, Callable

logger = logging.getLogger(__name__)


class TaskQueue:
    """Deferred work for the editor loop.

    `call_soon` may be used from any thread; tasks only ever run on the thread that
    calls `run_pending`/`run_until_idle`. One call to `run_pending` is one tick: tasks
    queued while a tick runs wait for the next one. A task that raises is logged and
    the rest of the tick still runs.
    """

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._tasks: deque[tuple[Callable[..., Any], tuple[Any, ...]]] = deque()
        self._lock = threading.Lock()
        self._logger = logger or logging.getLogger(__name__)

    def call_soon(self, fn: Callable[..., Any], *args: Any) -> None:
        if not callable(fn):
            raise TypeError(f"Scheduled task must be callable (type={type(fn).__name__})")
        with self._lock:
            self._tasks.append((fn, args))

    def pending(self) -> int:
        with self._lock:
            return len(self._tasks)

    def run_pending(self) -> int:
        with self._lock:
            batch = list(self._tasks)
            self._tasks.clear()
        for fn, args in batch:
            try:
                fn(*args)
            except Exception:  # noqa: BLE001
                self._logger.exception(
                    "Scheduled task failed: %s", getattr(fn, "__qualname__", repr(fn))
                )
        return len(batch)

    def run_until_idle(self, *, max_ticks: int = 100) -> int:
        ran = 0
        for _ in range(max_ticks):
            if not self.pending():
                return ran
            ran += self.run_pending()
        if self.pending():
            raise RuntimeError(f"Task queue did not drain within {max_ticks} ticks")
        return ran
