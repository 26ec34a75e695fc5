"""Runs a session operation off the UI thread and streams its events back."""

from __future__ import annotations

import queue
import threading
from typing import Any, Callable, Iterator

from pulsegen.core.models import LoopEvent

_DONE = object()


class LoopWorker:
    """Background thread plus an event queue.

    ``target`` receives an ``on_event`` callback as keyword argument and
    may call it from the worker thread; the UI thread drains ``events()``.
    """

    def __init__(self, target: Callable[..., Any], *args, **kwargs):
        self.target = target
        self.args = args
        self.kwargs = kwargs
        self.q: queue.Queue = queue.Queue()
        self.thread: threading.Thread | None = None
        self._result: Any = None
        self._error: BaseException | None = None

    def start(self) -> "LoopWorker":
        self.thread = threading.Thread(target=self._run, name="pulsegen-worker", daemon=True)
        self.thread.start()
        return self

    def events(self, poll_interval: float = 0.1) -> Iterator[LoopEvent]:
        """Yield events until the target returns or raises."""
        while True:
            try:
                item = self.q.get(timeout=poll_interval)
            except queue.Empty:
                if self.thread is not None and not self.thread.is_alive() and self.q.empty():
                    return
                continue
            if item is _DONE:
                return
            yield item

    def result(self, timeout: float | None = None) -> Any:
        """Return the target's value, re-raising anything it raised."""
        if self.thread is not None:
            self.thread.join(timeout)
        if self._error is not None:
            raise self._error
        return self._result

    def _run(self) -> None:
        try:
            self._result = self.target(*self.args, on_event=self.q.put, **self.kwargs)
        except BaseException as e:  # re-raised on the caller's thread by result()
            self._error = e
        finally:
            self.q.put(_DONE)
