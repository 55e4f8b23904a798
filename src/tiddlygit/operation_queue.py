"""Serialized operation queue for repository mutations.

All commits and pushes run on one worker thread, one step at a time, in
submission order. Submitting never blocks the caller. A failing step settles
its future with the exception and the worker moves on to the next step.
"""

from __future__ import annotations

import atexit
import queue
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .observability import log_debug, log_error


@dataclass
class _Step:
    name: str
    func: Callable[[], Any]
    future: Future = field(default_factory=Future)


class OperationQueue:
    """FIFO of steps consumed by a single daemon worker thread."""

    def __init__(self, name: str = "tiddlygit-ops") -> None:
        self._steps: "queue.Queue[Optional[_Step]]" = queue.Queue()
        self._cond = threading.Condition()
        self._pending = 0
        self._closed = False
        self._worker = threading.Thread(target=self._worker_loop, name=name, daemon=True)
        self._worker.start()
        atexit.register(self.shutdown)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(self, func: Callable[[], Any], name: str = "step") -> Future:
        """Append ``func`` to the queue and return a future for its result.

        Raises:
            RuntimeError: The queue has been shut down.
        """
        step = _Step(name=name, func=func)
        with self._cond:
            if self._closed:
                raise RuntimeError("operation queue is shut down")
            self._pending += 1
            self._steps.put(step)
        log_debug("Queued step", step=name)
        return step.future

    @property
    def depth(self) -> int:
        """Steps submitted but not yet settled (including the running one)."""
        with self._cond:
            return self._pending

    @property
    def closed(self) -> bool:
        return self._closed

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every submitted step has settled.

        Returns False if ``timeout`` expired first. Must not be called from
        inside a step.
        """
        if threading.current_thread() is self._worker:
            raise RuntimeError("wait_idle() called from inside a queued step")
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while self._pending:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return False
                self._cond.wait(remaining)
        return True

    def shutdown(self, timeout: float = 5.0) -> None:
        """Stop accepting steps, let queued ones finish, and join the worker."""
        with self._cond:
            if self._closed:
                return
            self._closed = True
            self._steps.put(None)
        atexit.unregister(self.shutdown)
        if threading.current_thread() is not self._worker and self._worker.is_alive():
            self._worker.join(timeout=timeout)

    # ------------------------------------------------------------------
    # Worker loop
    # ------------------------------------------------------------------

    def _worker_loop(self) -> None:
        while True:
            step = self._steps.get()
            if step is None:
                return
            try:
                self._run(step)
            finally:
                with self._cond:
                    self._pending -= 1
                    self._cond.notify_all()

    def _run(self, step: _Step) -> None:
        if not step.future.set_running_or_notify_cancel():
            return
        try:
            result = step.func()
        except Exception as exc:
            log_error("Queued step failed", step=step.name, error=str(exc))
            step.future.set_exception(exc)
        else:
            step.future.set_result(result)
