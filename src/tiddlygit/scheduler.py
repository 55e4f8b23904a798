"""Push scheduling.

Two independent triggers feed pushes into the operation queue:

- a debounce timer, restarted by every commit, so a burst of saves is pushed
  once after things go quiet;
- an interval timer, never reset by commits, so an unreliable remote is still
  retried eventually.

Timer callbacks only enqueue a push step. The push itself, including the
dirty check, runs on the queue like every other repository mutation.
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, Optional

from .config_schema import RemoteConfig
from .credentials import CredentialStrategy
from .models import RepositoryState
from .observability import NotificationSink, SyncEvent, log_debug, timeit


class PushScheduler:
    """Owns the debounce and interval timers."""

    def __init__(
        self,
        trigger: Callable[[], object],
        *,
        debounce_seconds: float,
        interval_seconds: float,
    ) -> None:
        self._trigger = trigger
        self._debounce_seconds = debounce_seconds
        self._interval_seconds = interval_seconds
        self._lock = threading.Lock()
        self._debounce_timer: Optional[threading.Timer] = None
        self._interval_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    def arm_debounce(self) -> None:
        """(Re)start the debounce timer, cancelling any pending firing."""
        if self._debounce_seconds <= 0:
            return
        with self._lock:
            if self._stop_event.is_set():
                return
            if self._debounce_timer is not None:
                self._debounce_timer.cancel()
            timer = threading.Timer(self._debounce_seconds, self._fire_debounce)
            timer.name = "tiddlygit-push-debounce"
            timer.daemon = True
            self._debounce_timer = timer
            timer.start()

    def start_interval(self) -> None:
        """Start the interval timer; later calls are no-ops."""
        if self._interval_seconds <= 0:
            return
        with self._lock:
            if self._interval_thread is not None or self._stop_event.is_set():
                return
            self._interval_thread = threading.Thread(
                target=self._interval_loop,
                name="tiddlygit-push-interval",
                daemon=True,
            )
            self._interval_thread.start()

    def cancel(self) -> None:
        with self._lock:
            self._stop_event.set()
            if self._debounce_timer is not None:
                self._debounce_timer.cancel()
                self._debounce_timer = None
            thread = self._interval_thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)

    def status(self) -> Dict[str, bool]:
        with self._lock:
            return {
                "debounce_armed": self._debounce_timer is not None,
                "interval_running": self._interval_thread is not None and not self._stop_event.is_set(),
            }

    def _fire_debounce(self) -> None:
        with self._lock:
            # Re-armed after this timer's wait ended; the new timer fires instead
            if self._debounce_timer is not threading.current_thread():
                return
            self._debounce_timer = None
            if self._stop_event.is_set():
                return
        log_debug("Debounce timer fired")
        self._trigger()

    def _interval_loop(self) -> None:
        while not self._stop_event.wait(self._interval_seconds):
            log_debug("Interval timer fired")
            self._trigger()


class RemotePusher:
    """Body of the push step."""

    def __init__(
        self,
        state: RepositoryState,
        config: RemoteConfig,
        credentials: CredentialStrategy,
        sink: NotificationSink,
    ) -> None:
        self._state = state
        self._config = config
        self._credentials = credentials
        self._sink = sink
        self.attempts = 0

    def push(self) -> bool:
        """Push the current branch if anything was committed since the last push.

        Returns True only when a push happened and succeeded. Failures are
        reported to the sink and leave the dirty flag set for the next trigger.
        """
        repo = self._state.repository
        if repo is None or not self._state.push_dirty:
            return False

        self.attempts += 1
        try:
            with timeit("push", remote=self._config.name, attempt=self.attempts):
                branch = repo.current_branch_name()
                remote = repo.get_remote(self._config.name)
                env = self._credentials.environment(remote.url)
                repo.push(remote, f"refs/heads/{branch}:refs/heads/{branch}", env)
        except Exception as e:
            self._sink.notify(SyncEvent.PUSH_FAILED, str(e))
            return False

        # No later save may be squashed into an already pushed commit.
        self._state.last_committed_subject = None
        self._state.push_dirty = False
        self._sink.notify(SyncEvent.PUSH_SUCCEEDED)
        return True
