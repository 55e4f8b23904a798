"""Git commit coordinator for a TiddlyWiki folder.

The document store reports every file save/delete through
:meth:`GitCoordinator.report_change`. The coordinator turns those reports
into commits and eventually pushes them, without ever blocking or failing the
caller:

- every repository mutation (open, commit, push) runs as one step on a single
  :class:`~tiddlygit.operation_queue.OperationQueue`, so a push never sees a
  half-staged index and two saves never race on HEAD;
- errors end their own step and are reported to the notification sink only;
- a missing repository turns the coordinator into a permanent no-op.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future
from functools import partial
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from .committer import CommitBuilder
from .config_loader import get_config
from .config_schema import TiddlyGitConfig
from .credentials import CredentialStrategy, credentials_from_config
from .models import Changeset, CommitResult, RepositoryState
from .observability import LoggingSink, NotificationSink, SyncEvent, log_debug, log_warning
from .operation_queue import OperationQueue
from .repository import GitSyncError, RepositoryHandle
from .scheduler import PushScheduler, RemotePusher


class GitCoordinator:
    """Owns the repository state, the operation queue and the push timers.

    Construct once at startup, call :meth:`start`, and share the instance with
    whatever reports document changes.
    """

    def __init__(
        self,
        config: Optional[TiddlyGitConfig] = None,
        *,
        root: Optional[Path] = None,
        sink: Optional[NotificationSink] = None,
        credentials: Optional[CredentialStrategy] = None,
    ) -> None:
        self._config = config if config is not None else get_config(root)
        self._root = Path(root) if root is not None else Path.cwd()
        self._sink = sink if sink is not None else LoggingSink()
        self._state = RepositoryState()
        self._lock = threading.Lock()
        self._start_future: Optional[Future] = None

        remote = self._config.remote
        self._queue = OperationQueue()
        self._scheduler = PushScheduler(
            self.request_push,
            debounce_seconds=remote.push_timeout,
            interval_seconds=remote.push_interval,
        )
        self._committer = CommitBuilder(
            self._state,
            self._config.git,
            on_commit=self._scheduler.arm_debounce,
        )
        self._pusher = RemotePusher(
            self._state,
            remote,
            credentials if credentials is not None else credentials_from_config(remote),
            self._sink,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> TiddlyGitConfig:
        return self._config

    @property
    def repository(self) -> Optional[RepositoryHandle]:
        return self._state.repository

    @property
    def push_dirty(self) -> bool:
        return self._state.push_dirty

    @property
    def last_committed_subject(self) -> Optional[str]:
        return self._state.last_committed_subject

    @property
    def push_attempts(self) -> int:
        return self._pusher.attempts

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> Future:
        """Queue repository detection; repeated calls return the same future."""
        with self._lock:
            if self._start_future is None:
                self._start_future = self._queue.submit(self._open_step, name="open")
            return self._start_future

    def shutdown(self) -> None:
        """Cancel timers and stop the queue once already queued steps finish."""
        self._scheduler.cancel()
        self._queue.shutdown()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        return self._queue.wait_idle(timeout)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def report_change(
        self,
        subject_id: str,
        added_paths: Iterable[str],
        deleted_paths: Iterable[str],
        message: str,
        is_draft_like: bool = False,
    ) -> Optional[Future]:
        """Record a document save/delete; returns immediately.

        Returns the commit step's future, or None when the changeset was
        dropped without queueing (empty, an uncommitted draft, or after
        shutdown).
        """
        changeset = Changeset(
            subject_id=subject_id,
            added_paths=tuple(str(p) for p in added_paths),
            deleted_paths=tuple(str(p) for p in deleted_paths),
            message=message,
            is_draft_like=is_draft_like,
        )
        if changeset.is_empty:
            return None
        if changeset.is_draft_like and not self._config.git.commit_drafts:
            return None
        return self._submit(partial(self._commit_step, changeset), f"commit:{subject_id}")

    def request_push(self, force: bool = False) -> Optional[Future]:
        """Queue a push step; ``force`` pushes even if nothing new was committed."""
        return self._submit(partial(self._push_step, force), "push")

    def status(self) -> Dict[str, Any]:
        repo = self._state.repository
        head = repo.head_commit() if repo is not None else None
        return {
            "repository": str(repo.root) if repo is not None else None,
            "opened": self._state.opened,
            "head": head.hexsha if head is not None else None,
            "push_dirty": self._state.push_dirty,
            "last_committed_subject": self._state.last_committed_subject,
            "queue_depth": self._queue.depth,
            "push_attempts": self._pusher.attempts,
            **self._scheduler.status(),
        }

    # ------------------------------------------------------------------
    # Queue steps
    # ------------------------------------------------------------------

    def _submit(self, func, name: str) -> Optional[Future]:
        try:
            return self._queue.submit(func, name=name)
        except RuntimeError:
            log_warning("Dropping git step after shutdown", step=name)
            return None

    def _open_step(self) -> bool:
        self._state.opened = True
        git_config = self._config.git
        try:
            handle = RepositoryHandle.open(
                self._root,
                author_name=git_config.author_name,
                author_email=git_config.author_email,
            )
        except GitSyncError as e:
            self._sink.notify(SyncEvent.INITIALIZATION_FAILED, str(e))
            return False
        if handle is None:
            self._sink.notify(SyncEvent.REPOSITORY_ABSENT)
            return False

        self._state.repository = handle
        self._sink.notify(SyncEvent.REPOSITORY_DETECTED)

        remote = self._config.remote
        self._scheduler.start_interval()
        if remote.debounce_enabled or remote.interval_enabled:
            self._pusher.push()
        return True

    def _commit_step(self, changeset: Changeset) -> Optional[CommitResult]:
        try:
            result = self._committer.apply(changeset)
        except Exception as e:
            self._sink.notify(SyncEvent.COMMIT_FAILED, str(e))
            return None
        if result is not None:
            log_debug("Committed", subject=changeset.subject_id, sha=result.sha, amended=result.amended)
        return result

    def _push_step(self, force: bool) -> bool:
        if force and self._state.repository is not None:
            self._state.push_dirty = True
        return self._pusher.push()
