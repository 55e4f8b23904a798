"""Turns changesets into commits.

:meth:`CommitBuilder.apply` is the body of one commit step on the operation
queue. It stages added files, removes tracked deleted files, and either
creates a new commit or squashes into HEAD.

Squashing only happens for repeated saves of the same subject when that
subject is the story list or a draft. Any other subject always gets its own
commit, and a deletion-only commit or a push ends the streak.
"""

from __future__ import annotations

from typing import Callable, Optional

from .config_schema import GitConfig
from .models import Changeset, CommitResult, RepositoryState
from .observability import log_debug, timeit
from .paths import to_repo_relative_all
from .repository import RepositoryHandle


class CommitBuilder:
    def __init__(
        self,
        state: RepositoryState,
        config: GitConfig,
        on_commit: Optional[Callable[[], None]] = None,
    ) -> None:
        self._state = state
        self._config = config
        self._on_commit = on_commit

    def should_amend(self, changeset: Changeset) -> bool:
        return (
            changeset.is_save
            and changeset.subject_id == self._state.last_committed_subject
            and (changeset.subject_id == self._config.squash_subject or changeset.is_draft_like)
        )

    def apply(self, changeset: Changeset) -> Optional[CommitResult]:
        """Commit ``changeset``; returns None when nothing was committed.

        Raises:
            GitCommitError: Staging, index/tree writing or committing failed.
                State is left untouched in that case.
        """
        repo = self._state.repository
        if repo is None:
            return None

        with timeit("commit", subject=changeset.subject_id):
            return self._apply(repo, changeset)

    def _apply(self, repo: RepositoryHandle, changeset: Changeset) -> Optional[CommitResult]:
        added = to_repo_relative_all(changeset.added_paths, repo.root)
        deleted = to_repo_relative_all(changeset.deleted_paths, repo.root)

        index = repo.refresh_index()
        non_empty = bool(added)
        for path in added:
            repo.add_path(index, path)
        for path in deleted:
            if repo.remove_path(index, path):
                non_empty = True
            else:
                log_debug("Skipping untracked deletion", path=path)

        if not non_empty:
            log_debug("Nothing to commit", subject=changeset.subject_id)
            return None

        repo.write_index(index)
        tree = repo.write_tree(index)
        head = repo.head_commit()

        amend = self.should_amend(changeset) and head is not None
        if amend:
            commit = repo.amend_head(changeset.message, tree)
        else:
            commit = repo.create_commit(changeset.message, tree, [head] if head is not None else [])

        self._state.last_committed_subject = changeset.subject_id if changeset.is_save else None
        self._state.push_dirty = True
        if self._on_commit is not None:
            self._on_commit()

        return CommitResult(
            sha=commit.hexsha,
            amended=amend,
            parents=tuple(parent.hexsha for parent in commit.parents),
        )
