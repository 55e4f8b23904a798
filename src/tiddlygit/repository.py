"""GitPython-backed repository handle used by the commit coordinator.

Every method here mutates or reads the single on-disk index/HEAD of the wiki
repository. Callers must only invoke the mutating methods from inside the
operation queue; this class does no locking of its own.

GitPython errors are wrapped into the :class:`GitSyncError` hierarchy so queue
steps only have to deal with one family of exceptions.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from git import (
    Actor,
    Commit,
    GitCommandError,
    IndexFile,
    InvalidGitRepositoryError,
    NoSuchPathError,
    PushInfo,
    Repo,
)
from git.objects import Tree
from git.remote import Remote

from .observability import log_debug


class GitSyncError(Exception):
    """Base exception for git sync operations."""
    pass


class GitCommitError(GitSyncError):
    """Failed to stage, write the index/tree, or create a commit."""
    pass


class GitPushError(GitSyncError):
    """Failed to push changes to remote."""
    pass


_PUSH_FAILURE_FLAGS = (
    PushInfo.ERROR
    | PushInfo.REJECTED
    | PushInfo.REMOTE_REJECTED
    | PushInfo.REMOTE_FAILURE
)


class RepositoryHandle:
    """An opened, non-bare repository plus the signature used for commits.

    Attributes:
        root: Working tree directory the repository was opened at
        signature: Author/committer identity for every commit
    """

    def __init__(self, repo: Repo, signature: Actor):
        self._repo = repo
        self.signature = signature
        self.root = Path(repo.working_tree_dir)

    @classmethod
    def open(
        cls,
        root: Optional[Path] = None,
        *,
        author_name: str = "",
        author_email: str = "",
    ) -> Optional["RepositoryHandle"]:
        """Open the repository rooted exactly at ``root`` (default: cwd).

        Returns None when there is no repository there. Parent directories
        are not searched.

        Raises:
            GitSyncError: The repository exists but no signature could be
                resolved from it.
        """
        root = Path(root) if root is not None else Path.cwd()
        try:
            repo = Repo(root)
        except (InvalidGitRepositoryError, NoSuchPathError):
            log_debug("No repository found", root=str(root))
            return None
        if repo.bare:
            log_debug("Ignoring bare repository", root=str(root))
            return None

        try:
            default = Actor.committer(repo.config_reader())
        except Exception as e:
            raise GitSyncError(f"Could not resolve commit signature: {e}") from e
        name = author_name or default.name
        email = author_email or default.email
        if not name or not email:
            raise GitSyncError("Could not resolve commit signature: user.name/user.email unset")
        return cls(repo, Actor(name, email))

    @property
    def repo(self) -> Repo:
        return self._repo

    # ------------------------------------------------------------------
    # Index
    # ------------------------------------------------------------------

    def refresh_index(self) -> IndexFile:
        """Return a fresh in-memory snapshot of the on-disk index."""
        return self._repo.index

    def add_path(self, index: IndexFile, rel_path: str) -> None:
        """Stage ``rel_path`` in ``index`` without writing the index to disk."""
        # GitPython treats missing paths with glob characters as patterns
        if not os.path.lexists(self.root / rel_path):
            raise GitCommitError(f"Failed to stage {rel_path}: no such file")
        try:
            index.add([rel_path], write=False)
        except (GitCommandError, OSError, ValueError) as e:
            raise GitCommitError(f"Failed to stage {rel_path}: {e}") from e

    def remove_path(self, index: IndexFile, rel_path: str) -> bool:
        """Remove a tracked path from ``index``.

        Returns False, without error, when the path is not tracked, so
        callers can tell a real removal from a no-op.
        """
        keys = [key for key in index.entries if key[0] == rel_path]
        if not keys:
            return False
        for key in keys:
            del index.entries[key]
        return True

    def write_index(self, index: IndexFile) -> None:
        try:
            # The cached TREE extension is stale after in-memory edits
            index.write(ignore_extension_data=True)
        except (OSError, ValueError) as e:
            raise GitCommitError(f"Failed to write index: {e}") from e

    def write_tree(self, index: IndexFile) -> Tree:
        try:
            return index.write_tree()
        except (GitCommandError, OSError, ValueError) as e:
            raise GitCommitError(f"Failed to write tree: {e}") from e

    # ------------------------------------------------------------------
    # Commits
    # ------------------------------------------------------------------

    def head_commit(self) -> Optional[Commit]:
        """Current HEAD commit, or None for a repository with no commits yet."""
        head = self._repo.head
        if not head.is_valid():
            return None
        return head.commit

    def create_commit(self, message: str, tree: Tree, parents: Sequence[Commit]) -> Commit:
        """Create a commit with exactly ``parents`` and advance HEAD to it."""
        log_debug("GIT_OP_START: commit", summary=message[:60], parents=len(parents))
        try:
            commit = Commit.create_from_tree(
                self._repo,
                tree,
                message,
                parent_commits=list(parents),
                head=True,
                author=self.signature,
                committer=self.signature,
            )
        except (GitCommandError, OSError, ValueError) as e:
            raise GitCommitError(f"Failed to commit: {e}") from e
        log_debug("GIT_OP_END: commit", sha=commit.hexsha)
        return commit

    def amend_head(self, message: str, tree: Tree) -> Commit:
        """Replace HEAD's tree and message, keeping HEAD's parents."""
        head = self.head_commit()
        if head is None:
            raise GitCommitError("Cannot amend: repository has no commits")
        log_debug("GIT_OP_START: amend", sha=head.hexsha)
        try:
            commit = Commit.create_from_tree(
                self._repo,
                tree,
                message,
                parent_commits=list(head.parents),
                head=True,
                author=self.signature,
                committer=self.signature,
            )
        except (GitCommandError, OSError, ValueError) as e:
            raise GitCommitError(f"Failed to amend: {e}") from e
        log_debug("GIT_OP_END: amend", sha=commit.hexsha)
        return commit

    # ------------------------------------------------------------------
    # Remote
    # ------------------------------------------------------------------

    def current_branch_name(self) -> str:
        try:
            return self._repo.active_branch.name
        except TypeError as e:
            # Detached HEAD
            raise GitPushError(f"No current branch: {e}") from e

    def get_remote(self, name: str) -> Remote:
        try:
            return self._repo.remote(name)
        except ValueError as e:
            raise GitPushError(f"Remote '{name}' not configured") from e

    def push(self, remote: Remote, refspec: str, env: Optional[Dict[str, str]] = None) -> List[PushInfo]:
        """Push ``refspec`` to ``remote`` under the given git environment.

        Raises:
            GitPushError: The transport failed or the remote rejected the ref.
        """
        log_debug("GIT_OP_START: push", remote=remote.name, refspec=refspec)
        try:
            with self._repo.git.custom_environment(**(env or {})):
                infos = list(remote.push(refspec))
        except GitCommandError as e:
            raise GitPushError(str(e)) from e
        if not infos:
            raise GitPushError(f"Push of {refspec} to {remote.name} reported no result")
        for info in infos:
            if info.flags & _PUSH_FAILURE_FLAGS:
                summary = (info.summary or "").strip() or "rejected"
                raise GitPushError(f"{info.remote_ref_string or refspec}: {summary}")
        log_debug("GIT_OP_END: push", remote=remote.name)
        return infos
