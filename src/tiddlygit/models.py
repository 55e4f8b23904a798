"""Data types shared by the commit builder, pusher and coordinator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Tuple

if TYPE_CHECKING:
    from .repository import RepositoryHandle


@dataclass(frozen=True)
class Changeset:
    """One reported unit of added/removed files for a logical document.

    Attributes:
        subject_id: Identifier of the document (the tiddler title)
        added_paths: Absolute paths written, in order
        deleted_paths: Absolute paths removed, in order
        message: Commit message
        is_draft_like: Whether the document is a draft
    """

    subject_id: str
    added_paths: Tuple[str, ...] = ()
    deleted_paths: Tuple[str, ...] = ()
    message: str = ""
    is_draft_like: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.added_paths and not self.deleted_paths

    @property
    def is_save(self) -> bool:
        return bool(self.added_paths)


@dataclass
class CommitResult:
    sha: str
    amended: bool
    parents: Tuple[str, ...] = field(default_factory=tuple)


@dataclass
class RepositoryState:
    """Mutable coordinator state.

    Only queue steps write these fields; status queries may read them from
    other threads.
    """

    repository: Optional["RepositoryHandle"] = None
    # Subject of the most recent save commit; drives squash decisions.
    last_committed_subject: Optional[str] = None
    # Starts dirty so the startup push publishes commits made while offline.
    push_dirty: bool = True
    opened: bool = False
