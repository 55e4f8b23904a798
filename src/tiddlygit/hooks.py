"""Hooks called by the file-system sync adaptor after saving or deleting a tiddler.

Both are called even when the file operation reported an error, since some
files may still have been written or removed.
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import Optional, Sequence

from .constants import DELETE_MESSAGE_TEMPLATE, SAVE_MESSAGE_TEMPLATE
from .coordinator import GitCoordinator


def tiddler_saved(
    coordinator: GitCoordinator,
    title: str,
    saved_files: Sequence[str],
    deleted_files: Optional[Sequence[str]] = None,
    is_draft: bool = False,
) -> Optional[Future]:
    """Report a save; ``deleted_files`` are stale copies cleaned up by the save."""
    message = SAVE_MESSAGE_TEMPLATE.format(title=title)
    return coordinator.report_change(title, saved_files or (), deleted_files or (), message, is_draft)


def tiddler_deleted(
    coordinator: GitCoordinator,
    title: str,
    deleted_files: Sequence[str],
) -> Optional[Future]:
    # The tiddler is gone, so its draft status is unknown. Deleting an
    # unversioned draft file is a no-op commit-wise anyway.
    message = DELETE_MESSAGE_TEMPLATE.format(title=title)
    return coordinator.report_change(title, (), deleted_files or (), message, False)
