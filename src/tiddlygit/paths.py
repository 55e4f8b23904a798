"""Path conversion between the wiki's on-disk files and git index paths."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List, Optional, Union

PathLike = Union[str, "os.PathLike[str]"]


def to_repo_relative(path: PathLike, root: Optional[PathLike] = None) -> str:
    """Convert an absolute on-disk path to a repository-relative POSIX path.

    ``root`` is the repository working tree (the current directory when
    omitted). Only meaningful for raw absolute paths; feeding the result back
    in resolves it against the current directory again.
    """
    base = os.fspath(root) if root is not None else os.getcwd()
    relative = os.path.relpath(os.fspath(path), base)
    return relative.replace(os.sep, "/")


def to_repo_relative_all(paths: Iterable[PathLike], root: Optional[Path] = None) -> List[str]:
    return [to_repo_relative(p, root) for p in paths]
