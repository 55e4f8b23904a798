from __future__ import annotations

import time
from pathlib import Path
from typing import Callable

from git import Repo


def write_tiddler(root: Path, name: str, text: str = "text") -> str:
    path = root / "tiddlers" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"title: {name}\n\n{text}\n")
    return str(path)


def seed_commit(root: Path) -> str:
    repo = Repo(root)
    (root / "README.md").write_text("wiki\n")
    repo.index.add(["README.md"])
    return repo.index.commit("seed").hexsha


def commit_count(root: Path) -> int:
    repo = Repo(root)
    if not repo.head.is_valid():
        return 0
    return len(list(repo.iter_commits()))


def head_commit(root: Path):
    return Repo(root).head.commit


def tracked_paths(root: Path) -> set:
    return {path for path, _stage in Repo(root).index.entries}


def add_bare_remote(root: Path, remote_path: Path, name: str = "origin") -> Repo:
    remote_path.mkdir(parents=True, exist_ok=True)
    bare = Repo.init(remote_path, bare=True)
    Repo(root).create_remote(name, remote_path.as_posix())
    return bare


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.02) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
