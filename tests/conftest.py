from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import pytest

# Keep test runs out of ~/.tiddlygit/logs
os.environ.setdefault("TIDDLYGIT_LOG_DISABLE_FILE", "1")


def pytest_sessionstart(session):  # type: ignore[override]
    root = Path(__file__).resolve().parents[1]
    src = root / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))
    os.environ.setdefault("PYTHONPATH", str(src))


class RecordingSink:
    """Notification sink that remembers every event."""

    def __init__(self) -> None:
        self.events: List[Tuple[object, Optional[str]]] = []

    def notify(self, event, reason=None) -> None:
        self.events.append((event, reason))

    def kinds(self) -> list:
        return [event for event, _ in self.events]


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def wiki(tmp_path):
    """An empty git repository with a tiddlers/ folder and a commit identity."""
    from git import Repo

    root = tmp_path / "wiki"
    (root / "tiddlers").mkdir(parents=True)
    repo = Repo.init(root)
    with repo.config_writer() as cw:
        cw.set_value("user", "name", "Wiki Tester")
        cw.set_value("user", "email", "tester@example.com")
    return root


@pytest.fixture
def make_config():
    """Build a TiddlyGitConfig; push timers default to disabled."""
    from tiddlygit.config_schema import GitConfig, RemoteConfig, TiddlyGitConfig

    def _make(
        *,
        commit_drafts: bool = False,
        push_timeout: float = 0,
        push_interval: float = 0,
        remote: str = "origin",
        auth: str = "none",
    ) -> TiddlyGitConfig:
        return TiddlyGitConfig(
            git=GitConfig(commit_drafts=commit_drafts),
            remote=RemoteConfig(
                name=remote,
                push_timeout=push_timeout,
                push_interval=push_interval,
                auth=auth,
            ),
        )

    return _make


@pytest.fixture
def coordinator_factory(wiki, sink, make_config):
    """Start coordinators against ``wiki`` and shut them down afterwards."""
    from tiddlygit.coordinator import GitCoordinator

    created = []

    def _make(root: Optional[Path] = None, **config_kwargs) -> GitCoordinator:
        coordinator = GitCoordinator(
            make_config(**config_kwargs),
            root=root or wiki,
            sink=sink,
        )
        created.append(coordinator)
        coordinator.start()
        assert coordinator.wait_idle(10)
        return coordinator

    yield _make

    for coordinator in created:
        coordinator.shutdown()
