from __future__ import annotations

import pytest
from git import Repo

from tiddlygit.repository import GitCommitError, GitPushError, GitSyncError, RepositoryHandle

from helpers import seed_commit, write_tiddler


def test_open_returns_none_outside_repository(tmp_path):
    assert RepositoryHandle.open(tmp_path) is None


def test_open_does_not_search_parents(wiki):
    assert RepositoryHandle.open(wiki / "tiddlers") is None


def test_open_ignores_bare_repository(tmp_path):
    Repo.init(tmp_path / "bare.git", bare=True)

    assert RepositoryHandle.open(tmp_path / "bare.git") is None


def test_signature_from_repository_config(wiki):
    handle = RepositoryHandle.open(wiki)

    assert handle.signature.name == "Wiki Tester"
    assert handle.signature.email == "tester@example.com"


def test_signature_override(wiki):
    handle = RepositoryHandle.open(wiki, author_name="Bot", author_email="bot@example.com")

    assert (handle.signature.name, handle.signature.email) == ("Bot", "bot@example.com")


def test_remove_untracked_path_is_noop(wiki):
    handle = RepositoryHandle.open(wiki)
    index = handle.refresh_index()

    assert handle.remove_path(index, "tiddlers/Never.tid") is False


def test_remove_tracked_path(wiki):
    seed_commit(wiki)
    handle = RepositoryHandle.open(wiki)
    index = handle.refresh_index()

    assert handle.remove_path(index, "README.md") is True
    assert ("README.md", 0) not in index.entries
    # Nothing written yet
    assert ("README.md", 0) in handle.refresh_index().entries


def test_add_missing_path_raises(wiki):
    handle = RepositoryHandle.open(wiki)

    with pytest.raises(GitCommitError, match="Gone"):
        handle.add_path(handle.refresh_index(), "tiddlers/Gone [1].tid")


def test_create_and_amend_keep_parents(wiki):
    seed = seed_commit(wiki)
    handle = RepositoryHandle.open(wiki)

    write_tiddler(wiki, "A.tid", "one")
    index = handle.refresh_index()
    handle.add_path(index, "tiddlers/A.tid")
    handle.write_index(index)
    first = handle.create_commit("first", handle.write_tree(index), [handle.head_commit()])

    write_tiddler(wiki, "A.tid", "two")
    index = handle.refresh_index()
    handle.add_path(index, "tiddlers/A.tid")
    handle.write_index(index)
    amended = handle.amend_head("amended", handle.write_tree(index))

    assert [p.hexsha for p in first.parents] == [seed]
    assert [p.hexsha for p in amended.parents] == [seed]
    assert handle.head_commit().hexsha == amended.hexsha
    assert Repo(wiki).head.commit.message == "amended"


def test_amend_without_head_fails(wiki):
    handle = RepositoryHandle.open(wiki)
    index = handle.refresh_index()

    with pytest.raises(GitCommitError):
        handle.amend_head("nothing", handle.write_tree(index))


def test_head_commit_absent_in_empty_repository(wiki):
    assert RepositoryHandle.open(wiki).head_commit() is None


def test_missing_remote(wiki):
    handle = RepositoryHandle.open(wiki)

    with pytest.raises(GitPushError, match="upstream"):
        handle.get_remote("upstream")


def test_detached_head_has_no_branch(wiki):
    sha = seed_commit(wiki)
    repo = Repo(wiki)
    repo.git.checkout(sha)
    handle = RepositoryHandle.open(wiki)

    with pytest.raises(GitPushError):
        handle.current_branch_name()


def test_errors_share_base():
    assert issubclass(GitCommitError, GitSyncError)
    assert issubclass(GitPushError, GitSyncError)
