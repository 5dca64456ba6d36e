"""
Mirror Sync Tests

Exercises clone_or_pull against a real local bare repository reached over a
file:// URL, so the full git command line path runs without a network.
"""

import shutil
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from site_content.content.errors import SyncError
from site_content.content.sync import (
    SyncConfig,
    SyncStatus,
    _git_env,
    _redact,
    _run_git,
    clone_or_pull,
    has_cloned,
)

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")

GIT_IDENTITY = [
    "-c", "user.name=Test Author",
    "-c", "user.email=author@example.com",
    "-c", "commit.gpgsign=false",
]


def git(*args: str, cwd: Path) -> str:
    return subprocess.run(
        ["git", *GIT_IDENTITY, *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
    ).stdout.strip()


def commit_file(work: Path, relpath: str, text: str, message: str) -> str:
    path = work / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    git("add", "--all", cwd=work)
    git("commit", "--quiet", "-m", message, cwd=work)
    return git("rev-parse", "HEAD", cwd=work)


# ---------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------

class Remote:
    """A working repository plus the bare repository it pushes to."""

    def __init__(self, root: Path) -> None:
        self.work = root / "work"
        self.bare = root / "remote.git"
        self.work.mkdir()
        git("init", "--quiet", cwd=self.work)
        git("symbolic-ref", "HEAD", "refs/heads/main", cwd=self.work)
        self.head = commit_file(self.work, "blog/hello.md", "---\ntitle: Hello\n---\nHi\n", "initial")
        git("clone", "--quiet", "--bare", str(self.work), str(self.bare), cwd=root)

    @property
    def url(self) -> str:
        return self.bare.as_uri()

    def push_commit(self, relpath: str, text: str, message: str = "update") -> str:
        self.head = commit_file(self.work, relpath, text, message)
        git("push", "--quiet", str(self.bare), "main", cwd=self.work)
        return self.head


@pytest.fixture
def remote(tmp_path: Path) -> Remote:
    return Remote(tmp_path)


@pytest.fixture
def mirror_config(remote: Remote, tmp_path: Path) -> SyncConfig:
    return SyncConfig(
        repo_url=remote.url,
        branch="main",
        directory=tmp_path / "mirror",
        timeout=60,
    )


def tree_bytes(root: Path) -> dict:
    return {
        str(p.relative_to(root)): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file() and ".git" not in p.relative_to(root).parts
    }


def staging_leftovers(parent: Path) -> list:
    return [p for p in parent.iterdir() if p.name.startswith(".mirror-clone-")]


# ---------------------------------------------------------------------
# Clone / Pull
# ---------------------------------------------------------------------

def test_first_sync_clones(remote, mirror_config):
    assert not has_cloned(mirror_config.directory)

    result = clone_or_pull(mirror_config)

    assert result.status is SyncStatus.CLONED
    assert result.changed is True
    assert result.revision == remote.head
    assert has_cloned(mirror_config.directory)
    assert (mirror_config.directory / "blog" / "hello.md").read_text() == "---\ntitle: Hello\n---\nHi\n"
    assert staging_leftovers(mirror_config.directory.parent) == []


def test_second_sync_is_up_to_date_and_leaves_tree(remote, mirror_config):
    clone_or_pull(mirror_config)
    before = tree_bytes(mirror_config.directory)

    result = clone_or_pull(mirror_config)

    assert result.status is SyncStatus.ALREADY_UP_TO_DATE
    assert result.changed is False
    assert result.revision == remote.head
    assert tree_bytes(mirror_config.directory) == before


def test_sync_after_push_updates(remote, mirror_config):
    clone_or_pull(mirror_config)
    new_head = remote.push_commit("blog/second.md", "---\ntitle: Second\n---\n")

    result = clone_or_pull(mirror_config)

    assert result.status is SyncStatus.UPDATED
    assert result.revision == new_head
    assert (mirror_config.directory / "blog" / "second.md").exists()

    again = clone_or_pull(mirror_config)
    assert again.status is SyncStatus.ALREADY_UP_TO_DATE


def test_clone_into_existing_empty_directory(remote, mirror_config):
    mirror_config.directory.mkdir()

    result = clone_or_pull(mirror_config)

    assert result.status is SyncStatus.CLONED


# ---------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------

def test_unreachable_remote_leaves_no_mirror(tmp_path):
    config = SyncConfig(
        repo_url=(tmp_path / "missing.git").as_uri(),
        branch="main",
        directory=tmp_path / "mirror",
        timeout=60,
    )

    with pytest.raises(SyncError) as exc_info:
        clone_or_pull(config)

    assert exc_info.value.operation == "cloning"
    assert not config.directory.exists()
    assert staging_leftovers(tmp_path) == []


def test_missing_branch_fails(remote, mirror_config, tmp_path):
    config = SyncConfig(
        repo_url=remote.url,
        branch="does-not-exist",
        directory=mirror_config.directory,
        timeout=60,
    )

    with pytest.raises(SyncError):
        clone_or_pull(config)
    assert not config.directory.exists()


def test_non_empty_target_is_not_overwritten(remote, mirror_config):
    mirror_config.directory.mkdir()
    keep = mirror_config.directory / "keep.txt"
    keep.write_text("precious")

    with pytest.raises(SyncError):
        clone_or_pull(mirror_config)

    assert keep.read_text() == "precious"
    assert not has_cloned(mirror_config.directory)


def test_diverged_history_fails_and_keeps_tree(remote, mirror_config):
    clone_or_pull(mirror_config)
    before = tree_bytes(mirror_config.directory)
    head_before = git("rev-parse", "HEAD", cwd=mirror_config.directory)

    # Rewrite upstream history so it no longer descends from the mirror's HEAD.
    git("checkout", "--quiet", "--orphan", "rewritten", cwd=remote.work)
    git("rm", "-rf", "--quiet", ".", cwd=remote.work)
    commit_file(remote.work, "blog/other.md", "other\n", "rewrite")
    git("push", "--quiet", "--force", str(remote.bare), "rewritten:main", cwd=remote.work)

    with pytest.raises(SyncError) as exc_info:
        clone_or_pull(mirror_config)

    assert exc_info.value.operation == "fast-forwarding"
    assert git("rev-parse", "HEAD", cwd=mirror_config.directory) == head_before
    assert tree_bytes(mirror_config.directory) == before


def test_remote_removed_after_clone_fails_pull(remote, mirror_config):
    clone_or_pull(mirror_config)
    shutil.rmtree(remote.bare)

    with pytest.raises(SyncError) as exc_info:
        clone_or_pull(mirror_config)

    assert exc_info.value.operation == "fetching"
    assert (mirror_config.directory / "blog" / "hello.md").exists()


# ---------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------

def test_git_env_without_token(monkeypatch):
    monkeypatch.delenv("GIT_CONFIG_COUNT", raising=False)
    env = _git_env(None)
    assert env["GIT_TERMINAL_PROMPT"] == "0"
    assert "GIT_CONFIG_COUNT" not in env


def test_git_env_carries_basic_header(monkeypatch):
    monkeypatch.delenv("GIT_CONFIG_COUNT", raising=False)
    env = _git_env("s3cret")
    assert env["GIT_CONFIG_COUNT"] == "1"
    assert env["GIT_CONFIG_KEY_0"] == "http.extraHeader"
    assert env["GIT_CONFIG_VALUE_0"].startswith("Authorization: Basic ")
    assert "s3cret" not in env["GIT_CONFIG_VALUE_0"]


def test_git_env_appends_to_existing_config(monkeypatch):
    monkeypatch.setenv("GIT_CONFIG_COUNT", "1")
    monkeypatch.setenv("GIT_CONFIG_KEY_0", "core.autocrlf")
    monkeypatch.setenv("GIT_CONFIG_VALUE_0", "false")
    env = _git_env("s3cret")
    assert env["GIT_CONFIG_COUNT"] == "2"
    assert env["GIT_CONFIG_KEY_0"] == "core.autocrlf"
    assert env["GIT_CONFIG_KEY_1"] == "http.extraHeader"


def test_token_never_on_command_line(tmp_path, monkeypatch):
    monkeypatch.delenv("GIT_CONFIG_COUNT", raising=False)
    config = SyncConfig(
        repo_url="https://example.com/repo.git",
        branch="main",
        directory=tmp_path,
        auth_token="s3cret",
    )
    header = _git_env("s3cret")["GIT_CONFIG_VALUE_0"]

    with patch("site_content.content.sync.subprocess.run") as mock_run:
        mock_run.return_value = MagicMock(stdout="")
        _run_git("fetch", "origin", config=config, operation="fetching", target="origin", auth=True)

    cmd = mock_run.call_args.args[0]
    env = mock_run.call_args.kwargs["env"]
    assert cmd == ["git", "fetch", "origin"]
    assert not any("s3cret" in part or header.split("Basic ")[1] in part for part in cmd)
    assert header in env.values()


def test_clone_with_token_over_local_remote(remote, mirror_config):
    config = SyncConfig(
        repo_url=mirror_config.repo_url,
        branch="main",
        directory=mirror_config.directory,
        auth_token="s3cret",
        timeout=60,
    )

    assert clone_or_pull(config).status is SyncStatus.CLONED
    assert "s3cret" not in (config.directory / ".git" / "config").read_text()
    assert clone_or_pull(config).status is SyncStatus.ALREADY_UP_TO_DATE


def test_redact_masks_token_and_header(monkeypatch):
    monkeypatch.delenv("GIT_CONFIG_COUNT", raising=False)
    header = _git_env("s3cret")["GIT_CONFIG_VALUE_0"].split("Basic ")[1]
    text = f"failed with s3cret and {header}"
    redacted = _redact(text, "s3cret")
    assert "s3cret" not in redacted
    assert header not in redacted
def test_config_repr_hides_token(tmp_path):
    config = SyncConfig(
        repo_url="https://example.com/repo.git",
        branch="main",
        directory=tmp_path,
        auth_token="s3cret",
    )
    assert "s3cret" not in repr(config)
    assert "***" in repr(config)
