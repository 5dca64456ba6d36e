"""
Mirror Sync

Keeps a local working copy in step with one branch of a remote git
repository, using the git command line.

- No `.git` yet: shallow single-branch clone into a temporary sibling
  directory, renamed into place only once complete.
- Already cloned: fetch the branch and fast-forward. A fetch that brings
  nothing new is reported as `ALREADY_UP_TO_DATE`, which is a success.

Any failure raises `SyncError` and leaves the existing tree as it was.
"""

from __future__ import annotations

import base64
import enum
import logging
import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Dict, Optional

from .errors import SyncError

logger = logging.getLogger("site.sync")


# ---------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class SyncConfig:
    """Where the mirror comes from, where it lives, and how often to refresh it."""
    repo_url: str
    branch: str
    directory: Path
    interval: timedelta = timedelta(minutes=5)
    auth_token: Optional[str] = None
    timeout: Optional[float] = 120.0

    def __repr__(self) -> str:
        token = "***" if self.auth_token else None
        return (
            f"SyncConfig(repo_url={self.repo_url!r}, branch={self.branch!r}, "
            f"directory={str(self.directory)!r}, interval={self.interval!r}, "
            f"auth_token={token!r}, timeout={self.timeout!r})"
        )


class SyncStatus(str, enum.Enum):
    CLONED = "cloned"
    UPDATED = "updated"
    ALREADY_UP_TO_DATE = "already_up_to_date"


@dataclass(frozen=True)
class SyncResult:
    status: SyncStatus
    revision: str

    @property
    def changed(self) -> bool:
        return self.status is not SyncStatus.ALREADY_UP_TO_DATE


# ---------------------------------------------------------------------
# Git Runner
# ---------------------------------------------------------------------

def _basic_credentials(token: str) -> str:
    return base64.b64encode(f"git:{token}".encode()).decode("ascii")


def _git_env(token: Optional[str]) -> Dict[str, str]:
    """
    Environment for one git command.

    Prompts are disabled. A token becomes an HTTP basic auth header (user
    "git") passed as environment-supplied config, so it is neither written
    to the mirror's config nor visible in the process list.
    """
    env = dict(os.environ)
    env["GIT_TERMINAL_PROMPT"] = "0"
    if token:
        index = int(env.get("GIT_CONFIG_COUNT") or 0)
        env[f"GIT_CONFIG_KEY_{index}"] = "http.extraHeader"
        env[f"GIT_CONFIG_VALUE_{index}"] = f"Authorization: Basic {_basic_credentials(token)}"
        env["GIT_CONFIG_COUNT"] = str(index + 1)
    return env


def _redact(text: str, token: Optional[str]) -> str:
    if not token:
        return text
    return text.replace(token, "***").replace(_basic_credentials(token), "***")


def _run_git(
    *args: str,
    cwd: Optional[Path] = None,
    config: SyncConfig,
    operation: str,
    target: str,
    auth: bool = False,
) -> str:
    cmd = ["git", *args]
    env = _git_env(config.auth_token if auth else None)

    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            env=env,
            check=True,
            capture_output=True,
            text=True,
            timeout=config.timeout,
        )
    except subprocess.CalledProcessError as exc:
        detail = _redact((exc.stderr or exc.stdout or "").strip(), config.auth_token)
        raise SyncError(
            f"git {args[0]} exited with status {exc.returncode}: {detail}",
            operation=operation,
            target=target,
        ) from None
    except subprocess.TimeoutExpired:
        raise SyncError(
            f"git {args[0]} timed out after {config.timeout}s",
            operation=operation,
            target=target,
        ) from None
    except OSError as exc:
        raise SyncError(
            f"running git: {exc}", operation=operation, target=target
        ) from exc

    return proc.stdout


def _rev_parse(config: SyncConfig, ref: str, *, operation: str) -> str:
    out = _run_git(
        "rev-parse", "--verify", f"{ref}^{{commit}}",
        cwd=config.directory,
        config=config,
        operation=operation,
        target=str(config.directory),
    )
    return out.strip()


# ---------------------------------------------------------------------
# Clone / Pull
# ---------------------------------------------------------------------

def has_cloned(directory: Path) -> bool:
    """
    True when `directory` already holds a git working copy.

    Raises
    ------
    SyncError
        If the marker cannot be inspected for a reason other than absence.
    """
    marker = Path(directory) / ".git"
    try:
        marker.stat()
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise SyncError(str(exc), operation="checking", target=str(directory)) from exc
    return True


def _clone(config: SyncConfig) -> SyncResult:
    target = Path(config.directory)
    if target.exists() and (not target.is_dir() or any(target.iterdir())):
        raise SyncError(
            "destination exists and is not an empty git working copy",
            operation="cloning into",
            target=str(target),
        )

    logger.info("Cloning content repo %s (branch %s)", config.repo_url, config.branch)

    target.parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(prefix=f".{target.name}-clone-", dir=target.parent))
    try:
        _run_git(
            "clone",
            "--depth", "1",
            "--single-branch",
            "--branch", config.branch,
            "--", config.repo_url, str(staging),
            config=config,
            operation="cloning",
            target=config.repo_url,
            auth=True,
        )
        if target.exists():
            target.rmdir()
        staging.rename(target)
    except OSError as exc:
        raise SyncError(str(exc), operation="cloning into", target=str(target)) from exc
    finally:
        if staging.exists():
            shutil.rmtree(staging, ignore_errors=True)

    revision = _rev_parse(config, "HEAD", operation="reading")
    logger.info("Cloned content repo at %s", revision[:12])
    return SyncResult(status=SyncStatus.CLONED, revision=revision)


def _pull(config: SyncConfig) -> SyncResult:
    directory = str(config.directory)
    before = _rev_parse(config, "HEAD", operation="opening repo")

    logger.info("Pulling content repo")
    _run_git(
        "fetch", "--no-tags", "origin",
        f"+refs/heads/{config.branch}:refs/remotes/origin/{config.branch}",
        cwd=config.directory,
        config=config,
        operation="fetching",
        target=config.repo_url,
        auth=True,
    )
    upstream = _rev_parse(config, f"refs/remotes/origin/{config.branch}", operation="reading")

    if upstream == before:
        logger.info("Content already up to date")
        return SyncResult(status=SyncStatus.ALREADY_UP_TO_DATE, revision=before)

    _run_git(
        "merge", "--ff-only", "--quiet", upstream,
        cwd=config.directory,
        config=config,
        operation="fast-forwarding",
        target=directory,
    )
    logger.info("Content updated %s -> %s", before[:12], upstream[:12])
    return SyncResult(status=SyncStatus.UPDATED, revision=upstream)


def clone_or_pull(config: SyncConfig) -> SyncResult:
    """
    Bring the local mirror up to date with the configured branch.

    Returns
    -------
    SyncResult
        `CLONED` on first run, `UPDATED` when new commits were fast-forwarded,
        `ALREADY_UP_TO_DATE` when upstream had nothing new.

    Raises
    ------
    SyncError
        On any git, network, auth or filesystem failure.
    """
    if has_cloned(config.directory):
        return _pull(config)
    return _clone(config)
