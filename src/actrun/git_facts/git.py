# git.py
# Small, focused wrapper around the Git CLI.
# This module centralizes all Git interactions so the rest of the codebase
# never needs to call subprocess("git ...") directly.

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ..errors import GitError
from ..logging import get_logger
from ..model import ActionMetadata
from ..parser import load_action_metadata

log = get_logger(__name__)


def _git(args: list[str], cwd: Optional[str] = None) -> str:
    """
    Execute a git command and return its stdout as a clean string.

    This is the single low-level entry point for all Git operations in this file.

    Args:
        args: List of git arguments (e.g. ["rev-parse", "HEAD"])
        cwd: Optional working directory in which to run the git command.

    Returns:
        Stdout from the git command with surrounding whitespace removed.

    Raises:
        subprocess.CalledProcessError: git exited non-zero.
        FileNotFoundError: git is not installed.
    """
    out = subprocess.check_output(
        ["git", *args],
        cwd=cwd,
        text=True,
        stderr=subprocess.PIPE,
    )
    return out.strip()


def _or_empty(read: Callable[[], str]) -> str:
    """Run a git read, treating a failure as an empty answer."""
    try:
        return read()
    except (subprocess.CalledProcessError, FileNotFoundError):
        return ""


def repo_root(cwd: Optional[str] = None) -> Path:
    """Absolute path to the root of the current Git repository."""
    return Path(_git(["rev-parse", "--show-toplevel"], cwd=cwd))


def head_sha(cwd: Optional[str] = None) -> str:
    """Full SHA of the current HEAD commit."""
    return _git(["rev-parse", "HEAD"], cwd=cwd)


def current_ref(cwd: Optional[str] = None) -> str:
    """
    Full ref name of HEAD (e.g. refs/heads/main).

    On a detached HEAD there is no symbolic ref, so the commit SHA is
    returned instead.
    """
    try:
        return _git(["symbolic-ref", "HEAD"], cwd=cwd)
    except subprocess.CalledProcessError:
        return head_sha(cwd=cwd)


def get_remote_url(remote: str = "origin", cwd: Optional[str] = None) -> str:
    return _git(["config", "--get", f"remote.{remote}.url"], cwd=cwd)


def parse_repository(remote_url: str) -> str:
    """
    Reduce a remote URL to `owner/repo`.

        git@github.com:owner/repo.git      -> owner/repo
        https://github.com/owner/repo.git  -> owner/repo
    """
    url = remote_url.strip()
    if url.endswith(".git"):
        url = url[: -len(".git")]

    if url.startswith("git@"):
        _, _, path = url.partition(":")
        return path

    parts = [p for p in url.split("/") if p]
    if len(parts) >= 2:
        return f"{parts[-2]}/{parts[-1]}"
    return url


# ---------------------------------------------------------------------
# Trigger facts
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class GitInfo:
    ref: str
    sha: str
    actor: str
    repository: str
    workspace: str

    @property
    def short_sha(self) -> str:
        return self.sha[:7]


def read_git_info(cwd: Optional[str] = None) -> GitInfo:
    """
    Collect ref, sha, actor, repository and workspace for the repo at cwd.

    Raises:
        GitError: cwd is not inside a git repository (or git is missing).
    """
    try:
        ref = current_ref(cwd=cwd)
        sha = head_sha(cwd=cwd)
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        raise GitError(f"could not read git state: {e}") from e

    workspace = _or_empty(lambda: str(repo_root(cwd=cwd)))
    actor = _or_empty(lambda: _git(["config", "user.name"], cwd=cwd))

    remote = _or_empty(lambda: get_remote_url(cwd=cwd))
    if remote:
        repository = parse_repository(remote)
    else:
        repository = Path(workspace).name if workspace else ""

    return GitInfo(ref=ref, sha=sha, actor=actor, repository=repository, workspace=workspace)


# ---------------------------------------------------------------------
# Source-control collaborator used by the executor
# ---------------------------------------------------------------------

class GitRepo:
    """Clones action repositories and reads their metadata."""

    def clone_action(self, url: str, ref: str, dest: str | Path) -> None:
        """
        Shallow-clone `url` at `ref` into `dest`.

        If `ref` is not a branch or tag (e.g. a commit SHA), fall back to a
        full clone followed by a checkout.
        """
        dest = Path(dest)
        if (dest / ".git").exists():
            log.debug("action_clone_reused", url=url, ref=ref, dest=str(dest))
            return
        dest.parent.mkdir(parents=True, exist_ok=True)

        try:
            _git(["clone", "--depth", "1", "--branch", ref, url, str(dest)])
            return
        except subprocess.CalledProcessError:
            log.debug("action_shallow_clone_failed", url=url, ref=ref)
        except FileNotFoundError as e:
            raise GitError("git command not found. Please install Git.") from e

        try:
            _git(["clone", url, str(dest)])
            _git(["-C", str(dest), "checkout", ref])
        except subprocess.CalledProcessError as e:
            raise GitError(f"cloning {url}@{ref} failed: {(e.stderr or '').strip()}") from e

    def read_action_metadata(self, path: str | Path) -> ActionMetadata:
        return load_action_metadata(path)
