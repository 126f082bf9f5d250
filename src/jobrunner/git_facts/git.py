# git_facts/git.py
# Small wrapper around the local Git CLI, used by the command line to
# describe the repository it is run from as a job source.

from __future__ import annotations

import subprocess
from typing import Optional


def _git(args: list[str], cwd: Optional[str] = None) -> str:
    """
    Execute a git command and return its stdout as a clean string.

    Args:
        args: List of git arguments (e.g. ["status", "--porcelain"])
        cwd: Optional working directory in which to run the git command.

    Returns:
        Stdout from the git command with surrounding whitespace removed.

    Raises:
        subprocess.CalledProcessError: if git exits non-zero
        FileNotFoundError: if git isn't installed
    """
    out = subprocess.check_output(
        ["git", *args],
        cwd=cwd,
        text=True,
        stderr=subprocess.DEVNULL,
    )
    return out.strip()


def repo_root(cwd: Optional[str] = None) -> str:
    """Absolute path of the top of the working tree."""
    return _git(["rev-parse", "--show-toplevel"], cwd=cwd)


def head_sha(cwd: Optional[str] = None) -> str:
    """Full SHA of the current HEAD commit."""
    return _git(["rev-parse", "HEAD"], cwd=cwd)


def is_dirty(cwd: Optional[str] = None) -> bool:
    """
    Check whether the working tree has uncommitted changes.

    A job checks out what has been pushed, so local changes won't be part
    of it; the CLI warns about this.
    """
    # Any porcelain output at all means the tree isn't clean
    return _git(["status", "--porcelain"], cwd=cwd) != ""


def get_remote_url(remote: str = "origin", cwd: Optional[str] = None) -> str:
    """URL of the given remote."""
    return _git(["remote", "get-url", remote], cwd=cwd)


def get_current_ref(cwd: Optional[str] = None) -> str:
    """
    Name of the current branch, or the HEAD commit SHA when detached.
    """
    ref = _git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=cwd)
    if ref == "HEAD":
        return head_sha(cwd=cwd)
    return ref
