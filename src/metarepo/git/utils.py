"""Low-level git invocation for metarepo.

Every git command goes through run_git() with an explicit working
directory, so nothing here depends on the process-wide cwd.
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional

from metarepo.errors import MetarepoError

logger = logging.getLogger(__name__)

# Default timeout for short git operations (seconds)
DEFAULT_GIT_TIMEOUT = 60


# =============================================================================
# Exceptions
# =============================================================================

class GitError(MetarepoError):
    """Base exception for Git operations."""
    pass


class GitNotInstalledError(GitError):
    """Git is not installed or not in PATH."""
    pass


class GitTimeoutError(GitError):
    """Git command timed out."""

    def __init__(self, message: str, timeout: int):
        super().__init__(message)
        self.timeout = timeout


class GitCommandError(GitError):
    """Git command failed with non-zero exit code."""

    def __init__(self, message: str, returncode: int, stderr: str = "", command: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr
        self.command = command


# The external VCS surface reports failures as GitCommandError
VcsCommandError = GitCommandError


# =============================================================================
# Core Functions
# =============================================================================


def run_git(
    *args,
    cwd: Optional[Path] = None,
    check: bool = False,
    timeout: Optional[int] = DEFAULT_GIT_TIMEOUT
) -> subprocess.CompletedProcess:
    """Run a git command with standard options.

    Args:
        *args: Git command arguments
        cwd: Working directory
        check: Raise exception on failure
        timeout: Command timeout in seconds (None waits forever)

    Returns:
        CompletedProcess result

    Raises:
        GitNotInstalledError: If git is not installed
        GitTimeoutError: If command times out
        GitCommandError: If check=True and command fails
    """
    cmd = ["git"] + [str(a) for a in args]
    cmd_str = " ".join(cmd)
    logger.debug("Running %s (cwd=%s)", cmd_str, cwd)

    try:
        result = subprocess.run(
            cmd,
            cwd=cwd or Path.cwd(),
            capture_output=True,
            text=True,
            timeout=timeout
        )
    except FileNotFoundError:
        raise GitNotInstalledError(
            "Git is not installed or not in PATH. "
            "Please install git: https://git-scm.com/downloads"
        )
    except subprocess.TimeoutExpired:
        raise GitTimeoutError(
            f"Git command timed out after {timeout}s: {cmd_str}",
            timeout=timeout
        )

    if check and result.returncode != 0:
        raise GitCommandError(
            f"Git command failed: {cmd_str}\n{result.stderr.strip()}",
            returncode=result.returncode,
            stderr=result.stderr,
            command=cmd_str,
        )
    return result


def is_git_repo(path: Optional[Path] = None) -> bool:
    """Check if path is inside a Git repository.

    Args:
        path: Directory to check (defaults to cwd)

    Returns:
        True if path is in a Git repository

    Note:
        Returns False if git is not installed (does not raise).
    """
    if path is not None and not Path(path).is_dir():
        return False
    try:
        result = run_git("rev-parse", "--git-dir", cwd=path, timeout=10)
        return result.returncode == 0
    except GitError:
        return False


def get_current_branch(path: Optional[Path] = None) -> str:
    """Get current Git branch name (works before the first commit).

    Raises:
        GitCommandError: If path is not a repository or HEAD is detached
    """
    result = run_git("symbolic-ref", "--short", "HEAD", cwd=path, check=True)
    return result.stdout.strip()


def get_repo_root(path: Optional[Path] = None) -> Optional[Path]:
    """Get the root directory of the Git repository.

    Returns:
        Repository root path or None if not in a repo
    """
    try:
        result = run_git("rev-parse", "--show-toplevel", cwd=path)
        if result.returncode == 0:
            return Path(result.stdout.strip())
        return None
    except GitError:
        return None
