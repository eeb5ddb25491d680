"""Git utilities for metarepo."""

from metarepo.git.client import GitClient, DEFAULT_REMOTE
from metarepo.git.utils import (
    is_git_repo,
    get_current_branch,
    get_repo_root,
    run_git,
    GitError,
    GitNotInstalledError,
    GitTimeoutError,
    GitCommandError,
    VcsCommandError,
)

__all__ = [
    "GitClient",
    "DEFAULT_REMOTE",
    "is_git_repo",
    "get_current_branch",
    "get_repo_root",
    "run_git",
    "GitError",
    "GitNotInstalledError",
    "GitTimeoutError",
    "GitCommandError",
    "VcsCommandError",
]
