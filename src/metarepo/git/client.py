"""Git command surface used by the reconciler and the `new` command.

GitClient is a thin object wrapper over run_git() so the reconciler can be
handed a different client (tests use a recording fake). Every method takes
the directory it operates on explicitly.
"""

import logging
from pathlib import Path
from typing import List, Optional

from metarepo.git.utils import run_git, get_repo_root, DEFAULT_GIT_TIMEOUT

logger = logging.getLogger(__name__)

DEFAULT_REMOTE = "origin"


class GitClient:
    """Runs git commands against explicit directories."""

    def __init__(self, timeout: Optional[int] = DEFAULT_GIT_TIMEOUT, clone_timeout: Optional[int] = None):
        """Initialize client.

        Args:
            timeout: Timeout for local commands (seconds)
            clone_timeout: Timeout for clones; None waits for the transfer to finish
        """
        self.timeout = timeout
        self.clone_timeout = clone_timeout

    def _run(self, *args, cwd: Path):
        return run_git(*args, cwd=cwd, check=True, timeout=self.timeout)

    # -------------------------------------------------------------------------
    # Remote operations
    # -------------------------------------------------------------------------

    def clone(self, url: str, target: Path, branch: str) -> None:
        """Clone url into target, checking out branch.

        The parent of target must exist; git creates target itself.
        """
        target = Path(target)
        logger.info("Cloning %s into %s (branch %s)", url, target, branch)
        run_git(
            "clone", url, str(target), "--branch", branch, "--progress",
            cwd=target.parent,
            check=True,
            timeout=self.clone_timeout,
        )

    def is_checkout(self, path: Path) -> bool:
        """True if path is the top level of its own repository.

        A plain directory nested in another repository is not a checkout;
        git run there would act on the enclosing repository.
        """
        root = get_repo_root(path)
        return root is not None and root.resolve() == Path(path).resolve()

    def remotes(self, cwd: Path) -> List[str]:
        """List configured remote names."""
        result = self._run("remote", cwd=cwd)
        return result.stdout.split()

    def remote_url(self, name: str, cwd: Path) -> Optional[str]:
        """Get a remote's URL, or None if the remote is not configured."""
        if name not in self.remotes(cwd):
            return None
        result = self._run("remote", "get-url", name, cwd=cwd)
        return result.stdout.strip()

    def remote_add(self, name: str, url: str, cwd: Path) -> None:
        self._run("remote", "add", name, url, cwd=cwd)

    def remote_set_url(self, name: str, url: str, cwd: Path) -> None:
        self._run("remote", "set-url", name, url, cwd=cwd)

    def upsert_remote(self, name: str, url: str, cwd: Path) -> Optional[str]:
        """Create the remote if absent, then always set its URL.

        Returns:
            The URL the remote had before, or None if it was just added
        """
        previous = self.remote_url(name, cwd)
        if previous is None:
            logger.info("Adding remote %s -> %s in %s", name, url, cwd)
            self.remote_add(name, url, cwd)
        elif previous != url:
            logger.info("Correcting remote %s in %s: %s -> %s", name, cwd, previous, url)
        self.remote_set_url(name, url, cwd)
        return previous

    # -------------------------------------------------------------------------
    # Local repository operations
    # -------------------------------------------------------------------------

    def init(self, cwd: Path) -> None:
        self._run("init", cwd=cwd)

    def checkout_new_branch(self, name: str, cwd: Path) -> None:
        self._run("checkout", "-b", name, cwd=cwd)

    def add_all(self, cwd: Path) -> None:
        self._run("add", ".", cwd=cwd)

    def add(self, *paths: Path, cwd: Path) -> None:
        self._run("add", *[str(p) for p in paths], cwd=cwd)

    def commit(self, message: str, cwd: Path, allow_empty: bool = False) -> None:
        args = ["commit", "-m", message]
        if allow_empty:
            args.append("--allow-empty")
        self._run(*args, cwd=cwd)
