"""Bring the local repositories directory in line with the manifest.

For each repository, in manifest order:
- missing directory: clone it with the chosen origin form and branch
- existing directory: must be the top level of its own git repository;
  make sure `origin` exists, then set its URL

Directories not in the manifest are never touched. Running twice in a row
performs no clones the second time.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from metarepo.core.repository import Repository
from metarepo.errors import MetarepoError
from metarepo.git.client import GitClient, DEFAULT_REMOTE
from metarepo.git.utils import GitError

logger = logging.getLogger(__name__)

# Result actions
CLONED = "cloned"
UPDATED = "updated"  # origin added or pointed at a new URL
UNCHANGED = "unchanged"  # origin already matched (set-url still ran)
FAILED = "failed"


class ReconcileError(MetarepoError):
    """Reconciling one repository failed."""

    def __init__(self, repository: Repository, step: str, cause: BaseException):
        super().__init__(f"{repository.identifier}: {step} failed: {cause}")
        self.repository = repository
        self.step = step
        self.cause = cause


@dataclass
class ReconcileResult:
    """Outcome for a single repository."""
    repository: Repository
    action: str
    path: Path
    origin: str
    previous_origin: Optional[str] = None
    error: Optional[ReconcileError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ReconcileReport:
    """Outcome of a reconciliation pass, in manifest order."""
    results: List[ReconcileResult] = field(default_factory=list)

    def by_action(self, action: str) -> List[ReconcileResult]:
        return [r for r in self.results if r.action == action]

    @property
    def failed(self) -> List[ReconcileResult]:
        return self.by_action(FAILED)

    @property
    def ok(self) -> bool:
        return not self.failed

    def counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for result in self.results:
            counts[result.action] = counts.get(result.action, 0) + 1
        return counts


class Reconciler:
    """Clones missing repositories and corrects `origin` on existing ones."""

    def __init__(
        self,
        repositories_dir: Path,
        git: Optional[GitClient] = None,
        use_https: bool = False,
        remote: str = DEFAULT_REMOTE,
    ):
        self.repositories_dir = Path(repositories_dir)
        self.git = git or GitClient()
        self.use_https = use_https
        self.remote = remote

    def reconcile_one(self, repository: Repository) -> ReconcileResult:
        """Reconcile a single repository.

        Raises:
            ReconcileError: Naming the repository and the failed step
        """
        path = repository.local_path(self.repositories_dir)
        origin = repository.origin_url(self.use_https)

        if not path.exists():
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                self.git.clone(origin, path, repository.branch)
            except Exception as e:
                raise ReconcileError(repository, "clone", e) from e
            return ReconcileResult(repository, CLONED, path, origin)

        try:
            if not self.git.is_checkout(path):
                raise GitError(f"{path} exists but is not a git repository")
            previous = self.git.upsert_remote(self.remote, origin, cwd=path)
        except Exception as e:
            raise ReconcileError(repository, "remote", e) from e

        action = UNCHANGED if previous == origin else UPDATED
        return ReconcileResult(repository, action, path, origin, previous_origin=previous)

    def _attempt(self, repository: Repository, fail_fast: bool) -> ReconcileResult:
        try:
            return self.reconcile_one(repository)
        except ReconcileError as e:
            if fail_fast:
                raise
            logger.error("%s", e)
            return ReconcileResult(
                repository,
                FAILED,
                repository.local_path(self.repositories_dir),
                repository.origin_url(self.use_https),
                error=e,
            )

    def reconcile(
        self,
        repositories: Sequence[Repository],
        fail_fast: bool = True,
        jobs: int = 1,
        on_result: Optional[Callable[[ReconcileResult], None]] = None,
    ) -> ReconcileReport:
        """Reconcile every repository.

        Args:
            repositories: Descriptors in manifest order
            fail_fast: Raise on the first failure; otherwise record it and go on
            jobs: Worker threads (git always runs with an explicit cwd, so
                repositories can be processed concurrently)
            on_result: Called once per finished repository

        Returns:
            ReconcileReport with results in manifest order

        Raises:
            ReconcileError: First failure, when fail_fast is set. Repositories
                processed before it keep whatever state they reached.
        """
        repositories = list(repositories)
        self.repositories_dir.mkdir(parents=True, exist_ok=True)

        if jobs <= 1 or len(repositories) <= 1:
            results = []
            for repository in repositories:
                result = self._attempt(repository, fail_fast)
                results.append(result)
                if on_result:
                    on_result(result)
            return ReconcileReport(results)

        results_by_index: Dict[int, ReconcileResult] = {}
        with ThreadPoolExecutor(max_workers=jobs) as executor:
            futures = {
                executor.submit(self._attempt, repository, fail_fast): index
                for index, repository in enumerate(repositories)
            }
            try:
                for future in as_completed(futures):
                    result = future.result()
                    results_by_index[futures[future]] = result
                    if on_result:
                        on_result(result)
            except ReconcileError:
                for pending in futures:
                    pending.cancel()
                raise

        return ReconcileReport([results_by_index[i] for i in sorted(results_by_index)])
