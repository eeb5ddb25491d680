"""Core modules for metarepo.

This package contains the engine used by all commands:
- repository: descriptor parsed from an origin URL
- manifest: load/save of the repository list
- reconcile: sync local checkouts with the manifest
- workdir: scoped working-directory switch
- retry: bounded retry helper
- config: workspace configuration and paths
- workspace: editor workspace file generation
"""

from metarepo.core.repository import (
    Repository,
    UnsupportedUrlError,
    DEFAULT_BRANCH,
)

from metarepo.core.manifest import (
    ManifestStore,
    ManifestError,
    ManifestParseError,
    DuplicateRepositoryError,
    parse_entries,
    serialize_entries,
)

from metarepo.core.reconcile import (
    Reconciler,
    ReconcileError,
    ReconcileReport,
    ReconcileResult,
)

from metarepo.core.workdir import working_directory

from metarepo.core.retry import (
    with_retry,
    RetryExhaustedError,
    DEFAULT_RETRY_ATTEMPTS,
)

from metarepo.core.config import (
    MetaConfig,
    Workspace,
    load_config,
    save_config,
)

from metarepo.core.workspace import (
    WorkspaceError,
    discover_repositories,
    write_workspace_file,
)

__all__ = [
    # Descriptor
    "Repository",
    "UnsupportedUrlError",
    "DEFAULT_BRANCH",
    # Manifest
    "ManifestStore",
    "ManifestError",
    "ManifestParseError",
    "DuplicateRepositoryError",
    "parse_entries",
    "serialize_entries",
    # Reconcile
    "Reconciler",
    "ReconcileError",
    "ReconcileReport",
    "ReconcileResult",
    # Helpers
    "working_directory",
    "with_retry",
    "RetryExhaustedError",
    "DEFAULT_RETRY_ATTEMPTS",
    # Config
    "MetaConfig",
    "Workspace",
    "load_config",
    "save_config",
    # Workspace file
    "WorkspaceError",
    "discover_repositories",
    "write_workspace_file",
]
