"""Editor workspace file listing every local repository.

Regenerated after each sync and after scaffolding a new repository, so the
multi-root workspace always opens the full set of checkouts. Right after a
bulk copy a fresh directory may not be listed yet; callers that need a
specific repository present pass it as `require` and retry.
"""

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from metarepo.core.fileio import atomic_write_text
from metarepo.errors import MetarepoError

logger = logging.getLogger(__name__)


class WorkspaceError(MetarepoError):
    """Workspace file could not be generated."""
    pass


def discover_repositories(repositories_dir: Path) -> List[str]:
    """List ``org/name`` directories under repositories_dir, sorted.

    Hidden directories are skipped at both levels.
    """
    repositories_dir = Path(repositories_dir)
    if not repositories_dir.is_dir():
        return []

    found = []
    with os.scandir(repositories_dir) as orgs:
        for org in orgs:
            if org.name.startswith(".") or not org.is_dir():
                continue
            with os.scandir(org.path) as names:
                for entry in names:
                    if not entry.name.startswith(".") and entry.is_dir():
                        found.append(f"{org.name}/{entry.name}")
    return sorted(found)


def write_workspace_file(
    output: Path,
    repositories_dir: Path,
    require: Optional[str] = None,
) -> List[str]:
    """Write a VS Code multi-root workspace covering all local repositories.

    Args:
        output: Workspace file to (re)write
        repositories_dir: Root containing ``org/name`` checkouts
        require: Identifier that must be present in the listing

    Returns:
        Identifiers written, in order

    Raises:
        WorkspaceError: If `require` is not visible yet
    """
    output = Path(output)
    identifiers = discover_repositories(repositories_dir)
    if require is not None and require not in identifiers:
        raise WorkspaceError(f"Repository {require} not found under {repositories_dir}")

    base = Path(os.path.relpath(repositories_dir, output.parent))
    document = {
        "folders": [
            {"name": identifier, "path": (base / identifier).as_posix()}
            for identifier in identifiers
        ],
    }
    atomic_write_text(output, json.dumps(document, indent=2) + "\n")
    logger.info("Wrote %s with %d repositories", output, len(identifiers))
    return identifiers
