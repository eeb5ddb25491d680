"""Manifest store: the ordered list of repositories the workspace tracks.

The manifest is a YAML list with one ``url#branch`` string per line:

    - https://github.com/org/a#master
    - https://github.com/org/b#main

It is read at the start of every sync and only ever rewritten as a whole:
entries are serialized in HTTPS form, sorted, and atomically replaced.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional

import yaml
from filelock import FileLock

from metarepo.core.fileio import atomic_write_text
from metarepo.core.repository import Repository, UnsupportedUrlError
from metarepo.errors import MetarepoError

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================

class ManifestError(MetarepoError):
    """Base exception for manifest operations."""
    pass


class ManifestParseError(ManifestError):
    """Manifest file is missing, unreadable or malformed."""

    def __init__(self, message: str, path: Optional[Path] = None, index: Optional[int] = None):
        location = str(path) if path else "manifest"
        if index is not None:
            location = f"{location} entry {index}"
        super().__init__(f"{location}: {message}")
        self.path = path
        self.index = index


class DuplicateRepositoryError(ManifestError):
    """Two entries resolve to the same repository identifier."""

    def __init__(self, identifier: str):
        super().__init__(f"Repository already in manifest: {identifier}")
        self.identifier = identifier


# =============================================================================
# Parsing
# =============================================================================

def parse_entries(entries: Iterable, path: Optional[Path] = None) -> List[Repository]:
    """Turn raw manifest entries into descriptors, preserving order.

    Raises:
        ManifestParseError: On a non-string entry, a bad URL, or a
            repeated identifier
    """
    repositories = []
    seen = set()
    for index, entry in enumerate(entries, start=1):
        if not isinstance(entry, str) or not entry.strip():
            raise ManifestParseError(f"expected 'url#branch' string, got {entry!r}", path, index)
        try:
            repository = Repository.from_entry(entry)
        except UnsupportedUrlError as e:
            raise ManifestParseError(str(e), path, index) from e
        if repository.identifier in seen:
            raise ManifestParseError(f"duplicate repository {repository.identifier}", path, index)
        seen.add(repository.identifier)
        repositories.append(repository)
    return repositories


def serialize_entries(repositories: Iterable[Repository]) -> List[str]:
    """Serialize descriptors in the persisted (sorted) order."""
    return sorted(repository.to_entry() for repository in repositories)


# =============================================================================
# Manifest Store
# =============================================================================

class ManifestStore:
    """Loads and persists the repository manifest file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = FileLock(str(self.path) + ".lock", timeout=30)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> List[Repository]:
        """Read the manifest.

        Raises:
            ManifestParseError: If the file is absent or malformed
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ManifestParseError("file not found", self.path)
        except (OSError, UnicodeDecodeError) as e:
            raise ManifestParseError(f"cannot read file: {e}", self.path) from e

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ManifestParseError(f"invalid YAML: {e}", self.path) from e

        if data is None:
            return []
        if not isinstance(data, list):
            raise ManifestParseError("expected a list of 'url#branch' entries", self.path)

        repositories = parse_entries(data, self.path)
        logger.debug("Loaded %d repositories from %s", len(repositories), self.path)
        return repositories

    def save(self, repositories: Iterable[Repository]) -> List[str]:
        """Rewrite the whole manifest, sorted by serialized entry.

        Returns:
            The entries as written
        """
        entries = serialize_entries(repositories)
        content = yaml.safe_dump(entries, default_flow_style=False, allow_unicode=True)
        with self._lock:
            atomic_write_text(self.path, content)
        logger.debug("Wrote %d repositories to %s", len(entries), self.path)
        return entries

    def add(self, repository: Repository) -> List[Repository]:
        """Append a repository and persist the manifest.

        A missing manifest file is treated as empty here, so the first
        repository of a new workspace can be added.

        Raises:
            DuplicateRepositoryError: If the identifier is already listed
        """
        with self._lock:
            repositories = self.load() if self.exists() else []
            if any(r.identifier == repository.identifier for r in repositories):
                raise DuplicateRepositoryError(repository.identifier)
            repositories.append(repository)
            self.save(repositories)
        return repositories
