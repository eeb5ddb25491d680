"""Instantiate a new repository from a template directory.

Substitution is literal token replacement driven by a map such as

    {"Template": "Acme.Widgets", "template": "acme-widgets"}

and is applied independently to:
- the contents of an explicit allow-list of files (paths as they appear in
  the template, before any rename); no other file is read or written
- the names of every directory, then every file, in the copied tree
"""

import logging
import os
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from metarepo.errors import MetarepoError

logger = logging.getLogger(__name__)

VCS_METADATA_DIRS = (".git",)


# =============================================================================
# Exceptions
# =============================================================================

class TemplateError(MetarepoError):
    """Template could not be instantiated."""
    pass


class NameCollisionError(TemplateError):
    """A rename target already exists."""

    def __init__(self, source: Path, target: Path):
        super().__init__(f"Cannot rename {source} to {target}: target already exists")
        self.source = source
        self.target = target


# =============================================================================
# Substitution
# =============================================================================

def dashed_name(project_name: str) -> str:
    """Lowercase, dot-to-dash form used for directories and URLs."""
    return project_name.lower().replace(".", "-")


def project_substitutions(
    project_name: str,
    token: str = "Template",
    dashed_token: str = "template",
) -> Dict[str, str]:
    """Substitution map for a project: capitalized and dashed variants."""
    return {
        token: project_name,
        dashed_token: dashed_name(project_name),
    }


def fill_template(text: str, substitutions: Mapping[str, str]) -> str:
    """Replace every occurrence of every token in a single pass.

    Replacement values are never scanned again, so the result does not
    depend on map order. Where tokens overlap the longest one wins.
    """
    tokens = sorted((t for t in substitutions if t), key=len, reverse=True)
    if not tokens:
        return text
    pattern = re.compile("|".join(map(re.escape, tokens)))
    return pattern.sub(lambda m: substitutions[m.group(0)], text)


@dataclass
class InstantiationResult:
    """What instantiate() changed in the target tree."""
    target: Path
    substituted: List[Path] = field(default_factory=list)
    renamed: List[Tuple[Path, Path]] = field(default_factory=list)


# =============================================================================
# Steps
# =============================================================================

def copy_template(template_dir: Path, target_dir: Path) -> None:
    """Recursively copy the template tree into target_dir."""
    template_dir = Path(template_dir)
    if not template_dir.is_dir():
        raise TemplateError(f"Template directory not found: {template_dir}")
    shutil.copytree(template_dir, target_dir, symlinks=True, dirs_exist_ok=True)


def remove_vcs_metadata(target_dir: Path) -> List[Path]:
    """Delete version-control metadata at the root of target_dir."""
    removed = []
    for name in VCS_METADATA_DIRS:
        path = Path(target_dir) / name
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
            removed.append(path)
        elif path.exists() or path.is_symlink():
            path.unlink()
            removed.append(path)
    return removed


def substitute_contents(
    target_dir: Path,
    content_files: Sequence[str],
    substitutions: Mapping[str, str],
) -> List[Path]:
    """Apply substitutions to the allow-listed files only.

    Raises:
        TemplateError: If an allow-listed file is missing
    """
    changed = []
    for relative in content_files:
        path = Path(target_dir) / relative
        if not path.is_file():
            raise TemplateError(f"Template file not found: {relative}")
        content = path.read_text(encoding="utf-8")
        filled = fill_template(content, substitutions)
        if filled != content:
            path.write_text(filled, encoding="utf-8")
            changed.append(path)
    return changed


def _rename(path: Path, substitutions: Mapping[str, str]) -> Optional[Tuple[Path, Path]]:
    new_name = fill_template(path.name, substitutions)
    if new_name == path.name:
        return None
    target = path.with_name(new_name)
    if target.exists() or target.is_symlink():
        raise NameCollisionError(path, target)
    path.rename(target)
    return path, target


def rename_entries(target_dir: Path, substitutions: Mapping[str, str]) -> List[Tuple[Path, Path]]:
    """Rename directories, then files, whose names contain a token.

    Directories are walked bottom-up, so renaming a directory never
    invalidates a path still waiting to be processed.

    Raises:
        NameCollisionError: If a new name is already taken
    """
    renamed = []

    for dirpath, dirnames, _ in os.walk(target_dir, topdown=False):
        for dirname in dirnames:
            change = _rename(Path(dirpath) / dirname, substitutions)
            if change:
                renamed.append(change)

    for dirpath, _, filenames in os.walk(target_dir):
        for filename in filenames:
            change = _rename(Path(dirpath) / filename, substitutions)
            if change:
                renamed.append(change)

    return renamed


def instantiate(
    template_dir: Path,
    target_dir: Path,
    substitutions: Mapping[str, str],
    content_files: Sequence[str] = (),
) -> InstantiationResult:
    """Copy a template into target_dir and apply the substitutions.

    Args:
        template_dir: Template root (read only)
        target_dir: Destination root (created if needed)
        substitutions: Token -> replacement map
        content_files: Paths relative to the template root whose contents
            are substituted

    Returns:
        InstantiationResult describing the changes

    Raises:
        TemplateError: Missing template or allow-listed file
        NameCollisionError: A rename would overwrite an existing entry
    """
    target_dir = Path(target_dir)
    logger.info("Instantiating %s into %s", template_dir, target_dir)

    copy_template(template_dir, target_dir)
    for path in remove_vcs_metadata(target_dir):
        logger.debug("Removed %s", path)

    result = InstantiationResult(target=target_dir)
    result.substituted = substitute_contents(target_dir, content_files, substitutions)
    result.renamed = rename_entries(target_dir, substitutions)

    logger.info(
        "Substituted %d file(s), renamed %d entr(ies)",
        len(result.substituted), len(result.renamed),
    )
    return result
