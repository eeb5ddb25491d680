"""Workspace configuration for metarepo.

Configuration is stored in .metarepo/config.json at the workspace root.
Every value has a default, so a workspace without the file works as long
as it follows the default layout:

    <root>/
      repositories.yml            manifest
      repositories/<org>/<name>/  cloned repositories
      repositories/<org>/template template for `metarepo new`
"""

import json
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import List, Optional

from metarepo.core.manifest import ManifestStore
from metarepo.core.repository import DEFAULT_BRANCH
from metarepo.core.retry import DEFAULT_RETRY_ATTEMPTS

logger = logging.getLogger(__name__)

CONFIG_DIR = ".metarepo"
CONFIG_FILE = "config.json"


@dataclass
class MetaConfig:
    """Configuration for a metarepo workspace (stored in .metarepo/config.json)."""
    # Hosting
    organization: Optional[str] = None
    host: str = "github.com"
    use_https: bool = False  # origin form for local remotes

    # Layout
    repositories_dir: str = "repositories"
    manifest_file: str = "repositories.yml"
    workspace_file: str = "metarepo.code-workspace"

    # New repositories
    default_branch: str = DEFAULT_BRANCH
    template_name: str = "template"
    template_token: str = "Template"  # replaced by the project name
    template_dashed_token: str = "template"  # replaced by the dashed name
    template_content_files: List[str] = field(
        default_factory=lambda: ["README.md", "pyproject.toml"]
    )

    # Attempts for the workspace generation step after scaffolding
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "MetaConfig":
        return cls(**{
            k: v for k, v in data.items()
            if k in cls.__dataclass_fields__
        })


def load_config(root: Path) -> MetaConfig:
    """Load configuration, falling back to defaults if missing or corrupt."""
    config_file = Path(root) / CONFIG_DIR / CONFIG_FILE
    if config_file.exists():
        try:
            data = json.loads(config_file.read_text(encoding="utf-8"))
            return MetaConfig.from_dict(data)
        except (json.JSONDecodeError, TypeError, AttributeError) as e:
            logger.warning("Config file %s is invalid (%s), using defaults", config_file, e)
    return MetaConfig()


def save_config(root: Path, config: MetaConfig) -> Path:
    """Write configuration to .metarepo/config.json."""
    config_dir = Path(root) / CONFIG_DIR
    config_dir.mkdir(parents=True, exist_ok=True)
    config_file = config_dir / CONFIG_FILE
    config_file.write_text(json.dumps(config.to_dict(), indent=2) + "\n", encoding="utf-8")
    return config_file


class Workspace:
    """Resolved paths of a workspace root plus its configuration."""

    def __init__(self, root: Optional[Path] = None, config: Optional[MetaConfig] = None):
        self.root = Path(root or Path.cwd()).absolute()
        self.config = config or load_config(self.root)

    @property
    def repositories_dir(self) -> Path:
        return self.root / self.config.repositories_dir

    @property
    def manifest_path(self) -> Path:
        return self.root / self.config.manifest_file

    @property
    def workspace_file(self) -> Path:
        return self.root / self.config.workspace_file

    def template_dir(self, organization: str) -> Path:
        return self.repositories_dir / organization / self.config.template_name

    def manifest(self) -> ManifestStore:
        return ManifestStore(self.manifest_path)
