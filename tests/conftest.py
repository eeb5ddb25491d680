"""Shared test fixtures for metarepo.

Provides:
- workspace_root: Temporary workspace with an empty repositories/ dir
- git_identity: Author/committer environment so real commits work
- git_workspace: Workspace root that is itself a real git repo
- make_repo: Factory for real git repos with an optional origin
- fake_git: Recording GitClient that simulates clones and remotes
- cli_runner: Click CliRunner
"""

import subprocess
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from click.testing import CliRunner

from metarepo.git.client import GitClient
from metarepo.git.utils import GitCommandError


def _git(*args, cwd: Path) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


@pytest.fixture
def git_identity(monkeypatch):
    """Make commits work without a global git config."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@test.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@test.com")


@pytest.fixture
def workspace_root(tmp_path):
    """Workspace root with an empty repositories/ directory."""
    (tmp_path / "repositories").mkdir()
    return tmp_path


@pytest.fixture
def git_workspace(workspace_root, git_identity):
    """Workspace root that is a real git repo with one commit."""
    _git("init", cwd=workspace_root)
    (workspace_root / "README.md").write_text("# Workspace\n")
    _git("add", "README.md", cwd=workspace_root)
    _git("commit", "-m", "Initial commit", cwd=workspace_root)
    return workspace_root


@pytest.fixture
def make_repo(git_identity):
    """Create a real git repository, optionally with an origin remote."""

    def _make(path: Path, origin: Optional[str] = None, branch: str = "master") -> Path:
        path.mkdir(parents=True, exist_ok=True)
        _git("init", cwd=path)
        _git("checkout", "-b", branch, cwd=path)
        _git("commit", "--allow-empty", "-m", "Initial commit", cwd=path)
        if origin:
            _git("remote", "add", "origin", origin, cwd=path)
        return path

    return _make


@pytest.fixture
def git_output():
    """Run git in a directory and return stripped stdout."""
    return _git


class FakeGit(GitClient):
    """GitClient double that keeps remotes in memory.

    Clones create the target directory; remote add/set-url behave like
    git (adding an existing remote or setting a missing one fails).
    Only seeded or cloned directories count as checkouts.
    """

    def __init__(self, fail_clone: tuple = ()):
        super().__init__()
        self.calls: List[tuple] = []
        self.remotes_by_path: Dict[Path, Dict[str, str]] = {}
        self.branches: Dict[Path, str] = {}
        self.fail_clone = set(fail_clone)

    def seed(self, path: Path, remotes: Optional[Dict[str, str]] = None) -> Path:
        """Register an existing local checkout."""
        path.mkdir(parents=True, exist_ok=True)
        self.remotes_by_path[path] = dict(remotes or {})
        return path

    def clone(self, url, target, branch):
        target = Path(target)
        self.calls.append(("clone", url, target, branch))
        if url in self.fail_clone:
            raise GitCommandError(f"Git command failed: git clone {url}", returncode=128)
        target.mkdir()
        self.remotes_by_path[target] = {"origin": url}
        self.branches[target] = branch

    def is_checkout(self, path):
        return Path(path) in self.remotes_by_path

    def remotes(self, cwd):
        return list(self.remotes_by_path.get(Path(cwd), {}))

    def remote_url(self, name, cwd):
        return self.remotes_by_path.get(Path(cwd), {}).get(name)

    def remote_add(self, name, url, cwd):
        self.calls.append(("remote_add", name, url, Path(cwd)))
        remotes = self.remotes_by_path.setdefault(Path(cwd), {})
        if name in remotes:
            raise GitCommandError(f"error: remote {name} already exists.", returncode=3)
        remotes[name] = url

    def remote_set_url(self, name, url, cwd):
        self.calls.append(("remote_set_url", name, url, Path(cwd)))
        remotes = self.remotes_by_path.setdefault(Path(cwd), {})
        if name not in remotes:
            raise GitCommandError(f"error: No such remote '{name}'", returncode=2)
        remotes[name] = url

    def calls_of(self, kind: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == kind]


@pytest.fixture
def fake_git():
    return FakeGit()


@pytest.fixture
def make_fake_git():
    """FakeGit class, for tests that need custom failure behaviour."""
    return FakeGit


@pytest.fixture
def cli_runner():
    """Click CliRunner for testing CLI commands."""
    return CliRunner()
