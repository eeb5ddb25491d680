"""metarepo status - Compare the manifest with local checkouts."""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from metarepo.core.config import Workspace
from metarepo.core.repository import Repository
from metarepo.errors import MetarepoError
from metarepo.git.client import GitClient, DEFAULT_REMOTE
from metarepo.git.utils import GitError, get_current_branch

console = Console()


@dataclass
class RepositoryStatus:
    """Local state of one manifest entry."""
    repository: Repository
    present: bool
    expected_origin: str
    origin: Optional[str] = None
    branch: Optional[str] = None
    error: Optional[str] = None

    @property
    def in_sync(self) -> bool:
        return self.present and self.origin == self.expected_origin


def collect_status(
    workspace: Workspace,
    use_https: bool,
    git: Optional[GitClient] = None,
) -> List[RepositoryStatus]:
    """Inspect every manifest entry without changing anything."""
    git = git or GitClient()
    statuses = []
    for repository in workspace.manifest().load():
        path = repository.local_path(workspace.repositories_dir)
        status = RepositoryStatus(
            repository=repository,
            present=path.is_dir(),
            expected_origin=repository.origin_url(use_https),
        )
        if status.present and not git.is_checkout(path):
            status.error = "not a git repository"
        elif status.present:
            try:
                status.origin = git.remote_url(DEFAULT_REMOTE, cwd=path)
                status.branch = get_current_branch(path)
            except GitError as e:
                status.error = str(e).splitlines()[0]
        statuses.append(status)
    return statuses


@click.command()
@click.option(
    "--https/--ssh",
    "use_https",
    default=None,
    help="Origin URL form to compare against (default from config)",
)
def status_cmd(use_https: Optional[bool]):
    """Show manifest repositories and their local state.

    Read-only: lists which repositories are cloned, their current branch,
    and whether `origin` matches the manifest.
    """
    workspace = Workspace(Path.cwd())
    if use_https is None:
        use_https = workspace.config.use_https

    try:
        statuses = collect_status(workspace, use_https)
    except MetarepoError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    table = Table(title=f"{workspace.manifest_path.name} ({len(statuses)} repositories)")
    table.add_column("Repository", style="cyan")
    table.add_column("Branch")
    table.add_column("Local")
    table.add_column("Origin")

    for status in statuses:
        if not status.present:
            local, origin = "[red]missing[/]", "[dim]-[/]"
        elif status.error:
            local, origin = "[yellow]error[/]", f"[dim]{escape(status.error)}[/]"
        elif status.in_sync:
            local, origin = "[green]✓[/]", status.origin
        else:
            local = "[yellow]stale origin[/]"
            origin = f"{status.origin or '(none)'} → {status.expected_origin}"

        branch = status.repository.branch
        if status.branch and status.branch != branch:
            branch = f"{branch} [dim](on {status.branch})[/]"
        table.add_row(status.repository.identifier, branch, local, origin)

    console.print(table)

    out_of_sync = [s for s in statuses if not s.in_sync]
    if out_of_sync:
        console.print(f"\n[yellow]{len(out_of_sync)} repositories need[/] [cyan]metarepo sync[/]")
    else:
        console.print("\n[green]✓[/] All repositories in sync")
