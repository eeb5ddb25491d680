"""metarepo sync - Clone missing repositories and correct remotes."""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from tqdm import tqdm

from metarepo.core.config import Workspace
from metarepo.core.reconcile import (
    Reconciler,
    ReconcileReport,
    CLONED,
    UPDATED,
    UNCHANGED,
    FAILED,
)
from metarepo.core.workspace import write_workspace_file
from metarepo.errors import MetarepoError
from metarepo.git.client import GitClient

console = Console()


def sync_workspace(
    workspace: Workspace,
    use_https: bool,
    fail_fast: bool = True,
    jobs: int = 1,
    quiet: bool = False,
    git: Optional[GitClient] = None,
) -> ReconcileReport:
    """Reconcile every manifest entry, then regenerate the workspace file.

    Raises:
        ManifestParseError: Before anything is touched, if the manifest is bad
        ReconcileError: On the first failing repository when fail_fast is set
    """
    repositories = workspace.manifest().load()
    reconciler = Reconciler(workspace.repositories_dir, git=git, use_https=use_https)

    with tqdm(
        total=len(repositories),
        desc="Syncing",
        unit="repo",
        disable=quiet or not repositories,
    ) as pbar:
        report = reconciler.reconcile(
            repositories,
            fail_fast=fail_fast,
            jobs=jobs,
            on_result=lambda _: pbar.update(1),
        )

    write_workspace_file(workspace.workspace_file, workspace.repositories_dir)
    return report


def print_report(report: ReconcileReport) -> None:
    """Print one line per repository and a summary."""
    icons = {
        CLONED: "[green]✓ cloned[/]",
        UPDATED: "[yellow]↻ origin set[/]",
        UNCHANGED: "[dim]= up to date[/]",
        FAILED: "[red]✗ failed[/]",
    }
    for result in report.results:
        line = f"  {icons[result.action]}  [cyan]{result.repository.identifier}[/]"
        if result.action == UPDATED and result.previous_origin:
            line += f" [dim]({escape(result.previous_origin)} → {escape(result.origin)})[/]"
        elif result.action == FAILED:
            line += f" [dim]{escape(str(result.error))}[/]"
        console.print(line)

    counts = report.counts()
    summary = ", ".join(f"{n} {action}" for action, n in sorted(counts.items()))
    console.print()
    if report.ok:
        console.print(f"[green]✓[/] Synced {len(report.results)} repositories ({summary or 'none'})")
    else:
        console.print(f"[yellow]Completed with {len(report.failed)} error(s)[/] ({summary})")


@click.command()
@click.option(
    "--https/--ssh",
    "use_https",
    default=None,
    help="Origin URL form (default from config: ssh)",
)
@click.option(
    "--keep-going",
    is_flag=True,
    help="Continue with remaining repositories after a failure",
)
@click.option(
    "--jobs",
    "-j",
    type=click.IntRange(min=1),
    default=1,
    help="Repositories to process in parallel",
)
@click.option("--quiet", "-q", is_flag=True, help="Minimal output")
def sync_cmd(use_https: Optional[bool], keep_going: bool, jobs: int, quiet: bool):
    """Sync local repositories with the manifest.

    Clones repositories that are missing locally and points the `origin`
    remote of existing ones at the manifest URL. Directories that are not
    in the manifest are left alone.

    \b
    Examples:
      metarepo sync                # Clone/update over SSH
      metarepo sync --https        # Use HTTPS origins
      metarepo sync -j 4 --keep-going
    """
    workspace = Workspace(Path.cwd())
    if use_https is None:
        use_https = workspace.config.use_https

    if not quiet:
        console.print(Panel.fit(
            f"[bold blue]Syncing[/] [cyan]{workspace.manifest_path.name}[/] "
            f"({'https' if use_https else 'ssh'})",
            border_style="blue"
        ))

    try:
        report = sync_workspace(
            workspace,
            use_https=use_https,
            fail_fast=not keep_going,
            jobs=jobs,
            quiet=quiet,
        )
    except MetarepoError as e:
        console.print(f"[red]Error:[/] {e}")
        console.print("Fix the cause and re-run [cyan]metarepo sync[/]; finished repositories are kept.")
        sys.exit(1)

    if not quiet:
        print_report(report)
    if not report.ok:
        sys.exit(1)
