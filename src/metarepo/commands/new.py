"""metarepo new - Create a repository from the organization template."""

import shutil
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel

from metarepo.core.config import Workspace
from metarepo.core.manifest import DuplicateRepositoryError
from metarepo.core.reconcile import Reconciler, ReconcileReport
from metarepo.core.repository import Repository
from metarepo.core.retry import with_retry
from metarepo.core.workdir import working_directory
from metarepo.core.workspace import write_workspace_file
from metarepo.errors import MetarepoError
from metarepo.git.client import GitClient
from metarepo.git.utils import is_git_repo
from metarepo.templates import (
    InstantiationResult,
    dashed_name,
    instantiate,
    project_substitutions,
)

console = Console()


@dataclass
class NewProjectResult:
    """Outcome of `metarepo new`."""
    repository: Repository
    path: Path
    template: InstantiationResult
    manifest_committed: bool
    report: ReconcileReport


def create_project(
    workspace: Workspace,
    project_name: str,
    organization: Optional[str] = None,
    branch: Optional[str] = None,
    use_https: Optional[bool] = None,
    retry_attempts: Optional[int] = None,
    git: Optional[GitClient] = None,
) -> NewProjectResult:
    """Scaffold, commit and register a new repository.

    Steps:
        1. Instantiate the template into <repos>/<org>/<dashed-name>
        2. Regenerate the workspace file (retried until the new
           directory is visible)
        3. git init, create the branch, commit the template
        4. Add the repository to the manifest (committed if the
           workspace root is a git repository)
        5. Sync again, which points the new repository's origin

    Raises:
        MetarepoError: Any failure; nothing is committed if the template
            step fails, and the target is returned to its prior state
    """
    config = workspace.config
    git = git or GitClient()
    organization = organization or config.organization
    if not organization:
        raise MetarepoError("No organization configured; pass --org or set it in .metarepo/config.json")
    branch = branch or config.default_branch
    if use_https is None:
        use_https = config.use_https
    if retry_attempts is None:
        retry_attempts = config.retry_attempts

    dashed = dashed_name(project_name)
    repository = Repository.from_url(f"https://{config.host}/{organization}/{dashed}", branch)
    target = repository.local_path(workspace.repositories_dir)

    manifest = workspace.manifest()
    if manifest.exists() and any(
        r.identifier == repository.identifier for r in manifest.load()
    ):
        raise DuplicateRepositoryError(repository.identifier)
    if target.exists() and any(target.iterdir()):
        raise MetarepoError(f"Directory {target} already exists and is not empty")

    created = not target.exists()
    substitutions = project_substitutions(
        project_name,
        token=config.template_token,
        dashed_token=config.template_dashed_token,
    )

    with working_directory(target) as cwd:
        try:
            template = instantiate(
                workspace.template_dir(organization),
                cwd,
                substitutions,
                config.template_content_files,
            )
            with_retry(
                lambda: write_workspace_file(
                    workspace.workspace_file,
                    workspace.repositories_dir,
                    require=repository.identifier,
                ),
                max_attempts=retry_attempts,
            )
        except Exception:
            # The target was absent or empty before; put it back that way
            shutil.rmtree(cwd, ignore_errors=True)
            if not created:
                cwd.mkdir(exist_ok=True)
            raise

        git.init(cwd)
        git.checkout_new_branch(branch, cwd)
        git.commit("Initialize repository", cwd, allow_empty=True)
        git.add_all(cwd)
        git.commit("Add template files", cwd)

    manifest.add(repository)
    manifest_committed = False
    if is_git_repo(workspace.root):
        git.add(manifest.path, cwd=workspace.root)
        git.commit(f"Add {dashed}", workspace.root)
        manifest_committed = True

    reconciler = Reconciler(workspace.repositories_dir, git=git, use_https=use_https)
    report = reconciler.reconcile(manifest.load())

    return NewProjectResult(
        repository=repository,
        path=target,
        template=template,
        manifest_committed=manifest_committed,
        report=report,
    )


@click.command()
@click.argument("name")
@click.option("--org", "organization", help="Organization (default from config)")
@click.option("--branch", "-b", help="Default branch of the new repository")
@click.option(
    "--https/--ssh",
    "use_https",
    default=None,
    help="Origin URL form for the final sync",
)
@click.option(
    "--retries",
    type=click.IntRange(min=1),
    default=None,
    help="Attempts for the workspace generation step",
)
def new_cmd(name: str, organization: str, branch: str, use_https: Optional[bool], retries: int):
    """Create a new repository from the organization template.

    NAME is the project name, e.g. "Acme.Widgets". The repository is
    created as <org>/acme-widgets; "Template" and "template" in the
    template's file names, directory names and allow-listed files are
    replaced by the name and its dashed form.

    \b
    Examples:
      metarepo new Acme.Widgets --org acme
      metarepo new Tools -b main
    """
    workspace = Workspace(Path.cwd())

    console.print(Panel.fit(
        f"[bold blue]metarepo new[/] - Creating [cyan]{dashed_name(name)}[/]",
        border_style="blue"
    ))

    try:
        result = create_project(
            workspace,
            name,
            organization=organization,
            branch=branch,
            use_https=use_https,
            retry_attempts=retries,
        )
    except (MetarepoError, OSError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    console.print(f"  [dim]Substituted {len(result.template.substituted)} file(s), "
                  f"renamed {len(result.template.renamed)} entr(ies)[/]")
    console.print(f"\n[green]✓[/] Repository created at [cyan]{result.path}[/]")
    console.print(f"  Manifest entry: {result.repository.to_entry()}")
    if not result.manifest_committed:
        console.print("  [yellow]Workspace root is not a git repository; manifest change not committed[/]")

    console.print("\n[bold]Next steps:[/]")
    console.print(f"  Create {result.repository.https_url} on {result.repository.host}")
    console.print(f"  cd {result.path} && git push -u origin {result.repository.branch}")
