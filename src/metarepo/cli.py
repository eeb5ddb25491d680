"""Main CLI entry point for metarepo."""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from metarepo import __version__
from metarepo.commands.new import new_cmd
from metarepo.commands.status import status_cmd
from metarepo.commands.sync import sync_cmd

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="metarepo")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging (git commands, retries)")
def main(verbose: bool):
    """metarepo - Manage many git repositories from one manifest.

    Run commands from the workspace root (the directory holding
    repositories.yml).

    \b
    Quick Start:
      metarepo sync              Clone missing repos, fix origins
      metarepo status            Compare manifest with checkouts
      metarepo new Acme.Widgets  Create a repo from the template
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


main.add_command(sync_cmd, name="sync")
main.add_command(status_cmd, name="status")
main.add_command(new_cmd, name="new")


if __name__ == "__main__":
    main()
