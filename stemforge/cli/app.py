"""Main Typer application — registers all CLI commands.

Entry point: ``stemforge`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import typer

from stemforge.cli.commands.candidates import candidates_cmd
from stemforge.cli.commands.compile import compile_cmd
from stemforge.cli.commands.local_releases import local_releases_cmd

app = typer.Typer(
    name="stemforge",
    help="stemforge: fetch or compile releases for a stemcell and lock them.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

app.command(
    name="compile-built-releases",
    help="Compile built releases in the lock file and upload them.",
)(compile_cmd)
app.command(
    name="find-build-candidates",
    help="List releases that would need fetching or compiling.",
)(candidates_cmd)
app.command(
    name="local-releases",
    help="List release tarballs in a directory.",
)(local_releases_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
