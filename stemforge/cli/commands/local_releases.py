"""``stemforge local-releases DIR`` — list release tarballs in a directory."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from stemforge.config import ForgeSettings
from stemforge.core.errors import ResolutionError
from stemforge.logging_setup import setup_logging
from stemforge.manifest.lockfile import load_lock
from stemforge.sources.directory import (
    delete_extra_releases,
    find_extra_releases,
    list_local_releases,
)

console = Console()


def local_releases_cmd(
    releases_dir: Path = typer.Argument(..., help="Directory holding release tarballs."),
    delete_extra: bool = typer.Option(
        False,
        "--delete-extra",
        help="Delete releases whose name and version are not in the lock file.",
    ),
    lock_file: Optional[Path] = typer.Option(
        None, "--lock", "-l", help="Path to the lock file (with --delete-extra)."
    ),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Delete without asking for confirmation."
    ),
) -> None:
    """Show name, version, and SHA1 of every release tarball in a directory."""
    settings = ForgeSettings()
    setup_logging(settings.log_level)

    try:
        releases = list_local_releases(releases_dir)
    except (OSError, ValueError) as exc:
        console.print(f"[bold red]Cannot list releases:[/bold red] {exc}")
        raise typer.Exit(code=1)

    if not releases:
        console.print(f"[dim]No releases in {releases_dir}.[/dim]")
        return

    table = Table(title=f"Releases in {releases_dir}")
    table.add_column("Name", style="cyan")
    table.add_column("Version", style="green")
    table.add_column("SHA1", style="dim")
    table.add_column("File")
    for release in releases:
        table.add_row(release.name, release.version, release.digest, release.local_path.name)
    console.print(table)

    if not delete_extra:
        return

    try:
        manifest = load_lock(lock_file or settings.lock_path)
    except ResolutionError as exc:
        console.print(f"[bold red]{exc.kind.value} error:[/bold red] {exc}")
        raise typer.Exit(code=1)

    extra = find_extra_releases(releases, manifest)
    if not extra:
        console.print("[bold green]No extra releases.[/bold green]")
        return
    if not yes:
        typer.confirm(f"Delete {len(extra)} extra releases?", abort=True)

    try:
        delete_extra_releases(extra)
    except OSError as exc:
        console.print(f"[bold red]Cannot delete releases:[/bold red] {exc}")
        raise typer.Exit(code=1)
    console.print(f"[bold green]Deleted {len(extra)} extra releases.[/bold green]")
