"""``stemforge compile-built-releases`` — resolve built releases for a stemcell.

Fetches pre-compiled releases from publishable sources where possible,
compiles the rest on the remote platform, uploads them to the upload
target, and rewrites the lock file once everything succeeded.
"""

from __future__ import annotations

from functools import partial
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from stemforge.cli.commands._context import load_inputs
from stemforge.config import ForgeSettings
from stemforge.core.errors import ResolutionError
from stemforge.core.resolver import ResolutionReport, Resolver
from stemforge.logging_setup import setup_logging
from stemforge.manifest.lockfile import save_lock
from stemforge.remote.platform import load_platform_factory

console = Console()


def _print_report(report: ResolutionReport) -> None:
    if not report.lock_written:
        console.print("[bold green]All releases are compiled.[/bold green] Nothing to do.")
        return

    table = Table(title="Updated Releases")
    table.add_column("Release", style="cyan")
    table.add_column("Version", style="green")
    table.add_column("Origin")
    table.add_column("Source")
    table.add_column("Path")
    table.add_column("SHA1", style="dim")

    for release in report.from_cache:
        table.add_row(
            release.identity.name, release.identity.version, "cache",
            release.ref.source_id, release.ref.path, release.digest,
        )
    for release in report.built:
        table.add_row(
            release.identity.name, release.identity.version, "[yellow]compiled[/yellow]",
            release.ref.source_id, release.ref.path, release.digest,
        )
    console.print(table)
    if report.session_name:
        console.print(f"[dim]Compilation deployment {report.session_name} was deleted.[/dim]")


def compile_cmd(
    stemcell_file: Path = typer.Option(
        ...,
        "--stemcell-file",
        help="Path to the stemcell tarball on disk.",
    ),
    upload_target_id: Optional[str] = typer.Option(
        None,
        "--upload-target-id",
        help="ID of the release source compiled releases are uploaded to.",
    ),
    lock_file: Optional[Path] = typer.Option(
        None, "--lock", "-l", help="Path to the lock file."
    ),
    sources_file: Optional[Path] = typer.Option(
        None, "--sources", "-s", help="Path to the sources file (Stemfile)."
    ),
    releases_dir: Optional[Path] = typer.Option(
        None,
        "--releases-directory",
        help="Directory to download and export releases into.",
    ),
    variables_files: list[Path] = typer.Option(
        [], "--variables-file", help="YAML file of variables for the sources file."
    ),
    variables: list[str] = typer.Option(
        [], "--variable", help="Variable in key=value format."
    ),
) -> None:
    """Compile built releases in the lock file and upload them to a release source."""
    settings = ForgeSettings()
    setup_logging(settings.log_level)

    lock_path = lock_file or settings.lock_path
    target_id = upload_target_id or settings.upload_target_id

    try:
        manifest, registry = load_inputs(
            lock_path, sources_file or settings.sources_path, variables_files, variables
        )
        uploader = registry.find_uploader(target_id) if target_id else None
        platform_factory = (
            load_platform_factory(settings.platform_factory)
            if settings.platform_factory
            else None
        )
        resolver = Resolver(
            registry,
            partial(save_lock, lock_path),
            releases_dir or settings.releases_dir,
            uploader=uploader,
            platform_factory=platform_factory,
            download_threads=settings.download_threads,
        )
        report = resolver.resolve(manifest, stemcell_file)
    except ResolutionError as exc:
        console.print(f"[bold red]{exc.kind.value} error:[/bold red] {exc}")
        for note in getattr(exc, "__notes__", []):
            console.print(f"  [red]- {note}[/red]")
        raise typer.Exit(code=1)

    _print_report(report)
