"""``stemforge find-build-candidates`` — dry run of the classification step."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from stemforge.cli.commands._context import load_inputs
from stemforge.config import ForgeSettings
from stemforge.core.classifier import find_build_candidates
from stemforge.core.errors import ResolutionError
from stemforge.logging_setup import setup_logging

console = Console()


def candidates_cmd(
    lock_file: Optional[Path] = typer.Option(
        None, "--lock", "-l", help="Path to the lock file."
    ),
    sources_file: Optional[Path] = typer.Option(
        None, "--sources", "-s", help="Path to the sources file (Stemfile)."
    ),
    variables_files: list[Path] = typer.Option(
        [], "--variables-file", help="YAML file of variables for the sources file."
    ),
    variables: list[str] = typer.Option(
        [], "--variable", help="Variable in key=value format."
    ),
) -> None:
    """List releases whose locked source is not publishable."""
    settings = ForgeSettings()
    setup_logging(settings.log_level)

    try:
        manifest, registry = load_inputs(
            lock_file or settings.lock_path,
            sources_file or settings.sources_path,
            variables_files,
            variables,
        )
        candidates = find_build_candidates(manifest, registry)
    except ResolutionError as exc:
        console.print(f"[bold red]{exc.kind.value} error:[/bold red] {exc}")
        raise typer.Exit(code=1)

    if not candidates:
        console.print("[bold green]All releases are compiled.[/bold green]")
        return

    table = Table(title=f"Build Candidates ({len(candidates)})")
    table.add_column("Release", style="cyan")
    table.add_column("Version", style="green")
    table.add_column("Stemcell")
    for requirement in candidates:
        table.add_row(requirement.name, requirement.version, str(requirement.target))
    console.print(table)
