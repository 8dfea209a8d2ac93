"""
Config command: write a YAML configuration file for search runs.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from mlss.models.config import SearchConfig

app = typer.Typer(
    name="config",
    help="Manage search configuration files",
    no_args_is_help=True,
)

console = Console()


@app.command(name="init")
def init(
    output: Path = typer.Argument(
        ...,
        help="Path of the YAML configuration file to write",
        dir_okay=False,
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite an existing file",
    ),
) -> None:
    """
    Write the default search configuration as YAML.

    Edit the file and pass it to 'mlss search run --config'. Options given
    on the command line override values from the file.

    Example:

        mlss config init mlss.yaml
    """
    if output.exists() and not force:
        console.print(f"[red]Error: File exists: {output}[/red]")
        console.print("[dim]Use --force to overwrite.[/dim]")
        raise typer.Exit(code=1) from None

    SearchConfig().to_yaml(output)
    console.print(f"[green]Configuration written to:[/green] {output}")
