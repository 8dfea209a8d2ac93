"""
Main CLI entry point for MLSS.

Provides subcommands for:
- search: Score query genomes against allele profiles
- results: Summarize results files
- config: Write configuration files
"""

from __future__ import annotations

import typer
from rich import print as rprint

from mlss import __version__

app = typer.Typer(
    name="mlss",
    help="Multilocus sequence search of bacterial genomes against allele profiles",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        rprint(f"mlss version {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    MLSS: multilocus sequence search.

    Identifies the closest reference profiles (isolates, rSTs or STs) for
    bacterial genome assemblies by aligning them against typing alleles and
    ranking every profile by nucleotide identity.
    """


# Import subcommands
from mlss.cli import config, results, search  # noqa: E402

app.add_typer(search.app, name="search")
app.add_typer(results.app, name="results")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
