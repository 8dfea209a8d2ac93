"""
Results commands: inspect the results files written by search runs.
"""

from __future__ import annotations

import logging
from pathlib import Path

import polars as pl
import typer
from rich.console import Console
from rich.table import Table

from mlss.cli.utils import QuietConsole, exit_with_error, spinner_progress
from mlss.core.exceptions import MlssError
from mlss.core.parsers import RESULTS_SCHEMA, read_results
from mlss.models.scan import TrafficLight

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="results",
    help="Summarize search results files",
    no_args_is_help=True,
)

console = Console()

SUMMARY_COLUMNS = [
    "query_filename",
    "profile_name",
    "sequence_identity",
    "feature",
    "colour",
    "nucleotide_overlap",
    "matched_allele_count",
    "profile_allele_count",
]

_COLOUR_STYLES = {
    TrafficLight.GREEN.value: "green",
    TrafficLight.AMBER.value: "yellow",
    TrafficLight.RED.value: "red",
}


def summarize_results(paths: list[Path], min_identity: float = 0.0) -> pl.DataFrame:
    """
    Collect the top-ranked profile of each results file.

    A query filename seen in more than one results file is logged and only
    its first file is kept. Files with no rows (after the identity filter)
    are logged and skipped.

    Raises:
        ResultsFileError: If a results file cannot be parsed.
    """
    frames: list[pl.DataFrame] = []
    seen: set[str] = set()

    for path in paths:
        df = read_results(path, min_identity=min_identity)
        if df.is_empty():
            logger.warning("No results rows in %s", path)
            continue

        top = df.sort("rank").head(1)
        query = top["query_filename"][0]
        if query in seen:
            logger.warning("Duplicate query filename %s in %s (skipping)", query, path)
            continue
        seen.add(query)
        frames.append(top.select(SUMMARY_COLUMNS))

    if not frames:
        return pl.DataFrame(schema={name: RESULTS_SCHEMA[name] for name in SUMMARY_COLUMNS})
    return pl.concat(frames)


@app.command(name="summarize")
def summarize(
    results: list[Path] = typer.Argument(
        ...,
        help="Results files ('<query root>_RESULTS')",
        exists=True,
        dir_okay=False,
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the summary table to this TSV file",
    ),
    min_identity: float = typer.Option(
        0.0,
        "--min-identity",
        help="Ignore profiles with sequence identity below this value (%)",
        min=0,
        max=100,
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress the summary table",
    ),
) -> None:
    """
    Show the best matching profile of each query genome.

    Example:

        mlss results summarize *_RESULTS --output best_matches.tsv
    """
    out = QuietConsole(console, quiet=quiet)

    try:
        with spinner_progress("Reading results files...", console, quiet):
            summary = summarize_results(results, min_identity=min_identity)
    except MlssError as e:
        exit_with_error(console, e)

    table = Table(title="Best Matching Profiles", show_header=True)
    table.add_column("Query", style="cyan", no_wrap=True)
    table.add_column("Profile", style="magenta")
    table.add_column("Identity", justify="right")
    table.add_column("Feature")
    table.add_column("Colour")
    table.add_column("Overlap", justify="right")
    table.add_column("Alleles", justify="right")

    for row in summary.iter_rows(named=True):
        style = _COLOUR_STYLES.get(row["colour"], "white")
        table.add_row(
            row["query_filename"],
            row["profile_name"],
            f"{row['sequence_identity']:.3f}",
            row["feature"],
            f"[{style}]{row['colour']}[/{style}]",
            f"{row['nucleotide_overlap']:.3f}",
            f"{row['matched_allele_count']}/{row['profile_allele_count']}",
        )
    out.print(table)

    if output is not None:
        summary.write_csv(output, separator="\t")
        out.print(f"\n[green]Summary written to:[/green] {output}")
