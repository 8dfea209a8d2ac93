"""
Search command: score query genomes against a library of allele profiles.

For every query genome in the input list, alleles are collected with blastn
(or read from precomputed alignment files), each reference profile is
scored by nucleotide identity and the ranked profiles are written to
'<query root>_RESULTS' in the working directory.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from mlss import __version__
from mlss.cli.utils import QuietConsole, exit_with_error, jobs_progress, spinner_progress
from mlss.core.claims import LockFileClaim
from mlss.core.exceptions import MlssError, OutputExistsError
from mlss.core.library import ReferenceLibrary, SearchInputs
from mlss.core.logging import (
    RunLogPaths,
    configure_run_logging,
    finalize_run_logging,
    log_parameters,
)
from mlss.core.scheduler import (
    JobOutcome,
    JobRunner,
    JobStatus,
    Scheduler,
    results_path_for,
    summarize_outcomes,
)
from mlss.external.blast import Aligner, BlastAligner, BlastN, PrecomputedAligner
from mlss.models.config import MAX_JOBS, MAX_THREADS_PER_JOB, SearchConfig
from mlss.models.profile import IdentifierField
from mlss.models.scan import IdentityMethod

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="search",
    help="Search query genomes against multilocus allele profiles",
    no_args_is_help=True,
)

console = Console()


class BlastTask(str, Enum):
    """blastn task."""

    BLASTN = "blastn"
    MEGABLAST = "megablast"


def build_search_config(
    config_file: Path | None,
    **overrides: object,
) -> SearchConfig:
    """
    Build the run configuration from an optional YAML file and CLI values.

    Options left unset on the command line (None) keep the YAML or default
    value.
    """
    base = SearchConfig.from_yaml(config_file) if config_file else SearchConfig()
    return base.merged(**overrides)


def build_aligner(
    library: ReferenceLibrary,
    config: SearchConfig,
    precomputed: Path | None = None,
) -> Aligner:
    """
    Create the aligner for a run.

    Raises:
        ToolNotFoundError: If blastn is needed but cannot be located.
    """
    if precomputed is not None:
        logger.info("PRECOMPUTED_ALIGNMENTS_DIRECTORY: %s", precomputed)
        return PrecomputedAligner(precomputed)

    blastn = BlastN(executable=config.blast.executable)
    executable = blastn.resolve_executable()
    logger.info("BLAST_EXECUTABLE: %s", executable)
    version = blastn.get_version()
    if version:
        logger.info("BLAST_VERSION: %s", version)
    return BlastAligner(library.database, library.allele_count, config.blast)


def _run_parameters(
    inputs: SearchInputs,
    config: SearchConfig,
    log_paths: RunLogPaths,
    workdir: Path,
) -> dict[str, object]:
    parameters: dict[str, object] = {
        "program": "mlss",
        "version": __version__,
        "input_file": inputs.input_list,
        "profiles_file": inputs.profiles,
        "sequence_database_file": inputs.database,
        "output_file": log_paths.output,
        "error_file": log_paths.error,
    }
    if log_paths.level <= logging.DEBUG:
        parameters["debug_file"] = log_paths.debug
    parameters.update(
        {
            "info_file": log_paths.info,
            "working_directory": workdir,
            "contigs_directory": inputs.warehouse,
            "profile_identifier_field": config.identifier_field,
            "profile_feature_field": config.feature_field,
            "blast_task": config.blast.task,
            "blast_word_size": config.blast.word_size,
            "seq_id_collect": config.blast.perc_identity,
            "e-value_collect": config.blast.evalue,
            "number_of_threads_per_job": config.blast.threads,
            "number_of_jobs": config.jobs,
            "minimum_match_coverage": config.min_match_overlap,
            "minimum_match_sequence_identity": config.min_sequence_identity,
            "identity_calculation_method": config.identity_method.value,
            "reporting_limit": (
                config.reporting_limit
                if config.reporting_limit > 0
                else "N/A (SET TO REPORT ALL RESULTS)"
            ),
            "delete_files": "YES" if config.delete_intermediate else "NO",
        }
    )
    if inputs.first or inputs.last:
        parameters["reading_input_file_first_line"] = inputs.first
        parameters["reading_input_file_last_line"] = inputs.last
    if inputs.thresholds:
        parameters["thresholds_file"] = inputs.thresholds
    if inputs.loci:
        parameters["loci_file"] = inputs.loci
    return parameters


def _display_outcomes(out: QuietConsole, outcomes: list[JobOutcome]) -> None:
    counts = summarize_outcomes(outcomes)

    table = Table(title="Search Summary", show_header=True)
    table.add_column("Status", style="cyan", no_wrap=True)
    table.add_column("Jobs", justify="right", style="magenta")

    styles = {
        JobStatus.DONE: "green",
        JobStatus.SKIPPED_DONE: "yellow",
        JobStatus.SKIPPED_LOCKED: "yellow",
        JobStatus.FAILED: "red",
    }
    for status, count in counts.items():
        style = styles.get(status, "white")
        table.add_row(f"[{style}]{status.value}[/{style}]", f"{count:,}")
    table.add_row("[bold]Total[/bold]", f"[bold]{len(outcomes):,}[/bold]")
    out.print(table)

    failed = [outcome for outcome in outcomes if outcome.status == JobStatus.FAILED]
    for outcome in failed:
        out.print(f"[red]  FAILED {outcome.query}: {outcome.message}[/red]")


@app.command(name="run")
def run(
    input_list: Path = typer.Option(
        ...,
        "--input",
        "-i",
        help="File listing query genome filenames (first column, one per line)",
        exists=True,
        dir_okay=False,
    ),
    warehouse: Path = typer.Option(
        ...,
        "--dir",
        "-d",
        help="Directory holding the query genome (contigs) files",
        exists=True,
        file_okay=False,
    ),
    database: Path = typer.Option(
        ...,
        "--db",
        help="Allele sequence FASTA file, indexed with makeblastdb",
        exists=True,
        dir_okay=False,
    ),
    profiles: Path = typer.Option(
        ...,
        "--profiles",
        "-p",
        help="Profile table (tab-separated, one header line)",
        exists=True,
        dir_okay=False,
    ),
    output: Path = typer.Option(
        ...,
        "--out",
        "-o",
        help="Run log file (must not exist); .error and .debug logs are written beside it",
    ),
    identifier_field: IdentifierField = typer.Option(
        ...,
        "--field",
        help="Profile identifier column: 'id', 'rST' or 'ST'",
    ),
    thresholds: Path | None = typer.Option(
        None,
        "--thresholds",
        "-t",
        help="Traffic light thresholds table; enables Green/Amber/Red classification",
        exists=True,
        dir_okay=False,
    ),
    loci: Path | None = typer.Option(
        None,
        "--loci",
        help="File listing locus columns to read (default: the 53 rMLST loci)",
        exists=True,
        dir_okay=False,
    ),
    limit: int | None = typer.Option(
        None,
        "--limit",
        help="Maximum profiles reported per query (0 = all)",
        min=0,
    ),
    jobs: int | None = typer.Option(
        None,
        "--jobs",
        "-j",
        help=f"Query genomes processed in parallel (1-{MAX_JOBS})",
        min=1,
        max=MAX_JOBS,
    ),
    method: IdentityMethod | None = typer.Option(
        None,
        "--method",
        help="Identity denominator: 'local' (matched bases) or 'global' (profile length)",
    ),
    task: BlastTask | None = typer.Option(
        None,
        "--task",
        help="blastn task: 'blastn' or 'megablast'",
    ),
    word_size: int | None = typer.Option(
        None,
        "--word-size",
        help="blastn word size (10-30)",
        min=10,
        max=30,
    ),
    evalue_collect: float | None = typer.Option(
        None,
        "--evalue-collect",
        help="blastn e-value used to collect matches",
        min=0,
    ),
    seqid_collect: float | None = typer.Option(
        None,
        "--seqid-collect",
        help="blastn percent identity used to collect matches",
        min=0,
        max=100,
    ),
    seqid_cutoff: float | None = typer.Option(
        None,
        "--seqid-cutoff",
        help="Minimum match identity (%) for an allele to be scored",
        min=0,
        max=100,
    ),
    overlap_cutoff: float | None = typer.Option(
        None,
        "--overlap-cutoff",
        help="Minimum allele coverage (%) for an allele to be scored",
        min=0,
        max=100,
    ),
    max_threads_per_job: int | None = typer.Option(
        None,
        "--max-threads-per-job",
        help=f"blastn threads per job (1-{MAX_THREADS_PER_JOB})",
        min=1,
        max=MAX_THREADS_PER_JOB,
    ),
    feature: str | None = typer.Option(
        None,
        "--feature",
        help="Profile table column reported as feature (default: species)",
    ),
    first: int = typer.Option(
        0,
        "--first",
        help="First input list entry to process (1-based; requires --last)",
        min=0,
    ),
    last: int = typer.Option(
        0,
        "--last",
        help="Last input list entry to process (requires --first)",
        min=0,
    ),
    delete: bool | None = typer.Option(
        None,
        "--delete/--no-delete",
        help="Delete raw alignment files after parsing (default: delete)",
    ),
    header: bool | None = typer.Option(
        None,
        "--header/--no-header",
        help="Start results files with a column header line",
    ),
    blast_exe: Path | None = typer.Option(
        None,
        "--blast-exe",
        help="blastn executable (default: $BLAST_BIN_PATH/blastn, then PATH)",
        dir_okay=False,
    ),
    precomputed: Path | None = typer.Option(
        None,
        "--precomputed",
        help="Directory of '<query root>.tsv' alignment files to use instead of running blastn",
        exists=True,
        file_okay=False,
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML configuration file (command-line options take precedence)",
        exists=True,
        dir_okay=False,
    ),
    workdir: Path = typer.Option(
        Path("."),
        "--workdir",
        "-w",
        help="Directory for results files, lock markers and raw alignments",
        file_okay=False,
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Log debug messages and write a .debug log",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress console output (for scripting)",
    ),
) -> None:
    """
    Score query genomes against every profile of an allele profile table.

    Query genomes that already have a results file in the working
    directory are skipped, so an interrupted batch resumes when the same
    command is run again. Lock markers ('<results>.lock') left behind by a
    killed run must be removed before those queries are retried.

    Example:

        mlss search run \\
            --input genomes.txt \\
            --dir contigs/ \\
            --db rmlst_alleles.fas \\
            --profiles rmlst_profiles.txt \\
            --out search.log \\
            --field rST \\
            --thresholds rmlst_thresholds.txt \\
            --jobs 8
    """
    out = QuietConsole(console, quiet=quiet)

    if output.exists():
        exit_with_error(console, OutputExistsError(output))

    try:
        settings = build_search_config(
            config_file,
            identifier_field=identifier_field.value,
            feature_field=feature,
            identity_method=method,
            min_sequence_identity=seqid_cutoff,
            min_match_overlap=overlap_cutoff,
            reporting_limit=limit,
            write_header=header,
            jobs=jobs,
            delete_intermediate=delete,
            blast_task=task.value if task else None,
            blast_word_size=word_size,
            blast_evalue=evalue_collect,
            blast_perc_identity=seqid_collect,
            blast_threads=max_threads_per_job,
            blast_executable=blast_exe,
        )
    except ValueError as e:
        console.print(f"[red]Error: Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1) from None

    inputs = SearchInputs(
        input_list=input_list,
        warehouse=warehouse,
        database=database,
        profiles=profiles,
        thresholds=thresholds,
        loci=loci,
        first=first,
        last=last,
    )
    workdir = workdir.resolve()
    workdir.mkdir(parents=True, exist_ok=True)

    out.print("\n[bold blue]MLSS Multilocus Sequence Search[/bold blue]\n")

    log_console = Console(quiet=True) if quiet else console
    log_paths = configure_run_logging(
        output, logging.DEBUG if debug else logging.INFO, console=log_console
    )

    try:
        log_parameters(_run_parameters(inputs, settings, log_paths, workdir))

        library = ReferenceLibrary.load(inputs, settings)
        logger.info("PROFILE COUNT: %d", len(library.profiles))
        logger.info("SEQUENCE DATABASE ALLELE COUNT: %d", library.allele_count)

        aligner = build_aligner(library, settings, precomputed)

        stale = LockFileClaim().stale_locks(workdir)
        if stale:
            logger.warning("LOCK FILES PRESENT IN WORKING DIRECTORY: %d", len(stale))

        runner = JobRunner(library=library, config=settings, aligner=aligner, workdir=workdir)
        scheduler = Scheduler(runner, max_workers=settings.jobs, worker_initializer=log_paths)

        logger.info("STARTING JOBS: %d", len(library.queries))
        with jobs_progress(log_console, quiet) as progress:
            task_id = progress.add_task("Searching...", total=len(library.queries))
            outcomes = scheduler.run(
                library.queries,
                progress_callback=lambda _outcome: progress.advance(task_id),
            )

        for status, count in summarize_outcomes(outcomes).items():
            logger.info("JOBS %s: %d", status.value.upper(), count)
        logger.info("FINISHED")

    except MlssError as e:
        logger.error("%s", e.message)
        exit_with_error(console, e)
    finally:
        finalize_run_logging(log_paths)

    _display_outcomes(out, outcomes)
    out.print(f"\n[bold green]Search complete.[/bold green] Log: {output}\n")


@app.command(name="check")
def check(
    input_list: Path = typer.Option(
        ...,
        "--input",
        "-i",
        help="File listing query genome filenames (first column, one per line)",
        exists=True,
        dir_okay=False,
    ),
    warehouse: Path = typer.Option(
        ...,
        "--dir",
        "-d",
        help="Directory holding the query genome (contigs) files",
        exists=True,
        file_okay=False,
    ),
    database: Path = typer.Option(
        ...,
        "--db",
        help="Allele sequence FASTA file, indexed with makeblastdb",
        exists=True,
        dir_okay=False,
    ),
    profiles: Path = typer.Option(
        ...,
        "--profiles",
        "-p",
        help="Profile table (tab-separated, one header line)",
        exists=True,
        dir_okay=False,
    ),
    identifier_field: IdentifierField = typer.Option(
        ...,
        "--field",
        help="Profile identifier column: 'id', 'rST' or 'ST'",
    ),
    thresholds: Path | None = typer.Option(
        None,
        "--thresholds",
        "-t",
        help="Traffic light thresholds table",
        exists=True,
        dir_okay=False,
    ),
    loci: Path | None = typer.Option(
        None,
        "--loci",
        help="File listing locus columns to read (default: the 53 rMLST loci)",
        exists=True,
        dir_okay=False,
    ),
    feature: str | None = typer.Option(
        None,
        "--feature",
        help="Profile table column reported as feature (default: species)",
    ),
    first: int = typer.Option(0, "--first", help="First input list entry", min=0),
    last: int = typer.Option(0, "--last", help="Last input list entry", min=0),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML configuration file",
        exists=True,
        dir_okay=False,
    ),
    workdir: Path = typer.Option(
        Path("."),
        "--workdir",
        "-w",
        help="Working directory to inspect for results files and lock markers",
        file_okay=False,
    ),
) -> None:
    """
    Validate search inputs without running any job.

    Loads and cross-checks the input list, query files, BLAST database
    index, allele lengths, profile table and thresholds, then reports what
    a run would process.

    Example:

        mlss search check --input genomes.txt --dir contigs/ \\
            --db rmlst_alleles.fas --profiles rmlst_profiles.txt --field rST
    """
    try:
        settings = build_search_config(
            config_file,
            identifier_field=identifier_field.value,
            feature_field=feature,
        )
    except ValueError as e:
        console.print(f"[red]Error: Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1) from None

    inputs = SearchInputs(
        input_list=input_list,
        warehouse=warehouse,
        database=database,
        profiles=profiles,
        thresholds=thresholds,
        loci=loci,
        first=first,
        last=last,
    )

    try:
        with spinner_progress("Validating inputs...", console):
            library = ReferenceLibrary.load(inputs, settings)
    except MlssError as e:
        exit_with_error(console, e)

    workdir = workdir.resolve()
    claim = LockFileClaim()
    results = [results_path_for(workdir, query) for query in library.queries]
    completed = sum(1 for path in results if path.exists())
    locked = sum(1 for path in results if claim.is_locked(path))

    table = Table(title="Search Inputs", show_header=True)
    table.add_column("Input", style="cyan", no_wrap=True)
    table.add_column("Count", justify="right", style="magenta")
    table.add_row("Query genomes", f"{len(library.queries):,}")
    table.add_row("Loci", f"{len(library.loci):,}")
    table.add_row("Profiles", f"{len(library.profiles):,}")
    table.add_row("Database alleles", f"{library.allele_count:,}")
    table.add_row(
        "Threshold entries",
        f"{len(library.thresholds):,}" if library.thresholds is not None else "N/A",
    )
    table.add_row("Queries with results", f"{completed:,}")
    table.add_row("Queries locked", f"{locked:,}")
    console.print(table)

    console.print("\n[green]Validation complete. Ready to search.[/green]")
