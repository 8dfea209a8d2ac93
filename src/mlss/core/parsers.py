"""
Parsers for alignment output and scan results files.

PairwiseParser streams 13-column BLAST tabular records into PairwiseMatch
objects. sort_pairwise_file orders raw aligner output the way the match
collector expects it, using Polars. read_results loads results files back
into a Polars DataFrame for summaries.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import ClassVar

import polars as pl

from mlss.core.exceptions import MalformedPairwiseFileError, ResultsFileError
from mlss.models.pairwise import PairwiseMatch
from mlss.models.scan import ScanRecord

logger = logging.getLogger(__name__)


class PairwiseParser:
    """
    Parser for 13-column BLAST tabular output.

    Records are read line by line so that a malformed record is reported
    with its line number. Empty lines are logged and skipped.

    Example:
        parser = PairwiseParser(Path("ISOLATE_23_alleles_BLAST"))
        for match in parser.iter_matches():
            print(match.match_name, match.score)
    """

    EXPECTED_COLUMNS: ClassVar[int] = len(PairwiseMatch.COLUMNS)

    def __init__(self, path: Path) -> None:
        self.path = path

    def is_empty(self) -> bool:
        """True when the file is absent or has no content."""
        return not self.path.exists() or self.path.stat().st_size == 0

    def iter_matches(self) -> Iterator[PairwiseMatch]:
        """
        Yield one PairwiseMatch per record, in file order.

        Raises:
            MalformedPairwiseFileError: If a record does not have 13 columns
                or holds unparseable numbers.
        """
        if self.is_empty():
            return

        with self.path.open() as handle:
            for line_num, line in enumerate(handle, start=1):
                fields = line.split()
                if not fields:
                    logger.error("Empty line in alignment file (skipping): %s", self.path)
                    continue
                if len(fields) != self.EXPECTED_COLUMNS:
                    raise MalformedPairwiseFileError(self.path, line_num, len(fields))
                try:
                    yield PairwiseMatch.from_fields(fields)
                except ValueError as e:
                    raise MalformedPairwiseFileError(
                        self.path, line_num, len(fields)
                    ) from e

    def parse(self) -> list[PairwiseMatch]:
        """Read all records into memory."""
        return list(self.iter_matches())


# Sort keys: allele ascending, then score, identity and alignment length
# descending, then query sequence name ascending
_SORT_COLUMNS = ["sseqid", "score", "pident", "length", "qseqid"]
_SORT_DESCENDING = [False, True, True, True, False]

_PAIRWISE_SCHEMA: dict[str, type[pl.DataType]] = {
    "qseqid": pl.Utf8,
    "sseqid": pl.Utf8,
    "qlen": pl.Int64,
    "slen": pl.Int64,
    "qstart": pl.Int64,
    "qend": pl.Int64,
    "sstart": pl.Int64,
    "send": pl.Int64,
    "pident": pl.Float64,
    "length": pl.Int64,
    "evalue": pl.Utf8,
    "score": pl.Int64,
    "nident": pl.Int64,
}


def _check_first_record(path: Path) -> None:
    with path.open() as handle:
        for line_num, line in enumerate(handle, start=1):
            fields = line.split("\t")
            if line.strip() == "":
                continue
            if len(fields) != PairwiseParser.EXPECTED_COLUMNS:
                raise MalformedPairwiseFileError(path, line_num, len(fields))
            return


def sort_pairwise_file(source: Path, destination: Path) -> int:
    """
    Sort raw tabular alignment output for match collection.

    Records are ordered by allele identifier (ascending), then raw score,
    percent identity and alignment length (all descending), then query
    sequence name (ascending). Records equal on all five keep their input
    order. The e-value column is copied through verbatim.

    Args:
        source: Unsorted 13-column tab-separated file.
        destination: Sorted output file (written even when empty).

    Returns:
        Number of records written.

    Raises:
        MalformedPairwiseFileError: If the first record does not have 13 columns.
    """
    if not source.exists() or source.stat().st_size == 0:
        destination.write_text("")
        return 0

    _check_first_record(source)

    df = pl.read_csv(
        source,
        separator="\t",
        has_header=False,
        schema=_PAIRWISE_SCHEMA,
        comment_prefix="#",
        quote_char=None,
    )
    if df.is_empty():
        destination.write_text("")
        return 0

    df = df.sort(_SORT_COLUMNS, descending=_SORT_DESCENDING, maintain_order=True)
    df.write_csv(destination, separator="\t", include_header=False, quote_style="never")
    logger.debug("Sorted %d alignment records into %s", len(df), destination)
    return len(df)


# =============================================================================
# Results files
# =============================================================================

RESULTS_SCHEMA: dict[str, type[pl.DataType]] = {
    "rank": pl.Int64,
    "query_filename": pl.Utf8,
    "profile_name": pl.Utf8,
    "sequence_identity": pl.Float64,
    "feature": pl.Utf8,
    "colour": pl.Utf8,
    "nucleotide_overlap": pl.Float64,
    "matched_allele_count": pl.Int64,
    "profile_allele_count": pl.Int64,
    "identical_nucleotide_count": pl.Int64,
    "identity_denominator": pl.Int64,
    "matched_nucleotide_count": pl.Int64,
    "profile_nucleotide_count": pl.Int64,
    "total_score": pl.Int64,
    "profile_identifier": pl.Int64,
    "method": pl.Utf8,
}


def iter_results(path: Path) -> Iterator[ScanRecord]:
    """
    Yield ScanRecord rows from a results file.

    Comment lines (including the optional header) and empty lines are skipped.

    Raises:
        ResultsFileError: If a row cannot be parsed.
    """
    with path.open() as handle:
        for line_num, line in enumerate(handle, start=1):
            if line.startswith("#") or line.strip() == "":
                continue
            try:
                yield ScanRecord.from_line(line)
            except ValueError as e:
                raise ResultsFileError(path, line_num, str(e)) from e


def read_results(path: Path, min_identity: float = 0.0) -> pl.DataFrame:
    """
    Load a results file into a DataFrame.

    Args:
        path: Results file written by a search run.
        min_identity: Drop rows with sequence identity below this value.

    Returns:
        DataFrame with one row per profile, columns as in RESULTS_SCHEMA.
    """
    rows = [
        record.model_dump(mode="json")
        for record in iter_results(path)
        if record.sequence_identity >= min_identity
    ]
    return pl.DataFrame(rows, schema=RESULTS_SCHEMA)
