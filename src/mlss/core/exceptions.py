"""
Custom exceptions with actionable guidance.

Provides specific error types for the failures that abort a search run
(malformed or inconsistent input tables, missing files) and for failures
inside a single job, each with a suggestion for resolution.
"""

from __future__ import annotations

from pathlib import Path


def _examples(items: list[str], limit: int = 5) -> str:
    shown = ", ".join(items[:limit])
    if len(items) > limit:
        shown += f"... and {len(items) - limit} more"
    return shown


class MlssError(Exception):
    """Base exception for MLSS errors."""

    def __init__(self, message: str, suggestion: str | None = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.full_message)

    @property
    def full_message(self) -> str:
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class ConfigurationError(MlssError):
    """Raised when run configuration is invalid."""


class InvalidRangeError(ConfigurationError):
    """Raised when the first/last input list range is inconsistent."""

    def __init__(self, first: int, last: int):
        super().__init__(
            message=f"Invalid input list range: first={first}, last={last}",
            suggestion=(
                "Specify both --first and --last (1-based, counting non-empty lines) "
                "with first <= last, or neither to process the whole list."
            ),
        )
        self.first = first
        self.last = last


class OutputExistsError(ConfigurationError):
    """Raised when the run log output file already exists."""

    def __init__(self, path: Path):
        super().__init__(
            message=f"Output file already exists: {path}",
            suggestion="Choose a new --out filename or remove the existing file.",
        )
        self.path = path


class InputFileError(MlssError):
    """Base class for errors in input tables and files."""


class InputListError(InputFileError):
    """Raised when a list file (query files, loci) cannot be used."""

    def __init__(self, path: Path, reason: str):
        super().__init__(
            message=f"Cannot use list file {path}: {reason}",
            suggestion="List one entry per line; only the first word of each line is read.",
        )
        self.path = path


class MissingQueryFilesError(InputFileError):
    """Raised when query genome files are missing from the warehouse directory."""

    def __init__(self, directory: Path, missing: list[str]):
        super().__init__(
            message=(
                f"{len(missing)} query sequence file(s) not found in {directory}: "
                f"{_examples(missing)}"
            ),
            suggestion=(
                "Check the input list against the contents of the genome directory "
                "(--dir). Names in the list must match filenames exactly."
            ),
        )
        self.directory = directory
        self.missing = missing


class BlastDatabaseError(InputFileError):
    """Raised when the allele sequence database or its BLAST index is missing."""

    def __init__(self, database: Path, missing: list[str]):
        super().__init__(
            message=f"BLAST database is incomplete for {database}: missing {', '.join(missing)}",
            suggestion=(
                "Index the allele FASTA file with the same BLAST+ version as blastn:\n"
                f"  makeblastdb -in {database} -dbtype nucl"
            ),
        )
        self.database = database
        self.missing = missing


class AlleleLengthError(InputFileError):
    """Raised when allele lengths are unavailable or inconsistent with the profiles."""

    def __init__(self, message: str, missing: list[str] | None = None):
        detail = f": {_examples(missing)}" if missing else ""
        super().__init__(
            message=f"{message}{detail}",
            suggestion=(
                "Allele lengths are read from '<db>.lengths' (two tab-separated columns: "
                "allele identifier, length) or from the allele FASTA file. Every allele "
                "referenced in the profile table must be present."
            ),
        )
        self.missing = missing or []


class ProfileTableError(InputFileError):
    """Raised when the profile table is malformed."""

    def __init__(self, path: Path, reason: str):
        super().__init__(
            message=f"Cannot read profile table {path}: {reason}",
            suggestion=(
                "The profile table needs one tab-separated header line with unique "
                "column names, including the identifier field ('id', 'rST' or 'ST') "
                "and every requested locus."
            ),
        )
        self.path = path


class ThresholdsTableError(InputFileError):
    """Raised when the thresholds table is malformed or incomplete."""

    def __init__(self, path: Path, reason: str, names: list[str] | None = None):
        detail = f": {_examples(names)}" if names else ""
        super().__init__(
            message=f"Cannot use thresholds table {path}: {reason}{detail}",
            suggestion=(
                "Each line needs 7 tab-separated columns: profile name, threshold A, "
                "fraction A, threshold B, fraction B, feature, comment. Thresholds lie "
                "in 0-100 with A >= B, and every profile needs an entry."
            ),
        )
        self.path = path
        self.names = names or []


class MalformedPairwiseFileError(InputFileError):
    """Raised when raw alignment output does not have the expected layout."""

    def __init__(self, path: Path, line_num: int, actual_cols: int, expected_cols: int = 13):
        super().__init__(
            message=(
                f"Malformed alignment file '{path}' at line {line_num}: "
                f"expected {expected_cols} columns, got {actual_cols}"
            ),
            suggestion=(
                "Alignment output must use the 13-column tabular layout:\n"
                "  -outfmt '6 qseqid sseqid qlen slen qstart qend sstart send "
                "pident length evalue score nident'"
            ),
        )
        self.path = path
        self.line_num = line_num


class ResultsFileError(InputFileError):
    """Raised when a results file cannot be parsed."""

    def __init__(self, path: Path, line_num: int, reason: str):
        super().__init__(
            message=f"Cannot parse results file '{path}' at line {line_num}: {reason}",
            suggestion="Results files must have the 13-column scan results layout.",
        )
        self.path = path
        self.line_num = line_num
