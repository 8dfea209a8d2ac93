"""
Writer for scan results files.

Results files are tab-separated with one line per profile in rank order
(13 columns):

    rank, query filename, profile name, identity (%), feature, traffic light,
    overlap (%), matched/profile alleles, identical/denominator nucleotides,
    matched/profile nucleotides, total score, profile identifier, method
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

from mlss.core.constants import RESULTS_HEADER_FIELDS
from mlss.models.scan import ScoredProfile


def format_result_line(scored: ScoredProfile) -> str:
    """Render one ranked profile as a results line (without newline)."""
    return "\t".join(
        (
            str(scored.rank or 0),
            Path(scored.query_filename).name,
            scored.profile_name,
            f"{scored.sequence_identity:.5f}",
            scored.feature,
            scored.colour.value,
            f"{scored.nucleotide_overlap:.5f}",
            f"{scored.matched_allele_count}/{scored.profile_allele_count}",
            f"{scored.identical_nucleotide_count}/{scored.identity_denominator}",
            f"{scored.matched_nucleotide_count}/{scored.profile_nucleotide_count}",
            str(scored.total_score),
            str(scored.profile_identifier),
            scored.method.value,
        )
    )


class ResultsWriter:
    """
    Writes ranked profiles in the 13-column results layout.

    Args:
        limit: Maximum number of rows to write (0 writes all rows). The
            limit applies after ranking.
        header: Start the output with a '#' column header line.
    """

    def __init__(self, limit: int = 0, header: bool = False) -> None:
        if limit < 0:
            msg = f"Reporting limit must be >= 0, got {limit}"
            raise ValueError(msg)
        self.limit = limit
        self.header = header

    def write(self, handle: TextIO, ranked: Sequence[ScoredProfile]) -> int:
        """
        Write rows to an open text handle.

        A single result is passed as a one-element sequence.

        Returns:
            Number of profile rows written.
        """
        rows = ranked[: self.limit] if self.limit else ranked
        if self.header:
            handle.write("\t".join(RESULTS_HEADER_FIELDS) + "\n")
        for scored in rows:
            handle.write(format_result_line(scored) + "\n")
        return len(rows)

    def write_file(self, path: Path, ranked: Sequence[ScoredProfile]) -> int:
        """Write rows to ``path``, replacing any existing file."""
        with path.open("w") as handle:
            return self.write(handle, ranked)
