"""
BLAST+ wrapper and alignment collaborators.

Provides:
- BlastN: command builder for blastn in the 13-column tabular layout
- Aligner: protocol for anything that turns a query genome into sorted
  pairwise match records
- BlastAligner: runs blastn against the allele database
- PrecomputedAligner: reuses tabular alignment files produced earlier
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from mlss.core.constants import BLAST_BIN_PATH_ENV, BLAST_OUTFMT_13COL, TEMP_SUFFIX, root_name
from mlss.core.parsers import sort_pairwise_file
from mlss.external.base import ExternalTool, validate_path_safe
from mlss.models.config import BlastConfig

logger = logging.getLogger(__name__)


class BlastN(ExternalTool):
    """Wrapper for blastn nucleotide alignment.

    Aligns a query genome (contigs FASTA) against the allele sequence
    database. The executable is taken from an explicit path, then from
    $BLAST_BIN_PATH/blastn, then from PATH.

    Example:
        >>> blastn = BlastN()
        >>> result = blastn.run_or_raise(
        ...     query=Path("ISOLATE_23_contigs.fa"),
        ...     database=Path("alleles.fa"),
        ...     output=Path("ISOLATE_23_contigs_alleles_BLAST.tmp"),
        ...     max_target_seqs=106,
        ... )
    """

    TOOL_NAME = "blastn"
    BIN_DIR_ENV = BLAST_BIN_PATH_ENV
    INSTALL_HINT = "conda install -c bioconda blast"

    def build_command(
        self,
        *,
        query: Path,
        database: Path,
        output: Path,
        max_target_seqs: int,
        outfmt: str = BLAST_OUTFMT_13COL,
        task: str = "blastn",
        word_size: int = 30,
        evalue: float = 10.0,
        perc_identity: float = 50.0,
        threads: int = 1,
        dust: str = "no",
    ) -> list[str]:
        """Build blastn command.

        Args:
            query: Query genome sequences (FASTA).
            database: BLAST database prefix (the indexed allele FASTA).
            output: Output file path.
            max_target_seqs: Maximum target sequences per query contig.
            outfmt: Output format string.
            task: BLAST task - "blastn" or "megablast".
            word_size: Word size for seed matches.
            evalue: E-value threshold.
            perc_identity: Minimum percent identity filter.
            threads: Number of threads (omitted from the command when 1).
            dust: DUST low-complexity filtering ("yes" or "no").

        Returns:
            Command as list of strings.
        """
        query = validate_path_safe(query, must_exist=False)
        database = validate_path_safe(database, must_exist=False)
        output = validate_path_safe(output, must_exist=False)

        cmd = [str(self.resolve_executable())]

        cmd.extend(["-task", task])
        cmd.extend(["-word_size", str(word_size)])

        if threads > 1:
            cmd.extend(["-num_threads", str(threads)])

        cmd.extend(["-query", str(query)])
        cmd.extend(["-db", str(database)])
        cmd.extend(["-out", str(output)])

        cmd.extend(["-evalue", str(evalue)])
        cmd.extend(["-perc_identity", str(perc_identity)])
        cmd.extend(["-dust", dust])
        cmd.extend(["-outfmt", outfmt])
        cmd.extend(["-max_target_seqs", str(max_target_seqs)])

        return cmd


@runtime_checkable
class Aligner(Protocol):
    """Produces sorted 13-column match records for one query genome.

    ``align`` writes the records to ``output``. A query with no matches
    leaves ``output`` empty (or absent); that is not an error.
    """

    def align(self, query: Path, output: Path) -> None: ...


class BlastAligner:
    """
    Runs blastn against the allele database and sorts its output.

    Args:
        database: Indexed allele FASTA file.
        allele_count: Number of alleles in the database; blastn may report
            up to twice that many target sequences per contig.
        config: blastn collection parameters.
    """

    def __init__(self, database: Path, allele_count: int, config: BlastConfig | None = None) -> None:
        self.database = database
        self.allele_count = allele_count
        self.config = config or BlastConfig()

    def align(self, query: Path, output: Path) -> None:
        unsorted = output.with_name(output.name + TEMP_SUFFIX)
        unsorted.unlink(missing_ok=True)

        blastn = BlastN(executable=self.config.executable)
        result = blastn.run_or_raise(
            timeout=self.config.timeout,
            query=query,
            database=self.database,
            output=unsorted,
            max_target_seqs=max(1, self.allele_count * 2),
            task=self.config.task,
            word_size=self.config.word_size,
            evalue=self.config.evalue,
            perc_identity=self.config.perc_identity,
            threads=self.config.threads,
        )
        logger.debug("blastn finished in %.1fs: %s", result.elapsed_seconds, query.name)

        try:
            sort_pairwise_file(unsorted, output)
        finally:
            unsorted.unlink(missing_ok=True)


class PrecomputedAligner:
    """
    Reads alignment results computed outside of MLSS.

    For query 'ISOLATE_23_contigs.fa' and the default pattern, the records
    are read from '<directory>/ISOLATE_23_contigs.tsv'. Records must use
    the 13-column layout; they are sorted the same way as blastn output.
    A missing file means the query has no matches.
    """

    def __init__(self, directory: Path, pattern: str = "{root}.tsv") -> None:
        self.directory = directory
        self.pattern = pattern

    def source_for(self, query: Path) -> Path:
        return self.directory / self.pattern.format(root=root_name(query.name))

    def align(self, query: Path, output: Path) -> None:
        source = self.source_for(query)
        if not source.exists():
            logger.info("No precomputed alignments for %s: %s", query.name, source)
            output.write_text("")
            return
        sort_pairwise_file(source, output)
