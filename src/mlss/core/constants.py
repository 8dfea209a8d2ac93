"""
Constants used throughout the MLSS package.

Centralizes file naming conventions, tabular layouts and default locus
sets to keep the readers, the job runner and the writer consistent.
"""

from __future__ import annotations

# =============================================================================
# Default Loci
#
# The 53 ribosomal protein gene loci of the rMLST scheme (Jolley et al. 2012,
# Microbiology). Used when no loci file is supplied.
# =============================================================================

RMLST_LOCI: tuple[str, ...] = tuple(
    f"BACT{number:06d}"
    for number in (
        *range(1, 22),
        *range(30, 37),
        *range(38, 41),
        *range(42, 54),
        *range(56, 66),
    )
)

# =============================================================================
# Alignment Output
# =============================================================================

# 13-column BLAST tabular layout consumed by the pairwise parser
BLAST_OUTFMT_13COL = (
    "6 qseqid sseqid qlen slen qstart qend sstart send "
    "pident length evalue score nident"
)

# Environment variable naming the BLAST+ bin directory
BLAST_BIN_PATH_ENV = "BLAST_BIN_PATH"

# Index files created by 'makeblastdb -dbtype nucl'
BLAST_NUCLEOTIDE_INDEX_SUFFIXES: tuple[str, ...] = (".nin", ".nhr", ".nsq")

# =============================================================================
# File Naming
# =============================================================================

RESULTS_SUFFIX = "_RESULTS"
LOCK_SUFFIX = ".lock"
BLAST_SUFFIX = "_BLAST"
TEMP_SUFFIX = ".tmp"
LENGTHS_SUFFIX = ".lengths"

# =============================================================================
# Profile Table Columns
# =============================================================================

ALIAS_COLUMN = "isolate"
NOT_AVAILABLE = "N/A"

# =============================================================================
# Results Layout
# =============================================================================

RESULTS_HEADER_FIELDS: tuple[str, ...] = (
    "#Rank",
    "Filename",
    "Profile Name",
    "Sequence Identity",
    "Profile Feature",
    "Traffic Light Colour",
    "Nucleotide Overlap",
    "Matched Allele Count / Profile Allele Count",
    "Matched Nucleotide Identities / Profile Nucleotide Count",
    "Matched Nucleotide Count / Profile Nucleotide Count",
    "Total Blast Score",
    "Profile Numeric Identifier",
    "Identity Calculation Method",
)


def root_name(filename: str) -> str:
    """
    Return the root of a filename: its basename up to the last '.'.

    Example:
        >>> root_name("ISOLATE_23_A0_contigs.fa")
        'ISOLATE_23_A0_contigs'
        >>> root_name("genome")
        'genome'
    """
    base = filename.rsplit("/", 1)[-1]
    if "." in base:
        stem = base.rsplit(".", 1)[0]
        if stem:
            return stem
    return base
