"""
Test data factories for MLSS tests.

Provides a small deterministic reference library (two loci, three
profiles, thresholds, two query genomes and precomputed alignments) and
helpers to build 13-column alignment records.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

LOCI = ("BACT000001", "BACT000002")

ALLELE_LENGTHS = {
    "BACT000001_1": 100,
    "BACT000001_2": 100,
    "BACT000002_1": 200,
    "BACT000002_2": 200,
}

PROFILE_TABLE = (
    "id\tisolate\tspecies\tBACT000001\tBACT000002\n"
    "3\tiso_three\tGamma\t1\t2\n"
    "1\tiso_one\tAlpha\t1\t1\n"
    "2\tiso_two\tbeta\t2\t2\n"
)

THRESHOLDS_TABLE = (
    "# name\tA\tfraction A\tB\tfraction B\tfeature\tcomment\n"
    "ISOLATE_1\t95.0\t0/0\t90.0\t0/0\tAlpha\tcalibrated\n"
    "ISOLATE_2\t97.0\t0/0\t90.0\t0/0\tbeta\tcalibrated\n"
    "ISOLATE_3\t95.0\t0/0\t90.0\t0/0\tGamma\tcalibrated\n"
)


def blast_line(
    allele: str,
    *,
    identity: float = 100.0,
    allele_length: int = 100,
    start: int = 1,
    end: int | None = None,
    score: int = 200,
    identical: int | None = None,
    contig: str = "contig_1",
    evalue: str = "1e-50",
) -> str:
    """Build one 13-column tab-separated alignment record."""
    end = allele_length if end is None else end
    segment = end - start + 1
    identical = round(segment * identity / 100) if identical is None else identical
    fields = [
        contig,
        allele,
        "5000",
        str(allele_length),
        "1",
        str(segment),
        str(start),
        str(end),
        f"{identity:.3f}",
        str(segment),
        evalue,
        str(score),
        str(identical),
    ]
    return "\t".join(fields)


# Query 'q1': full matches for profile 1, a 95% match for BACT000001_2 and a
# lower-ranked duplicate of BACT000001_1. Query 'q2' has no alignments.
Q1_ALIGNMENTS = "\n".join(
    [
        blast_line("BACT000002_1", allele_length=200, score=400, evalue="0.0"),
        blast_line("BACT000001_1", identity=90.0, score=150, contig="contig_2"),
        blast_line("BACT000001_1", score=200),
        blast_line("BACT000001_2", identity=95.0, score=180),
    ]
) + "\n"


def _fasta(identifier: str, length: int) -> str:
    sequence = "ACGT" * (length // 4) + "A" * (length % 4)
    lines = [sequence[i : i + 60] for i in range(0, len(sequence), 60)]
    return f">{identifier} allele\n" + "\n".join(lines) + "\n"


@dataclass
class ReferenceFiles:
    """Paths of an on-disk reference library."""

    root: Path
    database: Path
    profiles: Path
    thresholds: Path
    loci: Path
    warehouse: Path
    input_list: Path
    alignments: Path

    @property
    def queries(self) -> list[str]:
        return ["q1.fa", "q2.fa"]


def write_reference_files(root: Path) -> ReferenceFiles:
    """Write a two-locus, three-profile reference library under ``root``."""
    database = root / "alleles.fas"
    database.write_text("".join(_fasta(name, length) for name, length in ALLELE_LENGTHS.items()))
    for suffix in (".nin", ".nhr", ".nsq"):
        (root / f"alleles.fas{suffix}").write_bytes(b"\x00")

    profiles = root / "profiles.txt"
    profiles.write_text(PROFILE_TABLE)

    thresholds = root / "thresholds.txt"
    thresholds.write_text(THRESHOLDS_TABLE)

    loci = root / "loci.txt"
    loci.write_text("\n".join(LOCI) + "\n")

    warehouse = root / "contigs"
    warehouse.mkdir()
    for name in ("q1.fa", "q2.fa"):
        (warehouse / name).write_text(f">contig_1 {name}\nACGTACGTACGT\n")

    input_list = root / "genomes.txt"
    input_list.write_text("q1.fa\nq2.fa\n")

    alignments = root / "alignments"
    alignments.mkdir()
    (alignments / "q1.tsv").write_text(Q1_ALIGNMENTS)

    return ReferenceFiles(
        root=root,
        database=database,
        profiles=profiles,
        thresholds=thresholds,
        loci=loci,
        warehouse=warehouse,
        input_list=input_list,
        alignments=alignments,
    )
