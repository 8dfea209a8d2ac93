"""
Pydantic models for per-profile scan results.

A ScoredProfile holds the nucleotide counts collected for one reference
profile against one query genome. Sequence identity and nucleotide overlap
are always derived from the integer counts, never stored, so that rounding
never leaks into ranking or classification.
"""

from __future__ import annotations

from enum import Enum
from typing import ClassVar

from pydantic import BaseModel, Field

from mlss.models.profile import Profile


class IdentityMethod(str, Enum):
    """
    Denominator used for the sequence identity calculation.

    GLOBAL divides identical bases by the total profile nucleotide count, so
    unmatched alleles lower the identity. LOCAL divides by the matched
    nucleotide count and only measures the aligned regions.
    """

    GLOBAL = "global"
    LOCAL = "local"


class TrafficLight(str, Enum):
    """Significance label of a sequence identity value."""

    GREEN = "Green"
    AMBER = "Amber"
    RED = "Red"
    NOT_AVAILABLE = "N/A"


def _percentage(numerator: int, denominator: int) -> float:
    if denominator == 0:
        return 0.0
    return 100.0 * numerator / denominator


class ScoredProfile(BaseModel):
    """
    Aggregated match statistics for one profile against one query.

    Attributes:
        profile: The scored reference profile
        query_filename: Basename of the query genome file
        method: Identity calculation method
        matched_allele_count: Alleles with an accepted match
        profile_allele_count: Alleles expected by the profile
        identical_nucleotide_count: Identical bases over accepted matches
        matched_nucleotide_count: Aligned allele bases over accepted matches
        profile_nucleotide_count: Total reference length of the profile alleles
        total_score: Summed raw alignment score of accepted matches
        rank: Position in the ranked result list (1-based), once ranked
        colour: Traffic light label, once classified
    """

    profile: Profile
    query_filename: str = Field(description="Query genome file basename")
    method: IdentityMethod = Field(default=IdentityMethod.LOCAL)
    matched_allele_count: int = Field(default=0, ge=0)
    profile_allele_count: int = Field(default=0, ge=0)
    identical_nucleotide_count: int = Field(default=0, ge=0)
    matched_nucleotide_count: int = Field(default=0, ge=0)
    profile_nucleotide_count: int = Field(default=0, ge=0)
    total_score: int = Field(default=0)
    rank: int | None = Field(default=None, ge=1)
    colour: TrafficLight = Field(default=TrafficLight.NOT_AVAILABLE)

    @property
    def profile_name(self) -> str:
        return self.profile.name

    @property
    def feature(self) -> str:
        return self.profile.feature

    @property
    def profile_identifier(self) -> int:
        return self.profile.identifier

    @property
    def identity_denominator(self) -> int:
        """Profile nucleotide count (global) or matched nucleotide count (local)."""
        if self.method == IdentityMethod.GLOBAL:
            return self.profile_nucleotide_count
        return self.matched_nucleotide_count

    @property
    def sequence_identity(self) -> float:
        """Sequence identity (%), 0 when the denominator is 0."""
        return _percentage(self.identical_nucleotide_count, self.identity_denominator)

    @property
    def nucleotide_overlap(self) -> float:
        """Share (%) of the profile nucleotides covered by accepted matches."""
        return _percentage(self.matched_nucleotide_count, self.profile_nucleotide_count)

    def with_rank(self, rank: int) -> ScoredProfile:
        return self.model_copy(update={"rank": rank})

    def with_colour(self, colour: TrafficLight) -> ScoredProfile:
        return self.model_copy(update={"colour": colour})

    model_config = {"frozen": True}


class ScanRecord(BaseModel):
    """
    One row of a results file, as read back from disk.

    Mirrors the 13 written columns with the 'a/b' count pairs split into
    their two integers.
    """

    COLUMNS: ClassVar[tuple[str, ...]] = (
        "rank",
        "query_filename",
        "profile_name",
        "sequence_identity",
        "feature",
        "colour",
        "nucleotide_overlap",
        "allele_counts",
        "identity_counts",
        "nucleotide_counts",
        "total_score",
        "profile_identifier",
        "method",
    )

    rank: int = Field(ge=1)
    query_filename: str
    profile_name: str
    sequence_identity: float = Field(ge=0, le=100)
    feature: str
    colour: TrafficLight
    nucleotide_overlap: float = Field(ge=0, le=100)
    matched_allele_count: int = Field(ge=0)
    profile_allele_count: int = Field(ge=0)
    identical_nucleotide_count: int = Field(ge=0)
    identity_denominator: int = Field(ge=0)
    matched_nucleotide_count: int = Field(ge=0)
    profile_nucleotide_count: int = Field(ge=0)
    total_score: int
    profile_identifier: int
    method: IdentityMethod

    @classmethod
    def from_line(cls, line: str) -> ScanRecord:
        """
        Parse one tab-separated results line.

        Raises:
            ValueError: If the line does not have 13 columns or a count pair
                is not of the form 'a/b'.
        """
        fields = line.rstrip("\r\n").split("\t")
        if len(fields) != len(cls.COLUMNS):
            msg = f"Expected {len(cls.COLUMNS)} columns in results line, got {len(fields)}"
            raise ValueError(msg)

        matched_alleles, profile_alleles = _split_pair(fields[7])
        identical, denominator = _split_pair(fields[8])
        matched_nt, profile_nt = _split_pair(fields[9])

        return cls(
            rank=int(fields[0]),
            query_filename=fields[1],
            profile_name=fields[2],
            sequence_identity=float(fields[3]),
            feature=fields[4],
            colour=TrafficLight(fields[5]),
            nucleotide_overlap=float(fields[6]),
            matched_allele_count=matched_alleles,
            profile_allele_count=profile_alleles,
            identical_nucleotide_count=identical,
            identity_denominator=denominator,
            matched_nucleotide_count=matched_nt,
            profile_nucleotide_count=profile_nt,
            total_score=int(fields[10]),
            profile_identifier=int(fields[11]),
            method=IdentityMethod(fields[12]),
        )

    model_config = {"frozen": True}


def _split_pair(value: str) -> tuple[int, int]:
    parts = value.split("/")
    if len(parts) != 2:
        msg = f"Expected a count pair 'a/b', got {value!r}"
        raise ValueError(msg)
    return int(parts[0]), int(parts[1])
