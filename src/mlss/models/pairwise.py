"""
Pydantic model for a single pairwise alignment record.

Records come from BLAST tabular output using the 13-column layout below.
Each record describes the best local alignment between a query genome
contig and one reference allele sequence.

    qseqid sseqid qlen slen qstart qend sstart send pident length evalue score nident
"""

from __future__ import annotations

import math
from enum import Enum
from typing import ClassVar, Self

from pydantic import BaseModel, Field, field_validator, model_validator

# BLAST reports e-value 0 for perfect long alignments
MAX_LOG_EVALUE = 300.0


class Orientation(str, Enum):
    """Strand orientation of an alignment."""

    FORWARD = "FORWARD"
    REVERSE = "REVERSE"


class PairwiseMatch(BaseModel):
    """
    One alignment between the query and a reference allele.

    Segment coordinates are normalized so that start <= end regardless of
    strand; the original direction is kept in ``orientation``.

    Attributes:
        query_name: Query sequence identifier (contig name)
        match_name: Matched sequence identifier (allele identifier)
        query_length: Query sequence length
        match_length: Matched allele sequence length
        query_start: Query segment start (normalized)
        query_end: Query segment end (normalized)
        match_start: Matched segment start (normalized)
        match_end: Matched segment end (normalized)
        sequence_identity: Percent identity of the alignment
        alignment_length: Total alignment length including gaps
        evalue: Expectation value
        score: Raw alignment score
        identical_count: Number of identical positions
        orientation: FORWARD or REVERSE
    """

    COLUMNS: ClassVar[tuple[str, ...]] = (
        "qseqid",
        "sseqid",
        "qlen",
        "slen",
        "qstart",
        "qend",
        "sstart",
        "send",
        "pident",
        "length",
        "evalue",
        "score",
        "nident",
    )

    query_name: str = Field(description="Query sequence name")
    match_name: str = Field(description="Matched allele identifier")
    query_length: int = Field(ge=0, description="Query sequence length")
    match_length: int = Field(ge=0, description="Matched sequence length")
    query_start: int = Field(ge=0, description="Query segment start")
    query_end: int = Field(ge=0, description="Query segment end")
    match_start: int = Field(ge=0, description="Matched segment start")
    match_end: int = Field(ge=0, description="Matched segment end")
    sequence_identity: float = Field(ge=0, le=100, description="Percent identity")
    alignment_length: int = Field(ge=0, description="Alignment length")
    evalue: float = Field(ge=0, description="Expectation value")
    score: int = Field(description="Raw alignment score")
    identical_count: int = Field(ge=0, description="Identical positions")
    orientation: Orientation = Field(default=Orientation.FORWARD)

    @field_validator("sequence_identity", mode="before")
    @classmethod
    def clamp_identity(cls, v: float) -> float:
        """BLAST occasionally rounds identity above 100."""
        if isinstance(v, (int, float)):
            return max(0.0, min(100.0, float(v)))
        return v

    @model_validator(mode="after")
    def validate_segments(self) -> Self:
        """Segment coordinates must already be normalized."""
        if self.query_end < self.query_start or self.match_end < self.match_start:
            msg = (
                f"Segment coordinates must be normalized (start <= end) for "
                f"{self.match_name}"
            )
            raise ValueError(msg)
        return self

    @property
    def query_segment_length(self) -> int:
        """Length of the aligned query segment."""
        return self.query_end - self.query_start + 1

    @property
    def match_segment_length(self) -> int:
        """Length of the aligned allele segment."""
        return self.match_end - self.match_start + 1

    @property
    def match_overlap(self) -> float:
        """Percentage of the matched allele covered by the alignment."""
        if self.match_length == 0:
            return 0.0
        return 100.0 * self.match_segment_length / self.match_length

    @property
    def log_evalue(self) -> float:
        """Negative log10 of the e-value, capped at 300 for e-value 0."""
        if self.evalue == 0:
            return MAX_LOG_EVALUE
        return -math.log10(self.evalue)

    @classmethod
    def from_fields(cls, fields: list[str] | tuple[str, ...]) -> PairwiseMatch:
        """
        Build a match from the 13 raw columns of one tabular record.

        Args:
            fields: Column values in ``COLUMNS`` order.

        Returns:
            Parsed PairwiseMatch with normalized coordinates.

        Raises:
            ValueError: If the record does not have exactly 13 columns or a
                numeric column cannot be parsed.
        """
        if len(fields) != len(cls.COLUMNS):
            msg = f"Expected {len(cls.COLUMNS)} fields in alignment record, got {len(fields)}"
            raise ValueError(msg)

        qstart, qend = int(fields[4]), int(fields[5])
        sstart, send = int(fields[6]), int(fields[7])
        orientation = Orientation.FORWARD if qstart < qend else Orientation.REVERSE

        return cls(
            query_name=fields[0],
            match_name=fields[1],
            query_length=int(fields[2]),
            match_length=int(fields[3]),
            query_start=min(qstart, qend),
            query_end=max(qstart, qend),
            match_start=min(sstart, send),
            match_end=max(sstart, send),
            sequence_identity=float(fields[8]),
            alignment_length=int(fields[9]),
            evalue=float(fields[10]),
            score=int(float(fields[11])),
            identical_count=int(fields[12]),
            orientation=orientation,
        )

    @classmethod
    def from_blast_line(cls, line: str) -> PairwiseMatch:
        """
        Parse one whitespace-delimited line of 13-column BLAST output.

        Raises:
            ValueError: If the line format is invalid.
        """
        return cls.from_fields(line.split())

    model_config = {"frozen": True}
