"""
Shared pytest fixtures for MLSS tests.

Provides a small on-disk reference library (allele database, profile
table, thresholds, query genomes and precomputed alignments), scored
profile factories and the CLI runner.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from mlss.models.config import SearchConfig
from mlss.models.pairwise import PairwiseMatch
from mlss.models.profile import Allele, Profile
from mlss.models.scan import IdentityMethod, ScoredProfile
from tests.factories import ReferenceFiles, blast_line, write_reference_files

# =============================================================================
# Temporary File Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Path:
    """Temporary directory that is cleaned up after tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def reference_files(temp_dir: Path) -> ReferenceFiles:
    """Complete reference library with two query genomes."""
    return write_reference_files(temp_dir)


@pytest.fixture
def search_config() -> SearchConfig:
    """Default configuration reading the 'id' profile column."""
    return SearchConfig(identifier_field="id")


# =============================================================================
# Model Factories
# =============================================================================


@pytest.fixture
def two_allele_profile() -> Profile:
    """Profile with one allele at each locus (lengths 100 and 200)."""
    return Profile(
        identifier=7,
        name="ISOLATE_7",
        feature="Neisseria meningitidis",
        alleles=(
            Allele(locus_id="BACT000001", index="1"),
            Allele(locus_id="BACT000002", index="1"),
        ),
    )


@pytest.fixture
def make_match():
    """Factory for PairwiseMatch objects built from a 13-column record."""

    def _make(allele: str, **kwargs) -> PairwiseMatch:
        return PairwiseMatch.from_blast_line(blast_line(allele, **kwargs))

    return _make


@pytest.fixture
def make_scored():
    """Factory for ScoredProfile objects with chosen counts."""

    def _make(
        identifier: int,
        *,
        identical: int = 0,
        matched: int = 0,
        total: int = 100,
        score: int = 0,
        feature: str = "N/A",
        method: IdentityMethod = IdentityMethod.LOCAL,
    ) -> ScoredProfile:
        profile = Profile(identifier=identifier, name=f"ISOLATE_{identifier}", feature=feature)
        return ScoredProfile(
            profile=profile,
            query_filename="query.fa",
            method=method,
            matched_allele_count=1 if matched else 0,
            profile_allele_count=1,
            identical_nucleotide_count=identical,
            matched_nucleotide_count=matched,
            profile_nucleotide_count=total,
            total_score=score,
        )

    return _make


# =============================================================================
# CLI Fixtures
# =============================================================================


@pytest.fixture
def cli_runner():
    """Typer CLI runner for testing commands."""
    from typer.testing import CliRunner

    return CliRunner()
