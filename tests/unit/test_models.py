"""
Unit tests for MLSS pydantic models.

Covers profiles and allele parsing policy, pairwise alignment records,
scored profiles, traffic light thresholds and results rows.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from mlss.models.pairwise import Orientation, PairwiseMatch
from mlss.models.profile import (
    Allele,
    AlleleParsingPolicy,
    IdentifierField,
    Profile,
    profile_name_prefix,
)
from mlss.models.scan import IdentityMethod, ScanRecord, ScoredProfile, TrafficLight
from mlss.models.thresholds import ThresholdEntry

# =============================================================================
# Profiles
# =============================================================================


class TestIdentifierField:
    """Tests for profile name prefixes."""

    @pytest.mark.parametrize(
        ("field", "prefix"),
        [("id", "ISOLATE_"), ("rST", "RST_"), ("ST", "ST_"), ("cgST", "USER-DEFINED_")],
    )
    def test_prefixes(self, field, prefix):
        """Each identifier column maps to its own name prefix."""
        assert profile_name_prefix(field) == prefix

    def test_enum_prefix(self):
        """The enum exposes the prefix of its column."""
        assert IdentifierField.RST.prefix == "RST_"


class TestAlleleParsingPolicy:
    """Tests for allele cell acceptance."""

    def test_default_accepts_positive_indexes_only(self):
        """The default policy reads numeric indexes and skips special values."""
        policy = AlleleParsingPolicy()
        assert policy.accepts("12")
        assert not policy.accepts("0")
        assert not policy.accepts("[12]")
        assert not policy.accepts("")
        assert not policy.accepts("N")

    def test_each_flag_is_independent(self):
        """Enabling one flag only affects its own category."""
        policy = AlleleParsingPolicy(accept_zero=True)
        assert policy.accepts("0")
        assert not policy.accepts("N")
        assert not policy.accepts("")

    def test_bracket_check_precedes_missing_check(self):
        """A bracketed value is decided by the bracket flag alone."""
        policy = AlleleParsingPolicy(accept_bracketed=False, accept_missing=True)
        assert not policy.accepts("12]")
        policy = AlleleParsingPolicy(accept_bracketed=True)
        assert policy.accepts("[5]")

    def test_frozen(self):
        """Policies cannot be mutated after creation."""
        policy = AlleleParsingPolicy()
        with pytest.raises(ValidationError):
            policy.accept_zero = True


class TestProfile:
    """Tests for Profile and Allele."""

    def test_allele_identifier(self):
        """Allele identifiers join locus and index with an underscore."""
        assert Allele(locus_id="BACT000035", index="7").identifier == "BACT000035_7"

    def test_empty_labels_become_not_available(self):
        """Empty feature and alias are reported as N/A."""
        profile = Profile(identifier=1, name="ISOLATE_1", feature="", alias="  ")
        assert profile.feature == "N/A"
        assert profile.alias == "N/A"

    def test_repeated_alleles_kept_once(self):
        """Repeated alleles collapse to their first occurrence."""
        allele = Allele(locus_id="BACT000001", index="1")
        profile = Profile(identifier=1, name="ISOLATE_1", alleles=(allele, allele))
        assert profile.allele_count == 1

    def test_with_alleles_appends(self):
        """with_alleles returns a copy with extra alleles at the end."""
        first = Allele(locus_id="BACT000001", index="1")
        second = Allele(locus_id="BACT000002", index="4")
        profile = Profile(identifier=1, name="ISOLATE_1", alleles=(first,))
        merged = profile.with_alleles([second, first])
        assert merged.allele_identifiers == ["BACT000001_1", "BACT000002_4"]
        assert profile.allele_count == 1

    def test_negative_identifier_rejected(self):
        """Profile identifiers are non-negative integers."""
        with pytest.raises(ValidationError):
            Profile(identifier=-1, name="ISOLATE_-1")


# =============================================================================
# Pairwise matches
# =============================================================================


class TestPairwiseMatch:
    """Tests for 13-column alignment records."""

    def test_parse_forward_record(self):
        """A forward record keeps its coordinates and counts."""
        line = "c1\tBACT000001_1\t5000\t100\t11\t110\t1\t100\t99.000\t100\t1e-50\t190\t99"
        match = PairwiseMatch.from_blast_line(line)
        assert match.match_name == "BACT000001_1"
        assert match.query_start == 11
        assert match.query_end == 110
        assert match.orientation == Orientation.FORWARD
        assert match.identical_count == 99
        assert match.score == 190

    def test_reversed_coordinates_are_normalized(self):
        """Reversed coordinates are swapped so start <= end."""
        line = "c1\tBACT000001_1\t5000\t100\t110\t11\t100\t1\t99.000\t100\t1e-50\t190\t99"
        match = PairwiseMatch.from_blast_line(line)
        assert (match.query_start, match.query_end) == (11, 110)
        assert (match.match_start, match.match_end) == (1, 100)
        assert match.orientation == Orientation.REVERSE

    def test_segment_length_and_overlap(self):
        """Segment length is end - start + 1 and overlap is relative to the allele."""
        line = "c1\tBACT000001_1\t5000\t200\t1\t100\t51\t150\t100.000\t100\t1e-50\t200\t100"
        match = PairwiseMatch.from_blast_line(line)
        assert match.match_segment_length == 100
        assert match.match_overlap == pytest.approx(50.0)

    def test_zero_length_allele_overlap(self):
        """A zero allele length gives an overlap of 0 instead of failing."""
        line = "c1\tBACT000001_1\t5000\t0\t1\t1\t1\t1\t100.000\t1\t1e-50\t2\t1"
        assert PairwiseMatch.from_blast_line(line).match_overlap == 0.0

    def test_log_evalue(self):
        """log_evalue is -log10(evalue), or 300 for an e-value of 0."""
        line = "c1\tBACT000001_1\t5000\t100\t1\t100\t1\t100\t100.000\t100\t{}\t200\t100"
        assert PairwiseMatch.from_blast_line(line.format("0.0")).log_evalue == 300.0
        assert PairwiseMatch.from_blast_line(line.format("1e-20")).log_evalue == pytest.approx(20.0)

    def test_wrong_field_count(self):
        """Records without exactly 13 fields are rejected."""
        with pytest.raises(ValueError, match="Expected 13 fields"):
            PairwiseMatch.from_blast_line("c1\tBACT000001_1\t5000")

    def test_identity_clamped(self):
        """Rounded identities above 100 are clamped."""
        line = "c1\tBACT000001_1\t5000\t100\t1\t100\t1\t100\t100.001\t100\t0\t200\t100"
        assert PairwiseMatch.from_blast_line(line).sequence_identity == 100.0


# =============================================================================
# Scored profiles
# =============================================================================


class TestScoredProfile:
    """Tests for identity and overlap derivation."""

    def test_local_identity_uses_matched_nucleotides(self, make_scored):
        """Local identity divides by the matched nucleotide count."""
        scored = make_scored(1, identical=90, matched=100, total=300)
        assert scored.identity_denominator == 100
        assert scored.sequence_identity == pytest.approx(90.0)
        assert scored.nucleotide_overlap == pytest.approx(33.333333)

    def test_global_identity_uses_profile_nucleotides(self, make_scored):
        """Global identity divides by the profile nucleotide count."""
        scored = make_scored(1, identical=90, matched=100, total=300, method=IdentityMethod.GLOBAL)
        assert scored.identity_denominator == 300
        assert scored.sequence_identity == pytest.approx(30.0)

    def test_zero_denominators(self, make_scored):
        """Zero denominators give 0 instead of a division error."""
        scored = make_scored(1, total=0)
        assert scored.sequence_identity == 0.0
        assert scored.nucleotide_overlap == 0.0

    def test_defaults(self, make_scored):
        """Fresh scored profiles are unranked and unclassified."""
        scored = make_scored(1)
        assert scored.rank is None
        assert scored.colour == TrafficLight.NOT_AVAILABLE

    def test_with_rank_and_colour_copy(self, make_scored):
        """with_rank and with_colour return updated copies."""
        scored = make_scored(1)
        updated = scored.with_rank(3).with_colour(TrafficLight.GREEN)
        assert (updated.rank, updated.colour) == (3, TrafficLight.GREEN)
        assert scored.rank is None

    def test_frozen(self, make_scored):
        """Scored profiles are read-only."""
        scored = make_scored(1)
        with pytest.raises(ValidationError):
            scored.total_score = 5

    def test_profile_accessors(self, two_allele_profile):
        """Name, feature and identifier come from the profile."""
        scored = ScoredProfile(profile=two_allele_profile, query_filename="q.fa")
        assert scored.profile_name == "ISOLATE_7"
        assert scored.feature == "Neisseria meningitidis"
        assert scored.profile_identifier == 7


# =============================================================================
# Thresholds
# =============================================================================


class TestThresholdEntry:
    """Tests for threshold bounds and fraction re-derivation."""

    def test_plain_bounds(self):
        """Bounds are used as given when no fraction is set."""
        entry = ThresholdEntry(profile_name="ISOLATE_1", upper=95, lower=90)
        assert (entry.upper, entry.lower) == (95.0, 90.0)

    def test_bounds_derived_from_fractions(self):
        """A set fraction replaces the rounded percentage."""
        entry = ThresholdEntry(
            profile_name="ISOLATE_1",
            upper=98.85,
            upper_fraction="20622/20862",
            lower=50.0,
            lower_fraction="1/2",
        )
        assert entry.upper == pytest.approx(100 * 20622 / 20862)
        assert entry.lower == pytest.approx(50.0)

    def test_malformed_fraction(self):
        """Fractions must be integer/integer."""
        with pytest.raises(ValidationError, match="integer/integer"):
            ThresholdEntry(profile_name="X", upper=95, upper_fraction="9.5/10", lower=90)

    def test_zero_denominator(self):
        """A zero denominator is rejected."""
        with pytest.raises(ValidationError, match="Denominator"):
            ThresholdEntry(profile_name="X", upper=95, lower=90, lower_fraction="5/0")

    def test_upper_below_lower(self):
        """Upper must not be lower than lower."""
        with pytest.raises(ValidationError, match="lower than lower"):
            ThresholdEntry(profile_name="X", upper=80, lower=90)

    def test_out_of_range(self):
        """Bounds outside 0-100 are rejected."""
        with pytest.raises(ValidationError, match="outside the allowed range"):
            ThresholdEntry(profile_name="X", upper=101, lower=90)

    def test_to_line(self):
        """Entries render as 7 tab-separated columns."""
        entry = ThresholdEntry(profile_name="ISOLATE_1", upper=95, lower=90, feature="Alpha")
        assert entry.to_line().split("\t") == [
            "ISOLATE_1",
            "95.00000",
            "0/0",
            "90.00000",
            "0/0",
            "Alpha",
            "N/A",
        ]


# =============================================================================
# Results rows
# =============================================================================


class TestScanRecord:
    """Tests for parsing results lines."""

    LINE = (
        "1\tq1.fa\tISOLATE_1\t100.00000\tAlpha\tGreen\t100.00000\t2/2\t"
        "300/300\t300/300\t600\t1\tlocal"
    )

    def test_from_line(self):
        """Count pairs are split into their integers."""
        record = ScanRecord.from_line(self.LINE + "\n")
        assert record.rank == 1
        assert record.colour == TrafficLight.GREEN
        assert record.matched_allele_count == 2
        assert record.identity_denominator == 300
        assert record.method == IdentityMethod.LOCAL

    def test_wrong_column_count(self):
        """Lines without 13 columns are rejected."""
        with pytest.raises(ValueError, match="Expected 13 columns"):
            ScanRecord.from_line("1\tq1.fa")

    def test_bad_count_pair(self):
        """Count pairs must be of the form a/b."""
        with pytest.raises(ValueError, match="count pair"):
            ScanRecord.from_line(self.LINE.replace("2/2", "2"))
