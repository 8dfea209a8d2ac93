"""
Unit tests for input table readers.

Covers name lists, allele lengths, profile tables and thresholds tables,
including the fatal and the logged-and-skipped malformations.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from mlss.core.constants import RMLST_LOCI
from mlss.core.exceptions import (
    AlleleLengthError,
    InputListError,
    InvalidRangeError,
    ProfileTableError,
    ThresholdsTableError,
)
from mlss.core.readers import (
    ProfileTableReader,
    find_missing_lengths,
    find_profiles_without_thresholds,
    read_allele_lengths,
    read_fasta_lengths,
    read_lengths_file,
    read_name_list,
    read_thresholds,
)
from mlss.models.profile import AlleleParsingPolicy

LOCI = ("BACT000001", "BACT000002")

# =============================================================================
# Name lists
# =============================================================================


class TestReadNameList:
    """Tests for query and loci list files."""

    def test_first_word_and_basename(self, temp_dir: Path):
        """Only the first word of each line is used, without directories."""
        path = temp_dir / "list.txt"
        path.write_text("dir/a.fa extra words\nb.fa\n")
        assert read_name_list(path) == ["a.fa", "b.fa"]

    def test_empty_and_duplicate_lines(self, temp_dir: Path, caplog):
        """Empty lines and duplicates are skipped with a warning."""
        path = temp_dir / "list.txt"
        path.write_text("a.fa\n\nb.fa\na.fa\n")
        with caplog.at_level(logging.WARNING):
            names = read_name_list(path)
        assert names == ["a.fa", "b.fa"]
        assert "Empty line" in caplog.text
        assert "Duplicate entry" in caplog.text

    def test_range_counts_non_empty_lines(self, temp_dir: Path):
        """first/last select 1-based positions over non-empty lines."""
        path = temp_dir / "list.txt"
        path.write_text("a.fa\n\nb.fa\nc.fa\nd.fa\n")
        assert read_name_list(path, first=2, last=3) == ["b.fa", "c.fa"]

    @pytest.mark.parametrize(("first", "last"), [(1, 0), (0, 2), (3, 2)])
    def test_invalid_range(self, temp_dir: Path, first, last):
        """first and last must be given together with first <= last."""
        path = temp_dir / "list.txt"
        path.write_text("a.fa\n")
        with pytest.raises(InvalidRangeError):
            read_name_list(path, first=first, last=last)

    def test_empty_list_is_fatal(self, temp_dir: Path):
        """A list without entries cannot be used."""
        path = temp_dir / "list.txt"
        path.write_text("\n\n")
        with pytest.raises(InputListError, match="no entries"):
            read_name_list(path)

    def test_default_loci(self):
        """The built-in rMLST scheme has 53 loci."""
        assert len(RMLST_LOCI) == 53
        assert RMLST_LOCI[0] == "BACT000001"
        assert "BACT000037" not in RMLST_LOCI
        assert RMLST_LOCI[-1] == "BACT000065"


# =============================================================================
# Allele lengths
# =============================================================================


class TestAlleleLengths:
    """Tests for allele length sources."""

    def test_fasta_lengths(self, temp_dir: Path):
        """Sequence lengths ignore whitespace, '*' and '#' lines."""
        path = temp_dir / "alleles.fas"
        path.write_text(">A_1 desc\nACGT\nAC GT*\r\n# comment\n>A_2\nAAA\n")
        assert read_fasta_lengths(path) == {"A_1": 8, "A_2": 3}

    def test_lengths_file_preferred(self, temp_dir: Path):
        """'<db>.lengths' is used when present."""
        database = temp_dir / "alleles.fas"
        database.write_text(">A_1\nACGT\n")
        (temp_dir / "alleles.fas.lengths").write_text("A_1\t500\n")
        assert read_allele_lengths(database) == {"A_1": 500}

    def test_fasta_fallback(self, temp_dir: Path):
        """Lengths are measured from the FASTA file without a lengths file."""
        database = temp_dir / "alleles.fas"
        database.write_text(">A_1\nACGT\n")
        assert read_allele_lengths(database) == {"A_1": 4}

    def test_lengths_file_duplicates_keep_first(self, temp_dir: Path, caplog):
        """Duplicate identifiers are logged and the first value kept."""
        path = temp_dir / "x.lengths"
        path.write_text("A_1\t10\n\nA_1\t20\n")
        with caplog.at_level(logging.ERROR):
            assert read_lengths_file(path) == {"A_1": 10}
        assert "Duplicate entry" in caplog.text

    def test_lengths_file_wrong_columns(self, temp_dir: Path):
        """Lines without two columns are fatal."""
        path = temp_dir / "x.lengths"
        path.write_text("A_1\t10\textra\n")
        with pytest.raises(AlleleLengthError, match="expected 2 columns"):
            read_lengths_file(path)

    def test_empty_lengths_fatal(self, temp_dir: Path):
        """A database without any sequence is fatal."""
        database = temp_dir / "alleles.fas"
        database.write_text("")
        with pytest.raises(AlleleLengthError):
            read_allele_lengths(database)


# =============================================================================
# Profile table
# =============================================================================


def _write_profiles(temp_dir: Path, text: str) -> Path:
    path = temp_dir / "profiles.txt"
    path.write_text(text)
    return path


class TestProfileTableReader:
    """Tests for profile table parsing."""

    def test_profiles_sorted_by_identifier(self, reference_files):
        """Profiles come back sorted by numeric identifier, not table order."""
        profiles = ProfileTableReader("id", LOCI).read(reference_files.profiles)
        assert [p.identifier for p in profiles] == [1, 2, 3]
        assert profiles[0].name == "ISOLATE_1"
        assert profiles[0].alias == "iso_one"
        assert profiles[0].feature == "Alpha"
        assert profiles[2].allele_identifiers == ["BACT000001_1", "BACT000002_2"]

    def test_name_prefix_follows_identifier_field(self, temp_dir: Path):
        """rST tables produce RST_ names."""
        path = _write_profiles(temp_dir, "rST\tBACT000001\tBACT000002\n5\t1\t1\n")
        profiles = ProfileTableReader("rST", LOCI).read(path)
        assert profiles[0].name == "RST_5"
        assert profiles[0].feature == "N/A"
        assert profiles[0].alias == "N/A"

    def test_paralogous_cells(self, temp_dir: Path):
        """Semicolon-separated values are filtered one by one."""
        path = _write_profiles(temp_dir, "id\tBACT000001\tBACT000002\n1\t1;2;[3]\t0\n")
        profiles = ProfileTableReader("id", LOCI).read(path)
        assert profiles[0].allele_identifiers == ["BACT000001_1", "BACT000001_2"]

    def test_policy_passed_to_parser(self, temp_dir: Path):
        """An accepting policy reads special values as alleles."""
        path = _write_profiles(temp_dir, "id\tBACT000001\tBACT000002\n1\tN\t0\n")
        policy = AlleleParsingPolicy(accept_zero=True, accept_paralogous_flag=True)
        profiles = ProfileTableReader("id", LOCI, policy=policy).read(path)
        assert profiles[0].allele_identifiers == ["BACT000001_N", "BACT000002_0"]

    def test_duplicate_identifiers_merge(self, temp_dir: Path, caplog):
        """Repeated identifiers merge alleles into the first row's profile."""
        path = _write_profiles(
            temp_dir,
            "id\tspecies\tBACT000001\tBACT000002\n"
            "1\tAlpha\t1\t0\n"
            "1\tOther\t0\t4\n",
        )
        with caplog.at_level(logging.WARNING):
            profiles = ProfileTableReader("id", LOCI).read(path)
        assert len(profiles) == 1
        assert profiles[0].feature == "Alpha"
        assert profiles[0].allele_identifiers == ["BACT000001_1", "BACT000002_4"]
        assert "Duplicate profile identifier" in caplog.text

    def test_short_rows_padded(self, temp_dir: Path):
        """Missing trailing cells are read as empty."""
        path = _write_profiles(temp_dir, "id\tBACT000001\tBACT000002\n1\t1\n")
        profiles = ProfileTableReader("id", LOCI).read(path)
        assert profiles[0].allele_identifiers == ["BACT000001_1"]

    def test_custom_feature_field(self, temp_dir: Path):
        """The feature column is configurable."""
        path = _write_profiles(temp_dir, "id\tgenus\tBACT000001\tBACT000002\n1\tNeisseria\t1\t1\n")
        profiles = ProfileTableReader("id", LOCI, feature_field="genus").read(path)
        assert profiles[0].feature == "Neisseria"

    def test_duplicate_header_fatal(self, temp_dir: Path):
        """Duplicate header names abort the load."""
        path = _write_profiles(temp_dir, "id\tBACT000001\tBACT000001\tBACT000002\n1\t1\t1\t1\n")
        with pytest.raises(ProfileTableError, match="duplicate header"):
            ProfileTableReader("id", LOCI).read(path)

    def test_missing_identifier_column_fatal(self, temp_dir: Path):
        """The configured identifier column must exist."""
        path = _write_profiles(temp_dir, "id\tBACT000001\tBACT000002\n1\t1\t1\n")
        with pytest.raises(ProfileTableError, match="'rST' is missing"):
            ProfileTableReader("rST", LOCI).read(path)

    def test_missing_locus_column_fatal(self, temp_dir: Path):
        """Every requested locus must have a column."""
        path = _write_profiles(temp_dir, "id\tBACT000001\n1\t1\n")
        with pytest.raises(ProfileTableError, match="locus column"):
            ProfileTableReader("id", LOCI).read(path)

    def test_non_integer_identifier_fatal(self, temp_dir: Path):
        """Identifiers must be integers."""
        path = _write_profiles(temp_dir, "id\tBACT000001\tBACT000002\nabc\t1\t1\n")
        with pytest.raises(ProfileTableError, match="not an integer"):
            ProfileTableReader("id", LOCI).read(path)

    def test_negative_identifier_fatal(self, temp_dir: Path):
        """Identifiers must not be negative."""
        path = _write_profiles(temp_dir, "id\tBACT000001\tBACT000002\n-3\t1\t1\n")
        with pytest.raises(ProfileTableError, match="is negative"):
            ProfileTableReader("id", LOCI).read(path)

    def test_no_profiles_fatal(self, temp_dir: Path):
        """A header without data rows is fatal."""
        path = _write_profiles(temp_dir, "id\tBACT000001\tBACT000002\n")
        with pytest.raises(ProfileTableError, match="no profiles"):
            ProfileTableReader("id", LOCI).read(path)

    def test_missing_lengths(self, reference_files):
        """Alleles without a length are reported once each."""
        profiles = ProfileTableReader("id", LOCI).read(reference_files.profiles)
        lengths = {"BACT000001_1": 100, "BACT000002_1": 200}
        assert find_missing_lengths(profiles, lengths) == ["BACT000001_2", "BACT000002_2"]


# =============================================================================
# Thresholds table
# =============================================================================


class TestReadThresholds:
    """Tests for the thresholds table."""

    def test_read_entries(self, reference_files):
        """Comment lines are skipped and entries keyed by profile name."""
        thresholds = read_thresholds(reference_files.thresholds)
        assert set(thresholds) == {"ISOLATE_1", "ISOLATE_2", "ISOLATE_3"}
        assert thresholds["ISOLATE_2"].upper == 97.0

    def test_fraction_rederivation(self, temp_dir: Path):
        """Bounds are re-derived from fractions."""
        path = temp_dir / "thresholds.txt"
        path.write_text("ISOLATE_1\t99.9\t999/1000\t10\t1/10\tAlpha\tnone\n")
        entry = read_thresholds(path)["ISOLATE_1"]
        assert entry.upper == pytest.approx(99.9)
        assert entry.lower == pytest.approx(10.0)

    def test_leading_whitespace_and_duplicates(self, temp_dir: Path, caplog):
        """Leading whitespace is stripped and duplicates keep the first entry."""
        path = temp_dir / "thresholds.txt"
        path.write_text(
            "  ISOLATE_1\t95\t0/0\t90\t0/0\tAlpha\tfirst\n"
            "ISOLATE_1\t96\t0/0\t91\t0/0\tAlpha\tsecond\n"
        )
        with caplog.at_level(logging.ERROR):
            entries = read_thresholds(path)
        assert entries["ISOLATE_1"].comment == "first"
        assert "Duplicate thresholds entry" in caplog.text

    def test_invalid_rows_reported_together(self, temp_dir: Path):
        """Every invalid row is collected before failing."""
        path = temp_dir / "thresholds.txt"
        path.write_text(
            "ISOLATE_1\t80\t0/0\t90\t0/0\tAlpha\tinverted\n"
            "ISOLATE_2\t95\t1/0\t90\t0/0\tbeta\tbad fraction\n"
            "ISOLATE_3\t95\t0/0\n"
        )
        with pytest.raises(ThresholdsTableError) as exc_info:
            read_thresholds(path)
        assert exc_info.value.names == ["ISOLATE_1", "ISOLATE_2", "line 3"]

    def test_empty_table_fatal(self, temp_dir: Path):
        """A table without entries is fatal."""
        path = temp_dir / "thresholds.txt"
        path.write_text("# only a comment\n")
        with pytest.raises(ThresholdsTableError, match="no threshold entries"):
            read_thresholds(path)

    def test_profiles_without_thresholds(self, reference_files):
        """Profiles missing from the table are listed."""
        profiles = ProfileTableReader("id", LOCI).read(reference_files.profiles)
        thresholds = read_thresholds(reference_files.thresholds)
        del thresholds["ISOLATE_2"]
        assert find_profiles_without_thresholds(profiles, thresholds) == ["ISOLATE_2"]
